"""
Campaign Service Protocols

Defines interfaces for dependency injection and testing.
Following the protocol-based architecture pattern.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .models import (
    Campaign,
    CampaignRecipientEmail,
    CampaignStatus,
    EmailSettings,
    Member,
    RecipientDraft,
    RecipientStats,
    RecipientStatus,
    TargetCriteria,
)


# ====================
# Repository Protocols
# ====================


class CampaignRepositoryProtocol(Protocol):
    """
    Protocol for campaign data repository.

    Every campaign and recipient method takes the caller's organization
    id first and only ever sees rows of that organization.
    """

    async def initialize(self) -> None:
        """Initialize repository connection"""
        ...

    async def close(self) -> None:
        """Close repository connection"""
        ...

    async def health_check(self) -> bool:
        """Check repository health"""
        ...

    # Campaign CRUD
    async def create_campaign(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign"""
        ...

    async def get_campaign(
        self, organization_id: str, campaign_id: str
    ) -> Optional[Campaign]:
        """Get campaign by organization and ID"""
        ...

    async def list_campaigns(
        self,
        organization_id: str,
        status: Optional[CampaignStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        """List campaigns newest first"""
        ...

    async def update_campaign(
        self,
        organization_id: str,
        campaign_id: str,
        updates: Dict[str, Any],
        required_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        """Update campaign fields, optionally only while in ``required_status``"""
        ...

    async def transition_status(
        self,
        organization_id: str,
        campaign_id: str,
        from_statuses: Sequence[CampaignStatus],
        to_status: CampaignStatus,
        **fields: Any,
    ) -> Optional[Campaign]:
        """
        Atomically move a campaign to ``to_status`` if its current status
        is one of ``from_statuses``. Returns None when no row matched.
        """
        ...

    async def increment_counts(
        self, organization_id: str, campaign_id: str, sent: int, failed: int
    ) -> Optional[Campaign]:
        """Add to sent/failed counters"""
        ...

    async def soft_delete_campaign(self, organization_id: str, campaign_id: str) -> bool:
        """Soft delete campaign"""
        ...

    # Recipient operations
    async def count_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
    ) -> int:
        """Count recipient rows, optionally by status"""
        ...

    async def get_recipient_stats(
        self, organization_id: str, campaign_id: str
    ) -> RecipientStats:
        """Count recipient rows per status"""
        ...

    async def create_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        """Bulk insert PENDING rows, ignoring members already present"""
        ...

    async def replace_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        """Swap all recipient rows for new PENDING rows in one transaction"""
        ...

    async def list_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[CampaignRecipientEmail], int]:
        """List recipient rows ordered by status then name"""
        ...

    async def get_pending_recipients(
        self, organization_id: str, campaign_id: str, limit: int
    ) -> List[CampaignRecipientEmail]:
        """Oldest PENDING rows first"""
        ...

    async def skip_pending_recipients(self, organization_id: str, campaign_id: str) -> int:
        """Move every PENDING row to SKIPPED"""
        ...

    async def claim_recipient(self, organization_id: str, campaign_id: str, email_id: str) -> bool:
        """PENDING -> SENDING, only while the row is PENDING and the campaign SENDING"""
        ...

    async def update_recipient_status(
        self,
        organization_id: str,
        email_id: str,
        status: RecipientStatus,
        **fields: Any,
    ) -> bool:
        """Update one recipient row"""
        ...

    # Tracking (public, keyed by email id only)
    async def record_open(
        self, email_id: str, user_agent: Optional[str], ip_address: Optional[str]
    ) -> bool:
        """Record an open; False when the email id is unknown"""
        ...

    async def record_click(
        self,
        email_id: str,
        url: str,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> bool:
        """Record a click; False when the email id is unknown"""
        ...


class DirectoryRepositoryProtocol(Protocol):
    """Protocol for the member directory and organization lookups"""

    async def find_members(
        self,
        organization_id: str,
        criteria: Optional[TargetCriteria],
        limit: Optional[int] = None,
    ) -> List[Member]:
        """Members of the organization with an email that match the criteria"""
        ...

    async def get_member(self, organization_id: str, member_id: str) -> Optional[Member]:
        """Get one member of the organization"""
        ...

    async def get_organization_name(self, organization_id: str) -> Optional[str]:
        """Get the organization's display name"""
        ...

    async def get_email_settings(self, organization_id: str) -> EmailSettings:
        """Get the organization's email settings"""
        ...


# ====================
# Event Bus Protocol
# ====================


class EventBusProtocol(Protocol):
    """Protocol for event bus operations"""

    async def publish_event(self, event: Any) -> bool:
        """Publish an event to the event bus"""
        ...

    async def close(self) -> None:
        """Close event bus connection"""
        ...


# ====================
# Service Client Protocols
# ====================


class EmailTransportProtocol(Protocol):
    """Protocol for delivering one rendered email"""

    async def send_email(
        self,
        organization_id: str,
        to: str,
        subject: str,
        text: str,
        html: str,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Send an email; raises on delivery failure"""
        ...


# ====================
# Custom Exceptions
# ====================


class CampaignServiceError(Exception):
    """Base exception for campaign service errors"""
    pass


class CampaignNotFoundError(CampaignServiceError):
    """Raised when campaign is not found in the caller's organization"""

    def __init__(self, message: str = "Campaign not found"):
        super().__init__(message)


class MemberNotFoundError(CampaignServiceError):
    """Raised when no member is available for a preview"""

    def __init__(self, message: str = "No matching member found for preview"):
        super().__init__(message)


class PreconditionError(CampaignServiceError):
    """Raised when an operation's precondition does not hold"""
    pass


class InvalidCampaignStateError(PreconditionError):
    """Raised when campaign is in invalid state for operation"""

    def __init__(self, message: str, current_status: Optional[CampaignStatus] = None):
        super().__init__(message)
        self.current_status = current_status


class NoEligibleRecipientsError(PreconditionError):
    """Raised when targeting resolves to no member with a valid email"""

    def __init__(self, message: str = "No members with valid email addresses match the criteria"):
        super().__init__(message)


class EmailNotConfiguredError(PreconditionError):
    """Raised when the organization has no usable email settings"""

    def __init__(self, message: str = "SMTP is not configured. Please configure email settings first."):
        super().__init__(message)


class ServiceUnavailableError(CampaignServiceError):
    """Raised when a request arrives before the service is initialized"""

    def __init__(self, message: str = "Service not initialized"):
        super().__init__(message)


__all__ = [
    "CampaignRepositoryProtocol",
    "DirectoryRepositoryProtocol",
    "EventBusProtocol",
    "EmailTransportProtocol",
    "CampaignServiceError",
    "CampaignNotFoundError",
    "MemberNotFoundError",
    "PreconditionError",
    "InvalidCampaignStateError",
    "NoEligibleRecipientsError",
    "EmailNotConfiguredError",
    "ServiceUnavailableError",
]
