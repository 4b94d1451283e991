"""
Component Test Fixtures for Campaign Service

Provides fixtures for component testing with mocked dependencies.
Uses FastAPI TestClient for API testing.
"""

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from fastapi.testclient import TestClient

from core.config import CampaignConfig
from microservices.campaign_service import main
from microservices.campaign_service.campaign_service import CampaignService
from microservices.campaign_service.events.publishers import CampaignEventPublisher
from tests.contracts.campaign.data_contract import (
    # Enums
    CampaignStatus,
    RecipientStatus,
    UserRole,
    # Models
    Campaign,
    CampaignRecipientEmail,
    CallerContext,
    EmailSettings,
    Member,
    RecipientDraft,
    RecipientStats,
    TargetCriteria,
    # Factory
    CampaignTestDataFactory,
)

BASE_URL = "https://app.example.com"


# ====================
# Mock Repositories
# ====================


class MockCampaignRepository:
    """In-memory campaign repository with the same tenant and status guards"""

    def __init__(self):
        self.campaigns: Dict[str, Campaign] = {}
        self.emails: Dict[str, CampaignRecipientEmail] = {}
        self.opens: List[Dict[str, Any]] = []
        self.clicks: List[Dict[str, Any]] = []
        self.recipient_updates: List[Tuple[str, RecipientStatus]] = []
        self._race_status: Optional[CampaignStatus] = None
        self.fail_replace = False
        self._counter = 0

    async def initialize(self):
        pass

    async def close(self):
        pass

    async def health_check(self) -> bool:
        return True

    # Test helpers

    def add_campaign(self, campaign: Campaign) -> Campaign:
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign

    def add_recipient(self, email: CampaignRecipientEmail) -> CampaignRecipientEmail:
        self.emails[email.email_id] = email.model_copy(deep=True)
        return email

    def race_next_transition(self, status: CampaignStatus):
        """Simulate a concurrent writer moving the campaign just before the next transition"""
        self._race_status = status

    def stored(self, campaign_id: str) -> Campaign:
        return self.campaigns[campaign_id]

    def emails_of(
        self, campaign_id: str, status: Optional[RecipientStatus] = None
    ) -> List[CampaignRecipientEmail]:
        return [
            e for e in self.emails.values()
            if e.campaign_id == campaign_id and (status is None or e.status == status)
        ]

    def _scoped(self, organization_id: str, campaign_id: str) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign and campaign.organization_id == organization_id and campaign.deleted_at is None:
            return campaign
        return None

    def _scoped_emails(self, organization_id: str, campaign_id: str) -> List[CampaignRecipientEmail]:
        return [
            e for e in self.emails.values()
            if e.organization_id == organization_id and e.campaign_id == campaign_id
        ]

    # Campaign CRUD
    async def create_campaign(self, campaign: Campaign) -> Campaign:
        self.campaigns[campaign.campaign_id] = campaign.model_copy(deep=True)
        return campaign.model_copy(deep=True)

    async def get_campaign(self, organization_id: str, campaign_id: str) -> Optional[Campaign]:
        campaign = self._scoped(organization_id, campaign_id)
        return campaign.model_copy(deep=True) if campaign else None

    async def list_campaigns(
        self,
        organization_id: str,
        status: Optional[CampaignStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Campaign], int]:
        results = [
            c for c in self.campaigns.values()
            if c.organization_id == organization_id and c.deleted_at is None
        ]
        if status:
            results = [c for c in results if c.status == status]
        results.sort(key=lambda c: c.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return [c.model_copy(deep=True) for c in results[offset: offset + limit]], len(results)

    async def update_campaign(
        self,
        organization_id: str,
        campaign_id: str,
        updates: Dict[str, Any],
        required_status: Optional[CampaignStatus] = None,
    ) -> Optional[Campaign]:
        campaign = self._scoped(organization_id, campaign_id)
        if not campaign or (required_status and campaign.status != required_status):
            return None
        updated = campaign.model_copy(update={**updates, "updated_at": datetime.now(timezone.utc)})
        self.campaigns[campaign_id] = updated
        return updated.model_copy(deep=True)

    async def transition_status(
        self,
        organization_id: str,
        campaign_id: str,
        from_statuses: Sequence[CampaignStatus],
        to_status: CampaignStatus,
        **fields: Any,
    ) -> Optional[Campaign]:
        campaign = self._scoped(organization_id, campaign_id)
        if campaign and self._race_status is not None:
            campaign = campaign.model_copy(update={"status": self._race_status})
            self.campaigns[campaign_id] = campaign
            self._race_status = None
        if not campaign or campaign.status not in from_statuses:
            return None
        updated = campaign.model_copy(
            update={**fields, "status": to_status, "updated_at": datetime.now(timezone.utc)}
        )
        self.campaigns[campaign_id] = updated
        return updated.model_copy(deep=True)

    async def increment_counts(
        self, organization_id: str, campaign_id: str, sent: int, failed: int
    ) -> Optional[Campaign]:
        campaign = self._scoped(organization_id, campaign_id)
        if not campaign:
            return None
        updated = campaign.model_copy(update={
            "sent_count": campaign.sent_count + sent,
            "failed_count": campaign.failed_count + failed,
        })
        self.campaigns[campaign_id] = updated
        return updated.model_copy(deep=True)

    async def soft_delete_campaign(self, organization_id: str, campaign_id: str) -> bool:
        campaign = self._scoped(organization_id, campaign_id)
        if not campaign:
            return False
        self.campaigns[campaign_id] = campaign.model_copy(
            update={"deleted_at": datetime.now(timezone.utc)}
        )
        return True

    # Recipient operations
    async def count_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
    ) -> int:
        return len([
            e for e in self._scoped_emails(organization_id, campaign_id)
            if status is None or e.status == status
        ])

    async def get_recipient_stats(self, organization_id: str, campaign_id: str) -> RecipientStats:
        counts: Dict[str, int] = {}
        for email in self._scoped_emails(organization_id, campaign_id):
            key = email.status.value.lower()
            counts[key] = counts.get(key, 0) + 1
        return RecipientStats(**counts)

    async def create_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        existing = {e.member_id for e in self._scoped_emails(organization_id, campaign_id)}
        inserted = 0
        for draft in recipients:
            if draft.member_id in existing:
                continue
            self._counter += 1
            email_id = f"cre_{self._counter:016d}"
            self.emails[email_id] = CampaignRecipientEmail(
                email_id=email_id,
                campaign_id=campaign_id,
                organization_id=organization_id,
                member_id=draft.member_id,
                recipient_email=draft.recipient_email,
                recipient_name=draft.recipient_name,
                status=RecipientStatus.PENDING,
                created_at=datetime.now(timezone.utc),
            )
            existing.add(draft.member_id)
            inserted += 1
        return inserted

    async def replace_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        recipients: List[RecipientDraft],
    ) -> int:
        if self.fail_replace:
            raise ConnectionError("insert failed")
        for email in self._scoped_emails(organization_id, campaign_id):
            del self.emails[email.email_id]
        return await self.create_recipients(organization_id, campaign_id, recipients)

    async def list_recipients(
        self,
        organization_id: str,
        campaign_id: str,
        status: Optional[RecipientStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[CampaignRecipientEmail], int]:
        results = [
            e for e in self._scoped_emails(organization_id, campaign_id)
            if status is None or e.status == status
        ]
        results.sort(key=lambda e: (e.status.value, e.recipient_name))
        return [e.model_copy() for e in results[offset: offset + limit]], len(results)

    async def get_pending_recipients(
        self, organization_id: str, campaign_id: str, limit: int
    ) -> List[CampaignRecipientEmail]:
        pending = [
            e for e in self._scoped_emails(organization_id, campaign_id)
            if e.status == RecipientStatus.PENDING
        ]
        return [e.model_copy() for e in pending[:limit]]

    async def skip_pending_recipients(self, organization_id: str, campaign_id: str) -> int:
        skipped = 0
        for email in self._scoped_emails(organization_id, campaign_id):
            if email.status == RecipientStatus.PENDING:
                self.emails[email.email_id] = email.model_copy(update={"status": RecipientStatus.SKIPPED})
                skipped += 1
        return skipped

    async def claim_recipient(self, organization_id: str, campaign_id: str, email_id: str) -> bool:
        email = self.emails.get(email_id)
        campaign = self._scoped(organization_id, campaign_id)
        if (
            not email
            or email.organization_id != organization_id
            or email.campaign_id != campaign_id
            or email.status != RecipientStatus.PENDING
            or not campaign
            or campaign.status != CampaignStatus.SENDING
        ):
            return False
        self.emails[email_id] = email.model_copy(update={"status": RecipientStatus.SENDING})
        self.recipient_updates.append((email_id, RecipientStatus.SENDING))
        return True

    async def update_recipient_status(
        self,
        organization_id: str,
        email_id: str,
        status: RecipientStatus,
        **fields: Any,
    ) -> bool:
        email = self.emails.get(email_id)
        if not email or email.organization_id != organization_id:
            return False
        self.emails[email_id] = email.model_copy(update={**fields, "status": status})
        self.recipient_updates.append((email_id, status))
        return True

    # Tracking
    async def record_open(
        self, email_id: str, user_agent: Optional[str], ip_address: Optional[str]
    ) -> bool:
        email = self.emails.get(email_id)
        if not email:
            return False
        now = datetime.now(timezone.utc)
        is_first = email.open_count == 0
        self.emails[email_id] = email.model_copy(update={
            "open_count": email.open_count + 1,
            "first_opened_at": email.first_opened_at or now,
            "last_opened_at": now,
        })
        self.opens.append({"email_id": email_id, "user_agent": user_agent, "ip_address": ip_address})
        campaign = self.campaigns[email.campaign_id]
        self.campaigns[email.campaign_id] = campaign.model_copy(update={
            "total_opens": campaign.total_opens + 1,
            "unique_opens": campaign.unique_opens + (1 if is_first else 0),
        })
        return True

    async def record_click(
        self,
        email_id: str,
        url: str,
        user_agent: Optional[str],
        ip_address: Optional[str],
    ) -> bool:
        email = self.emails.get(email_id)
        if not email:
            return False
        is_first = email.click_count == 0
        self.emails[email_id] = email.model_copy(update={"click_count": email.click_count + 1})
        self.clicks.append({
            "email_id": email_id, "url": url, "user_agent": user_agent, "ip_address": ip_address,
        })
        campaign = self.campaigns[email.campaign_id]
        self.campaigns[email.campaign_id] = campaign.model_copy(update={
            "total_clicks": campaign.total_clicks + 1,
            "unique_clicks": campaign.unique_clicks + (1 if is_first else 0),
        })
        return True


class MockDirectoryRepository:
    """In-memory member directory"""

    def __init__(self):
        self.members: List[Member] = []
        self.organization_names: Dict[str, str] = {}
        self.email_settings: Dict[str, EmailSettings] = {}
        self.find_calls: List[Tuple[str, Optional[TargetCriteria], Optional[int]]] = []

    def add_member(self, member: Member) -> Member:
        self.members.append(member)
        return member

    async def find_members(
        self,
        organization_id: str,
        criteria: Optional[TargetCriteria],
        limit: Optional[int] = None,
    ) -> List[Member]:
        self.find_calls.append((organization_id, criteria, limit))
        results = [
            m for m in self.members
            if m.organization_id == organization_id and m.email is not None
        ]
        if criteria is not None:
            if criteria.departments:
                results = [m for m in results if m.department_id in criteria.departments]
            if criteria.statuses:
                results = [m for m in results if m.status in criteria.statuses]
            if criteria.employment_types:
                results = [m for m in results if m.employment_type in criteria.employment_types]
        results.sort(key=lambda m: (m.last_name, m.first_name))
        return results[:limit] if limit else results

    async def get_member(self, organization_id: str, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.member_id == member_id and member.organization_id == organization_id:
                return member
        return None

    async def get_organization_name(self, organization_id: str) -> Optional[str]:
        return self.organization_names.get(organization_id)

    async def get_email_settings(self, organization_id: str) -> EmailSettings:
        return self.email_settings.get(organization_id, EmailSettings())


class MockEmailTransport:
    """Records sent emails; addresses in fail_for raise on send"""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for: Set[str] = set()
        self.after_send: Optional[Callable[[Dict[str, Any]], Awaitable[None]]] = None

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
        if to in self.fail_for:
            raise ConnectionError(f"SMTP rejected {to}")
        message = {
            "organization_id": organization_id,
            "to": to,
            "subject": subject,
            "text": text,
            "html": html,
            "from_email": from_email,
            "from_name": from_name,
            **kwargs,
        }
        self.sent.append(message)
        if self.after_send:
            await self.after_send(message)
        return {"success": True}


# ====================
# Fixtures
# ====================


@pytest.fixture
def factory():
    """Provide CampaignTestDataFactory"""
    return CampaignTestDataFactory


@pytest.fixture
def org_id(factory) -> str:
    return factory.make_organization_id()


@pytest.fixture
def admin(factory, org_id) -> CallerContext:
    """ADMIN caller of the test organization"""
    return factory.make_caller(organization_id=org_id, role=UserRole.ADMIN)


@pytest.fixture
def viewer(factory, org_id) -> CallerContext:
    """VIEWER caller of the test organization"""
    return factory.make_caller(organization_id=org_id, role=UserRole.VIEWER)


@pytest.fixture
def mock_repository() -> MockCampaignRepository:
    """Fresh in-memory campaign repository for each test"""
    return MockCampaignRepository()


@pytest.fixture
def mock_directory(factory, org_id) -> MockDirectoryRepository:
    """Directory with SMTP configured for the test organization"""
    directory = MockDirectoryRepository()
    directory.organization_names[org_id] = "Local 42"
    directory.email_settings[org_id] = factory.make_email_settings()
    return directory


@pytest.fixture
def mock_transport() -> MockEmailTransport:
    return MockEmailTransport()


@pytest.fixture
def service(mock_repository, mock_directory, mock_transport, mock_event_bus) -> CampaignService:
    """CampaignService wired to the in-memory mocks"""
    return CampaignService(
        repository=mock_repository,
        directory=mock_directory,
        event_publisher=CampaignEventPublisher(mock_event_bus),
        email_transport=mock_transport,
        config=CampaignConfig(default_batch_size=50, max_batch_size=100),
        base_url=BASE_URL,
    )


@pytest.fixture
def draft_campaign(factory, org_id, mock_repository) -> Campaign:
    """Stored DRAFT campaign of the test organization"""
    return mock_repository.add_campaign(factory.make_campaign(organization_id=org_id))


@pytest.fixture
def sending_campaign(factory, org_id, mock_repository) -> Campaign:
    """Stored SENDING campaign of the test organization"""
    return mock_repository.add_campaign(
        factory.make_campaign(organization_id=org_id, status=CampaignStatus.SENDING)
    )


@pytest.fixture
def client(service, mock_repository):
    """TestClient with the app's factory replaced by the mocked service"""
    fake_factory = MagicMock()
    fake_factory.service = service
    fake_factory.repository = mock_repository
    fake_factory.nats_client = None

    with patch.object(main, "factory", fake_factory):
        yield TestClient(main.app, raise_server_exceptions=False)


@pytest.fixture
def auth_headers():
    """Build the gateway headers for a caller"""

    def build(caller: CallerContext) -> Dict[str, str]:
        return {
            "X-User-Id": caller.user_id,
            "X-Organization-Id": caller.organization_id,
            "X-User-Role": caller.role.value,
        }

    return build
