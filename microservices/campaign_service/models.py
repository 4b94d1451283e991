"""
Campaign Service Data Models

Canonical data structures for email campaigns, their recipient rows,
the member directory records they are generated from, and the API
request/response envelopes.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.auth_dependencies import CallerContext, UserRole


# =============================================================================
# ENUMS
# =============================================================================

class CampaignStatus(str, Enum):
    """Campaign lifecycle status"""
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RecipientStatus(str, Enum):
    """Delivery status of one recipient row"""
    PENDING = "PENDING"
    SENDING = "SENDING"  # in flight inside a send batch
    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class MemberStatus(str, Enum):
    """Union membership status of a member"""
    MEMBER = "MEMBER"
    NON_MEMBER = "NON_MEMBER"
    SEVERED = "SEVERED"


class EmploymentType(str, Enum):
    """Employment type of a member"""
    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    TEMPORARY = "TEMPORARY"
    SEASONAL = "SEASONAL"


# =============================================================================
# CORE MODELS
# =============================================================================

class TargetCriteria(BaseModel):
    """
    Member filter for a campaign.

    Every present, non-empty list narrows the audience (AND across
    fields, IN within a field). Missing or empty lists do not filter.
    """
    model_config = ConfigDict(populate_by_name=True)

    departments: Optional[List[str]] = None
    statuses: Optional[List[MemberStatus]] = None
    employment_types: Optional[List[EmploymentType]] = Field(None, alias="employmentTypes")

    @property
    def is_empty(self) -> bool:
        return not (self.departments or self.statuses or self.employment_types)

    def to_storage(self) -> Dict[str, Any]:
        """Serialize for the JSONB column, keeping only present filters"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Campaign(BaseModel):
    """Email campaign"""
    model_config = ConfigDict(from_attributes=True)

    campaign_id: str
    organization_id: str
    name: str
    subject: str
    body: str
    template_id: Optional[str] = None
    target_criteria: Optional[TargetCriteria] = None
    emails_per_minute: int = Field(50, ge=1, le=500)
    status: CampaignStatus = CampaignStatus.DRAFT

    # Delivery counters
    total_recipients: int = 0
    sent_count: int = 0
    failed_count: int = 0

    # Engagement counters
    total_opens: int = 0
    unique_opens: int = 0
    total_clicks: int = 0
    unique_clicks: int = 0

    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (CampaignStatus.COMPLETED, CampaignStatus.CANCELLED)


class CampaignRecipientEmail(BaseModel):
    """
    One email of a campaign.

    Name and address are snapshots taken when the row was generated and
    are never re-read from the member record.
    """
    model_config = ConfigDict(from_attributes=True)

    email_id: str
    campaign_id: str
    organization_id: str
    member_id: Optional[str] = None
    recipient_email: str
    recipient_name: str
    status: RecipientStatus = RecipientStatus.PENDING
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    open_count: int = 0
    first_opened_at: Optional[datetime] = None
    last_opened_at: Optional[datetime] = None
    click_count: int = 0
    created_at: Optional[datetime] = None


class RecipientDraft(BaseModel):
    """Recipient snapshot produced by the resolver, before it is stored"""
    member_id: str
    recipient_email: str
    recipient_name: str


class Member(BaseModel):
    """Member directory record (read-only here)"""
    model_config = ConfigDict(from_attributes=True)

    member_id: str
    organization_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    job_title: Optional[str] = None
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    hire_date: Optional[date] = None
    status: MemberStatus = MemberStatus.MEMBER
    employment_type: Optional[EmploymentType] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class EmailSettings(BaseModel):
    """Organization email settings stored as key/value system settings"""
    smtp_enabled: bool = False
    smtp_host: Optional[str] = None
    smtp_user: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return self.smtp_enabled and bool(self.smtp_host)


class RecipientStats(BaseModel):
    """Recipient row counts per status"""
    pending: int = 0
    sending: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class CampaignDetail(Campaign):
    """Campaign with per-status recipient counts"""
    stats: RecipientStats = Field(default_factory=RecipientStats)


class Pagination(BaseModel):
    """Page metadata for list responses"""
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=-(-total // limit) if limit else 0)


class TransitionResult(BaseModel):
    """Campaign after a lifecycle transition, with the user-facing message"""
    campaign: Campaign
    message: str


class RecipientGenerationResult(BaseModel):
    """Outcome of (re)generating recipient rows"""
    recipient_count: int


class SendBatchResult(BaseModel):
    """Outcome of one send batch"""
    processed: int = 0
    sent: int = 0
    failed: int = 0
    remaining: int = 0
    completed: bool = False
    stopped: bool = False
    total_sent: Optional[int] = None
    total_failed: Optional[int] = None


class PreviewRecipient(BaseModel):
    name: str
    email: Optional[str] = None


class CampaignPreview(BaseModel):
    """Campaign content rendered for one member"""
    subject: str
    body: str
    recipient: PreviewRecipient
    template_data: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CampaignCreateRequest(BaseModel):
    """Request to create a campaign"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    template_id: Optional[str] = Field(None, alias="templateId")
    target_criteria: Optional[TargetCriteria] = Field(None, alias="targetCriteria")
    emails_per_minute: int = Field(50, ge=1, le=500, alias="emailsPerMinute")
    scheduled_at: Optional[datetime] = Field(None, alias="scheduledAt")

    @field_validator("name", "subject", "body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CampaignUpdateRequest(BaseModel):
    """Partial update of a draft campaign"""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    subject: Optional[str] = Field(None, min_length=1, max_length=500)
    body: Optional[str] = Field(None, min_length=1)
    template_id: Optional[str] = Field(None, alias="templateId")
    target_criteria: Optional[TargetCriteria] = Field(None, alias="targetCriteria")
    emails_per_minute: Optional[int] = Field(None, ge=1, le=500, alias="emailsPerMinute")
    scheduled_at: Optional[datetime] = Field(None, alias="scheduledAt")

    # May be omitted, but never cleared: the columns are NOT NULL
    @field_validator("name", "subject", "body", "emails_per_minute")
    @classmethod
    def not_null_or_blank(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must not be null")
        if isinstance(v, str) and not v.strip():
            raise ValueError("must not be blank")
        return v


class PreviewRequest(BaseModel):
    """Request to preview a campaign for one member"""
    model_config = ConfigDict(populate_by_name=True)

    member_id: Optional[str] = Field(None, alias="memberId")


class SendBatchRequest(BaseModel):
    """Request to send the next batch"""
    model_config = ConfigDict(populate_by_name=True)

    batch_size: Optional[int] = Field(None, ge=1, alias="batchSize")


# =============================================================================
# RESPONSE ENVELOPES
# =============================================================================

class CampaignResponse(BaseModel):
    success: bool = True
    data: Campaign
    message: Optional[str] = None


class CampaignDetailResponse(BaseModel):
    success: bool = True
    data: CampaignDetail


class CampaignListResponse(BaseModel):
    success: bool = True
    data: List[Campaign]
    pagination: Pagination


class RecipientListResponse(BaseModel):
    success: bool = True
    data: List[CampaignRecipientEmail]
    pagination: Pagination


class RecipientGenerationResponse(BaseModel):
    success: bool = True
    data: RecipientGenerationResult
    message: Optional[str] = None


class PreviewResponse(BaseModel):
    success: bool = True
    data: CampaignPreview


class SendBatchResponse(BaseModel):
    success: bool = True
    data: SendBatchResult
    message: Optional[str] = None


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ReadinessResponse(BaseModel):
    """Readiness check response"""
    ready: bool
    checks: Dict[str, bool] = Field(default_factory=dict)
    details: Dict[str, str] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    """Liveness check response"""
    alive: bool
    uptime_seconds: float


__all__ = [
    # Enums
    "CampaignStatus",
    "RecipientStatus",
    "MemberStatus",
    "EmploymentType",
    "UserRole",
    # Core Models
    "TargetCriteria",
    "Campaign",
    "CampaignRecipientEmail",
    "RecipientDraft",
    "Member",
    "EmailSettings",
    "RecipientStats",
    "CampaignDetail",
    "Pagination",
    "CallerContext",
    # Results
    "TransitionResult",
    "RecipientGenerationResult",
    "SendBatchResult",
    "PreviewRecipient",
    "CampaignPreview",
    # Requests
    "CampaignCreateRequest",
    "CampaignUpdateRequest",
    "PreviewRequest",
    "SendBatchRequest",
    # Responses
    "CampaignResponse",
    "CampaignDetailResponse",
    "CampaignListResponse",
    "RecipientListResponse",
    "RecipientGenerationResponse",
    "PreviewResponse",
    "SendBatchResponse",
    "DeleteResponse",
    "HealthResponse",
    "ReadinessResponse",
    "LivenessResponse",
]
