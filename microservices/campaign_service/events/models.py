"""
Campaign Event Data Models

Payloads of the events published by campaign_service.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CampaignEventData(BaseModel):
    """Fields common to every campaign event"""
    campaign_id: str = Field(..., description="Campaign ID")
    organization_id: str = Field(..., description="Owning organization")
    status: str = Field(..., description="Campaign status after the change")
    actor_id: Optional[str] = Field(None, description="User who caused the change")
    timestamp: Optional[datetime] = Field(None, description="Event timestamp")


class CampaignCreatedEventData(CampaignEventData):
    """campaign.created event data"""
    name: str = Field(..., description="Campaign name")


class CampaignUpdatedEventData(CampaignEventData):
    """campaign.updated event data"""
    changed_fields: list = Field(default_factory=list, description="Changed field names")


class CampaignStartedEventData(CampaignEventData):
    """campaign.started event data"""
    total_recipients: int = Field(..., description="Recipients the campaign will send to")


class CampaignResumedEventData(CampaignEventData):
    """campaign.resumed event data"""
    pending_count: int = Field(..., description="Emails still waiting to be sent")


class CampaignCompletedEventData(CampaignEventData):
    """campaign.completed event data"""
    sent_count: int = Field(0, description="Emails delivered")
    failed_count: int = Field(0, description="Emails that failed")


class CampaignCancelledEventData(CampaignEventData):
    """campaign.cancelled event data"""
    skipped_count: int = Field(0, description="Pending emails moved to SKIPPED")


class RecipientsGeneratedEventData(CampaignEventData):
    """campaign.recipients.generated event data"""
    recipient_count: int = Field(..., description="Recipient rows created")


class BatchSentEventData(CampaignEventData):
    """campaign.batch.sent event data"""
    processed: int = 0
    sent: int = 0
    failed: int = 0
    remaining: int = 0


__all__ = [
    "CampaignEventData",
    "CampaignCreatedEventData",
    "CampaignUpdatedEventData",
    "CampaignStartedEventData",
    "CampaignResumedEventData",
    "CampaignCompletedEventData",
    "CampaignCancelledEventData",
    "RecipientsGeneratedEventData",
    "BatchSentEventData",
]
