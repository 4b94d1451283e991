"""
Campaign Service Events

Event models and publisher for campaign service.
"""

from .models import (
    CampaignEventData,
    CampaignCreatedEventData,
    CampaignUpdatedEventData,
    CampaignStartedEventData,
    CampaignResumedEventData,
    CampaignCompletedEventData,
    CampaignCancelledEventData,
    RecipientsGeneratedEventData,
    BatchSentEventData,
)
from .publishers import CampaignEventPublisher

__all__ = [
    # Event Data Models
    "CampaignEventData",
    "CampaignCreatedEventData",
    "CampaignUpdatedEventData",
    "CampaignStartedEventData",
    "CampaignResumedEventData",
    "CampaignCompletedEventData",
    "CampaignCancelledEventData",
    "RecipientsGeneratedEventData",
    "BatchSentEventData",
    # Publisher
    "CampaignEventPublisher",
]
