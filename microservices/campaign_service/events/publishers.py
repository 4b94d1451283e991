"""
Campaign Event Publishers

Publishes campaign events to NATS.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from core.nats_client import Event, EventType, ServiceSource
from ..models import Campaign
from .models import (
    BatchSentEventData,
    CampaignCancelledEventData,
    CampaignCompletedEventData,
    CampaignCreatedEventData,
    CampaignEventData,
    CampaignResumedEventData,
    CampaignStartedEventData,
    CampaignUpdatedEventData,
    RecipientsGeneratedEventData,
)

logger = logging.getLogger(__name__)


class CampaignEventPublisher:
    """Publisher for campaign service events"""

    def __init__(self, event_bus=None):
        self.event_bus = event_bus
        self.source = ServiceSource.CAMPAIGN_SERVICE

    async def publish(self, event_type: EventType, data: CampaignEventData) -> bool:
        """
        Publish an event to NATS.

        Failures are logged and reported as False; they never propagate
        to the operation that triggered the event.
        """
        if not self.event_bus:
            logger.debug(f"Event bus not configured, skipping publish: {event_type.value}")
            return False

        if data.timestamp is None:
            data.timestamp = datetime.now(timezone.utc)

        try:
            event = Event(
                event_type=event_type,
                source=self.source,
                data=data.model_dump(mode="json"),
                subject=data.campaign_id,
            )
            return await self.event_bus.publish_event(event)
        except Exception as e:
            logger.error(f"Failed to publish event {event_type.value}: {e}")
            return False

    @staticmethod
    def _base(campaign: Campaign, actor_id: Optional[str]) -> dict:
        return {
            "campaign_id": campaign.campaign_id,
            "organization_id": campaign.organization_id,
            "status": campaign.status.value,
            "actor_id": actor_id,
        }

    # ====================
    # Campaign Lifecycle Events
    # ====================

    async def publish_campaign_created(self, campaign: Campaign, actor_id: Optional[str] = None) -> bool:
        data = CampaignCreatedEventData(name=campaign.name, **self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_CREATED, data)

    async def publish_campaign_updated(
        self, campaign: Campaign, changed_fields: List[str], actor_id: Optional[str] = None
    ) -> bool:
        data = CampaignUpdatedEventData(changed_fields=changed_fields, **self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_UPDATED, data)

    async def publish_campaign_deleted(self, campaign: Campaign, actor_id: Optional[str] = None) -> bool:
        data = CampaignEventData(**self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_DELETED, data)

    async def publish_campaign_started(self, campaign: Campaign, actor_id: Optional[str] = None) -> bool:
        data = CampaignStartedEventData(
            total_recipients=campaign.total_recipients, **self._base(campaign, actor_id)
        )
        return await self.publish(EventType.CAMPAIGN_STARTED, data)

    async def publish_campaign_paused(self, campaign: Campaign, actor_id: Optional[str] = None) -> bool:
        data = CampaignEventData(**self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_PAUSED, data)

    async def publish_campaign_resumed(
        self, campaign: Campaign, pending_count: int, actor_id: Optional[str] = None
    ) -> bool:
        data = CampaignResumedEventData(pending_count=pending_count, **self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_RESUMED, data)

    async def publish_campaign_completed(self, campaign: Campaign, actor_id: Optional[str] = None) -> bool:
        data = CampaignCompletedEventData(
            sent_count=campaign.sent_count,
            failed_count=campaign.failed_count,
            **self._base(campaign, actor_id),
        )
        return await self.publish(EventType.CAMPAIGN_COMPLETED, data)

    async def publish_campaign_cancelled(
        self, campaign: Campaign, skipped_count: int, actor_id: Optional[str] = None
    ) -> bool:
        data = CampaignCancelledEventData(skipped_count=skipped_count, **self._base(campaign, actor_id))
        return await self.publish(EventType.CAMPAIGN_CANCELLED, data)

    # ====================
    # Delivery Events
    # ====================

    async def publish_recipients_generated(
        self, campaign: Campaign, recipient_count: int, actor_id: Optional[str] = None
    ) -> bool:
        data = RecipientsGeneratedEventData(
            recipient_count=recipient_count, **self._base(campaign, actor_id)
        )
        return await self.publish(EventType.CAMPAIGN_RECIPIENTS_GENERATED, data)

    async def publish_batch_sent(
        self,
        campaign: Campaign,
        processed: int,
        sent: int,
        failed: int,
        remaining: int,
        actor_id: Optional[str] = None,
    ) -> bool:
        data = BatchSentEventData(
            processed=processed,
            sent=sent,
            failed=failed,
            remaining=remaining,
            **self._base(campaign, actor_id),
        )
        return await self.publish(EventType.CAMPAIGN_BATCH_SENT, data)


__all__ = ["CampaignEventPublisher"]
