"""
NATS Client for Python Microservices
Provides event-driven communication between services

This module wraps the nats-py client: events are serialized as JSON and
published with the event type as the subject.
"""

import json
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

import nats
from nats.aio.client import Client as NATS

if TYPE_CHECKING:
    from core.config_manager import ConfigManager


class EventEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and datetime types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event types published on the bus"""

    # Campaign Events
    CAMPAIGN_CREATED = "campaign.created"
    CAMPAIGN_UPDATED = "campaign.updated"
    CAMPAIGN_DELETED = "campaign.deleted"
    CAMPAIGN_STARTED = "campaign.started"
    CAMPAIGN_PAUSED = "campaign.paused"
    CAMPAIGN_RESUMED = "campaign.resumed"
    CAMPAIGN_COMPLETED = "campaign.completed"
    CAMPAIGN_CANCELLED = "campaign.cancelled"
    CAMPAIGN_RECIPIENTS_GENERATED = "campaign.recipients.generated"
    CAMPAIGN_BATCH_SENT = "campaign.batch.sent"


class ServiceSource(Enum):
    """Service sources"""

    CAMPAIGN_SERVICE = "campaign_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }



class NATSEventBus:
    """
    NATS event bus.

    Publishing is fire-and-forget on core NATS; callers treat a False
    return as a dropped event, never as a failed operation.
    """

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
        servers: Optional[str] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: Optional ConfigManager instance for service discovery
            servers: Explicit server URL, skips discovery when given
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        # Priority: explicit servers -> NATS_URL -> discovery -> defaults
        if config is None:
            config = ConfigManager(service_name)

        infra = config.settings.infrastructure
        if servers:
            self.servers = servers
        elif infra.nats_url:
            self.servers = infra.nats_url
        else:
            host, port = config.discover_service(
                service_name="nats",
                default_host=infra.nats_host,
                default_port=infra.nats_port,
                env_host_key="NATS_HOST",
                env_port_key="NATS_PORT",
            )
            self.servers = f"nats://{host}:{port}"

        self._client: Optional[NATS] = None

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to the NATS server"""
        try:
            self._client = await nats.connect(
                servers=self.servers,
                name=self.service_name,
                max_reconnect_attempts=5,
            )
            logger.info(f"Connected to NATS as {self.service_name}")
        except Exception as e:
            logger.error(f"Failed to connect to NATS at {self.servers}: {e}")
            raise

    async def publish_event(self, event: Event) -> bool:
        """Publish an event using its type as the subject"""
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            payload = json.dumps(event.to_dict(), cls=EventEncoder).encode()
            await self._client.publish(event.type, payload)
            logger.debug(f"Published event {event.type} ({event.id})")
            return True
        except Exception as e:
            logger.error(f"Failed to publish event {event.type}: {e}")
            return False

    async def close(self):
        """Drain and close the NATS connection"""
        if self._client:
            try:
                await self._client.drain()
            except Exception as e:
                logger.warning(f"Error draining NATS connection: {e}")
            self._client = None
            logger.info("NATS connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return bool(self._client and self._client.is_connected)


__all__ = ["EventType", "ServiceSource", "Event", "NATSEventBus"]
