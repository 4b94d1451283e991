"""
Campaign Service Factory

Factory for creating campaign service instances with proper dependency injection.
"""

import logging
from typing import Optional

from core.config_manager import ConfigManager
from core.nats_client import NATSEventBus
from core.postgres_client import get_postgres_client

from .campaign_repository import CampaignRepository
from .campaign_service import CampaignService
from .clients.notification_client import NotificationClient
from .directory_repository import DirectoryRepository
from .events.publishers import CampaignEventPublisher
from .recipient_resolver import RecipientResolver

logger = logging.getLogger(__name__)


class CampaignServiceFactory:
    """Factory for creating campaign service components"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or ConfigManager("campaign_service")
        self._repository: Optional[CampaignRepository] = None
        self._directory: Optional[DirectoryRepository] = None
        self._service: Optional[CampaignService] = None
        self._nats_client: Optional[NATSEventBus] = None
        self._event_publisher: Optional[CampaignEventPublisher] = None
        self._notification_client: Optional[NotificationClient] = None

    async def initialize(self) -> None:
        """Initialize all components"""
        logger.info("Initializing Campaign Service components...")
        settings = self.config.settings

        # Both repositories share one pool
        db = get_postgres_client("campaign_service", config=self.config)
        self._repository = CampaignRepository(self.config, db=db)
        self._directory = DirectoryRepository(self.config, db=db)
        await self._repository.initialize()

        # NATS is optional; events are dropped without it
        if settings.infrastructure.nats_enabled:
            try:
                self._nats_client = NATSEventBus(
                    service_name="campaign_service",
                    config=self.config,
                )
                await self._nats_client.connect()
                logger.info("NATS client connected")
            except Exception as e:
                logger.warning(f"NATS client initialization failed: {e}")
                self._nats_client = None
        else:
            logger.info("NATS disabled, campaign events will not be published")
        self._event_publisher = CampaignEventPublisher(self._nats_client)

        self._notification_client = NotificationClient(self.config)

        self._service = CampaignService(
            repository=self._repository,
            directory=self._directory,
            resolver=RecipientResolver(self._directory),
            event_publisher=self._event_publisher,
            email_transport=self._notification_client,
            config=settings.campaign,
            base_url=settings.services.app_base_url,
        )

        logger.info("Campaign Service components initialized")

    async def close(self) -> None:
        """Close all components"""
        logger.info("Closing Campaign Service components...")

        if self._nats_client:
            await self._nats_client.close()

        if self._repository:
            await self._repository.close()

        logger.info("Campaign Service components closed")

    @property
    def repository(self) -> CampaignRepository:
        """Get campaign repository"""
        if not self._repository:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._repository

    @property
    def directory(self) -> DirectoryRepository:
        """Get member directory repository"""
        if not self._directory:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._directory

    @property
    def service(self) -> CampaignService:
        """Get campaign service"""
        if not self._service:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._service

    @property
    def nats_client(self) -> Optional[NATSEventBus]:
        """Get NATS client"""
        return self._nats_client

    @property
    def event_publisher(self) -> Optional[CampaignEventPublisher]:
        """Get event publisher"""
        return self._event_publisher

    @property
    def notification_client(self) -> NotificationClient:
        """Get notification client"""
        if not self._notification_client:
            raise RuntimeError("Factory not initialized. Call initialize() first.")
        return self._notification_client


__all__ = ["CampaignServiceFactory"]
