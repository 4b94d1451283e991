"""
Configuration Manager

Per-service entry point into the configuration system. Resolves peer
service locations with the priority: environment variables, then Consul
(when enabled), then the caller's defaults.

Usage:
    from core.config_manager import ConfigManager

    config = ConfigManager("campaign_service")
    host, port = config.discover_service(
        service_name="postgres_service",
        default_host="localhost",
        default_port=5432,
        env_host_key="POSTGRES_HOST",
        env_port_key="POSTGRES_PORT",
    )
"""

import logging
import os
from typing import Optional, Tuple

from core.config import AppConfig, get_settings

logger = logging.getLogger(__name__)


class ConfigManager:
    """Service-scoped view over the global settings"""

    def __init__(self, service_name: str, settings: Optional[AppConfig] = None):
        self.service_name = service_name
        self.settings = settings or get_settings()
        self._consul = None

    @property
    def consul_enabled(self) -> bool:
        return self.settings.consul.enabled

    def _get_consul(self):
        if self._consul is None:
            from core.consul_registry import ConsulRegistry

            self._consul = ConsulRegistry(
                consul_host=self.settings.consul.host,
                consul_port=self.settings.consul.port,
            )
        return self._consul

    def discover_service(
        self,
        service_name: str,
        default_host: str,
        default_port: int,
        env_host_key: Optional[str] = None,
        env_port_key: Optional[str] = None,
    ) -> Tuple[str, int]:
        """
        Resolve a service to (host, port).

        Args:
            service_name: Name the service is registered under in Consul
            default_host: Host used when nothing else resolves
            default_port: Port used when nothing else resolves
            env_host_key: Environment variable overriding the host
            env_port_key: Environment variable overriding the port
        """
        env_host = os.getenv(env_host_key) if env_host_key else None
        env_port = os.getenv(env_port_key) if env_port_key else None
        if env_host:
            port = int(env_port) if env_port else default_port
            logger.debug(f"Resolved {service_name} from environment: {env_host}:{port}")
            return env_host, port

        if self.consul_enabled:
            instance = self._get_consul().get_service_instance(service_name)
            if instance:
                logger.debug(f"Resolved {service_name} from Consul: {instance[0]}:{instance[1]}")
                return instance
            logger.warning(f"{service_name} not found in Consul, using defaults")

        return default_host, default_port


__all__ = ["ConfigManager"]
