#!/usr/bin/env python3
"""Campaign platform main configuration

Combines all sub-configs and the campaign-specific sending limits.
"""
import os
from dataclasses import dataclass, field

from .infra_config import InfraConfig
from .logging_config import LoggingConfig
from .consul_config import ConsulConfig
from .service_config import ServiceConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class CampaignConfig:
    """Sending limits for campaign batches"""
    default_batch_size: int = 50
    max_batch_size: int = 100

    @classmethod
    def from_env(cls) -> 'CampaignConfig':
        return cls(
            default_batch_size=_int(os.getenv("CAMPAIGN_DEFAULT_BATCH_SIZE", "50"), 50),
            max_batch_size=_int(os.getenv("CAMPAIGN_MAX_BATCH_SIZE", "100"), 100),
        )


@dataclass
class AppConfig:
    """Main configuration with all sub-configs"""

    # Environment
    environment: str = "development"
    debug: bool = False

    # Service binding
    service_host: str = "0.0.0.0"
    service_port: int = 8251

    # Sub-configurations
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    infrastructure: InfraConfig = field(default_factory=InfraConfig)
    consul: ConsulConfig = field(default_factory=ConsulConfig)
    services: ServiceConfig = field(default_factory=ServiceConfig)
    campaign: CampaignConfig = field(default_factory=CampaignConfig)

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load complete configuration from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "true" if env == "development" else "false")),
            service_host=os.getenv("HOST", "0.0.0.0"),
            service_port=_int(os.getenv("SERVICE_PORT", "8251"), 8251),
            logging=LoggingConfig.from_env(),
            infrastructure=InfraConfig.from_env(),
            consul=ConsulConfig.from_env(),
            services=ServiceConfig.from_env(),
            campaign=CampaignConfig.from_env(),
        )
