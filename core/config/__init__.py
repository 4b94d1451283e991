#!/usr/bin/env python3
"""Modular configuration system for the campaign platform

Configuration hierarchy:
- infra_config: Infrastructure services (PostgreSQL, NATS)
- service_config: Peer services (notification_service, public app URL)
- consul_config: Service discovery settings
- logging_config: Logging configuration
- app_config: Aggregate config plus campaign sending limits
"""
import os
from dotenv import load_dotenv
from .logging_config import LoggingConfig, configure_logging
from .infra_config import InfraConfig
from .consul_config import ConsulConfig
from .service_config import ServiceConfig
from .app_config import AppConfig, CampaignConfig

# Load environment file based on ENV
env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
env_files = {
    "development": "deployment/environments/dev.env",
    "dev": "deployment/environments/dev.env",
    "testing": "deployment/environments/test.env",
    "test": "deployment/environments/test.env",
    "staging": "deployment/environments/staging.env",
    "production": "deployment/environments/production.env",
}
env_file = env_files.get(env, "deployment/environments/dev.env")
load_dotenv(env_file, override=False)

# Create global settings instance
settings = AppConfig.from_env()

def get_settings() -> AppConfig:
    """Get global settings instance"""
    return settings

def reload_settings() -> AppConfig:
    """Reload settings from environment"""
    global settings
    settings = AppConfig.from_env()
    return settings

__all__ = [
    # Main config
    'AppConfig',
    'get_settings',
    'reload_settings',
    'settings',
    # Sub-configs
    'LoggingConfig',
    'InfraConfig',
    'ConsulConfig',
    'ServiceConfig',
    'CampaignConfig',
    'configure_logging',
]
