#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure used by the microservices in this repository.

COMPONENTS:
    - config/: dataclass configuration loaded from the environment
    - config_manager.py: per-service config view and service discovery
    - consul_registry.py: Consul registration and discovery
    - postgres_client.py: asyncpg-backed PostgreSQL client
    - nats_client.py: NATS event bus
    - auth_dependencies.py: FastAPI caller resolution from gateway headers

USAGE:
    from core.config_manager import ConfigManager

    config = ConfigManager("campaign_service")
"""

__version__ = "2.1.0"
