"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── campaign/    Campaign service component tests
    └── mocks/       Mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/campaign -v
"""
import os
import sys
from unittest.mock import MagicMock

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ["NATS_ENABLED"] = "false"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from tests.component.mocks import (
    MockAsyncPostgresClient,
    MockEventBus,
)


# =============================================================================
# Database Mocks
# =============================================================================

@pytest.fixture
def mock_db() -> MockAsyncPostgresClient:
    """Mock PostgreSQL client"""
    return MockAsyncPostgresClient()


# =============================================================================
# Event Bus Mocks
# =============================================================================

@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Mock NATS event bus"""
    return MockEventBus()


# =============================================================================
# Config Mocks
# =============================================================================

@pytest.fixture
def mock_config() -> MagicMock:
    """Mock ConfigManager"""
    config = MagicMock()
    config.discover_service = MagicMock(return_value=("localhost", 8208))
    config.settings.services.notification_service_url = None
    return config
