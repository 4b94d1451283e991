"""
Unit Tests for Caller Resolution and Configuration
"""

import asyncio
import logging

import pytest

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from core.auth_dependencies import (
    AuthenticationError,
    AuthorizationError,
    CallerContext,
    UserRole,
    get_caller,
    map_role,
    require_admin,
)
from core.config import AppConfig, CampaignConfig, LoggingConfig, ServiceConfig


@pytest.mark.unit
class TestMapRole:
    """Forwarded role mapping"""

    @pytest.mark.parametrize("raw,expected", [
        ("ADMIN", UserRole.ADMIN),
        ("admin", UserRole.ADMIN),
        ("org:admin", UserRole.ADMIN),
        ("org:representative", UserRole.REPRESENTATIVE),
        ("VIEWER", UserRole.VIEWER),
        ("org:member", UserRole.VIEWER),
        ("", UserRole.VIEWER),
        (None, UserRole.VIEWER),
    ])
    def test_map_role(self, raw, expected):
        assert map_role(raw) == expected


@pytest.mark.unit
class TestGetCaller:
    """Header based caller resolution"""

    def resolve(self, **headers):
        kwargs = {"user_id": None, "x_user_id": None, "x_organization_id": None, "x_user_role": None}
        kwargs.update(headers)
        return asyncio.run(get_caller(**kwargs))

    def test_full_headers(self):
        caller = self.resolve(x_user_id="usr_1", x_organization_id="org_1", x_user_role="org:admin")

        assert caller == CallerContext(user_id="usr_1", organization_id="org_1", role=UserRole.ADMIN)
        assert caller.is_admin is True

    def test_legacy_user_header(self):
        caller = self.resolve(user_id="usr_2", x_organization_id="org_1")

        assert caller.user_id == "usr_2"
        assert caller.role == UserRole.VIEWER

    @pytest.mark.parametrize("headers", [
        {},
        {"x_user_id": "usr_1"},
        {"x_organization_id": "org_1"},
    ])
    def test_incomplete_caller_is_unauthenticated(self, headers):
        with pytest.raises(AuthenticationError):
            self.resolve(**headers)

    def test_require_admin_rejects_representative(self):
        caller = CallerContext(user_id="usr_1", organization_id="org_1", role=UserRole.REPRESENTATIVE)

        with pytest.raises(AuthorizationError) as exc_info:
            asyncio.run(require_admin(caller))

        assert exc_info.value.required_role == UserRole.ADMIN


@pytest.mark.unit
class TestConfig:
    """Environment driven configuration"""

    def test_campaign_defaults(self, monkeypatch):
        for key in ("CAMPAIGN_DEFAULT_BATCH_SIZE", "CAMPAIGN_MAX_BATCH_SIZE"):
            monkeypatch.delenv(key, raising=False)

        config = CampaignConfig.from_env()

        assert (config.default_batch_size, config.max_batch_size) == (50, 100)

    def test_campaign_overrides_and_bad_values(self, monkeypatch):
        monkeypatch.setenv("CAMPAIGN_DEFAULT_BATCH_SIZE", "25")
        monkeypatch.setenv("CAMPAIGN_MAX_BATCH_SIZE", "lots")

        config = CampaignConfig.from_env()

        assert config.default_batch_size == 25
        assert config.max_batch_size == 100

    def test_base_url_from_vercel(self, monkeypatch):
        monkeypatch.delenv("APP_BASE_URL", raising=False)
        monkeypatch.setenv("VERCEL_URL", "union-app.vercel.app")

        assert ServiceConfig.from_env().app_base_url == "https://union-app.vercel.app"

    def test_explicit_base_url_wins(self, monkeypatch):
        monkeypatch.setenv("APP_BASE_URL", "https://union.example.org")
        monkeypatch.setenv("VERCEL_URL", "union-app.vercel.app")

        assert ServiceConfig.from_env().app_base_url == "https://union.example.org"

    def test_base_url_default(self, monkeypatch):
        monkeypatch.delenv("APP_BASE_URL", raising=False)
        monkeypatch.delenv("VERCEL_URL", raising=False)

        assert ServiceConfig.from_env().app_base_url == "http://localhost:3000"

    def test_service_port(self, monkeypatch):
        monkeypatch.setenv("SERVICE_PORT", "9100")

        assert AppConfig.from_env().service_port == 9100

    def test_logging_level(self):
        assert LoggingConfig(log_level="warning").level == logging.WARNING
        assert LoggingConfig(log_level="chatty").level == logging.INFO
