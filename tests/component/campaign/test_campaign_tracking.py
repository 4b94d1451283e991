"""
Component Tests for Open and Click Tracking

Tests the service-level tracking calls and redirect target validation.
"""

import pytest

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../.."))

from microservices.campaign_service.campaign_service import CampaignService
from microservices.campaign_service.template_renderer import encode_click_target


class TestRecordOpen:
    """Tests for open tracking"""

    @pytest.mark.asyncio
    async def test_first_open_counts_as_unique(
        self, service, mock_repository, factory, sending_campaign
    ):
        email = mock_repository.add_recipient(factory.make_recipient(sending_campaign))

        assert await service.record_open(email.email_id, "Mail/1.0", "203.0.113.7") is True
        assert await service.record_open(email.email_id, "Mail/1.0", "203.0.113.7") is True

        stored = mock_repository.emails[email.email_id]
        assert stored.open_count == 2
        assert stored.first_opened_at is not None
        assert stored.first_opened_at <= stored.last_opened_at
        campaign = mock_repository.stored(sending_campaign.campaign_id)
        assert campaign.total_opens == 2
        assert campaign.unique_opens == 1
        assert mock_repository.opens[0] == {
            "email_id": email.email_id, "user_agent": "Mail/1.0", "ip_address": "203.0.113.7",
        }

    @pytest.mark.asyncio
    async def test_unknown_email_is_ignored(self, service, mock_repository):
        assert await service.record_open("cre_missing", None, None) is False
        assert mock_repository.opens == []

    @pytest.mark.asyncio
    async def test_repository_errors_are_swallowed(self, service, mock_repository):
        async def broken(*args, **kwargs):
            raise RuntimeError("connection reset")

        mock_repository.record_open = broken

        assert await service.record_open("cre_any", None, None) is False


class TestRecordClick:
    """Tests for click tracking"""

    @pytest.mark.asyncio
    async def test_clicks_counted_per_email(
        self, service, mock_repository, factory, sending_campaign
    ):
        first = mock_repository.add_recipient(factory.make_recipient(sending_campaign))
        second = mock_repository.add_recipient(factory.make_recipient(sending_campaign))

        await service.record_click(first.email_id, "https://example.org/a")
        await service.record_click(first.email_id, "https://example.org/b")
        await service.record_click(second.email_id, "https://example.org/a")

        campaign = mock_repository.stored(sending_campaign.campaign_id)
        assert campaign.total_clicks == 3
        assert campaign.unique_clicks == 2
        assert mock_repository.emails[first.email_id].click_count == 2
        assert [c["url"] for c in mock_repository.clicks] == [
            "https://example.org/a", "https://example.org/b", "https://example.org/a",
        ]

    @pytest.mark.asyncio
    async def test_repository_errors_are_swallowed(self, service, mock_repository):
        async def broken(*args, **kwargs):
            raise RuntimeError("connection reset")

        mock_repository.record_click = broken

        assert await service.record_click("cre_any", "https://example.org", None, None) is False


class TestResolveClickTarget:
    """Tests for decoding redirect targets"""

    def test_valid_https_target(self):
        encoded = encode_click_target("https://union.example.org/vote?x=1")

        assert CampaignService.resolve_click_target(encoded) == "https://union.example.org/vote?x=1"

    @pytest.mark.parametrize("url", [
        "javascript:alert(1)",
        "ftp://files.example.org/x",
        "/relative/path",
        "https://",
    ])
    def test_rejects_non_http_targets(self, url):
        assert CampaignService.resolve_click_target(encode_click_target(url)) is None

    @pytest.mark.parametrize("encoded", [None, "", "***not base64***"])
    def test_rejects_missing_or_malformed(self, encoded):
        assert CampaignService.resolve_click_target(encoded) is None
