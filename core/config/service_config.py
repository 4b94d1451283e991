#!/usr/bin/env python3
"""Service configuration for peer services

External service dependencies the campaign service calls, plus the public
base URL that tracking links in outgoing email point back to.
"""
import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServiceConfig:
    """Peer service endpoints"""

    # notification_service delivers the rendered email over SMTP
    notification_service_url: Optional[str] = None

    # Public URL of the app, used for open pixels and click redirects
    app_base_url: str = "http://localhost:3000"

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        vercel_url = os.getenv("VERCEL_URL")
        return cls(
            notification_service_url=os.getenv("NOTIFICATION_SERVICE_URL"),
            app_base_url=(
                os.getenv("APP_BASE_URL")
                or (f"https://{vercel_url}" if vercel_url else "http://localhost:3000")
            ),
        )
