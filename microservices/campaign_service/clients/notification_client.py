"""
Notification Service Client

Email transport for campaign sends. SMTP delivery itself happens in
notification_service, which reads the organization's SMTP settings.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from core.config_manager import ConfigManager

logger = logging.getLogger(__name__)


class NotificationClient:
    """Client for notification_service"""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        if base_url is None:
            if config is None:
                config = ConfigManager("campaign_service")

            base_url = config.settings.services.notification_service_url
            if not base_url:
                host, port = config.discover_service(
                    service_name='notification_service',
                    default_host='localhost',
                    default_port=8208,
                    env_host_key='NOTIFICATION_SERVICE_HOST',
                    env_port_key='NOTIFICATION_SERVICE_PORT'
                )
                base_url = f"http://{host}:{port}"

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def send_email(
        self,
        organization_id: str,
        to: str,
        subject: str,
        text: str,
        html: str,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Send one email through notification_service.

        Args:
            organization_id: Organization whose SMTP settings are used
            to: Recipient address
            subject: Rendered subject
            text: Plain-text body
            html: HTML body with tracking applied
            from_email: Sender address
            from_name: Sender display name
            **kwargs: Extra metadata (campaign_id, email_id)

        Returns:
            notification_service response

        Raises:
            httpx.HTTPError: delivery was not accepted
        """
        request_data = {
            "organization_id": organization_id,
            "channel_type": "email",
            "recipient": to,
            "subject": subject,
            "content": text,
            "html_content": html,
            "from_email": from_email,
            "from_name": from_name,
            "metadata": kwargs,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/api/v1/notifications/send",
                    json=request_data,
                )
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Error sending email to {to}: {e.response.text}")
            raise

        except httpx.HTTPError as e:
            logger.error(f"Error sending email to {to}: {e}")
            raise

    async def health_check(self) -> bool:
        """Check if notification_service is healthy"""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/health")
                return response.status_code == 200
        except httpx.HTTPError:
            return False


__all__ = ["NotificationClient"]
