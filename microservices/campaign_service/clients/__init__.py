"""
Campaign Service Clients

Clients for calling other microservices.
"""

from .notification_client import NotificationClient

__all__ = [
    "NotificationClient",
]
