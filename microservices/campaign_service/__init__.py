"""
Campaign Service

Email campaign microservice for the union-management platform:
- Campaign lifecycle (start, pause, resume, cancel) with conditional status updates
- Recipient generation from member targeting criteria
- Template preview and batch sending through notification_service
- Open and click tracking

Port: 8251
"""

__version__ = "1.0.0"
__service__ = "campaign_service"
