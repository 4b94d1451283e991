"""
Campaign Service Routes Registry

Defines service metadata and routes for Consul registration.
"""

SERVICE_METADATA = {
    "service_name": "campaign_service",
    "version": "1.0.0",
    "tags": ['campaign', 'email', 'union', 'v1'],
    "capabilities": ['campaign_lifecycle', 'campaign_management', 'email_tracking'],
}

ROUTES = [
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/health/ready", "methods": ["GET"], "description": "Readiness check"},
    {"path": "/health/live", "methods": ["GET"], "description": "Liveness check"},
    {"path": "/api/v1/campaigns", "methods": ["GET", "POST"], "description": "List or create campaigns"},
    {"path": "/api/v1/campaigns/{campaign_id}", "methods": ["GET", "PUT", "DELETE"], "description": "Campaign detail, edit, delete"},
    {"path": "/api/v1/campaigns/{campaign_id}/start", "methods": ["POST"], "description": "Start sending"},
    {"path": "/api/v1/campaigns/{campaign_id}/pause", "methods": ["POST"], "description": "Pause sending"},
    {"path": "/api/v1/campaigns/{campaign_id}/resume", "methods": ["POST"], "description": "Resume sending"},
    {"path": "/api/v1/campaigns/{campaign_id}/cancel", "methods": ["POST"], "description": "Cancel campaign"},
    {"path": "/api/v1/campaigns/{campaign_id}/recipients", "methods": ["GET", "POST"], "description": "List or generate recipients"},
    {"path": "/api/v1/campaigns/{campaign_id}/preview", "methods": ["POST"], "description": "Preview for one member"},
    {"path": "/api/v1/campaigns/{campaign_id}/send-batch", "methods": ["POST"], "description": "Send next batch"},
    {"path": "/api/v1/tracking/open/{email_id}", "methods": ["GET"], "description": "Open tracking pixel"},
    {"path": "/api/v1/tracking/click/{email_id}", "methods": ["GET"], "description": "Click tracking redirect"},
]


def get_routes_for_consul():
    """Get route metadata for Consul registration"""
    return {
        "route_count": str(len(ROUTES)),
        "routes": ",".join([r["path"] for r in ROUTES]),
        "api_version": "v1",
        "base_path": "/api/v1/campaigns",
    }


__all__ = ["SERVICE_METADATA", "ROUTES", "get_routes_for_consul"]
