"""
Campaign Service Main Application

FastAPI application for union email campaigns.
Port: 8251
"""

import base64
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response

from core.auth_dependencies import (
    AuthenticationError,
    AuthorizationError,
    CallerContext,
    get_caller,
    require_admin,
)
from core.config import configure_logging, get_settings
from core.config_manager import ConfigManager
from core.consul_registry import ConsulRegistry

from .campaign_service import CampaignService
from .factory import CampaignServiceFactory
from .models import (
    CampaignCreateRequest,
    CampaignDetailResponse,
    CampaignListResponse,
    CampaignResponse,
    CampaignStatus,
    CampaignUpdateRequest,
    DeleteResponse,
    HealthResponse,
    LivenessResponse,
    PreviewRequest,
    PreviewResponse,
    ReadinessResponse,
    RecipientGenerationResponse,
    RecipientListResponse,
    RecipientStatus,
    SendBatchRequest,
    SendBatchResponse,
    TransitionResult,
)
from .protocols import (
    CampaignNotFoundError,
    MemberNotFoundError,
    PreconditionError,
    ServiceUnavailableError,
)
from .routes_registry import SERVICE_METADATA, get_routes_for_consul

# Configure logging
settings = get_settings()
configure_logging(settings.logging)
logger = logging.getLogger(__name__)

# Service configuration
SERVICE_NAME = "campaign_service"
SERVICE_PORT = settings.service_port
SERVICE_VERSION = "1.0.0"

# 1x1 transparent PNG served by the open tracking endpoint
TRACKING_PIXEL = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# Track startup time for uptime calculation
startup_time = time.time()

# Global factory instance
factory: Optional[CampaignServiceFactory] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global factory

    logger.info(f"Starting {SERVICE_NAME} on port {SERVICE_PORT}")

    # Initialize factory
    config = ConfigManager(SERVICE_NAME)
    factory = CampaignServiceFactory(config)
    await factory.initialize()

    # Register with Consul if available
    consul_registry = None
    if config.consul_enabled:
        try:
            route_meta = get_routes_for_consul()
            consul_meta = {
                "version": SERVICE_METADATA["version"],
                "capabilities": ",".join(SERVICE_METADATA["capabilities"]),
                **route_meta,
            }
            consul_registry = ConsulRegistry(
                service_name=SERVICE_METADATA["service_name"],
                service_port=SERVICE_PORT,
                consul_host=settings.consul.host,
                consul_port=settings.consul.port,
                service_host=settings.service_host,
                tags=SERVICE_METADATA["tags"],
                meta=consul_meta,
            )
            consul_registry.register()
            logger.info(f"Registered {SERVICE_NAME} with Consul")
        except Exception as e:
            logger.warning(f"Consul registration failed: {e}")
            consul_registry = None

    yield

    # Cleanup
    logger.info(f"Shutting down {SERVICE_NAME}")
    if consul_registry:
        consul_registry.deregister()
    await factory.close()


# Create FastAPI application
app = FastAPI(
    title="Campaign Service",
    description="Email campaign lifecycle, recipient targeting, batch sending and tracking",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)


# ====================
# Exception Handlers
# ====================


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized"},
    )


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(request: Request, exc: AuthorizationError):
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": "Forbidden"},
    )


@app.exception_handler(CampaignNotFoundError)
async def campaign_not_found_handler(request: Request, exc: CampaignNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": str(exc)},
    )


@app.exception_handler(MemberNotFoundError)
async def member_not_found_handler(request: Request, exc: MemberNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": str(exc)},
    )


@app.exception_handler(PreconditionError)
async def precondition_error_handler(request: Request, exc: PreconditionError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": str(exc)},
    )


@app.exception_handler(ServiceUnavailableError)
async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


# ====================
# Dependencies
# ====================


def get_service() -> CampaignService:
    """Get campaign service from factory"""
    if not factory:
        raise ServiceUnavailableError()
    return factory.service


def client_ip(request: Request) -> Optional[str]:
    """First address of X-Forwarded-For"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if not forwarded_for:
        return None
    return forwarded_for.split(",")[0].strip() or None


def _transition_response(result: TransitionResult) -> CampaignResponse:
    return CampaignResponse(data=result.campaign, message=result.message)


# ====================
# Health Endpoints
# ====================


@app.get("/api/v1/campaigns/health", include_in_schema=False)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    dependencies = {}

    if factory:
        try:
            db_healthy = await factory.repository.health_check()
            dependencies["postgres"] = "healthy" if db_healthy else "unhealthy"
        except Exception:
            dependencies["postgres"] = "unhealthy"

        if factory.nats_client:
            dependencies["nats"] = "healthy" if factory.nats_client.is_connected else "unhealthy"
        else:
            dependencies["nats"] = "not_configured"

    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        port=SERVICE_PORT,
        version=SERVICE_VERSION,
        dependencies=dependencies,
    )


@app.get("/health/ready", response_model=ReadinessResponse, tags=["Health"])
async def readiness_check():
    """Readiness check endpoint"""
    checks = {}
    details = {}

    if factory:
        try:
            db_healthy = await factory.repository.health_check()
            checks["database"] = db_healthy
            details["database"] = "Connected" if db_healthy else "Connection failed"
        except Exception as e:
            checks["database"] = False
            details["database"] = str(e)

        if factory.nats_client:
            checks["nats"] = factory.nats_client.is_connected
            details["nats"] = "Connected" if factory.nats_client.is_connected else "Disconnected"
        else:
            checks["nats"] = True  # Optional
            details["nats"] = "Not configured (optional)"
    else:
        checks["factory"] = False
        details["factory"] = "Factory not initialized"

    ready = all(checks.get(k, False) for k in ["database"])

    return ReadinessResponse(
        ready=ready,
        checks=checks,
        details=details,
    )


@app.get("/health/live", response_model=LivenessResponse, tags=["Health"])
async def liveness_check():
    """Liveness check endpoint"""
    return LivenessResponse(
        alive=True,
        uptime_seconds=time.time() - startup_time,
    )


# ====================
# Campaign CRUD Endpoints
# ====================


@app.get("/api/v1/campaigns", response_model=CampaignListResponse, tags=["Campaigns"])
async def list_campaigns(
    status_filter: Optional[CampaignStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    caller: CallerContext = Depends(get_caller),
    service: CampaignService = Depends(get_service),
):
    """List the organization's campaigns"""
    campaigns, pagination = await service.list_campaigns(caller, status_filter, page, limit)
    return CampaignListResponse(data=campaigns, pagination=pagination)


@app.post(
    "/api/v1/campaigns",
    response_model=CampaignResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Campaigns"],
)
async def create_campaign(
    request: CampaignCreateRequest,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Create a campaign in DRAFT status"""
    campaign = await service.create_campaign(caller, request)
    return CampaignResponse(data=campaign)


@app.get(
    "/api/v1/campaigns/{campaign_id}",
    response_model=CampaignDetailResponse,
    tags=["Campaigns"],
)
async def get_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(get_caller),
    service: CampaignService = Depends(get_service),
):
    """Campaign with recipient status counts"""
    detail = await service.get_campaign_detail(caller, campaign_id)
    return CampaignDetailResponse(data=detail)


@app.put(
    "/api/v1/campaigns/{campaign_id}",
    response_model=CampaignResponse,
    tags=["Campaigns"],
)
async def update_campaign(
    campaign_id: str,
    request: CampaignUpdateRequest,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Edit a DRAFT campaign"""
    campaign = await service.update_campaign(caller, campaign_id, request)
    return CampaignResponse(data=campaign)


@app.delete(
    "/api/v1/campaigns/{campaign_id}",
    response_model=DeleteResponse,
    tags=["Campaigns"],
)
async def delete_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Delete a campaign that is not sending"""
    await service.delete_campaign(caller, campaign_id)
    return DeleteResponse(message="Campaign deleted")


# ====================
# Lifecycle Endpoints
# ====================


@app.post(
    "/api/v1/campaigns/{campaign_id}/start",
    response_model=CampaignResponse,
    tags=["Lifecycle"],
)
async def start_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Start sending a DRAFT or SCHEDULED campaign"""
    return _transition_response(await service.start_campaign(caller, campaign_id))


@app.post(
    "/api/v1/campaigns/{campaign_id}/pause",
    response_model=CampaignResponse,
    tags=["Lifecycle"],
)
async def pause_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Pause a SENDING campaign"""
    return _transition_response(await service.pause_campaign(caller, campaign_id))


@app.post(
    "/api/v1/campaigns/{campaign_id}/resume",
    response_model=CampaignResponse,
    tags=["Lifecycle"],
)
async def resume_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Resume a PAUSED campaign"""
    return _transition_response(await service.resume_campaign(caller, campaign_id))


@app.post(
    "/api/v1/campaigns/{campaign_id}/cancel",
    response_model=CampaignResponse,
    tags=["Lifecycle"],
)
async def cancel_campaign(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Cancel a campaign that has not finished"""
    return _transition_response(await service.cancel_campaign(caller, campaign_id))


# ====================
# Recipients, Preview and Sending
# ====================


@app.get(
    "/api/v1/campaigns/{campaign_id}/recipients",
    response_model=RecipientListResponse,
    tags=["Recipients"],
)
async def list_recipients(
    campaign_id: str,
    status_filter: Optional[RecipientStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    caller: CallerContext = Depends(get_caller),
    service: CampaignService = Depends(get_service),
):
    """List recipient rows of a campaign"""
    recipients, pagination = await service.list_recipients(
        caller, campaign_id, status_filter, page, limit
    )
    return RecipientListResponse(data=recipients, pagination=pagination)


@app.post(
    "/api/v1/campaigns/{campaign_id}/recipients",
    response_model=RecipientGenerationResponse,
    tags=["Recipients"],
)
async def generate_recipients(
    campaign_id: str,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Regenerate the recipient rows of a DRAFT campaign"""
    result = await service.generate_recipients(caller, campaign_id)
    return RecipientGenerationResponse(
        data=result,
        message=f"Generated {result.recipient_count} recipients",
    )


@app.post(
    "/api/v1/campaigns/{campaign_id}/preview",
    response_model=PreviewResponse,
    tags=["Recipients"],
)
async def preview_campaign(
    campaign_id: str,
    request: Optional[PreviewRequest] = None,
    caller: CallerContext = Depends(get_caller),
    service: CampaignService = Depends(get_service),
):
    """Render the campaign for one member"""
    member_id = request.member_id if request else None
    preview = await service.preview_campaign(caller, campaign_id, member_id)
    return PreviewResponse(data=preview)


@app.post(
    "/api/v1/campaigns/{campaign_id}/send-batch",
    response_model=SendBatchResponse,
    tags=["Sending"],
)
async def send_batch(
    campaign_id: str,
    request: Optional[SendBatchRequest] = None,
    caller: CallerContext = Depends(require_admin),
    service: CampaignService = Depends(get_service),
):
    """Send the next batch of pending emails"""
    batch_size = request.batch_size if request else None
    result, message = await service.send_batch(caller, campaign_id, batch_size)
    return SendBatchResponse(data=result, message=message)


# ====================
# Tracking Endpoints (public)
# ====================


@app.get("/api/v1/tracking/open/{email_id}", tags=["Tracking"])
async def track_open(email_id: str, request: Request, background_tasks: BackgroundTasks):
    """Record an email open and return a 1x1 pixel"""
    if factory:
        background_tasks.add_task(
            factory.service.record_open,
            email_id,
            request.headers.get("user-agent"),
            client_ip(request),
        )

    return Response(
        content=TRACKING_PIXEL,
        media_type="image/png",
        headers=NO_CACHE_HEADERS,
    )


@app.get("/api/v1/tracking/click/{email_id}", tags=["Tracking"])
async def track_click(
    email_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    url: Optional[str] = Query(None),
):
    """Record a link click and redirect to the original URL"""
    target = CampaignService.resolve_click_target(url)
    if target is None:
        return RedirectResponse("/")

    if factory:
        background_tasks.add_task(
            factory.service.record_click,
            email_id,
            target,
            request.headers.get("user-agent"),
            client_ip(request),
        )

    return RedirectResponse(target)


def main():
    """Run the service with uvicorn"""
    import uvicorn

    uvicorn.run(
        "microservices.campaign_service.main:app",
        host=settings.service_host,
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )


if __name__ == "__main__":
    main()
