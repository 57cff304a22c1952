"""Health check endpoint — no dependencies, always available."""

from fastapi import APIRouter, Depends

from livesync.application.services import ChangeBroker
from livesync.config import get_settings
from livesync.infrastructure.dependencies import get_change_broker

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(broker: ChangeBroker = Depends(get_change_broker)) -> dict:
    """Returns the current application health status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "feed_clients": broker.client_count,
    }
