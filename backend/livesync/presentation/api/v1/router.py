"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from livesync.presentation.api.v1.endpoints.health import router as health_router
from livesync.presentation.api.v1.endpoints.rows import router as rows_router
from livesync.presentation.api.v1.endpoints.feed import router as feed_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(rows_router)
router.include_router(feed_router)
