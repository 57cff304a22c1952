"""FastAPI application factory for the LiveSync reference backend."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from livesync.config import get_settings
from livesync.infrastructure.database import create_tables, engine, prepare_database
from livesync.infrastructure.dependencies import get_change_broker
from livesync.infrastructure.logging.log_config import setup_logging
from livesync.presentation.api.v1.router import router as v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — create tables, then disconnect feed clients on shutdown."""
    setup_logging()

    await prepare_database(get_settings().database_url)

    await create_tables()
    logger.info("Database tables ready")

    yield

    # Shutdown
    broker = get_change_broker()
    await broker.shutdown()
    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount versioned API routes under /api
    app.include_router(v1_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "livesync.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
