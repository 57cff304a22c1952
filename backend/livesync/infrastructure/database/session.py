"""SQLAlchemy async engine and per-request sessions for the reference backend."""

import logging
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from livesync.config import get_settings
from livesync.infrastructure.database.base import Base

logger = logging.getLogger(__name__)


def _get_async_url(url: str) -> str:
    """Swap a sync driver for its async counterpart (aiosqlite / asyncpg)."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(async_url: str, sql_log_level: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": sql_log_level.upper() == "DEBUG"}
    if async_url.startswith("sqlite"):
        # one SQLite file shared by the event loop and aiosqlite's worker thread
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return options


settings = get_settings()
_async_url = _get_async_url(settings.database_url)

engine = create_async_engine(_async_url, **_engine_options(_async_url, settings.log_level_sql))

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def prepare_database(database_url: str) -> None:
    """Make sure the target database can be opened before tables are created.

    SQLite: create the parent directory of the database file.
    PostgreSQL: connect to the ``postgres`` maintenance database and issue
    ``CREATE DATABASE`` when the target is missing. Failures are logged;
    ``create_tables`` reports the real error if the database is unusable.
    """
    parsed = urlparse(database_url)
    if parsed.scheme.startswith("sqlite"):
        path = parsed.path[1:]
        if path and path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        return
    if not parsed.scheme.startswith("postgresql"):
        return

    db_name = parsed.path.lstrip("/")
    if not db_name:
        return
    maintenance_url = urlunparse(parsed._replace(scheme="postgresql", path="/postgres"))

    try:
        conn = await asyncpg.connect(maintenance_url)
        try:
            exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
            if exists:
                logger.debug("Database '%s' already exists", db_name)
                return
            # CREATE DATABASE cannot run inside a transaction block
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info("Created database '%s'", db_name)
        finally:
            await conn.close()
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("Could not prepare database '%s': %s", db_name, exc)


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create every mapped table that does not exist yet."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency — one session per request, committed unless the handler raised."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
