"""Centralized logging configuration.

Each logging category (SQL, outbound HTTP, uvicorn, the sync core, the
change feed) gets its own level from Settings, so per-event feed tracing
can be turned up without drowning in SQL statements.

Usage:
    from livesync.infrastructure.logging.log_config import setup_logging
    setup_logging()   # once, from the FastAPI lifespan
"""

import logging
import sys

from livesync.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Settings field -> logger names it governs
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_sql": (
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "aiosqlite",
    ),
    "log_level_http": (
        "httpx",
        "httpcore",
    ),
    "log_level_uvicorn": (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
    ),
    "log_level_sync": (
        "SyncEngine",
        "livesync.application.services.collection_store",
        "livesync.application.services.counter_reconciler",
        "livesync.application.services.lifecycle",
        "livesync.application.services.mutation_coordinator",
        "livesync.application.services.pagination",
        "livesync.application.services.recent_activity",
        "livesync.application.services.synced_collection",
    ),
    "log_level_feed": (
        "livesync.application.services.change_broker",
        "livesync.application.services.change_feed",
        "livesync.infrastructure.http",
    ),
}


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Apply root and per-category levels. Returns ``{logger name: level}`` as applied."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    # uvicorn installs its own handlers; plain scripts and tests do not
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    applied: dict[str, int] = {}
    for field_name, logger_names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, field_name, "INFO"))
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
            applied[name] = level

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s sql=%s http=%s uvicorn=%s sync=%s feed=%s",
        settings.log_level,
        settings.log_level_sql,
        settings.log_level_http,
        settings.log_level_uvicorn,
        settings.log_level_sync,
        settings.log_level_feed,
    )
    return applied


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names fall back to INFO."""
    numeric = getattr(logging, str(raw).upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO
