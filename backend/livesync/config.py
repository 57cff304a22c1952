import json
import logging
from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

_config_logger = logging.getLogger(__name__)

_SETTINGS_FILE = Path("data/settings.json")
_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)
_POLICY_KEYS = frozenset({
    "page_size",
    "mutation_timeout_seconds",
    "counter_buffer_size",
    "recent_activity_limit",
})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "LiveSync Reference Backend"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///./livesync.db"
    cors_origins: list[str] = ["http://localhost:5173"]

    # Where client-side adapters reach the backend
    backend_base_url: str = "http://localhost:8020"

    # Synchronization policy
    page_size: int = 12
    mutation_timeout_seconds: float = 10.0
    counter_buffer_size: int = 100
    recent_activity_limit: int = 5

    # Change feed broker
    feed_queue_size: int = 1000
    read_only_entity_types: list[str] = []

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine SQL queries
    log_level_http: str = "WARNING"          # httpx / httpcore outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_sync: str = "INFO"             # store, coordinator, pagination, counters
    log_level_feed: str = "INFO"             # change feed subscriber / broker / SSE transport

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def model_post_init(self, __context: object) -> None:
        """Merge runtime overrides from data/settings.json into sync policy settings."""
        if _SETTINGS_FILE.exists():
            try:
                overrides = json.loads(_SETTINGS_FILE.read_text("utf-8"))
                for key in _POLICY_KEYS:
                    if key in overrides and isinstance(overrides[key], (int, float)):
                        object.__setattr__(self, key, type(getattr(self, key))(overrides[key]))
            except Exception as exc:
                _config_logger.warning("Could not load settings overrides: %s", exc)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
