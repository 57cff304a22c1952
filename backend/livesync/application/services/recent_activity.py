"""Recent activity — a short newest-first list of what just happened.

Dashboards load the latest few ``recent_activity`` rows once and then
prepend entries derived from live change events. Logging an activity is
best-effort: a failed insert is reported as a warning and never interrupts
the action that triggered it.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from livesync.application.interfaces import CrudApi
from livesync.config import get_settings
from livesync.domain.entities import ActivityEntry, ChangeEvent

logger = logging.getLogger(__name__)

ACTIVITY_ENTITY_TYPE = "recent_activity"
ACTIVITY_TYPES = ("report", "story", "comment", "support", "resource", "system")
MAX_MESSAGE_LENGTH = 280

ActivityFormatter = Callable[[ChangeEvent], ActivityEntry | None]


def sanitize_activity_message(message: str) -> str:
    message = message.strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        return f"{message[:MAX_MESSAGE_LENGTH - 3]}..."
    return message


def normalize_activity_type(value: Any) -> str:
    lowered = str(value or "").lower()
    return lowered if lowered in ACTIVITY_TYPES else "system"


def normalize_activity_status(value: Any) -> str:
    return str(value or "").strip().lower() or "info"


def activity_from_row(row: Mapping[str, Any]) -> ActivityEntry:
    return ActivityEntry(
        id=str(row.get("id", "")),
        message=row.get("message") or "",
        type=normalize_activity_type(row.get("type")),
        status=normalize_activity_status(row.get("status")),
        time=row.get("created_at") or datetime.now(timezone.utc).isoformat(),
    )


async def log_recent_activity(
    api: CrudApi,
    message: str,
    type: str | None = None,
    status: str | None = None,
) -> bool:
    """Insert one activity row. Returns False (and logs) instead of raising."""
    payload = {
        "message": sanitize_activity_message(message),
        "type": (type or "system").lower(),
        "status": (status or "info").lower(),
    }
    if not payload["message"]:
        return False
    try:
        await api.insert(ACTIVITY_ENTITY_TYPE, payload)
    except Exception as exc:
        logger.warning("Failed to log recent activity: %s", exc)
        return False
    return True


class RecentActivityFeed:
    """Bounded, newest-first list of ActivityEntry, de-duplicated by id.

    ``limit`` defaults to ``Settings.recent_activity_limit``.
    """

    def __init__(self, limit: int | None = None):
        if limit is None:
            limit = get_settings().recent_activity_limit
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._entries: list[ActivityEntry] = []

    @property
    def entries(self) -> list[ActivityEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self, api: CrudApi) -> list[ActivityEntry]:
        """Replace the list with the newest ``limit`` rows from the backend."""
        page = await api.fetch_page(ACTIVITY_ENTITY_TYPE, None, 0, self.limit)
        self._entries = [activity_from_row(row) for row in page.rows][: self.limit]
        return self.entries

    def push(self, entry: ActivityEntry) -> None:
        """Prepend ``entry``; an entry with the same id moves to the top."""
        remaining = [existing for existing in self._entries if existing.id != entry.id]
        self._entries = [entry, *remaining][: self.limit]

    def push_event(self, event: ChangeEvent, formatter: ActivityFormatter) -> ActivityEntry | None:
        """Turn a change event into an entry via ``formatter``; None means skip."""
        entry = formatter(event)
        if entry is not None:
            self.push(entry)
        return entry
