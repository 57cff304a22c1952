"""Local Collection Store — the client's ordered, id-keyed view of one entity type."""

import logging
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from livesync.domain.entities import EntityRecord

logger = logging.getLogger(__name__)


class StoreChangeKind(str, Enum):
    REPLACE = "replace"
    UPSERT = "upsert"
    PATCH = "patch"
    REMOVE = "remove"


@dataclass(frozen=True)
class StoreChange:
    """Notification delivered to store listeners after a mutating call."""

    kind: StoreChangeKind
    record_id: str | None = None
    record: EntityRecord | None = None
    previous: EntityRecord | None = None


StoreListener = Callable[[StoreChange], None]


class CollectionStore:
    """Ordered mapping of id → EntityRecord for one entity type.

    Owned by a single consuming view; never share an instance between views.
    Listeners run synchronously after each mutating call. A mutation made
    from inside a listener is applied immediately but its notification is
    queued behind the current one, so every listener sees changes in call
    order.
    """

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        self.total: int | None = None
        self._records: dict[str, EntityRecord] = {}
        self._listeners: list[StoreListener] = []
        self._pending: deque[StoreChange] = deque()
        self._notifying = False

    # ── Queries ──────────────────────────────────────────────────────

    def get(self, record_id: str) -> EntityRecord | None:
        return self._records.get(record_id)

    def slice(self, offset: int = 0, limit: int | None = None) -> list[EntityRecord]:
        records = list(self._records.values())
        end = None if limit is None else offset + limit
        return records[offset:end]

    def records(self) -> list[EntityRecord]:
        return list(self._records.values())

    def ids(self) -> list[str]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    # ── Mutations ────────────────────────────────────────────────────

    def replace_all(self, records: Iterable[EntityRecord]) -> None:
        """Replace the whole collection. Duplicate ids keep first position, last value."""
        replacement: dict[str, EntityRecord] = {}
        for record in records:
            replacement[record.id] = record
        self._records = replacement
        logger.debug("%s: replaced with %d records", self.entity_type, len(replacement))
        self._notify(StoreChange(StoreChangeKind.REPLACE))

    def upsert(self, record: EntityRecord, *, prepend: bool = False) -> EntityRecord:
        """Insert ``record`` if absent, otherwise shallow-merge it in place.

        ``prepend`` only affects new records; existing ones keep their position.
        """
        previous = self._records.get(record.id)
        if previous is None:
            stored = record
            if prepend:
                self._records = {record.id: record, **self._records}
            else:
                self._records[record.id] = record
        else:
            stored = previous.merged(record.fields)
            self._records[record.id] = stored
        self._notify(StoreChange(StoreChangeKind.UPSERT, record.id, stored, previous))
        return stored

    def patch(self, record_id: str, fields: Mapping[str, Any]) -> EntityRecord | None:
        """Merge ``fields`` into an existing record. Never creates a record."""
        previous = self._records.get(record_id)
        if previous is None:
            return None
        stored = previous.merged(fields)
        self._records[record_id] = stored
        self._notify(StoreChange(StoreChangeKind.PATCH, record_id, stored, previous))
        return stored

    def remove(self, record_id: str) -> bool:
        """Remove a record. Absent ids are a silent no-op."""
        previous = self._records.pop(record_id, None)
        if previous is None:
            return False
        self._notify(StoreChange(StoreChangeKind.REMOVE, record_id, None, previous))
        return True

    # ── Listeners ────────────────────────────────────────────────────

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: StoreChange) -> None:
        self._pending.append(change)
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending:
                current = self._pending.popleft()
                for listener in list(self._listeners):
                    try:
                        listener(current)
                    except Exception:
                        logger.exception(
                            "Listener failed on %s %s/%s",
                            current.kind.value,
                            self.entity_type,
                            current.record_id,
                        )
        finally:
            self._notifying = False
