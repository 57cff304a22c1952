"""Domain entity for live change feed subscriptions."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from livesync.domain.entities.change_event import ChangeEvent


class SubscriptionStatus(str, Enum):
    """Lifecycle states of a subscription."""

    CONNECTING = "connecting"
    OPEN = "open"
    ERROR = "error"
    CLOSED = "closed"


def filter_text(value: Any) -> str:
    """Text form used to compare filter values: booleans as ``true``/``false``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class RowFilter:
    """Equality predicate on one column, e.g. ``story_id = X``.

    Values compare by their text form, so ``True``, ``"true"`` and a JSON
    ``true`` are the same value. A null column never matches.
    """

    column: str
    value: Any

    @property
    def text(self) -> str:
        return filter_text(self.value)

    def matches(self, row: dict[str, Any] | None) -> bool:
        if not row or row.get(self.column) is None:
            return False
        return filter_text(row[self.column]) == self.text

    def __str__(self) -> str:
        return f"{self.column}=eq.{self.text}"


@dataclass
class Subscription:
    """A live channel bound to one entity type and an optional filter.

    The subscriber that opened the channel installs ``closer``; ``close()``
    runs it at most once, so teardown is idempotent.
    """

    entity_type: str
    filter: RowFilter | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    status: SubscriptionStatus = SubscriptionStatus.CONNECTING
    handle: Any = None
    last_error: str | None = None
    opened_at: datetime | None = None
    closed_at: datetime | None = None
    closer: Callable[["Subscription"], Awaitable[None]] | None = field(default=None, repr=False)
    _listeners: list[Callable[[ChangeEvent], None]] = field(default_factory=list, repr=False)

    @property
    def is_closed(self) -> bool:
        return self.status is SubscriptionStatus.CLOSED

    def mark_open(self, handle: Any) -> None:
        """Transition to open once the transport handshake completed.

        An error reported during the handshake wins over the late open.
        """
        if self.is_closed:
            return
        self.handle = handle
        if self.status is not SubscriptionStatus.CONNECTING:
            return
        self.status = SubscriptionStatus.OPEN
        self.opened_at = datetime.now(timezone.utc)

    def mark_error(self, message: str) -> None:
        """Transition to error; a closed subscription stays closed."""
        if self.is_closed:
            return
        self.status = SubscriptionStatus.ERROR
        self.last_error = message

    def mark_closed(self) -> bool:
        """Transition to closed. Returns False when it was already closed."""
        if self.is_closed:
            return False
        self.status = SubscriptionStatus.CLOSED
        self.closed_at = datetime.now(timezone.utc)
        return True

    async def close(self) -> None:
        """Close the channel. Safe to call any number of times."""
        if not self.mark_closed():
            return
        self._listeners.clear()
        if self.closer is not None:
            await self.closer(self)

    def add_listener(self, listener: Callable[[ChangeEvent], None]) -> Callable[[], None]:
        """Receive every ChangeEvent this subscription emits; returns an unsubscribe hook."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def emit(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
