"""Subscription Lifecycle Manager — closes a view's subscriptions exactly once."""

import logging
from collections.abc import Callable

from livesync.domain.entities import Subscription
from livesync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("SyncEngine")


class SubscriptionLifecycleManager:
    """Tracks every open subscription of one consuming view.

    ``close_all()`` flips the view into teardown before closing anything, so
    events, page results and mutation responses arriving from then on are
    discarded rather than queued.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []
        self._closing = False
        self._closed = False

    @property
    def closing(self) -> bool:
        """True as soon as teardown has been initiated."""
        return self._closing

    @property
    def closed(self) -> bool:
        """True once every tracked subscription has been closed."""
        return self._closed

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def guard(self) -> Callable[[], bool]:
        """Capture an "is still alive" check for an operation starting now."""
        return lambda: not self._closing

    async def track(self, subscription: Subscription) -> None:
        """Track a subscription; one arriving after teardown is closed at once."""
        if self._closing:
            logger.debug("Subscription %s tracked after teardown; closing", subscription.id)
            await subscription.close()
            return
        self._subscriptions.append(subscription)

    async def close_all(self) -> None:
        """Close every tracked subscription. Idempotent."""
        if self._closing:
            return
        self._closing = True

        failures = 0
        for subscription in self._subscriptions:
            try:
                await subscription.close()
            except Exception as exc:
                failures += 1
                slog.warning(
                    SyncStage.TEARDOWN,
                    f"Failed to close {subscription.entity_type} subscription {subscription.id}",
                    error=exc,
                )
        self._closed = True
        slog.step(
            SyncStage.TEARDOWN,
            "Closed subscriptions",
            count=len(self._subscriptions),
            failures=failures,
        )
