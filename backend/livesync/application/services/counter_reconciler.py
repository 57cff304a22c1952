"""Aggregate Counter Reconciler — folds materialized metric feeds into entity records.

Counters travel on their own feed with no transactional link to the entity
rows, so a count may arrive before the record it describes. Such values are
held in a bounded buffer and applied once the record shows up; the oldest
buffered value is dropped when the buffer is full.
"""

import logging
from collections import OrderedDict
from typing import Any

from livesync.application.interfaces import ChangeFeedTransport
from livesync.application.services.collection_store import (
    CollectionStore,
    StoreChange,
    StoreChangeKind,
)
from livesync.application.services.counter_store import AggregateCounterStore
from livesync.application.services.change_feed import ChangeFeedSubscriber
from livesync.application.services.lifecycle import SubscriptionLifecycleManager
from livesync.domain.entities import (
    ChangeEvent,
    ChangeOperation,
    EntityRecord,
    RowFilter,
    Subscription,
)
from livesync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("SyncEngine")

DEFAULT_BUFFER_SIZE = 100


def _numeric(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


class AggregateCounterReconciler:
    """Subscribes to metric feeds and patches ``{metric: value}`` into records."""

    def __init__(
        self,
        feed: ChangeFeedTransport,
        counters: AggregateCounterStore,
        store: CollectionStore,
        *,
        lifecycle: SubscriptionLifecycleManager,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        subscriber: ChangeFeedSubscriber | None = None,
    ):
        self._counters = counters
        self._store = store
        self._lifecycle = lifecycle
        self._buffer_size = buffer_size
        self._buffer: OrderedDict[tuple[str, str], int | float] = OrderedDict()
        self._subscriber = subscriber or ChangeFeedSubscriber(feed, lifecycle)
        self._unsubscribe_store = store.subscribe(self._on_store_change)
        self.dropped = 0

    @property
    def buffered(self) -> dict[tuple[str, str], int | float]:
        return dict(self._buffer)

    async def track(
        self,
        metric_name: str,
        table: str,
        *,
        key_column: str = "entity_id",
        value_column: str = "value",
        filter: RowFilter | None = None,
    ) -> Subscription:
        """Follow ``table`` and keep ``metric_name`` current on each record.

        ``key_column`` names the entity id in the metric row and
        ``value_column`` the count, e.g. ``story_id`` / ``likes``.
        """

        def handle(event: ChangeEvent) -> None:
            self._on_metric_event(metric_name, key_column, value_column, event)

        return await self._subscriber.open(table, filter, handler=handle, id_column=key_column)

    def apply(self, entity_id: str, metric_name: str, value: int | float) -> None:
        """Patch a counter into its record, or buffer it until the record is loaded.

        Buffered values stay out of the counter store, so one evicted from a
        full buffer is gone for good.
        """
        if self._lifecycle.closing:
            return
        if entity_id in self._store:
            self._buffer.pop((entity_id, metric_name), None)
            self._counters.set(entity_id, metric_name, value)
            self._store.patch(entity_id, {metric_name: value})
            slog.detail(f"{metric_name} for {entity_id}", value=value)
            return

        key = (entity_id, metric_name)
        self._buffer[key] = value
        self._buffer.move_to_end(key)
        while len(self._buffer) > self._buffer_size:
            (dropped_id, dropped_metric), _ = self._buffer.popitem(last=False)
            self.dropped += 1
            logger.debug("Counter buffer full; dropped %s for %s", dropped_metric, dropped_id)

    def close(self) -> None:
        self._unsubscribe_store()
        self._buffer.clear()

    # ── Internals ────────────────────────────────────────────────────

    def _on_metric_event(
        self,
        metric_name: str,
        key_column: str,
        value_column: str,
        event: ChangeEvent,
    ) -> None:
        if event.operation is ChangeOperation.DELETE:
            value: int | float = 0
        else:
            value = _numeric(event.attributes.get(value_column))
        slog.step(SyncStage.COUNTER, f"{metric_name} update", entity=event.id, value=value)
        self.apply(event.id, metric_name, value)

    def _on_store_change(self, change: StoreChange) -> None:
        if change.kind is StoreChangeKind.REPLACE:
            for record_id in self._store.ids():
                self._reapply(record_id, None)
        elif change.kind is StoreChangeKind.UPSERT and change.record_id is not None:
            self._reapply(change.record_id, change.previous)

    def _reapply(self, record_id: str, previous: EntityRecord | None) -> None:
        """Flush buffered values for a record, and restore counters a row refresh overwrote.

        A field the refresh left untouched keeps its value, so an optimistic
        count that is still in flight is not clobbered.
        """
        for (entity_id, metric_name) in [key for key in self._buffer if key[0] == record_id]:
            value = self._buffer.pop((entity_id, metric_name))
            self._counters.set(entity_id, metric_name, value)

        known = self._counters.for_entity(record_id)
        if not known:
            return
        record = self._store.get(record_id)
        if record is None:
            return
        stale = {
            name: value
            for name, value in known.items()
            if record.get(name) != value
            and (previous is None or previous.get(name) != record.get(name))
        }
        if stale:
            self._store.patch(record_id, stale)
