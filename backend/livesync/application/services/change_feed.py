"""Change Feed Subscriber — opens change feed channels and dispatches their events.

Transport-level problems never escape as exceptions: a failed handshake or a
dropped channel moves the subscription to ``error`` and is reported as a
warning, and an undecodable message is dropped on its own while the channel
keeps running.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from livesync.application.interfaces import ChangeFeedTransport
from livesync.application.services.collection_store import CollectionStore
from livesync.application.services.lifecycle import SubscriptionLifecycleManager
from livesync.application.services.row_mapping import RowMapper, decode_change_event, identity_row
from livesync.domain.entities import (
    ChangeEvent,
    ChangeOperation,
    EntityRecord,
    RowFilter,
    Subscription,
)
from livesync.domain.exceptions import MalformedEvent, SyncError, TransportError
from livesync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("SyncEngine")

EventHandler = Callable[[ChangeEvent], None]
WarningCallback = Callable[[SyncError], None]


@dataclass
class _Binding:
    store: CollectionStore
    map_row: RowMapper


class ChangeFeedSubscriber:
    """Owns the change feed subscriptions of one consuming view."""

    def __init__(
        self,
        transport: ChangeFeedTransport,
        lifecycle: SubscriptionLifecycleManager,
        on_warning: WarningCallback | None = None,
    ):
        self._transport = transport
        self._lifecycle = lifecycle
        self._on_warning = on_warning
        self._bindings: dict[str, _Binding] = {}
        self.warnings: list[SyncError] = []

    def bind(
        self,
        entity_type: str,
        store: CollectionStore,
        map_row: RowMapper | None = None,
    ) -> None:
        """Route ``entity_type`` events into ``store``, mapping rows with ``map_row``."""
        self._bindings[entity_type] = _Binding(store=store, map_row=map_row or identity_row)

    async def open(
        self,
        entity_type: str,
        filter: RowFilter | None = None,
        *,
        handler: EventHandler | None = None,
        id_column: str = "id",
    ) -> Subscription:
        """Open a subscription.

        Events go to ``handler`` when given, else into the bound store.
        ``id_column`` names the row id column (metric tables use the entity key).
        Always returns the Subscription; check its status for failures.
        """
        binding = self._bindings.get(entity_type)
        if handler is None and binding is None:
            raise ValueError(f"No store bound for entity type '{entity_type}'")
        map_row = binding.map_row if binding else identity_row

        subscription = Subscription(entity_type=entity_type, filter=filter)
        subscription.closer = self._release
        if handler is not None:
            subscription.add_listener(handler)
        elif binding is not None:
            store = binding.store
            subscription.add_listener(lambda event: self._apply_to_store(store, event))

        await self._lifecycle.track(subscription)
        if subscription.is_closed:
            return subscription

        def on_message(raw: Mapping[str, Any] | str | bytes) -> None:
            self._handle_message(subscription, raw, map_row, id_column)

        def on_error(exc: Exception) -> None:
            self._handle_transport_error(subscription, exc)

        try:
            handle = await self._transport.subscribe(entity_type, filter, on_message, on_error)
        except Exception as exc:
            self._handle_transport_error(subscription, exc)
            return subscription

        if subscription.is_closed:
            # teardown began during the handshake
            await self._safe_unsubscribe(subscription, handle)
            return subscription

        subscription.mark_open(handle)
        slog.step(
            SyncStage.SUBSCRIBE,
            f"Subscribed to {entity_type}",
            filter=str(filter) if filter else "*",
            id=subscription.id,
        )
        return subscription

    async def close(self, subscription: Subscription) -> None:
        await subscription.close()

    # ── Dispatch ─────────────────────────────────────────────────────

    def _handle_message(
        self,
        subscription: Subscription,
        raw: Mapping[str, Any] | str | bytes,
        map_row: RowMapper,
        id_column: str,
    ) -> None:
        if self._lifecycle.closing or subscription.is_closed:
            logger.debug("Discarding %s event after teardown", subscription.entity_type)
            return
        try:
            event = decode_change_event(raw, subscription.entity_type, map_row, id_column)
        except MalformedEvent as exc:
            logger.warning("Dropping malformed %s event: %s", subscription.entity_type, exc.message)
            return
        try:
            subscription.emit(event)
        except Exception:
            logger.exception(
                "Handler for %s %s event %s failed",
                subscription.entity_type,
                event.operation.value,
                event.id,
            )

    @staticmethod
    def _apply_to_store(store: CollectionStore, event: ChangeEvent) -> None:
        if event.operation is ChangeOperation.DELETE:
            store.remove(event.id)
            return
        record = EntityRecord(id=event.id, fields=dict(event.attributes))
        store.upsert(record, prepend=event.operation is ChangeOperation.INSERT)

    def _handle_transport_error(self, subscription: Subscription, exc: Exception) -> None:
        if subscription.is_closed:
            return
        error = exc if isinstance(exc, TransportError) else TransportError(subscription.entity_type, str(exc))
        subscription.mark_error(error.message)
        slog.warning(
            SyncStage.SUBSCRIBE,
            f"Realtime unavailable for {subscription.entity_type}; continuing without live updates",
            error=exc,
        )
        self.warnings.append(error)
        if self._on_warning is not None:
            self._on_warning(error)

    # ── Teardown ─────────────────────────────────────────────────────

    async def _release(self, subscription: Subscription) -> None:
        if subscription.handle is not None:
            await self._safe_unsubscribe(subscription, subscription.handle)

    async def _safe_unsubscribe(self, subscription: Subscription, handle: Any) -> None:
        try:
            await self._transport.unsubscribe(handle)
        except Exception as exc:
            logger.warning(
                "Unsubscribe failed for %s subscription %s: %s",
                subscription.entity_type,
                subscription.id,
                exc,
            )
