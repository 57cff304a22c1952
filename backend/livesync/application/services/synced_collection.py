"""Synced collection — one consuming view's store, feeds, pages and mutations.

Each view builds its own ``SyncedCollection`` through
``create_synced_collection``; nothing here is shared between views, so
closing one view never affects another.
"""

import logging

from livesync.application.interfaces import AggregateFeed, ChangeFeedTransport, CrudApi
from livesync.application.services.change_feed import ChangeFeedSubscriber, WarningCallback
from livesync.application.services.collection_store import CollectionStore
from livesync.application.services.counter_reconciler import AggregateCounterReconciler
from livesync.application.services.counter_store import AggregateCounterStore
from livesync.application.services.lifecycle import SubscriptionLifecycleManager
from livesync.application.services.mutation_coordinator import OptimisticMutationCoordinator
from livesync.application.services.pagination import PaginationCursorManager
from livesync.application.services.row_mapping import RowMapper, identity_row
from livesync.config import Settings, get_settings
from livesync.domain.entities import (
    EntityRecord,
    MutationIntent,
    MutationOutcome,
    Page,
    RowFilter,
    Subscription,
)
from livesync.domain.exceptions import SyncError

logger = logging.getLogger(__name__)


class SyncedCollection:
    """Facade over the sync components wired for one entity type."""

    def __init__(
        self,
        entity_type: str,
        *,
        store: CollectionStore,
        counters: AggregateCounterStore,
        lifecycle: SubscriptionLifecycleManager,
        subscriber: ChangeFeedSubscriber,
        pagination: PaginationCursorManager,
        coordinator: OptimisticMutationCoordinator,
        reconciler: AggregateCounterReconciler | None = None,
    ):
        self.entity_type = entity_type
        self.store = store
        self.counters = counters
        self.lifecycle = lifecycle
        self.subscriber = subscriber
        self.pagination = pagination
        self.coordinator = coordinator
        self.reconciler = reconciler
        self.subscription: Subscription | None = None

    @property
    def records(self) -> list[EntityRecord]:
        return self.store.records()

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more

    @property
    def warnings(self) -> list[SyncError]:
        return self.subscriber.warnings

    async def start(self, filter: RowFilter | None = None) -> Page:
        """Subscribe to live changes, then load the first page.

        The feed opens first so nothing committed during the page fetch is
        missed; overlapping rows are merged by id.
        """
        self.pagination.filter = filter
        self.subscription = await self.subscriber.open(self.entity_type, filter)
        return await self.pagination.load_page(1)

    async def load_more(self) -> Page | None:
        """Load the next page, or return None when the collection is exhausted."""
        if not self.pagination.has_more:
            return None
        return await self.pagination.load_next()

    async def refresh(self) -> Page:
        return await self.pagination.refresh()

    async def apply(self, intent: MutationIntent) -> MutationOutcome:
        return await self.coordinator.apply(intent)

    async def track_metric(
        self,
        metric_name: str,
        table: str,
        *,
        key_column: str = "entity_id",
        value_column: str = "value",
        filter: RowFilter | None = None,
    ) -> Subscription:
        """Keep ``metric_name`` on each record in step with a materialized metric table."""
        if self.reconciler is None:
            raise ValueError(f"No aggregate feed configured for '{self.entity_type}'")
        return await self.reconciler.track(
            metric_name,
            table,
            key_column=key_column,
            value_column=value_column,
            filter=filter,
        )

    async def close(self) -> None:
        """Tear the view down. Idempotent."""
        if self.reconciler is not None:
            self.reconciler.close()
        await self.lifecycle.close_all()

    async def __aenter__(self) -> "SyncedCollection":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_synced_collection(
    entity_type: str,
    map_row: RowMapper | None = None,
    *,
    transport: ChangeFeedTransport,
    api: CrudApi,
    aggregate_feed: AggregateFeed | None = None,
    settings: Settings | None = None,
    on_warning: WarningCallback | None = None,
    drop_filter_on_missing_column: bool = False,
) -> SyncedCollection:
    """Wire a fresh SyncedCollection for ``entity_type`` with its own store and lifecycle."""
    settings = settings or get_settings()
    map_row = map_row or identity_row

    store = CollectionStore(entity_type)
    counters = AggregateCounterStore()
    lifecycle = SubscriptionLifecycleManager()

    subscriber = ChangeFeedSubscriber(transport, lifecycle, on_warning=on_warning)
    subscriber.bind(entity_type, store, map_row)

    pagination = PaginationCursorManager(
        api,
        store,
        entity_type,
        page_size=settings.page_size,
        map_row=map_row,
        lifecycle=lifecycle,
        drop_filter_on_missing_column=drop_filter_on_missing_column,
    )
    coordinator = OptimisticMutationCoordinator(
        store,
        timeout=settings.mutation_timeout_seconds,
        lifecycle=lifecycle,
        map_canonical=map_row,
    )

    reconciler = None
    if aggregate_feed is not None:
        metric_subscriber = ChangeFeedSubscriber(aggregate_feed, lifecycle, on_warning=on_warning)
        reconciler = AggregateCounterReconciler(
            aggregate_feed,
            counters,
            store,
            lifecycle=lifecycle,
            buffer_size=settings.counter_buffer_size,
            subscriber=metric_subscriber,
        )

    logger.debug("Synced collection created for %s", entity_type)
    return SyncedCollection(
        entity_type,
        store=store,
        counters=counters,
        lifecycle=lifecycle,
        subscriber=subscriber,
        pagination=pagination,
        coordinator=coordinator,
        reconciler=reconciler,
    )
