from .change_broker import ChangeBroker
from .change_feed import ChangeFeedSubscriber
from .collection_store import CollectionStore, StoreChange, StoreChangeKind
from .counter_reconciler import AggregateCounterReconciler
from .counter_store import AggregateCounterStore
from .lifecycle import SubscriptionLifecycleManager
from .metrics import percentage_change, tally, top_n
from .mutation_coordinator import OptimisticMutationCoordinator, patch_intent, toggle_intent
from .pagination import PaginationCursorManager
from .recent_activity import RecentActivityFeed, log_recent_activity, sanitize_activity_message
from .row_mapping import FieldKind, FieldSpec, RowSchema, decode_change_event, identity_row
from .row_service import RowService
from .synced_collection import SyncedCollection, create_synced_collection

__all__ = [
    "AggregateCounterReconciler",
    "AggregateCounterStore",
    "ChangeBroker",
    "ChangeFeedSubscriber",
    "CollectionStore",
    "FieldKind",
    "FieldSpec",
    "OptimisticMutationCoordinator",
    "PaginationCursorManager",
    "RecentActivityFeed",
    "RowSchema",
    "RowService",
    "StoreChange",
    "StoreChangeKind",
    "SubscriptionLifecycleManager",
    "SyncedCollection",
    "create_synced_collection",
    "decode_change_event",
    "identity_row",
    "log_recent_activity",
    "patch_intent",
    "percentage_change",
    "sanitize_activity_message",
    "tally",
    "toggle_intent",
]
