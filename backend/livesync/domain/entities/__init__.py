from .activity import ActivityEntry
from .aggregate_counter import AggregateCounter
from .change_event import ChangeEvent, ChangeOperation
from .entity_record import EntityRecord
from .mutation import (
    MutationIntent,
    MutationOutcome,
    MutationStatus,
    OutcomeKind,
)
from .page import Page, RowPage
from .patch import MISSING, apply_patch, invert_patch
from .subscription import RowFilter, Subscription, SubscriptionStatus
from .synced_row import SyncedRow

__all__ = [
    "ActivityEntry",
    "AggregateCounter",
    "ChangeEvent",
    "ChangeOperation",
    "EntityRecord",
    "MutationIntent",
    "MutationOutcome",
    "MutationStatus",
    "OutcomeKind",
    "Page",
    "RowPage",
    "MISSING",
    "apply_patch",
    "invert_patch",
    "RowFilter",
    "Subscription",
    "SubscriptionStatus",
    "SyncedRow",
]
