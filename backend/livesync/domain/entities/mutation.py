"""Domain entities for optimistic mutations."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from livesync.domain.entities.entity_record import EntityRecord
from livesync.domain.exceptions import SyncError

PatchBuilder = Callable[[Mapping[str, Any]], dict[str, Any]]
RemoteWrite = Callable[[], Awaitable[Mapping[str, Any] | None]]


class MutationStatus(str, Enum):
    """Lifecycle states of a mutation intent."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class OutcomeKind(str, Enum):
    """How an applied intent was resolved."""

    CONFIRMED = "confirmed"
    ALREADY_APPLIED = "already_applied"
    ROLLED_BACK = "rolled_back"
    PERMISSION_DENIED = "permission_denied"
    TIMED_OUT = "timed_out"
    REJECTED = "rejected"
    DISCARDED = "discarded"


@dataclass
class MutationIntent:
    """A pending optimistic change to one record.

    ``build_patch`` derives the optimistic patch from the record's current
    fields; ``remote_write`` performs the authoritative write and may return
    canonical field values for the target record. The coordinator fills in
    ``optimistic_patch`` and ``inverse_patch`` when the intent is applied.
    """

    target_id: str
    operation: str
    build_patch: PatchBuilder = field(repr=False)
    remote_write: RemoteWrite = field(repr=False)
    id: str = field(default_factory=lambda: str(uuid4()))
    optimistic_patch: dict[str, Any] = field(default_factory=dict)
    inverse_patch: dict[str, Any] = field(default_factory=dict)
    status: MutationStatus = MutationStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: datetime | None = None

    @property
    def fields(self) -> frozenset[str]:
        return frozenset(self.optimistic_patch)

    def mark_confirmed(self) -> None:
        self.status = MutationStatus.CONFIRMED
        self.resolved_at = datetime.now(timezone.utc)

    def mark_rolled_back(self) -> None:
        self.status = MutationStatus.ROLLED_BACK
        self.resolved_at = datetime.now(timezone.utc)


@dataclass
class MutationOutcome:
    """Typed result of ``OptimisticMutationCoordinator.apply``."""

    intent: MutationIntent
    kind: OutcomeKind
    record: EntityRecord | None = None
    error: SyncError | None = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.CONFIRMED, OutcomeKind.ALREADY_APPLIED)
