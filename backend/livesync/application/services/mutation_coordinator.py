"""Optimistic Mutation Coordinator — apply locally now, reconcile with the backend later.

Every mutation is a ``MutationIntent``: an optimistic patch plus its exact
inverse, computed from the record's state when the intent is applied. The
patch is visible to readers before the remote write starts; the remote
outcome then either confirms it (optionally replacing the guess with the
canonical value) or rolls it back.

When two intents touch the same ``(record, field)`` pair, the later one owns
the field: the earlier intent still resolves and reports its outcome, but it
no longer writes that field. Its resolution is instead folded into the later
intent's inverse, so rolling the later intent back lands on the earlier
intent's settled value rather than on a stale optimistic guess.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from livesync.application.services.collection_store import CollectionStore
from livesync.application.services.lifecycle import SubscriptionLifecycleManager
from livesync.application.services.row_mapping import RowMapper
from livesync.domain.entities import (
    EntityRecord,
    MutationIntent,
    MutationOutcome,
    OutcomeKind,
    invert_patch,
)
from livesync.domain.entities.mutation import RemoteWrite
from livesync.domain.exceptions import (
    MutationTimeout,
    PermissionDenied,
    RemoteError,
    SyncError,
    WriteConflict,
    WriteRejected,
    classify_remote_error,
)
from livesync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("SyncEngine")

DEFAULT_TIMEOUT = 10.0


class OptimisticMutationCoordinator:
    """Runs MutationIntents against one CollectionStore."""

    def __init__(
        self,
        store: CollectionStore,
        *,
        timeout: float | None = DEFAULT_TIMEOUT,
        lifecycle: SubscriptionLifecycleManager | None = None,
        map_canonical: RowMapper | None = None,
    ):
        self._store = store
        self._timeout = timeout
        self._lifecycle = lifecycle
        self._map_canonical = map_canonical
        self._owners: dict[tuple[str, str], MutationIntent] = {}

    def pending_for(self, record_id: str, field: str) -> MutationIntent | None:
        """The intent currently owning ``(record_id, field)``, if any."""
        return self._owners.get((record_id, field))

    @property
    def pending_count(self) -> int:
        return len({intent.id for intent in self._owners.values()})

    async def apply(self, intent: MutationIntent) -> MutationOutcome:
        if self._lifecycle is not None and self._lifecycle.closing:
            logger.debug("Ignoring %s for %s after teardown", intent.operation, intent.target_id)
            return MutationOutcome(intent=intent, kind=OutcomeKind.DISCARDED)

        current = self._store.get(intent.target_id)
        if current is None:
            error = WriteRejected(f"{self._store.entity_type} '{intent.target_id}' is not loaded")
            intent.mark_rolled_back()
            return MutationOutcome(intent=intent, kind=OutcomeKind.REJECTED, error=error)

        alive = self._lifecycle.guard() if self._lifecycle else (lambda: True)

        # optimistic patch, visible immediately
        intent.optimistic_patch = dict(intent.build_patch(dict(current.fields)))
        intent.inverse_patch = invert_patch(current.fields, intent.optimistic_patch)
        for field in intent.fields:
            self._owners[(intent.target_id, field)] = intent
        self._store.patch(intent.target_id, intent.optimistic_patch)
        slog.step(
            SyncStage.OPTIMISTIC,
            f"{intent.operation} {self._store.entity_type}/{intent.target_id}",
            patch=intent.optimistic_patch,
        )

        # remote write
        try:
            response = await self._await_remote(intent.remote_write)
        except asyncio.CancelledError:
            if alive():
                intent.mark_rolled_back()
                self._resolve(intent, intent.inverse_patch)
                logger.debug("%s for %s cancelled; rolled back", intent.operation, intent.target_id)
            else:
                self._discard(intent)
            raise
        except Exception as exc:
            error = self._classify(exc)
            if not alive():
                return self._discard(intent)
            if isinstance(error, WriteConflict):
                return self._confirm(intent, None, OutcomeKind.ALREADY_APPLIED)
            return self._rollback(intent, error)

        if not alive():
            return self._discard(intent)
        return self._confirm(intent, response, OutcomeKind.CONFIRMED)

    # ── Resolution ───────────────────────────────────────────────────

    async def _await_remote(self, remote_write: RemoteWrite) -> Mapping[str, Any] | None:
        if self._timeout is None:
            return await remote_write()
        try:
            return await asyncio.wait_for(remote_write(), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise MutationTimeout(self._timeout) from None

    @staticmethod
    def _classify(exc: Exception) -> SyncError:
        if isinstance(exc, RemoteError):
            return classify_remote_error(exc)
        if isinstance(exc, SyncError):
            return exc
        logger.exception("Remote write raised an unexpected error")
        return WriteRejected(str(exc) or type(exc).__name__)

    def _confirm(
        self,
        intent: MutationIntent,
        response: Mapping[str, Any] | None,
        kind: OutcomeKind,
    ) -> MutationOutcome:
        intent.mark_confirmed()
        canonical: dict[str, Any] = {}
        if response:
            canonical = dict(self._map_canonical(response) if self._map_canonical else response)
            canonical.pop("id", None)
        # fields this intent wrote: settle on canonical if given, else keep the guess
        settled = {field: canonical.get(field, intent.optimistic_patch[field]) for field in intent.fields}
        settled.update({k: v for k, v in canonical.items() if k not in settled})
        record = self._resolve(intent, settled)
        slog.step(
            SyncStage.CONFIRM,
            f"{intent.operation} {self._store.entity_type}/{intent.target_id}",
            outcome=kind.value,
        )
        return MutationOutcome(intent=intent, kind=kind, record=record)

    def _rollback(self, intent: MutationIntent, error: SyncError) -> MutationOutcome:
        intent.mark_rolled_back()
        record = self._resolve(intent, intent.inverse_patch)
        if isinstance(error, PermissionDenied):
            kind = OutcomeKind.PERMISSION_DENIED
        elif isinstance(error, MutationTimeout):
            kind = OutcomeKind.TIMED_OUT
        else:
            kind = OutcomeKind.ROLLED_BACK
        slog.warning(
            SyncStage.ROLLBACK,
            f"{intent.operation} {self._store.entity_type}/{intent.target_id} rolled back",
            error=error,
        )
        return MutationOutcome(intent=intent, kind=kind, record=record, error=error)

    def _resolve(self, intent: MutationIntent, values: Mapping[str, Any]) -> EntityRecord | None:
        """Write ``values`` for fields still owned by ``intent``; hand the rest to their new owners."""
        to_apply: dict[str, Any] = {}
        for field, value in values.items():
            owner = self._owners.get((intent.target_id, field))
            if owner is intent:
                del self._owners[(intent.target_id, field)]
                to_apply[field] = value
            elif owner is not None and field in intent.fields:
                # superseded: the newer intent's undo should land on this settled value
                owner.inverse_patch[field] = value
                logger.debug("Rebased %s inverse for %s onto %r", owner.id, field, value)
            elif owner is None:
                to_apply[field] = value
        if not to_apply:
            return self._store.get(intent.target_id)
        return self._store.patch(intent.target_id, to_apply)

    def _discard(self, intent: MutationIntent) -> MutationOutcome:
        for field in intent.fields:
            if self._owners.get((intent.target_id, field)) is intent:
                del self._owners[(intent.target_id, field)]
        logger.debug("Discarding %s result for %s after teardown", intent.operation, intent.target_id)
        return MutationOutcome(intent=intent, kind=OutcomeKind.DISCARDED)


# ── Intent builders ──────────────────────────────────────────────────


def toggle_intent(
    target_id: str,
    *,
    flag: str,
    counter: str | None,
    activate: RemoteWrite,
    deactivate: RemoteWrite,
    operation: str | None = None,
) -> MutationIntent:
    """Flip a boolean ``flag`` and move ``counter`` by exactly one (never below zero).

    ``activate`` runs when the flag turns on (insert a like row),
    ``deactivate`` when it turns off (delete it).
    """
    state: dict[str, bool] = {}

    def build_patch(fields: Mapping[str, Any]) -> dict[str, Any]:
        turning_on = not bool(fields.get(flag, False))
        state["on"] = turning_on
        patch: dict[str, Any] = {flag: turning_on}
        if counter is not None:
            count = fields.get(counter) or 0
            patch[counter] = count + 1 if turning_on else max(0, count - 1)
        return patch

    async def remote_write() -> Mapping[str, Any] | None:
        return await (activate() if state.get("on") else deactivate())

    return MutationIntent(
        target_id=target_id,
        operation=operation or f"toggle:{flag}",
        build_patch=build_patch,
        remote_write=remote_write,
    )


def patch_intent(
    target_id: str,
    fields: Mapping[str, Any],
    remote_write: RemoteWrite,
    *,
    operation: str = "update",
) -> MutationIntent:
    """Set ``fields`` to fixed values (e.g. ``status = "Resolved"``)."""
    values = dict(fields)

    def build_patch(_current: Mapping[str, Any]) -> dict[str, Any]:
        return dict(values)

    return MutationIntent(
        target_id=target_id,
        operation=operation,
        build_patch=build_patch,
        remote_write=remote_write,
    )
