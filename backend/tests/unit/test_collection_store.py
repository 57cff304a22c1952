"""Unit tests for the CollectionStore."""

import pytest

from livesync.application.services import CollectionStore, StoreChange, StoreChangeKind
from livesync.domain.entities import EntityRecord


def _record(record_id: str, **fields) -> EntityRecord:
    return EntityRecord(id=record_id, fields=fields)


@pytest.fixture
def store() -> CollectionStore:
    return CollectionStore("stories")


def test_upsert_appends_new_records_in_order(store: CollectionStore):
    store.upsert(_record("a", title="A"))
    store.upsert(_record("b", title="B"))
    assert store.ids() == ["a", "b"]
    assert len(store) == 2
    assert "a" in store


def test_upsert_prepend_puts_new_record_first(store: CollectionStore):
    store.upsert(_record("a"))
    store.upsert(_record("b"), prepend=True)
    assert store.ids() == ["b", "a"]


def test_upsert_existing_merges_and_keeps_position(store: CollectionStore):
    store.upsert(_record("a", title="A", likes=1))
    store.upsert(_record("b"))
    merged = store.upsert(_record("a", likes=2), prepend=True)

    assert store.ids() == ["a", "b"]
    assert merged.fields == {"title": "A", "likes": 2}
    assert store.get("a") == merged


def test_patch_absent_record_is_a_no_op(store: CollectionStore):
    seen: list[StoreChange] = []
    store.subscribe(seen.append)

    assert store.patch("missing", {"likes": 1}) is None
    assert len(store) == 0
    assert seen == []


def test_patch_merges_fields(store: CollectionStore):
    store.upsert(_record("a", status="Open", priority="High"))
    patched = store.patch("a", {"status": "Resolved"})
    assert patched is not None
    assert patched.fields == {"status": "Resolved", "priority": "High"}


def test_remove(store: CollectionStore):
    store.upsert(_record("a"))
    assert store.remove("a") is True
    assert store.remove("a") is False
    assert store.get("a") is None


def test_replace_all_keeps_first_position_and_last_value(store: CollectionStore):
    store.upsert(_record("old"))
    store.replace_all([_record("a", v=1), _record("b"), _record("a", v=2)])
    assert store.ids() == ["a", "b"]
    assert store.get("a").get("v") == 2


def test_slice(store: CollectionStore):
    for key in "abcde":
        store.upsert(_record(key))
    assert [r.id for r in store.slice(1, 2)] == ["b", "c"]
    assert [r.id for r in store.slice(3)] == ["d", "e"]


def test_listeners_receive_change_details(store: CollectionStore):
    seen: list[StoreChange] = []
    unsubscribe = store.subscribe(seen.append)

    store.upsert(_record("a", likes=1))
    store.patch("a", {"likes": 2})
    store.remove("a")
    unsubscribe()
    store.upsert(_record("b"))

    assert [c.kind for c in seen] == [
        StoreChangeKind.UPSERT,
        StoreChangeKind.PATCH,
        StoreChangeKind.REMOVE,
    ]
    assert seen[1].previous.get("likes") == 1
    assert seen[1].record.get("likes") == 2


def test_reentrant_mutation_notifies_in_call_order(store: CollectionStore):
    first: list[StoreChangeKind] = []
    second: list[StoreChangeKind] = []

    def patch_on_upsert(change: StoreChange) -> None:
        first.append(change.kind)
        if change.kind is StoreChangeKind.UPSERT:
            store.patch(change.record_id, {"seen": True})

    store.subscribe(patch_on_upsert)
    store.subscribe(lambda change: second.append(change.kind))

    store.upsert(_record("a"))

    assert first == [StoreChangeKind.UPSERT, StoreChangeKind.PATCH]
    assert second == [StoreChangeKind.UPSERT, StoreChangeKind.PATCH]
    assert store.get("a").get("seen") is True


def test_failing_listener_does_not_drop_queued_notifications(store: CollectionStore, caplog):
    seen: list[StoreChangeKind] = []

    def patch_then_fail(change: StoreChange) -> None:
        if change.kind is StoreChangeKind.UPSERT:
            store.patch(change.record_id, {"seen": True})
            raise RuntimeError("listener bug")

    store.subscribe(patch_then_fail)
    store.subscribe(lambda change: seen.append(change.kind))

    store.upsert(_record("a"))

    assert seen == [StoreChangeKind.UPSERT, StoreChangeKind.PATCH]
    assert store.get("a").get("seen") is True
    assert "Listener failed" in caplog.text

    store.patch("a", {"seen": False})
    assert seen[-1] is StoreChangeKind.PATCH
