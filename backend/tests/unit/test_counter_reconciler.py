"""Unit tests for the AggregateCounterReconciler."""

import pytest

from livesync.application.interfaces import AggregateFeed
from livesync.application.services import (
    AggregateCounterReconciler,
    AggregateCounterStore,
    CollectionStore,
    SubscriptionLifecycleManager,
)
from livesync.domain.entities import EntityRecord, SubscriptionStatus


class FakeAggregateFeed(AggregateFeed):
    """In-memory metric feed with a single channel per table."""

    def __init__(self):
        self.channels: dict[str, tuple] = {}
        self.unsubscribed: list[str] = []

    async def subscribe(self, entity_type, filter, on_message, on_error):
        self.channels[entity_type] = (on_message, on_error)
        return entity_type

    async def unsubscribe(self, handle):
        self.unsubscribed.append(handle)

    def push(self, table: str, message: dict) -> None:
        self.channels[table][0](message)


def _likes(story_id: str, likes, operation: str = "UPDATE") -> dict:
    row = {"story_id": story_id, "likes": likes}
    if operation == "DELETE":
        return {"operation": operation, "before": row}
    return {"operation": operation, "after": row}


@pytest.fixture
def feed() -> FakeAggregateFeed:
    return FakeAggregateFeed()


@pytest.fixture
def store() -> CollectionStore:
    store = CollectionStore("stories")
    store.upsert(EntityRecord("s1", {"title": "Night shift", "likes": 0}))
    return store


@pytest.fixture
def counters() -> AggregateCounterStore:
    return AggregateCounterStore()


@pytest.fixture
def lifecycle() -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager()


@pytest.fixture
def reconciler(feed, counters, store, lifecycle) -> AggregateCounterReconciler:
    return AggregateCounterReconciler(feed, counters, store, lifecycle=lifecycle, buffer_size=2)


async def _track_likes(reconciler: AggregateCounterReconciler):
    return await reconciler.track(
        "likes",
        "story_like_counts",
        key_column="story_id",
        value_column="likes",
    )


@pytest.mark.asyncio
async def test_metric_update_patches_loaded_record(reconciler, feed, store, counters):
    subscription = await _track_likes(reconciler)
    assert subscription.status is SubscriptionStatus.OPEN

    feed.push("story_like_counts", _likes("s1", 7))

    assert store.get("s1").get("likes") == 7
    assert store.get("s1").get("title") == "Night shift"
    assert counters.get("s1", "likes") == 7


@pytest.mark.asyncio
async def test_metric_for_unloaded_record_is_buffered_until_it_arrives(reconciler, feed, store):
    await _track_likes(reconciler)

    feed.push("story_like_counts", _likes("s9", 3))
    assert "s9" not in store
    assert reconciler.buffered == {("s9", "likes"): 3}

    store.upsert(EntityRecord("s9", {"title": "Late arrival", "likes": 0}))

    assert store.get("s9").get("likes") == 3
    assert reconciler.buffered == {}


@pytest.mark.asyncio
async def test_buffer_drops_oldest_when_full(reconciler, feed):
    await _track_likes(reconciler)

    for story_id in ("a", "b", "c"):
        feed.push("story_like_counts", _likes(story_id, 1))

    assert reconciler.dropped == 1
    assert list(reconciler.buffered) == [("b", "likes"), ("c", "likes")]


@pytest.mark.asyncio
async def test_refresh_with_stale_count_is_corrected(reconciler, feed, store):
    await _track_likes(reconciler)
    feed.push("story_like_counts", _likes("s1", 7))

    store.replace_all([EntityRecord("s1", {"title": "Night shift", "likes": 2})])

    assert store.get("s1").get("likes") == 7


@pytest.mark.asyncio
async def test_upsert_that_leaves_metric_untouched_keeps_optimistic_value(reconciler, feed, store):
    await _track_likes(reconciler)
    feed.push("story_like_counts", _likes("s1", 7))
    store.patch("s1", {"likes": 8})  # optimistic like in flight

    store.upsert(EntityRecord("s1", {"title": "Edited"}))

    assert store.get("s1").get("likes") == 8


@pytest.mark.asyncio
async def test_deleted_metric_row_means_zero(reconciler, feed, store):
    await _track_likes(reconciler)
    feed.push("story_like_counts", _likes("s1", 4))
    feed.push("story_like_counts", _likes("s1", 4, operation="DELETE"))

    assert store.get("s1").get("likes") == 0


@pytest.mark.asyncio
async def test_non_numeric_value_counts_as_zero(reconciler, feed, store):
    await _track_likes(reconciler)
    feed.push("story_like_counts", _likes("s1", "lots"))
    assert store.get("s1").get("likes") == 0


@pytest.mark.asyncio
async def test_metric_events_after_teardown_are_ignored(reconciler, feed, store, lifecycle):
    await _track_likes(reconciler)
    on_message = feed.channels["story_like_counts"][0]

    await lifecycle.close_all()
    on_message(_likes("s1", 9))

    assert store.get("s1").get("likes") == 0
    assert feed.unsubscribed == ["story_like_counts"]


def test_apply_directly(reconciler, store, counters):
    reconciler.apply("s1", "saves", 2)
    assert store.get("s1").get("saves") == 2
    assert counters.for_entity("s1") == {"saves": 2}


def test_close_stops_reapplying(reconciler, store):
    reconciler.apply("s2", "likes", 5)
    reconciler.close()

    store.upsert(EntityRecord("s2", {"likes": 0}))

    assert store.get("s2").get("likes") == 0
    assert reconciler.buffered == {}


def test_dropped_value_is_not_applied_when_record_arrives(reconciler, store, counters):
    for i in range(1000):
        reconciler.apply(f"x{i}", "likes", 1)

    assert reconciler.dropped == 998
    assert len(reconciler.buffered) == 2
    assert len(counters) == 0

    store.upsert(EntityRecord("x0", {"title": "t"}))

    assert store.get("x0").fields == {"title": "t"}
    assert len(counters) == 0

    store.upsert(EntityRecord("x999", {"title": "t"}))

    assert store.get("x999").get("likes") == 1
    assert counters.for_entity("x999") == {"likes": 1}
