"""Unit tests for SyncedCollection and create_synced_collection."""

import pytest

from livesync.application.interfaces import AggregateFeed, CrudApi
from livesync.application.services import create_synced_collection, toggle_intent
from livesync.config import Settings
from livesync.domain.entities import OutcomeKind, RowFilter, RowPage, SubscriptionStatus


class FakeFeed(AggregateFeed):
    """Keeps one channel per entity type; tests push raw messages into it."""

    def __init__(self):
        self.channels: dict[str, tuple] = {}
        self.unsubscribed: list[str] = []

    async def subscribe(self, entity_type, filter, on_message, on_error):
        self.channels[entity_type] = (on_message, on_error)
        return entity_type

    async def unsubscribe(self, handle):
        self.unsubscribed.append(handle)
        self.channels.pop(handle, None)

    def push(self, entity_type: str, message: dict) -> None:
        self.channels[entity_type][0](message)


class FakeApi(CrudApi):
    def __init__(self, rows: list[dict]):
        self.rows = rows
        self.likes: list[str] = []

    async def fetch_page(self, entity_type, filter, offset, limit):
        matching = [r for r in self.rows if filter is None or filter.matches(r)]
        return RowPage(rows=matching[offset:offset + limit], total_count=len(matching))

    async def insert(self, entity_type, payload):
        self.likes.append(payload["story_id"])
        return payload

    async def update(self, entity_type, row_id, patch):
        raise NotImplementedError

    async def delete(self, entity_type, row_id):
        raise NotImplementedError


STORIES = [
    {"id": "s3", "title": "Third", "likes": 0, "liked": False},
    {"id": "s2", "title": "Second", "likes": 4, "liked": False},
    {"id": "s1", "title": "First", "likes": 1, "liked": False},
]


@pytest.fixture
def feed() -> FakeFeed:
    return FakeFeed()


@pytest.fixture
def api() -> FakeApi:
    return FakeApi([dict(row) for row in STORIES])


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, page_size=2)


@pytest.mark.asyncio
async def test_start_subscribes_then_loads_first_page(feed, api, settings):
    stories = create_synced_collection("stories", transport=feed, api=api, settings=settings)

    page = await stories.start()

    assert stories.subscription.status is SubscriptionStatus.OPEN
    assert [r.id for r in page.records] == ["s3", "s2"]
    assert stories.has_more is True

    feed.push("stories", {"operation": "INSERT", "after": {"id": "s4", "title": "Fresh", "likes": 0}})
    assert [r.id for r in stories.records] == ["s4", "s3", "s2"]

    await stories.load_more()
    assert [r.id for r in stories.records] == ["s4", "s3", "s2", "s1"]
    assert stories.has_more is False
    assert await stories.load_more() is None


@pytest.mark.asyncio
async def test_start_with_filter(feed, api, settings):
    stories = create_synced_collection("stories", transport=feed, api=api, settings=settings)

    await stories.start(RowFilter("title", "Second"))

    assert [r.id for r in stories.records] == ["s2"]
    assert stories.subscription.filter == RowFilter("title", "Second")


@pytest.mark.asyncio
async def test_apply_toggle_like(feed, api, settings):
    stories = create_synced_collection("stories", transport=feed, api=api, settings=settings)
    await stories.start()

    async def like():
        await api.insert("story_likes", {"story_id": "s2"})

    async def unlike():
        return None

    outcome = await stories.apply(
        toggle_intent("s2", flag="liked", counter="likes", activate=like, deactivate=unlike)
    )

    assert outcome.kind is OutcomeKind.CONFIRMED
    assert stories.store.get("s2").get("likes") == 5
    assert stories.store.get("s2").get("liked") is True
    assert api.likes == ["s2"]


@pytest.mark.asyncio
async def test_track_metric_patches_records(feed, api, settings):
    stories = create_synced_collection(
        "stories", transport=feed, api=api, aggregate_feed=feed, settings=settings
    )
    await stories.start()

    await stories.track_metric("likes", "story_like_counts", key_column="story_id", value_column="likes")
    feed.push("story_like_counts", {"operation": "UPDATE", "after": {"story_id": "s3", "likes": 9}})

    assert stories.store.get("s3").get("likes") == 9
    assert stories.counters.get("s3", "likes") == 9


@pytest.mark.asyncio
async def test_track_metric_without_aggregate_feed_raises(feed, api, settings):
    stories = create_synced_collection("stories", transport=feed, api=api, settings=settings)
    with pytest.raises(ValueError):
        await stories.track_metric("likes", "story_like_counts")


@pytest.mark.asyncio
async def test_close_tears_down_every_subscription(feed, api, settings):
    async with create_synced_collection(
        "stories", transport=feed, api=api, aggregate_feed=feed, settings=settings
    ) as stories:
        await stories.start()
        await stories.track_metric("likes", "story_like_counts", key_column="story_id", value_column="likes")

    assert sorted(feed.unsubscribed) == ["stories", "story_like_counts"]
    assert stories.lifecycle.closed is True


@pytest.mark.asyncio
async def test_collections_do_not_share_state(feed, api, settings):
    first = create_synced_collection("stories", transport=feed, api=api, settings=settings)
    second = create_synced_collection("stories", transport=feed, api=api, settings=settings)
    await first.start()

    assert len(first.records) == 2
    assert second.records == []

    await first.close()
    assert second.lifecycle.closing is False


@pytest.mark.asyncio
async def test_realtime_failure_is_a_warning(api, settings):
    class BrokenFeed(FakeFeed):
        async def subscribe(self, entity_type, filter, on_message, on_error):
            raise ConnectionError("websocket refused")

    warnings = []
    stories = create_synced_collection(
        "stories", transport=BrokenFeed(), api=api, settings=settings, on_warning=warnings.append
    )

    page = await stories.start()

    assert len(page.records) == 2
    assert stories.subscription.status is SubscriptionStatus.ERROR
    assert len(warnings) == 1
    assert stories.warnings == warnings


@pytest.mark.asyncio
async def test_insert_event_for_row_already_on_first_page_is_merged(feed):
    rows = [{"id": f"s{n}", "title": f"Story {n}"} for n in range(15, 0, -1)]
    stories = create_synced_collection(
        "stories",
        transport=feed,
        api=FakeApi(rows),
        settings=Settings(_env_file=None, page_size=10),
    )
    await stories.start()
    loaded = [r.id for r in stories.records]
    assert len(loaded) == 10

    feed.push("stories", {"operation": "INSERT", "after": {"id": loaded[4]}})

    assert len(stories.store) == 10
    assert [r.id for r in stories.records] == loaded
    assert stories.store.get(loaded[4]).get("title") == "Story 11"
