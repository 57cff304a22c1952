"""Unit tests for the recent activity feed."""

import pytest

from livesync.application.interfaces import CrudApi
from livesync.application.services import (
    RecentActivityFeed,
    log_recent_activity,
    sanitize_activity_message,
)
from livesync.domain.entities import ActivityEntry, ChangeEvent, ChangeOperation, RowPage
from livesync.domain.exceptions import RemoteError


class FakeActivityApi(CrudApi):
    """Records inserted activity rows; can be told to fail."""

    def __init__(self, rows: list[dict] | None = None, fail: bool = False):
        self.rows = rows or []
        self.fail = fail
        self.inserted: list[tuple[str, dict]] = []

    async def fetch_page(self, entity_type, filter, offset, limit):
        return RowPage(rows=self.rows[offset:offset + limit], total_count=len(self.rows))

    async def insert(self, entity_type, payload):
        if self.fail:
            raise RemoteError("42501", "permission denied for table recent_activity", 403)
        self.inserted.append((entity_type, payload))
        return payload

    async def update(self, entity_type, row_id, patch):
        raise NotImplementedError

    async def delete(self, entity_type, row_id):
        raise NotImplementedError


def _entry(entry_id: str, message: str = "msg") -> ActivityEntry:
    return ActivityEntry(id=entry_id, message=message)


def test_sanitize_truncates_long_messages():
    assert sanitize_activity_message("  hello  ") == "hello"
    assert sanitize_activity_message("x" * 280) == "x" * 280

    long = sanitize_activity_message("y" * 300)
    assert len(long) == 280
    assert long.endswith("...")
    assert long[:277] == "y" * 277


def test_feed_is_newest_first_bounded_and_deduplicated():
    feed = RecentActivityFeed(limit=3)
    for entry_id in ("1", "2", "3", "4"):
        feed.push(_entry(entry_id))
    feed.push(_entry("3", "updated"))

    assert [e.id for e in feed.entries] == ["3", "4", "2"]
    assert feed.entries[0].message == "updated"
    assert len(feed) == 3


def test_push_event_uses_formatter_and_skips_none():
    feed = RecentActivityFeed()

    def formatter(event: ChangeEvent) -> ActivityEntry | None:
        if event.attributes.get("priority") not in ("High", "Critical"):
            return None
        return ActivityEntry(
            id=event.id,
            message=f"New report: {event.attributes['title']}",
            type="report",
            status="open",
        )

    low = ChangeEvent("reports", ChangeOperation.INSERT, "r1", {"title": "A", "priority": "Low"})
    high = ChangeEvent("reports", ChangeOperation.INSERT, "r2", {"title": "B", "priority": "High"})

    assert feed.push_event(low, formatter) is None
    entry = feed.push_event(high, formatter)

    assert entry is not None
    assert [e.message for e in feed.entries] == ["New report: B"]


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        RecentActivityFeed(limit=0)


@pytest.mark.asyncio
async def test_load_normalizes_rows():
    api = FakeActivityApi([
        {"id": 1, "message": "Story published", "type": "STORY", "status": " Published ", "created_at": "t1"},
        {"id": 2, "message": None, "type": "weird", "status": None, "created_at": "t2"},
    ])
    feed = RecentActivityFeed()

    entries = await feed.load(api)

    assert entries[0] == ActivityEntry(id="1", message="Story published", type="story", status="published", time="t1")
    assert entries[1].message == ""
    assert entries[1].type == "system"
    assert entries[1].status == "info"


@pytest.mark.asyncio
async def test_log_recent_activity_lowercases_and_defaults():
    api = FakeActivityApi()

    assert await log_recent_activity(api, "  Application APPROVED  ", status="Success") is True

    assert api.inserted == [
        ("recent_activity", {"message": "Application APPROVED", "type": "system", "status": "success"}),
    ]


@pytest.mark.asyncio
async def test_log_recent_activity_skips_empty_message():
    api = FakeActivityApi()
    assert await log_recent_activity(api, "   ") is False
    assert api.inserted == []


@pytest.mark.asyncio
async def test_log_recent_activity_failure_does_not_raise():
    api = FakeActivityApi(fail=True)
    assert await log_recent_activity(api, "Report resolved", type="Report") is False
