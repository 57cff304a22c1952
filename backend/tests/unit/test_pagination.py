"""Unit tests for the PaginationCursorManager."""

import pytest

from livesync.application.interfaces import CrudApi
from livesync.application.services import (
    CollectionStore,
    PaginationCursorManager,
    SubscriptionLifecycleManager,
)
from livesync.domain.entities import EntityRecord, RowFilter, RowPage
from livesync.domain.exceptions import RemoteError


class FakeCrudApi(CrudApi):
    """In-memory backend holding rows newest first."""

    def __init__(self, rows: list[dict] | None = None, missing_columns: set[str] | None = None):
        self.rows = rows or []
        self.missing_columns = missing_columns or set()
        self.calls: list[tuple] = []

    async def fetch_page(self, entity_type, filter, offset, limit):
        self.calls.append((entity_type, filter, offset, limit))
        if filter is not None and filter.column in self.missing_columns:
            raise RemoteError("42703", f'column "{filter.column}" does not exist', 400)
        matching = [r for r in self.rows if filter is None or filter.matches(r)]
        return RowPage(rows=matching[offset:offset + limit], total_count=len(matching))

    async def insert(self, entity_type, payload):
        self.rows.insert(0, payload)
        return payload

    async def update(self, entity_type, row_id, patch):
        raise NotImplementedError

    async def delete(self, entity_type, row_id):
        raise NotImplementedError


def _rows(count: int) -> list[dict]:
    # newest first: r30, r29, ... r1
    return [{"id": f"r{n}", "title": f"Report {n}"} for n in range(count, 0, -1)]


@pytest.fixture
def store() -> CollectionStore:
    return CollectionStore("reports")


@pytest.mark.asyncio
async def test_pages_load_in_order_until_exhausted(store):
    api = FakeCrudApi(_rows(30))
    pager = PaginationCursorManager(api, store)

    assert pager.has_more is True
    page = await pager.load_next()
    assert page.page_number == 1
    assert [r.id for r in page.records][:2] == ["r30", "r29"]
    assert len(store) == 12
    assert pager.has_more is True

    await pager.load_next()
    last = await pager.load_next()

    assert last.page_number == 3
    assert len(last.records) == 6
    assert len(store) == 30
    assert pager.has_more is False
    assert store.total == 30
    assert [call[2] for call in api.calls] == [0, 12, 24]


@pytest.mark.asyncio
async def test_overlapping_rows_are_merged_by_id(store):
    api = FakeCrudApi(_rows(30))
    pager = PaginationCursorManager(api, store)
    await pager.load_next()

    # a realtime insert lands before page 2 is requested and shifts offsets
    new_row = {"id": "r31", "title": "Report 31"}
    api.rows.insert(0, new_row)
    store.upsert(EntityRecord.from_row(new_row), prepend=True)

    page = await pager.load_next()

    assert page.records[0].id == "r19"  # already loaded on page 1
    assert len(store) == 24
    assert len(set(store.ids())) == len(store)
    assert store.ids()[0] == "r31"


@pytest.mark.asyncio
async def test_refresh_replaces_collection(store):
    api = FakeCrudApi(_rows(5))
    pager = PaginationCursorManager(api, store, page_size=2)
    await pager.load_next()
    await pager.load_next()
    store.upsert(EntityRecord("stale"))

    await pager.refresh()

    assert store.ids() == ["r5", "r4"]
    assert pager.next_page == 2


@pytest.mark.asyncio
async def test_load_page_rejects_page_zero(store):
    pager = PaginationCursorManager(FakeCrudApi(), store)
    with pytest.raises(ValueError):
        await pager.load_page(0)


def test_page_size_must_be_positive(store):
    with pytest.raises(ValueError):
        PaginationCursorManager(FakeCrudApi(), store, page_size=0)


@pytest.mark.asyncio
async def test_rows_without_id_are_skipped(store):
    api = FakeCrudApi([{"id": "a"}, {"title": "orphan"}, {"id": "b"}])
    pager = PaginationCursorManager(api, store)

    page = await pager.load_next()

    assert [r.id for r in page.records] == ["a", "b"]
    assert page.total == 3


@pytest.mark.asyncio
async def test_filter_is_passed_to_backend(store):
    rows = [{"id": "c1", "story_id": "s1"}, {"id": "c2", "story_id": "s2"}]
    api = FakeCrudApi(rows)
    pager = PaginationCursorManager(api, store, filter=RowFilter("story_id", "s1"))

    await pager.load_next()

    assert store.ids() == ["c1"]
    assert pager.has_more is False


@pytest.mark.asyncio
async def test_missing_filter_column_retries_without_filter(store):
    api = FakeCrudApi(_rows(3), missing_columns={"is_approved"})
    pager = PaginationCursorManager(
        api,
        store,
        filter=RowFilter("is_approved", True),
        drop_filter_on_missing_column=True,
    )

    await pager.load_next()

    assert len(store) == 3
    assert pager.filter is None
    assert [call[1] for call in api.calls] == [RowFilter("is_approved", True), None]


@pytest.mark.asyncio
async def test_missing_filter_column_raises_without_opt_in(store):
    api = FakeCrudApi(_rows(3), missing_columns={"is_approved"})
    pager = PaginationCursorManager(api, store, filter=RowFilter("is_approved", True))

    with pytest.raises(RemoteError) as exc_info:
        await pager.load_next()
    assert exc_info.value.code == "42703"


@pytest.mark.asyncio
async def test_page_arriving_after_teardown_is_discarded(store):
    lifecycle = SubscriptionLifecycleManager()
    pager = PaginationCursorManager(FakeCrudApi(_rows(3)), store, lifecycle=lifecycle)
    await lifecycle.close_all()

    page = await pager.load_next()

    assert len(page.records) == 3
    assert len(store) == 0
    assert pager.next_page == 1
