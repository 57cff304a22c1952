"""Pagination Cursor Manager — bounded page loads merged into a live store.

Pages are merged by id (``upsert``), never by position: a realtime INSERT
may shift the server's offsets between the request and the render, so a
page can legitimately contain rows the feed already delivered. ``total`` is
advisory for the same reason.
"""

import logging

from livesync.application.interfaces import CrudApi
from livesync.application.services.collection_store import CollectionStore
from livesync.application.services.lifecycle import SubscriptionLifecycleManager
from livesync.application.services.row_mapping import RowMapper, identity_row
from livesync.domain import error_codes
from livesync.domain.entities import EntityRecord, Page, RowFilter, RowPage
from livesync.domain.exceptions import RemoteError
from livesync.infrastructure.logging.sync_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
slog = SyncLogger("SyncEngine")

DEFAULT_PAGE_SIZE = 12


class PaginationCursorManager:
    """Loads pages of one entity type into a CollectionStore."""

    def __init__(
        self,
        api: CrudApi,
        store: CollectionStore,
        entity_type: str | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        filter: RowFilter | None = None,
        map_row: RowMapper | None = None,
        lifecycle: SubscriptionLifecycleManager | None = None,
        drop_filter_on_missing_column: bool = False,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._api = api
        self._store = store
        self.entity_type = entity_type or store.entity_type
        self.page_size = page_size
        self.filter = filter
        self._map_row = map_row or identity_row
        self._lifecycle = lifecycle
        self._drop_filter_on_missing_column = drop_filter_on_missing_column
        self._next_page = 1
        self._total: int | None = None

    @property
    def has_more(self) -> bool:
        """Whether another page is expected. Unknown until a page has loaded."""
        if self._total is None:
            return True
        return (self._next_page - 1) * self.page_size < self._total

    @property
    def next_page(self) -> int:
        return self._next_page

    async def load_page(self, page_number: int) -> Page:
        """Fetch page ``page_number`` (1-based) and merge it into the store."""
        page = await self._fetch(page_number)
        if self._merge(page, replace=False):
            self._next_page = max(self._next_page, page_number + 1)
        return page

    async def load_next(self) -> Page:
        """Fetch the page after the last one loaded."""
        return await self.load_page(self._next_page)

    async def refresh(self) -> Page:
        """Reload page 1 and replace the whole collection with it."""
        page = await self._fetch(1)
        if self._merge(page, replace=True):
            self._next_page = 2
        return page

    # ── Internals ────────────────────────────────────────────────────

    async def _fetch(self, page_number: int) -> Page:
        if page_number < 1:
            raise ValueError("page_number must be at least 1")
        offset = (page_number - 1) * self.page_size

        with slog.timed_step(SyncStage.PAGE, f"Loading {self.entity_type} page {page_number}"):
            row_page = await self._fetch_rows(offset)

        records: list[EntityRecord] = []
        for row in row_page.rows:
            try:
                records.append(EntityRecord.from_row(self._map_row(row)))
            except ValueError:
                logger.warning("Skipping %s row without an id on page %d", self.entity_type, page_number)
        return Page(
            page_number=page_number,
            page_size=self.page_size,
            records=records,
            total=row_page.total_count,
        )

    async def _fetch_rows(self, offset: int) -> RowPage:
        try:
            return await self._api.fetch_page(self.entity_type, self.filter, offset, self.page_size)
        except RemoteError as exc:
            if not (
                self._drop_filter_on_missing_column
                and self.filter is not None
                and exc.code == error_codes.UNDEFINED_COLUMN
            ):
                raise
            logger.warning(
                "Column %r missing on %s; retrying without filter",
                self.filter.column,
                self.entity_type,
            )
            self.filter = None
            return await self._api.fetch_page(self.entity_type, None, offset, self.page_size)

    def _merge(self, page: Page, *, replace: bool) -> bool:
        """Merge ``page`` into the store. Returns False when the view already tore down."""
        if self._lifecycle is not None and self._lifecycle.closing:
            logger.debug("Discarding %s page %d after teardown", self.entity_type, page.page_number)
            return False
        if replace:
            self._store.replace_all(page.records)
        else:
            for record in page.records:
                self._store.upsert(record)
        self._store.total = page.total
        self._total = page.total
        slog.detail(
            f"{self.entity_type} page {page.page_number} merged",
            rows=len(page.records),
            total=page.total,
            stored=len(self._store),
        )
        return True
