"""Domain entities for paginated fetches."""

from dataclasses import dataclass, field
from typing import Any

from livesync.domain.entities.entity_record import EntityRecord


@dataclass
class RowPage:
    """Raw rows returned by a CRUD backend for one bounded fetch."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    total_count: int = 0


@dataclass
class Page:
    """One loaded page of a collection, after mapping into records."""

    page_number: int
    page_size: int
    records: list[EntityRecord] = field(default_factory=list)
    total: int = 0

    @property
    def has_more(self) -> bool:
        return self.page_number * self.page_size < self.total
