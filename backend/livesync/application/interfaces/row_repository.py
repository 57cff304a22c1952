"""Abstract repository interface (port) for the reference backend's row storage."""

from abc import ABC, abstractmethod

from livesync.domain.entities import RowFilter, SyncedRow


class RowRepository(ABC):
    """Port for row persistence — implemented in the infrastructure layer."""

    @abstractmethod
    async def get_by_id(self, entity_type: str, row_id: str) -> SyncedRow | None:
        """Retrieve a single row by entity type and id."""
        ...

    @abstractmethod
    async def list_page(
        self,
        entity_type: str,
        *,
        filter: RowFilter | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[SyncedRow], int]:
        """Return one page (newest first) and the total matching count."""
        ...

    @abstractmethod
    async def create(self, row: SyncedRow) -> SyncedRow:
        """Persist a new row. Raises DuplicateEntityError on a unique_key clash."""
        ...

    @abstractmethod
    async def update(self, row: SyncedRow) -> SyncedRow:
        """Update an existing row."""
        ...

    @abstractmethod
    async def delete(self, entity_type: str, row_id: str) -> bool:
        """Delete a row. Returns True if deleted, False if not found."""
        ...
