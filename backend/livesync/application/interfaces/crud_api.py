"""Abstract CRUD request interface (port) for the hosted data backend."""

from abc import ABC, abstractmethod
from typing import Any

from livesync.domain.entities import RowFilter, RowPage


class CrudApi(ABC):
    """Port for row reads and writes — implemented in the infrastructure layer.

    Failures raise ``RemoteError`` carrying the backend's machine-readable code.
    """

    @abstractmethod
    async def fetch_page(
        self,
        entity_type: str,
        filter: RowFilter | None,
        offset: int,
        limit: int,
    ) -> RowPage:
        """Fetch a bounded slice ordered by creation time, newest first."""
        ...

    @abstractmethod
    async def insert(self, entity_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it as stored."""
        ...

    @abstractmethod
    async def update(self, entity_type: str, row_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Apply ``patch`` to a row and return the updated row."""
        ...

    @abstractmethod
    async def delete(self, entity_type: str, row_id: str) -> None:
        """Delete a row."""
        ...
