"""Application service (use case) for the reference backend's generic rows.

Every write is committed through ``commit`` before it is published to the
ChangeBroker, so a feed client never sees a change that could still roll back.
"""

from collections.abc import Awaitable, Callable

from livesync.application.interfaces import RowRepository
from livesync.application.schemas.rows import RowCreate, RowUpdate
from livesync.application.services.change_broker import ChangeBroker
from livesync.domain.entities import ChangeOperation, RowFilter, SyncedRow
from livesync.domain.exceptions import EntityNotFoundError, ReadOnlyEntityError


class RowService:
    """Orchestrates row CRUD logic. Depends on the repository port (DI)."""

    def __init__(
        self,
        repository: RowRepository,
        broker: ChangeBroker,
        read_only_entity_types: frozenset[str] | set[str] = frozenset(),
        commit: Callable[[], Awaitable[None]] | None = None,
    ):
        self._repository = repository
        self._broker = broker
        self._read_only = frozenset(read_only_entity_types)
        self._commit = commit

    async def get_row(self, entity_type: str, row_id: str) -> SyncedRow:
        row = await self._repository.get_by_id(entity_type, row_id)
        if row is None:
            raise EntityNotFoundError(entity_type, row_id)
        return row

    async def list_rows(
        self,
        entity_type: str,
        *,
        filter: RowFilter | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[SyncedRow], int]:
        return await self._repository.list_page(entity_type, filter=filter, skip=skip, limit=limit)

    async def create_row(self, entity_type: str, data: RowCreate) -> SyncedRow:
        self._check_writable(entity_type)
        row = SyncedRow(entity_type=entity_type, data=data.data, unique_key=data.unique_key)
        if data.id:
            row.id = data.id
        created = await self._repository.create(row)
        await self._committed()
        self._broker.publish_change(entity_type, ChangeOperation.INSERT, after=created.to_wire())
        return created

    async def update_row(self, entity_type: str, row_id: str, data: RowUpdate) -> SyncedRow:
        self._check_writable(entity_type)
        row = await self.get_row(entity_type, row_id)
        before = row.to_wire()
        row.update(data.data)
        updated = await self._repository.update(row)
        await self._committed()
        self._broker.publish_change(
            entity_type, ChangeOperation.UPDATE, before=before, after=updated.to_wire()
        )
        return updated

    async def delete_row(self, entity_type: str, row_id: str) -> bool:
        self._check_writable(entity_type)
        row = await self.get_row(entity_type, row_id)
        deleted = await self._repository.delete(entity_type, row_id)
        await self._committed()
        if deleted:
            self._broker.publish_change(entity_type, ChangeOperation.DELETE, before=row.to_wire())
        return deleted

    async def _committed(self) -> None:
        if self._commit is not None:
            await self._commit()

    def _check_writable(self, entity_type: str) -> None:
        if entity_type in self._read_only:
            raise ReadOnlyEntityError(entity_type)
