"""Concrete repository implementation for SyncedRow backed by SQLAlchemy."""

from sqlalchemy import String, case, cast, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from livesync.application.interfaces import RowRepository
from livesync.domain.entities import RowFilter, SyncedRow
from livesync.domain.exceptions import DuplicateEntityError
from livesync.infrastructure.database.models import SyncedRowModel


class SQLAlchemyRowRepository(RowRepository):
    """Implements the RowRepository port using SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, model: SyncedRowModel) -> SyncedRow:
        """Map ORM model → domain entity."""
        return SyncedRow(
            id=model.id,
            entity_type=model.entity_type,
            data=dict(model.data or {}),
            unique_key=model.unique_key,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: SyncedRow) -> SyncedRowModel:
        """Map domain entity → ORM model (for creation)."""
        return SyncedRowModel(
            id=entity.id,
            entity_type=entity.entity_type,
            data=entity.data,
            unique_key=entity.unique_key,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def get_by_id(self, entity_type: str, row_id: str) -> SyncedRow | None:
        result = await self._session.get(SyncedRowModel, (entity_type, row_id))
        return self._to_entity(result) if result else None

    def _field_text(self, column: str):
        """A JSON field as text, with booleans as ``true``/``false`` on every dialect."""
        if self._session.bind.dialect.name != "sqlite":
            # ->> already renders JSON booleans as true/false
            return SyncedRowModel.data[column].as_string()
        path = '$."' + column.replace('"', '""') + '"'
        json_type = func.json_type(SyncedRowModel.data, path)
        return case(
            (json_type.in_(("true", "false")), json_type),
            else_=cast(func.json_extract(SyncedRowModel.data, path), String),
        )

    async def list_page(
        self,
        entity_type: str,
        *,
        filter: RowFilter | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[SyncedRow], int]:
        stmt = select(SyncedRowModel).where(SyncedRowModel.entity_type == entity_type)

        if filter is not None:
            if filter.column == "id":
                stmt = stmt.where(SyncedRowModel.id == str(filter.value))
            else:
                stmt = stmt.where(self._field_text(filter.column) == filter.text)

        total = await self._session.scalar(select(func.count()).select_from(stmt.subquery()))

        stmt = stmt.order_by(
            SyncedRowModel.created_at.desc(),
            SyncedRowModel.id.desc(),
        ).offset(skip).limit(limit)
        result = await self._session.execute(stmt)
        return [self._to_entity(row) for row in result.scalars().all()], total or 0

    async def create(self, row: SyncedRow) -> SyncedRow:
        model = self._to_model(row)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            field, value = ("unique_key", row.unique_key) if row.unique_key else ("id", row.id)
            raise DuplicateEntityError(row.entity_type, field, str(value)) from exc
        return self._to_entity(model)

    async def update(self, row: SyncedRow) -> SyncedRow:
        model = await self._session.get(SyncedRowModel, (row.entity_type, row.id))
        if model is None:
            raise ValueError(f"{row.entity_type} row {row.id} not found in database")
        model.data = row.data
        model.updated_at = row.updated_at
        await self._session.flush()
        return self._to_entity(model)

    async def delete(self, entity_type: str, row_id: str) -> bool:
        model = await self._session.get(SyncedRowModel, (entity_type, row_id))
        if model is None:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True
