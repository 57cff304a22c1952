"""Generic row CRUD endpoints — the reference backend's CRUD request interface.

Errors carry a machine-readable ``{"code", "message"}`` detail using the
same codes a Postgres-backed service would report.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from livesync.application.schemas.rows import ErrorDetail, RowCreate, RowPageResponse, RowUpdate
from livesync.application.services import RowService
from livesync.domain import error_codes
from livesync.domain.entities import RowFilter
from livesync.domain.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    ReadOnlyEntityError,
)
from livesync.infrastructure.dependencies import get_row_service

router = APIRouter(prefix="/rows", tags=["Rows"])


def _error(status_code: int, code: str, exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorDetail(code=code, message=str(exc)).model_dump(),
    )


def parse_filter(column: str | None, value: str | None) -> RowFilter | None:
    """Build an equality filter from ``?column=&value=``; both or neither."""
    if column is None and value is None:
        return None
    if not column or value is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="'column' and 'value' must be given together",
        )
    return RowFilter(column=column, value=value)


@router.get("/{entity_type}", response_model=RowPageResponse)
async def list_rows(
    entity_type: str,
    column: str | None = Query(None, description="Filter column (equality)"),
    value: str | None = Query(None, description="Filter value"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: RowService = Depends(get_row_service),
) -> RowPageResponse:
    """Retrieve one page of rows, newest first, with the total matching count."""
    rows, total = await service.list_rows(
        entity_type,
        filter=parse_filter(column, value),
        skip=skip,
        limit=limit,
    )
    return RowPageResponse(rows=[r.to_wire() for r in rows], total_count=total)


@router.get("/{entity_type}/{row_id}")
async def get_row(
    entity_type: str,
    row_id: str,
    service: RowService = Depends(get_row_service),
) -> dict[str, Any]:
    """Retrieve a single row by ID."""
    try:
        row = await service.get_row(entity_type, row_id)
    except EntityNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, error_codes.NOT_FOUND, e)
    return row.to_wire()


@router.post("/{entity_type}", status_code=status.HTTP_201_CREATED)
async def create_row(
    entity_type: str,
    data: RowCreate,
    service: RowService = Depends(get_row_service),
) -> dict[str, Any]:
    """Insert a row. A repeated ``unique_key`` answers 409 with a unique violation."""
    try:
        row = await service.create_row(entity_type, data)
    except DuplicateEntityError as e:
        raise _error(status.HTTP_409_CONFLICT, error_codes.UNIQUE_VIOLATION, e)
    except ReadOnlyEntityError as e:
        raise _error(status.HTTP_403_FORBIDDEN, error_codes.INSUFFICIENT_PRIVILEGE, e)
    return row.to_wire()


@router.patch("/{entity_type}/{row_id}")
async def update_row(
    entity_type: str,
    row_id: str,
    data: RowUpdate,
    service: RowService = Depends(get_row_service),
) -> dict[str, Any]:
    """Shallow-merge ``data`` into an existing row."""
    try:
        row = await service.update_row(entity_type, row_id, data)
    except EntityNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, error_codes.NOT_FOUND, e)
    except ReadOnlyEntityError as e:
        raise _error(status.HTTP_403_FORBIDDEN, error_codes.INSUFFICIENT_PRIVILEGE, e)
    return row.to_wire()


@router.delete("/{entity_type}/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_row(
    entity_type: str,
    row_id: str,
    service: RowService = Depends(get_row_service),
) -> None:
    """Delete a row by ID."""
    try:
        await service.delete_row(entity_type, row_id)
    except EntityNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, error_codes.NOT_FOUND, e)
    except ReadOnlyEntityError as e:
        raise _error(status.HTTP_403_FORBIDDEN, error_codes.INSUFFICIENT_PRIVILEGE, e)
