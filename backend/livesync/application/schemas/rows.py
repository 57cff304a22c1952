"""Pydantic DTOs for the reference backend's row and feed endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class RowCreate(BaseModel):
    """Schema for inserting a row."""

    id: str | None = Field(None, max_length=36)
    data: dict[str, Any] = Field(default_factory=dict, examples=[{"title": "Night shift", "status": "published"}])
    unique_key: str | None = Field(
        None,
        max_length=255,
        description="Logical uniqueness key, e.g. 'story-1:user-9' for a like row",
    )


class RowUpdate(BaseModel):
    """Schema for patching a row — fields are shallow-merged."""

    data: dict[str, Any] = Field(default_factory=dict)


class RowPageResponse(BaseModel):
    """One bounded slice of rows plus the total matching count."""

    rows: list[dict[str, Any]]
    total_count: int


class ErrorDetail(BaseModel):
    """Machine-readable error body returned under ``detail``."""

    code: str
    message: str
