"""SQLAlchemy ORM model for the SyncedRow entity."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from livesync.infrastructure.database.base import Base


class SyncedRowModel(Base):
    """ORM model — maps to the 'synced_rows' table, one row per (entity_type, id)."""

    __tablename__ = "synced_rows"

    entity_type: Mapped[str] = mapped_column(String(100), primary_key=True)
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    unique_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("entity_type", "unique_key", name="uq_synced_rows_unique_key"),
        Index("ix_synced_rows_recent", "entity_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SyncedRowModel(type='{self.entity_type}', id={self.id})>"
