"""Domain entity — a backend-side row served by the reference backend."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4


@dataclass
class SyncedRow:
    """One stored row of any entity type.

    Rows are scoped by ``entity_type`` and carry arbitrary JSON ``data``.
    ``unique_key`` lets idempotent actions (a like, a save) reject a second
    insert of the same logical row with a unique violation.
    """

    entity_type: str
    data: dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid4()))
    unique_key: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def update(self, data: dict[str, Any]) -> None:
        """Shallow-merge ``data`` and refresh the updated_at timestamp."""
        self.data = {**self.data, **data}
        self.updated_at = datetime.now(timezone.utc)

    def to_wire(self) -> dict[str, Any]:
        """Flatten into the row shape clients receive (data fields at top level)."""
        return {
            **self.data,
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
