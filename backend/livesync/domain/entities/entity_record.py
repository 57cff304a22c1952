"""Domain entity — one row of a synchronized collection."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from livesync.domain.entities.patch import apply_patch


@dataclass(frozen=True)
class EntityRecord:
    """A single synchronized row (report, resource, story, comment...).

    Records are treated as values: merging produces a new record, so
    listeners and pending mutations can safely hold on to old ones.
    """

    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EntityRecord":
        """Build a record from a mapped row; the id is read from ``row["id"]``."""
        record_id = row.get("id")
        if record_id is None or record_id == "":
            raise ValueError("row has no id")
        return cls(id=str(record_id), fields={k: v for k, v in row.items() if k != "id"})

    @property
    def updated_at(self) -> Any:
        return self.fields.get("updated_at")

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def merged(self, patch: Mapping[str, Any]) -> "EntityRecord":
        """Return a copy with ``patch`` shallow-merged (nested values replaced wholesale)."""
        return EntityRecord(id=self.id, fields=apply_patch(self.fields, patch))

    def to_row(self) -> dict[str, Any]:
        return {"id": self.id, **self.fields}
