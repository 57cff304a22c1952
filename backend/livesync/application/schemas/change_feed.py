"""Pydantic schemas for change feed messages on the wire."""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from livesync.domain.entities import ChangeOperation


class TransportMessage(BaseModel):
    """Envelope of one pushed row change: ``{operation, entity_type, before?, after?}``.

    Accepts the ``eventType``/``new``/``old`` spelling used by Postgres
    realtime payloads as aliases.
    """

    model_config = ConfigDict(extra="ignore")

    operation: ChangeOperation
    entity_type: str | None = None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None

    @field_validator("operation", mode="before")
    @classmethod
    def _normalize_operation(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("before", "after", mode="before")
    @classmethod
    def _empty_row_is_none(cls, value: Any) -> Any:
        # Postgres realtime sends {} for the missing side of an INSERT/DELETE
        if value == {}:
            return None
        return value

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "TransportMessage":
        """Validate a raw payload, mapping realtime-style keys onto ours."""
        data = dict(raw)
        if "operation" not in data and "eventType" in data:
            data["operation"] = data["eventType"]
        if "after" not in data and "new" in data:
            data["after"] = data["new"]
        if "before" not in data and "old" in data:
            data["before"] = data["old"]
        if "entity_type" not in data and "table" in data:
            data["entity_type"] = data["table"]
        return cls.model_validate(data)

    def row_id(self, id_column: str = "id") -> str | None:
        """Id of the affected row — read from ``before`` for deletes, ``after`` otherwise."""
        if self.operation is ChangeOperation.DELETE:
            sides = (self.before, self.after)
        else:
            sides = (self.after, self.before)
        for side in sides:
            if side and side.get(id_column) not in (None, ""):
                return str(side[id_column])
        return None
