"""Domain entity for normalized change feed notifications."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChangeOperation(str, Enum):
    """Row-level operations reported by the change feed."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A transport-independent notification that a row changed.

    ``attributes`` holds the mapped row for INSERT/UPDATE and whatever the
    transport reported about the removed row for DELETE.
    """

    entity_type: str
    operation: ChangeOperation
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def is_removal(self) -> bool:
        return self.operation is ChangeOperation.DELETE
