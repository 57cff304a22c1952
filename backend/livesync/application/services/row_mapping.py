"""Row mapping — turns loosely-populated backend rows into complete field dicts,
and decodes raw transport messages into ChangeEvents.

A pushed row may be missing fields or carry the wrong type (a null where an
array belongs). Rather than failing the dispatch, each declared field falls
back to a documented default so one bad row cannot corrupt the collection.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from livesync.application.schemas.change_feed import TransportMessage
from livesync.domain.entities import ChangeEvent, ChangeOperation
from livesync.domain.exceptions import MalformedEvent

logger = logging.getLogger(__name__)

RowMapper = Callable[[Mapping[str, Any]], dict[str, Any]]


class FieldKind(str, Enum):
    """Declared type of a row field, with its default."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    ARRAY = "array"
    OBJECT = "object"
    ANY = "any"


_DEFAULTS: dict[FieldKind, Callable[[], Any]] = {
    FieldKind.STRING: str,
    FieldKind.BOOLEAN: lambda: False,
    FieldKind.INTEGER: int,
    FieldKind.NUMBER: float,
    FieldKind.ARRAY: list,
    FieldKind.OBJECT: dict,
    FieldKind.ANY: lambda: None,
}


def _matches(kind: FieldKind, value: Any) -> bool:
    if kind is FieldKind.STRING:
        return isinstance(value, str)
    if kind is FieldKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is FieldKind.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind is FieldKind.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind is FieldKind.ARRAY:
        return isinstance(value, list)
    if kind is FieldKind.OBJECT:
        return isinstance(value, dict)
    return True


@dataclass(frozen=True)
class FieldSpec:
    """A field's kind plus an optional custom default.

    ``nullable`` fields keep an explicit ``None`` instead of defaulting.
    """

    kind: FieldKind = FieldKind.ANY
    default: Any = None
    nullable: bool = False

    def default_value(self) -> Any:
        if self.default is not None:
            # copy mutable defaults so records never share a list/dict
            if isinstance(self.default, (list, dict)):
                return type(self.default)(self.default)
            return self.default
        if self.nullable:
            return None
        return _DEFAULTS[self.kind]()

    def coerce(self, value: Any) -> Any:
        if value is None and self.nullable:
            return None
        if _matches(self.kind, value):
            return value
        return self.default_value()


class RowSchema:
    """Declarative row mapper: ``RowSchema({"title": FieldKind.STRING, ...})``.

    Callable, so it can be passed anywhere a ``row -> dict`` mapper is expected.
    Undeclared keys are passed through unchanged unless ``keep_unknown`` is off.
    """

    def __init__(
        self,
        fields: Mapping[str, FieldKind | FieldSpec],
        *,
        keep_unknown: bool = True,
    ):
        self._fields: dict[str, FieldSpec] = {
            name: spec if isinstance(spec, FieldSpec) else FieldSpec(spec)
            for name, spec in fields.items()
        }
        self._keep_unknown = keep_unknown

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    def map_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        mapped: dict[str, Any] = {}
        if "id" in row:
            mapped["id"] = row["id"]
        if self._keep_unknown:
            mapped.update({k: v for k, v in row.items() if k not in self._fields})
        for name, spec in self._fields.items():
            value = spec.coerce(row.get(name))
            if name in row and value is not row.get(name):
                logger.debug("Field %r defaulted (got %r)", name, row.get(name))
            mapped[name] = value
        return mapped

    __call__ = map_row


def identity_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Row mapper that keeps the row as-is."""
    return dict(row)


def parse_message(raw: Mapping[str, Any] | str | bytes) -> TransportMessage:
    """Validate a raw transport payload. Raises MalformedEvent."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedEvent(f"payload is not valid JSON: {exc}", raw) from exc
    if not isinstance(raw, Mapping):
        raise MalformedEvent(f"payload must be an object, got {type(raw).__name__}", raw)
    try:
        return TransportMessage.from_raw(dict(raw))
    except ValidationError as exc:
        raise MalformedEvent(f"invalid change message: {exc.error_count()} error(s)", raw) from exc


def decode_change_event(
    raw: Mapping[str, Any] | str | bytes,
    entity_type: str,
    map_row: RowMapper = identity_row,
    id_column: str = "id",
) -> ChangeEvent:
    """Decode one pushed message into a ChangeEvent. Raises MalformedEvent.

    ``id_column`` names the column carrying the row id; metric tables are
    keyed by the entity they count (e.g. ``story_id``).
    """
    message = parse_message(raw)
    row_id = message.row_id(id_column)
    if row_id is None:
        raise MalformedEvent(f"{message.operation.value} message carries no row id", raw)

    if message.operation is ChangeOperation.DELETE:
        attributes = dict(message.before or message.after or {})
    else:
        if message.after is None:
            raise MalformedEvent(f"{message.operation.value} message carries no row", raw)
        try:
            attributes = map_row(message.after)
        except Exception as exc:
            raise MalformedEvent(f"row mapping failed: {exc}", raw) from exc
    attributes.pop("id", None)

    return ChangeEvent(
        entity_type=message.entity_type or entity_type,
        operation=message.operation,
        id=row_id,
        attributes=attributes,
    )
