"""Field patches and their exact inverses.

A patch is a mapping of field name → new value. The inverse of a patch,
taken against the fields it will be applied to, restores those fields
exactly. Fields the patch adds are marked ``MISSING`` in the inverse so
they are removed again.
"""

from collections.abc import Mapping
from typing import Any


class _Missing:
    """Sentinel type for "field absent"."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def apply_patch(fields: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new field dict with ``patch`` shallow-merged into ``fields``."""
    result = dict(fields)
    for key, value in patch.items():
        if value is MISSING:
            result.pop(key, None)
        else:
            result[key] = value
    return result


def invert_patch(fields: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return the patch that undoes ``patch`` when applied after it."""
    return {key: fields.get(key, MISSING) for key in patch}
