"""Domain entity for out-of-band aggregate metrics."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AggregateCounter:
    """A derived scalar (like count, view count) tied to an entity id.

    Zero is a valid value; counters are never deleted explicitly.
    """

    entity_id: str
    metric_name: str
    value: int | float = 0
