"""Aggregate Counter Store — out-of-band metrics keyed by entity id."""

from livesync.domain.entities import AggregateCounter


class AggregateCounterStore:
    """Latest known value of each ``(entity_id, metric_name)`` pair.

    Lives beside a CollectionStore and is owned by the same view.
    """

    def __init__(self) -> None:
        self._values: dict[str, dict[str, int | float]] = {}

    def get(self, entity_id: str, metric_name: str, default: int | float = 0) -> int | float:
        return self._values.get(entity_id, {}).get(metric_name, default)

    def set(self, entity_id: str, metric_name: str, value: int | float) -> AggregateCounter:
        self._values.setdefault(entity_id, {})[metric_name] = value
        return AggregateCounter(entity_id=entity_id, metric_name=metric_name, value=value)

    def for_entity(self, entity_id: str) -> dict[str, int | float]:
        return dict(self._values.get(entity_id, {}))

    def counters(self) -> list[AggregateCounter]:
        return [
            AggregateCounter(entity_id=entity_id, metric_name=name, value=value)
            for entity_id, metrics in self._values.items()
            for name, value in metrics.items()
        ]

    def __len__(self) -> int:
        return sum(len(metrics) for metrics in self._values.values())
