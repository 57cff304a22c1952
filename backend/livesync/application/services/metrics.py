"""Dashboard metric helpers — percentage deltas and top-N category selection."""

import math
from collections import Counter
from collections.abc import Hashable, Iterable, Mapping


def percentage_change(current: float, previous: float) -> int:
    """Whole-number percentage change from ``previous`` to ``current``.

    A zero ``previous`` yields 0. Halves round up (``2.5 → 3``, ``-2.5 → -2``),
    the way dashboards computed these deltas in the browser.
    """
    if previous == 0:
        return 0
    return math.floor((current - previous) / previous * 100 + 0.5)


def tally(values: Iterable[Hashable]) -> dict[Hashable, int]:
    """Count occurrences, keyed in first-encountered order."""
    return dict(Counter(values))


def top_n(counts: Mapping[Hashable, int | float], n: int = 5) -> list[tuple[Hashable, int | float]]:
    """The ``n`` largest entries, values descending, ties in first-encountered order."""
    if n <= 0:
        return []
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:n]
