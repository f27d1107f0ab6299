"""
Nearest-rank order statistics.

Every percentile in pingwatch is selected with the nearest-rank rule:
the value at sorted index floor(n * p), clamped to n - 1. There is no
interpolation between adjacent ranks. Live thresholds, session reports
and exports all depend on agreeing on the exact same element, so every
component goes through these helpers.
"""

import math
from typing import Optional, Sequence


def rank_index(n: int, p: float) -> int:
    """Index of the nearest-rank element for fraction p of n values."""
    return min(math.floor(n * p), n - 1)


def nearest_rank(sorted_values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile of an ascending sequence.

    Returns 0.0 for an empty sequence.
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    return sorted_values[rank_index(n, p)]


def median_sorted(sorted_values: Sequence[float]) -> float:
    """Median: middle element, or mean of the two middle elements for even n."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n % 2 == 0:
        return (sorted_values[n // 2 - 1] + sorted_values[n // 2]) / 2
    return sorted_values[n // 2]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_stddev(values: Sequence[float], mu: Optional[float] = None) -> float:
    """Standard deviation dividing by n (not n - 1)."""
    n = len(values)
    if n == 0:
        return 0.0
    if mu is None:
        mu = sum(values) / n
    return math.sqrt(sum((v - mu) ** 2 for v in values) / n)
