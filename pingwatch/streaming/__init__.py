"""Streaming analysis components."""

from .quantiles import nearest_rank, median_sorted, population_stddev
from .rolling_window import RollingStats, RollingWindowEngine
from .detector import (
    DeviationType,
    DeviationEvent,
    DetectorState,
    DeviationDetector,
    detect,
)

__all__ = [
    'nearest_rank',
    'median_sorted',
    'population_stddev',
    'RollingStats',
    'RollingWindowEngine',
    'DeviationType',
    'DeviationEvent',
    'DetectorState',
    'DeviationDetector',
    'detect',
]
