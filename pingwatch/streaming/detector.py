"""
Per-sample deviation detection.

Each sample is classified against the current rolling statistics along
three independent axes:

1. packet loss   - always checked first; a lost sample produces exactly
                   one packet_loss event and nothing else
2. latency spike - one of three strategies (iqr, zscore, manual)
3. jitter        - |latency - previous latency| against a manual or
                   automatic threshold; may co-occur with a spike

The detector state is an explicit immutable record threaded through the
pure `detect()` transition. `DeviationDetector` wraps that transition
for callers that want a stateful object per session.

Malformed settings never raise: an unknown method or a non-numeric
threshold disables only the axis that needs it.
"""

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from .rolling_window import RollingStats
from ..config.schema import DetectionMethod, DetectionSettings
from ..samples.sample import Sample

logger = logging.getLogger(__name__)

# Below this many successful samples the rolling statistics are too noisy
MIN_SAMPLES_FOR_DETECTION = 10

# Floors for automatic thresholds (ms)
IQR_MEDIAN_MARGIN_MS = 1.0
AUTO_JITTER_MULTIPLIER = 2.0
AUTO_JITTER_FLOOR_MS = 2.0


class DeviationType(str, Enum):
    LATENCY_SPIKE = 'latency_spike'
    PACKET_LOSS = 'packet_loss'
    JITTER = 'jitter'


@dataclass(frozen=True)
class DeviationEvent:
    """A detected deviation. For packet_loss, value and threshold are 0."""
    id: str
    timestamp: int
    type: DeviationType
    value: float
    threshold: float

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'type': self.type.value,
            'value': self.value,
            'threshold': self.threshold,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DeviationEvent':
        return cls(
            id=data['id'],
            timestamp=int(data['timestamp']),
            type=DeviationType(data['type']),
            value=float(data.get('value', 0)),
            threshold=float(data.get('threshold', 0)),
        )


@dataclass(frozen=True)
class DetectorState:
    """
    Everything the detector remembers between samples.

    last_latency: previous successful latency, None after a loss
    event_counter: events emitted so far, used only to keep ids unique
    """
    last_latency: Optional[float] = None
    event_counter: int = 0


INITIAL_STATE = DetectorState()


def _number(value) -> Optional[float]:
    """Coerce a setting to float, or None if it is missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def _method(settings: DetectionSettings) -> Optional[DetectionMethod]:
    try:
        return DetectionMethod(settings.detection_method)
    except ValueError:
        return None


def latency_threshold(stats: RollingStats, settings: DetectionSettings) -> Optional[float]:
    """
    Threshold a latency must exceed to be a spike, or None if the
    configured strategy cannot produce one for these statistics.
    """
    method = _method(settings)

    if method == DetectionMethod.IQR:
        multiplier = _number(settings.iqr_multiplier)
        if multiplier is None:
            return None
        return max(stats.q3 + multiplier * stats.iqr, stats.median + IQR_MEDIAN_MARGIN_MS)

    if method == DetectionMethod.ZSCORE:
        z = _number(settings.zscore_threshold)
        if z is None or stats.std_dev == 0:
            return None
        return stats.mean + z * stats.std_dev

    if method == DetectionMethod.MANUAL:
        return _number(settings.manual_latency_threshold)

    return None


def _is_latency_spike(latency: float, stats: RollingStats, settings: DetectionSettings,
                      threshold: float) -> bool:
    if _method(settings) == DetectionMethod.ZSCORE:
        # Compare on the z-score itself, the reported threshold is derived
        zscore = (latency - stats.mean) / stats.std_dev
        return zscore > _number(settings.zscore_threshold)
    return latency > threshold


def jitter_threshold(stats: RollingStats, settings: DetectionSettings) -> Optional[float]:
    """Manual jitter threshold if set, else max(2 * mean jitter, 2 ms)."""
    if settings.manual_jitter_threshold is not None:
        return _number(settings.manual_jitter_threshold)
    return max(stats.jitter * AUTO_JITTER_MULTIPLIER, AUTO_JITTER_FLOOR_MS)


def _event(
    state: DetectorState,
    type_: DeviationType,
    timestamp: int,
    value: float,
    threshold: float,
) -> Tuple[DetectorState, DeviationEvent]:
    counter = state.event_counter + 1
    event = DeviationEvent(
        id=f"{type_.value}-{timestamp}-{counter}",
        timestamp=timestamp,
        type=type_,
        value=value,
        threshold=threshold,
    )
    return replace(state, event_counter=counter), event


def detect(
    state: DetectorState,
    sample: Sample,
    stats: RollingStats,
    settings: DetectionSettings,
) -> Tuple[DetectorState, List[DeviationEvent]]:
    """
    Classify one sample. Returns the next state and 0-2 events.

    Samples must arrive in non-decreasing timestamp order; jitter and the
    loss reset assume strict arrival order.
    """
    events: List[DeviationEvent] = []

    if sample.latency is None:
        state, event = _event(state, DeviationType.PACKET_LOSS, sample.timestamp, 0.0, 0.0)
        events.append(event)
        return replace(state, last_latency=None), events

    latency = sample.latency

    if stats.sample_count < MIN_SAMPLES_FOR_DETECTION:
        return replace(state, last_latency=latency), events

    threshold = latency_threshold(stats, settings)
    if threshold is not None and _is_latency_spike(latency, stats, settings, threshold):
        state, event = _event(state, DeviationType.LATENCY_SPIKE, sample.timestamp, latency, threshold)
        events.append(event)

    if state.last_latency is not None:
        delta = abs(latency - state.last_latency)
        threshold = jitter_threshold(stats, settings)
        if threshold is not None and delta > threshold:
            state, event = _event(state, DeviationType.JITTER, sample.timestamp, delta, threshold)
            events.append(event)

    return replace(state, last_latency=latency), events


class DeviationDetector:
    """
    Stateful detector, one per monitoring session.

    Example:
        detector = DeviationDetector(DetectionSettings(detection_method='zscore'))
        for sample in samples:
            stats = engine.update(sample.latency)
            for event in detector.detect(sample, stats):
                publish(event)
    """

    def __init__(self, settings: Optional[DetectionSettings] = None):
        self.settings = settings or DetectionSettings()
        self.state = INITIAL_STATE

    def detect(self, sample: Sample, stats: RollingStats) -> List[DeviationEvent]:
        self.state, events = detect(self.state, sample, stats, self.settings)
        for event in events:
            logger.debug(
                f"Deviation {event.type.value} at {event.timestamp}: "
                f"value={event.value:.2f} threshold={event.threshold:.2f}"
            )
        return events

    def update_settings(self, **changes) -> DetectionSettings:
        """Merge changes into the settings. History is kept."""
        self.settings = self.settings.merged(**changes)
        return self.settings

    @property
    def deviation_count(self) -> int:
        return self.state.event_counter

    @property
    def last_latency(self) -> Optional[float]:
        return self.state.last_latency

    def reset(self) -> None:
        self.state = INITIAL_STATE
