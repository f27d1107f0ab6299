"""
Per-session sample pipeline.

A SessionMonitor is the single logical owner of one session's rolling
window and deviation detector:

    Sample -> RollingWindowEngine.update -> RollingStats
           -> (+ session-wide packet loss rate)
           -> DeviationDetector.detect -> DeviationEvent*

Monitors share no mutable state, so sessions run in parallel freely.
A monitor itself is not thread-safe: feed it from one thread or task.
Analysis runs on an immutable snapshot of the history and may be
called from anywhere.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..streaming.rolling_window import RollingStats, RollingWindowEngine
from ..streaming.detector import DeviationDetector, DeviationEvent, DeviationType
from ..analysis.session import SessionAnalysis, SessionAnalyzer
from ..analysis.stats import SessionStats, compute_session_stats, packet_loss_percent
from ..config.schema import DetectionSettings
from ..core.errors import ErrorCode, PingwatchError
from ..samples.sample import Sample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleResult:
    """What the monitor emits for each sample."""
    sample: Sample
    stats: RollingStats
    events: Tuple[DeviationEvent, ...]

    def to_dict(self) -> dict:
        result = self.sample.to_dict()
        result['stats'] = self.stats.to_dict()
        result['deviations'] = [e.to_dict() for e in self.events]
        return result


class SessionMonitor:
    """
    Run one monitoring session over a serial stream of samples.

    Example:
        monitor = SessionMonitor(DetectionSettings(detection_method='iqr'))
        for sample in prober_samples:
            result = monitor.process(sample)
            for event in result.events:
                publish(event)
        monitor.stop()
        report = monitor.analyze(final=True)
    """

    def __init__(
        self,
        settings: Optional[DetectionSettings] = None,
        session_id: Optional[str] = None,
        target: str = '',
    ):
        self.settings = settings or DetectionSettings()
        self.session_id = session_id or uuid.uuid4().hex
        self.target = target

        self.engine = RollingWindowEngine(self._window_size(self.settings, 100))
        self.detector = DeviationDetector(self.settings)

        self.history: List[Sample] = []
        self.events: List[DeviationEvent] = []
        self.errors: List[PingwatchError] = []

        self.total_samples: int = 0
        self.successful_samples: int = 0
        self.last_timestamp: Optional[int] = None
        self.stopped: bool = False

        self._final_analysis: Optional[SessionAnalysis] = None

        logger.info(f"Session {self.session_id} started (target={target or '-'}, "
                    f"method={self.settings.detection_method})")

    @staticmethod
    def _window_size(settings: DetectionSettings, fallback: int) -> int:
        size = settings.rolling_window_size
        if isinstance(size, int) and not isinstance(size, bool) and size > 0:
            return size
        logger.warning(f"Invalid rolling_window_size {size!r}, keeping {fallback}")
        return fallback

    @property
    def packet_loss_rate(self) -> float:
        """Lost samples as a percentage of all samples so far."""
        return packet_loss_percent(self.total_samples, self.successful_samples)

    def process(self, sample: Sample) -> SampleResult:
        """Feed one sample through window and detector."""
        if self.stopped:
            raise RuntimeError(f"Session {self.session_id} already stopped")

        if self.last_timestamp is not None and sample.timestamp < self.last_timestamp:
            logger.warning(
                f"Session {self.session_id}: sample seq={sample.seq} arrived out of order "
                f"({sample.timestamp} < {self.last_timestamp})"
            )
            self.errors.append(PingwatchError(
                code=ErrorCode.E1004_OUT_OF_ORDER,
                context={'seq': sample.seq, 'timestamp': sample.timestamp},
            ))
        self.last_timestamp = sample.timestamp

        self.total_samples += 1
        if sample.latency is not None:
            self.successful_samples += 1

        stats = self.engine.update(sample.latency)
        stats = stats.with_packet_loss_rate(self.packet_loss_rate)

        events = tuple(self.detector.detect(sample, stats))

        self.history.append(sample)
        self.events.extend(events)

        return SampleResult(sample=sample, stats=stats, events=events)

    def update_settings(self, **changes) -> DetectionSettings:
        """
        Apply a partial settings update mid-session.

        Detector history (last latency, event counter) and the window
        contents are kept; a smaller window drops its oldest entries.
        """
        self.settings = self.detector.update_settings(**changes)
        size = self._window_size(self.settings, self.engine.window_size)
        if size != self.engine.window_size:
            self.engine.resize(size)
        logger.info(f"Session {self.session_id} settings updated: {changes}")
        return self.settings

    def snapshot(self) -> Tuple[Sample, ...]:
        """Point-in-time copy of the sample history."""
        return tuple(self.history)

    def events_by_type(self) -> dict:
        counts = {t.value: 0 for t in DeviationType}
        for event in self.events:
            counts[event.type.value] += 1
        return counts

    def stop(self) -> None:
        if not self.stopped:
            self.stopped = True
            logger.info(f"Session {self.session_id} stopped after {self.total_samples} samples, "
                        f"{len(self.events)} deviations")

    def final_stats(self) -> SessionStats:
        return compute_session_stats(self.history, [e.timestamp for e in self.events])

    def analyze(self, final: bool = False, computed_at: Optional[int] = None) -> SessionAnalysis:
        """
        Analyze the session history.

        Live (final=False) results are provisional and never cached.
        A final analysis requires the session to be stopped and is
        computed once.
        """
        if final:
            if not self.stopped:
                raise RuntimeError("Final analysis requires a stopped session")
            if self._final_analysis is None:
                self._final_analysis = SessionAnalyzer().analyze(
                    self.snapshot(),
                    session_id=self.session_id,
                    computed_at=computed_at,
                    final=True,
                )
            return self._final_analysis

        return SessionAnalyzer().analyze(
            self.snapshot(),
            session_id=self.session_id,
            computed_at=computed_at,
        )
