"""
Rolling window statistics over the most recent successful latencies.

This provides "median / P95 / IQR over the last N samples" for live
display and for the thresholds used by the deviation detector.

Losses never occupy a slot: the window holds successful latencies only,
so percentiles are loss-blind. A loss does break jitter continuity, so
no delta is ever computed across a lost sample.
"""

from collections import deque
from dataclasses import dataclass, replace
from typing import Optional

from .quantiles import nearest_rank, median_sorted, population_stddev


@dataclass(frozen=True)
class RollingStats:
    """Statistics recomputed from the window contents after every sample."""
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    q1: float = 0.0
    q3: float = 0.0
    iqr: float = 0.0
    jitter: float = 0.0
    packet_loss_rate: float = 0.0  # Percentage 0-100, filled in by the session owner
    sample_count: int = 0

    def with_packet_loss_rate(self, rate: float) -> 'RollingStats':
        return replace(self, packet_loss_rate=rate)

    def to_dict(self) -> dict:
        return {
            'mean': self.mean,
            'median': self.median,
            'stdDev': self.std_dev,
            'min': self.min,
            'max': self.max,
            'p95': self.p95,
            'p99': self.p99,
            'q1': self.q1,
            'q3': self.q3,
            'iqr': self.iqr,
            'jitter': self.jitter,
            'packetLossRate': self.packet_loss_rate,
            'sampleCount': self.sample_count,
        }


EMPTY_STATS = RollingStats()


class RollingWindowEngine:
    """
    Bounded window of recent successful latencies.

    Memory: O(window_size) for latencies plus O(window_size) jitter deltas.
    Each update re-sorts the window, O(w log w).

    Example:
        engine = RollingWindowEngine(window_size=100)
        for sample in samples:
            stats = engine.update(sample.latency)
        print(stats.p95, stats.jitter)
    """

    def __init__(self, window_size: int = 100):
        if window_size <= 0:
            raise ValueError("window_size must be positive")

        self.window_size = window_size
        self.latencies: deque = deque()
        self.deltas: deque = deque()
        self.last_latency: Optional[float] = None

    def update(self, latency: Optional[float]) -> RollingStats:
        """Add one sample (None = loss) and return fresh statistics."""
        if latency is None:
            self.last_latency = None
            return self.stats()

        self.latencies.append(latency)
        if self.last_latency is not None:
            self.deltas.append(abs(latency - self.last_latency))
        self.last_latency = latency

        self._trim()
        return self.stats()

    def resize(self, window_size: int) -> None:
        """Change the bound, dropping the oldest entries if shrinking."""
        if window_size <= 0:
            raise ValueError("window_size must be positive")
        self.window_size = window_size
        self._trim()

    def reset(self) -> None:
        self.latencies.clear()
        self.deltas.clear()
        self.last_latency = None

    def _trim(self) -> None:
        while len(self.latencies) > self.window_size:
            self.latencies.popleft()
        while len(self.deltas) > self.window_size:
            self.deltas.popleft()

    @property
    def sample_count(self) -> int:
        """Successful samples currently in window."""
        return len(self.latencies)

    def stats(self) -> RollingStats:
        """Compute the full statistic set from current window contents."""
        n = len(self.latencies)
        if n == 0:
            return EMPTY_STATS

        ordered = sorted(self.latencies)
        mu = sum(ordered) / n

        q1 = nearest_rank(ordered, 0.25)
        q3 = nearest_rank(ordered, 0.75)

        jitter = sum(self.deltas) / len(self.deltas) if self.deltas else 0.0

        return RollingStats(
            mean=mu,
            median=median_sorted(ordered),
            std_dev=population_stddev(ordered, mu),
            min=ordered[0],
            max=ordered[-1],
            p95=nearest_rank(ordered, 0.95),
            p99=nearest_rank(ordered, 0.99),
            q1=q1,
            q3=q3,
            iqr=q3 - q1,
            jitter=jitter,
            packet_loss_rate=0.0,
            sample_count=n,
        )
