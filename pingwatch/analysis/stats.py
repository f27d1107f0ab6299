"""
Final session statistics.

Summary numbers persisted when a session stops: totals, packet loss,
the latency distribution over every successful sample, whole-session
jitter and deviation cadence.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ..samples.sample import Sample
from ..streaming.quantiles import median_sorted, nearest_rank, population_stddev


@dataclass(frozen=True)
class SessionStats:
    total_pings: int = 0
    successful_pings: int = 0
    packet_loss: float = 0.0  # Percentage 0-100
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_mean: float = 0.0
    latency_median: float = 0.0
    latency_std_dev: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    jitter_mean: float = 0.0
    deviation_count: int = 0
    mean_time_between_deviations: Optional[float] = None  # ms

    def to_dict(self) -> dict:
        return {
            'totalPings': self.total_pings,
            'successfulPings': self.successful_pings,
            'packetLoss': self.packet_loss,
            'latencyMin': self.latency_min,
            'latencyMax': self.latency_max,
            'latencyMean': self.latency_mean,
            'latencyMedian': self.latency_median,
            'latencyStdDev': self.latency_std_dev,
            'latencyP95': self.latency_p95,
            'latencyP99': self.latency_p99,
            'jitterMean': self.jitter_mean,
            'deviationCount': self.deviation_count,
            'meanTimeBetweenDeviations': self.mean_time_between_deviations,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionStats':
        names = {v: k for k, v in _WIRE_NAMES.items()}
        return cls(**{names[k]: v for k, v in data.items() if k in names})


_WIRE_NAMES = {
    'total_pings': 'totalPings',
    'successful_pings': 'successfulPings',
    'packet_loss': 'packetLoss',
    'latency_min': 'latencyMin',
    'latency_max': 'latencyMax',
    'latency_mean': 'latencyMean',
    'latency_median': 'latencyMedian',
    'latency_std_dev': 'latencyStdDev',
    'latency_p95': 'latencyP95',
    'latency_p99': 'latencyP99',
    'jitter_mean': 'jitterMean',
    'deviation_count': 'deviationCount',
    'mean_time_between_deviations': 'meanTimeBetweenDeviations',
}


def packet_loss_percent(total: int, successful: int) -> float:
    return ((total - successful) / total) * 100 if total > 0 else 0.0


def compute_session_stats(samples: Sequence[Sample], deviation_timestamps: Sequence[int] = ()) -> SessionStats:
    """
    Summarize a session.

    Jitter is averaged over consecutive successful samples in arrival
    order. Deviation cadence is the mean gap (ms) between consecutive
    deviation timestamps, None with fewer than two deviations.
    """
    total = len(samples)
    latencies = [s.latency for s in samples if s.latency is not None]
    successful = len(latencies)
    loss = packet_loss_percent(total, successful)

    mtbd = None
    if len(deviation_timestamps) > 1:
        ordered_devs = sorted(deviation_timestamps)
        mtbd = (ordered_devs[-1] - ordered_devs[0]) / (len(ordered_devs) - 1)

    if not latencies:
        return SessionStats(
            total_pings=total,
            successful_pings=0,
            packet_loss=loss,
            deviation_count=len(deviation_timestamps),
            mean_time_between_deviations=mtbd,
        )

    ordered = sorted(latencies)
    n = len(ordered)
    mu = sum(ordered) / n

    jitter_sum = sum(abs(b - a) for a, b in zip(latencies, latencies[1:]))
    jitter_mean = jitter_sum / (n - 1) if n > 1 else 0.0

    return SessionStats(
        total_pings=total,
        successful_pings=successful,
        packet_loss=loss,
        latency_min=ordered[0],
        latency_max=ordered[-1],
        latency_mean=mu,
        latency_median=median_sorted(ordered),
        latency_std_dev=population_stddev(ordered, mu),
        latency_p95=nearest_rank(ordered, 0.95),
        latency_p99=nearest_rank(ordered, 0.99),
        jitter_mean=jitter_mean,
        deviation_count=len(deviation_timestamps),
        mean_time_between_deviations=mtbd,
    )
