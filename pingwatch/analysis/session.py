"""
Post-hoc session analysis.

Given the complete ordered sample history of a session, compute:
- timing: span and inter-sample interval distribution
- latency distribution over every successful sample (no windowing)
- tail-risk threshold counts at 10/20/50/100 ms
- bursts: runs of spike samples (loss or >= 10 ms) with gaps <= 5 s
- a letter quality grade

The analyzer is pure. It never mutates the history it is given, so the
same sample list always yields an identical SessionAnalysis, and
concurrent callers can analyze snapshots without coordination.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .quality import QualityGrade, assess_quality, percentage_at
from ..samples.sample import Sample
from ..streaming.quantiles import mean, median_sorted, nearest_rank, population_stddev

# Tail-risk levels reported in every analysis (ms)
TAIL_RISK_THRESHOLDS_MS = (10, 20, 50, 100)

# A gap larger than this between spike samples starts a new burst (ms)
BURST_GAP_MS = 5000

# Samples at or above this latency count as spikes for burst clustering (ms).
# Independent of TAIL_RISK_THRESHOLDS_MS even though the values coincide.
BURST_SPIKE_THRESHOLD_MS = 10


@dataclass(frozen=True)
class TimingMetrics:
    """Span and sampling interval statistics, in seconds."""
    span_seconds: float = 0.0
    sample_count: int = 0
    sampling_interval_mean: float = 0.0
    sampling_interval_median: float = 0.0
    sampling_interval_p95: float = 0.0


@dataclass(frozen=True)
class LatencyDistribution:
    """Latency statistics over all successful samples, in ms."""
    latency_min: float = 0.0
    latency_mean: float = 0.0
    latency_median: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_max: float = 0.0
    latency_std_dev: float = 0.0


@dataclass(frozen=True)
class ThresholdCount:
    threshold_ms: int
    count: int
    percentage: float

    def to_dict(self) -> dict:
        return {
            'thresholdMs': self.threshold_ms,
            'count': self.count,
            'percentage': self.percentage,
        }


@dataclass(frozen=True)
class LatencyBurst:
    """A maximal run of spike samples whose gaps are all <= BURST_GAP_MS."""
    index: int
    start_timestamp: int
    end_timestamp: int
    sample_count: int
    max_latency: float
    mean_latency: float

    @property
    def duration_ms(self) -> int:
        return self.end_timestamp - self.start_timestamp

    def to_dict(self) -> dict:
        return {
            'index': self.index,
            'startTimestamp': self.start_timestamp,
            'endTimestamp': self.end_timestamp,
            'sampleCount': self.sample_count,
            'maxLatency': self.max_latency,
            'meanLatency': self.mean_latency,
        }


@dataclass(frozen=True)
class BurstSummary:
    burst_count: int = 0
    burst_size_median: float = 0.0
    burst_size_max: int = 0
    inter_burst_interval_median: Optional[float] = None
    inter_burst_interval_p95: Optional[float] = None
    bursts: tuple = ()


@dataclass(frozen=True)
class SessionAnalysis:
    """Full analysis of one session. Value object, safe to share."""
    timing: TimingMetrics
    latency: LatencyDistribution
    thresholds: tuple
    bursts: BurstSummary
    quality_grade: QualityGrade
    quality_summary: str
    session_id: Optional[str] = None
    computed_at: Optional[int] = None
    final: bool = False

    def percentage_at(self, threshold_ms: int) -> float:
        return percentage_at(self.thresholds, threshold_ms)

    def to_dict(self) -> dict:
        """Flat dictionary using the wire field names."""
        timing = self.timing
        lat = self.latency
        bursts = self.bursts
        return {
            'sessionId': self.session_id,
            'computedAt': self.computed_at,
            'final': self.final,
            'spanSeconds': timing.span_seconds,
            'sampleCount': timing.sample_count,
            'samplingIntervalMean': timing.sampling_interval_mean,
            'samplingIntervalMedian': timing.sampling_interval_median,
            'samplingIntervalP95': timing.sampling_interval_p95,
            'latencyMin': lat.latency_min,
            'latencyMean': lat.latency_mean,
            'latencyMedian': lat.latency_median,
            'latencyP95': lat.latency_p95,
            'latencyP99': lat.latency_p99,
            'latencyMax': lat.latency_max,
            'latencyStdDev': lat.latency_std_dev,
            'thresholds': [t.to_dict() for t in self.thresholds],
            'burstCount': bursts.burst_count,
            'burstSizeMedian': bursts.burst_size_median,
            'burstSizeMax': bursts.burst_size_max,
            'interBurstIntervalMedian': bursts.inter_burst_interval_median,
            'interBurstIntervalP95': bursts.inter_burst_interval_p95,
            'bursts': [b.to_dict() for b in bursts.bursts],
            'qualityGrade': self.quality_grade.value,
            'qualitySummary': self.quality_summary,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionAnalysis':
        return cls(
            timing=TimingMetrics(
                span_seconds=data.get('spanSeconds', 0.0),
                sample_count=data.get('sampleCount', 0),
                sampling_interval_mean=data.get('samplingIntervalMean', 0.0),
                sampling_interval_median=data.get('samplingIntervalMedian', 0.0),
                sampling_interval_p95=data.get('samplingIntervalP95', 0.0),
            ),
            latency=LatencyDistribution(
                latency_min=data.get('latencyMin', 0.0),
                latency_mean=data.get('latencyMean', 0.0),
                latency_median=data.get('latencyMedian', 0.0),
                latency_p95=data.get('latencyP95', 0.0),
                latency_p99=data.get('latencyP99', 0.0),
                latency_max=data.get('latencyMax', 0.0),
                latency_std_dev=data.get('latencyStdDev', 0.0),
            ),
            thresholds=tuple(
                ThresholdCount(t['thresholdMs'], t['count'], t['percentage'])
                for t in data.get('thresholds', [])
            ),
            bursts=BurstSummary(
                burst_count=data.get('burstCount', 0),
                burst_size_median=data.get('burstSizeMedian', 0.0),
                burst_size_max=data.get('burstSizeMax', 0),
                inter_burst_interval_median=data.get('interBurstIntervalMedian'),
                inter_burst_interval_p95=data.get('interBurstIntervalP95'),
                bursts=tuple(
                    LatencyBurst(
                        index=b['index'],
                        start_timestamp=b['startTimestamp'],
                        end_timestamp=b['endTimestamp'],
                        sample_count=b['sampleCount'],
                        max_latency=b['maxLatency'],
                        mean_latency=b['meanLatency'],
                    )
                    for b in data.get('bursts', [])
                ),
            ),
            quality_grade=QualityGrade(data.get('qualityGrade', 'F')),
            quality_summary=data.get('qualitySummary', ''),
            session_id=data.get('sessionId'),
            computed_at=data.get('computedAt'),
            final=data.get('final', False),
        )


def compute_timing(ordered: Sequence[Sample]) -> TimingMetrics:
    if len(ordered) < 2:
        return TimingMetrics(sample_count=len(ordered))

    span = (ordered[-1].timestamp - ordered[0].timestamp) / 1000
    intervals = [
        (ordered[i].timestamp - ordered[i - 1].timestamp) / 1000
        for i in range(1, len(ordered))
    ]
    sorted_intervals = sorted(intervals)

    return TimingMetrics(
        span_seconds=span,
        sample_count=len(ordered),
        sampling_interval_mean=sum(intervals) / len(intervals),
        sampling_interval_median=median_sorted(sorted_intervals),
        sampling_interval_p95=nearest_rank(sorted_intervals, 0.95),
    )


def compute_latency_distribution(latencies: Sequence[float]) -> LatencyDistribution:
    if not latencies:
        return LatencyDistribution()

    ordered = sorted(latencies)
    mu = sum(ordered) / len(ordered)

    return LatencyDistribution(
        latency_min=ordered[0],
        latency_mean=mu,
        latency_median=median_sorted(ordered),
        latency_p95=nearest_rank(ordered, 0.95),
        latency_p99=nearest_rank(ordered, 0.99),
        latency_max=ordered[-1],
        latency_std_dev=population_stddev(ordered, mu),
    )


def compute_threshold_counts(latencies: Sequence[float]) -> tuple:
    total = len(latencies)
    counts = []
    for threshold in TAIL_RISK_THRESHOLDS_MS:
        count = sum(1 for v in latencies if v >= threshold)
        percentage = (count / total) * 100 if total else 0.0
        counts.append(ThresholdCount(threshold, count, percentage))
    return tuple(counts)


def is_spike_sample(sample: Sample) -> bool:
    return sample.latency is None or sample.latency >= BURST_SPIKE_THRESHOLD_MS


def _make_burst(index: int, samples: List[Sample]) -> LatencyBurst:
    latencies = [s.latency for s in samples if s.latency is not None]
    return LatencyBurst(
        index=index,
        start_timestamp=samples[0].timestamp,
        end_timestamp=samples[-1].timestamp,
        sample_count=len(samples),
        max_latency=max(latencies) if latencies else 0.0,
        mean_latency=mean(latencies),
    )


def find_bursts(ordered: Sequence[Sample]) -> List[LatencyBurst]:
    """Cluster spike samples of a timestamp-ordered history into bursts."""
    spikes = [s for s in ordered if is_spike_sample(s)]
    if not spikes:
        return []

    bursts: List[LatencyBurst] = []
    current = [spikes[0]]
    for prev, sample in zip(spikes, spikes[1:]):
        if sample.timestamp - prev.timestamp <= BURST_GAP_MS:
            current.append(sample)
        else:
            bursts.append(_make_burst(len(bursts), current))
            current = [sample]
    bursts.append(_make_burst(len(bursts), current))

    return bursts


def summarize_bursts(bursts: Sequence[LatencyBurst]) -> BurstSummary:
    if not bursts:
        return BurstSummary()

    sizes = sorted(b.sample_count for b in bursts)

    interval_median = None
    interval_p95 = None
    if len(bursts) > 1:
        intervals = sorted(
            (bursts[i].start_timestamp - bursts[i - 1].end_timestamp) / 1000
            for i in range(1, len(bursts))
        )
        interval_median = median_sorted(intervals)
        interval_p95 = nearest_rank(intervals, 0.95)

    return BurstSummary(
        burst_count=len(bursts),
        burst_size_median=median_sorted(sizes),
        burst_size_max=sizes[-1],
        inter_burst_interval_median=interval_median,
        inter_burst_interval_p95=interval_p95,
        bursts=tuple(bursts),
    )


class SessionAnalyzer:
    """
    Stateless batch analyzer.

    Example:
        analysis = SessionAnalyzer().analyze(samples, session_id='s1')
        print(analysis.quality_grade, analysis.bursts.burst_count)
    """

    def analyze(
        self,
        samples: Sequence[Sample],
        session_id: Optional[str] = None,
        computed_at: Optional[int] = None,
        final: bool = False,
    ) -> SessionAnalysis:
        """
        Analyze a complete sample history.

        `computed_at` is stamped onto the result as given; the analyzer
        never reads the clock so repeated calls are identical.
        """
        # sorted() copies; stable for equal timestamps
        ordered = sorted(samples, key=lambda s: s.timestamp)
        latencies = [s.latency for s in samples if s.latency is not None]

        timing = compute_timing(ordered)
        distribution = compute_latency_distribution(latencies)
        thresholds = compute_threshold_counts(latencies)
        bursts = summarize_bursts(find_bursts(ordered))
        quality = assess_quality(distribution.latency_p95, thresholds, timing.sample_count)

        return SessionAnalysis(
            timing=timing,
            latency=distribution,
            thresholds=thresholds,
            bursts=bursts,
            quality_grade=quality.grade,
            quality_summary=quality.summary,
            session_id=session_id,
            computed_at=computed_at,
            final=final,
        )


def analyze_session(samples: Sequence[Sample], **kwargs) -> SessionAnalysis:
    """Convenience wrapper around SessionAnalyzer().analyze()."""
    return SessionAnalyzer().analyze(samples, **kwargs)
