"""Post-hoc session analysis."""

from .quality import NO_DATA_SUMMARY, QualityGrade, QualityAssessment, assess_quality, grade_for, percentage_at
from .session import (
    TAIL_RISK_THRESHOLDS_MS,
    BURST_GAP_MS,
    BURST_SPIKE_THRESHOLD_MS,
    TimingMetrics,
    LatencyDistribution,
    ThresholdCount,
    LatencyBurst,
    BurstSummary,
    SessionAnalysis,
    SessionAnalyzer,
    analyze_session,
)
from .stats import SessionStats, compute_session_stats

__all__ = [
    'NO_DATA_SUMMARY',
    'QualityGrade',
    'QualityAssessment',
    'assess_quality',
    'grade_for',
    'percentage_at',
    'TAIL_RISK_THRESHOLDS_MS',
    'BURST_GAP_MS',
    'BURST_SPIKE_THRESHOLD_MS',
    'TimingMetrics',
    'LatencyDistribution',
    'ThresholdCount',
    'LatencyBurst',
    'BurstSummary',
    'SessionAnalysis',
    'SessionAnalyzer',
    'analyze_session',
    'SessionStats',
    'compute_session_stats',
]
