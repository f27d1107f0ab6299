"""
Letter grade for a session's tail latency.

The cascade is evaluated top to bottom and the first matching rule wins:

    A  pct10 < 1  and p95 < 10
    B  pct10 < 3  and pct20 < 1
    C  pct10 < 5  or (pct20 < 1 and pct10 < 10)
    D  pct10 < 10 or pct20 < 3
    F  otherwise

pctN is the percentage of successful samples with latency >= N ms.
A session with no samples at all is always F.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

NO_DATA_SUMMARY = 'No data available for analysis.'


class QualityGrade(str, Enum):
    A = 'A'
    B = 'B'
    C = 'C'
    D = 'D'
    F = 'F'

    @property
    def rank(self) -> int:
        """0 for A (best) through 4 for F."""
        return 'ABCDF'.index(self.value)


@dataclass(frozen=True)
class QualityAssessment:
    grade: QualityGrade
    summary: str


def percentage_at(thresholds: Sequence, threshold_ms: int) -> float:
    """Percentage recorded for threshold_ms, 0.0 if that level is absent."""
    for t in thresholds:
        if t.threshold_ms == threshold_ms:
            return t.percentage
    return 0.0


def grade_for(pct10ms: float, pct20ms: float, latency_p95: float) -> QualityGrade:
    """Apply the grade cascade to precomputed tail percentages."""
    if pct10ms < 1 and latency_p95 < 10:
        return QualityGrade.A
    if pct10ms < 3 and pct20ms < 1:
        return QualityGrade.B
    if pct10ms < 5 or (pct20ms < 1 and pct10ms < 10):
        return QualityGrade.C
    if pct10ms < 10 or pct20ms < 3:
        return QualityGrade.D
    return QualityGrade.F


def assess_quality(latency_p95: float, thresholds: Sequence, sample_count: int) -> QualityAssessment:
    """
    Grade a session.

    Args:
        latency_p95: nearest-rank P95 over all successful samples (ms)
        thresholds: ThresholdCount entries for the tail-risk levels
        sample_count: total samples including losses
    """
    if sample_count == 0:
        return QualityAssessment(QualityGrade.F, NO_DATA_SUMMARY)

    pct10 = percentage_at(thresholds, 10)
    pct20 = percentage_at(thresholds, 20)
    pct50 = percentage_at(thresholds, 50)

    grade = grade_for(pct10, pct20, latency_p95)

    if grade == QualityGrade.A:
        summary = (f"Excellent for game streaming. {100 - pct10:.1f}% of samples under 10ms. "
                   f"P95: {latency_p95:.1f}ms.")
    elif grade == QualityGrade.B:
        summary = (f"Good for most streaming. {100 - pct10:.1f}% of samples under 10ms. "
                   f"P95: {latency_p95:.1f}ms.")
    elif grade == QualityGrade.C:
        summary = (f"Acceptable with occasional hiccups. {pct10:.1f}% of samples >=10ms. "
                   f"P95: {latency_p95:.1f}ms.")
    elif grade == QualityGrade.D:
        summary = (f"Noticeable latency issues. {pct10:.1f}% of samples >=10ms, "
                   f"{pct20:.1f}% >=20ms. May cause stutter.")
    else:
        summary = (f"Poor for streaming. {pct10:.1f}% of samples >=10ms, "
                   f"{pct50:.1f}% >=50ms. Expect frequent stuttering.")

    return QualityAssessment(grade, summary)
