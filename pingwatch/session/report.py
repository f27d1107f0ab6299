"""
Report schema for pingwatch session results.

Reports are structured JSON documents containing:
- Metadata (version, timestamp, source, target)
- Final session statistics
- Session analysis (distribution, thresholds, bursts, grade)
- Deviation counts per type
- Overall status and any errors encountered
"""

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..core.errors import PingwatchError
from ..analysis.quality import QualityGrade
from ..analysis.session import SessionAnalysis
from ..analysis.stats import SessionStats
from ..streaming.detector import DeviationEvent

REPORT_VERSION = 1


class ReportStatus(Enum):
    """Overall report status."""
    OK = 'ok'
    WARNING = 'warning'
    ERROR = 'error'
    CRITICAL = 'critical'


_STATUS_ORDER = [ReportStatus.OK, ReportStatus.WARNING, ReportStatus.ERROR, ReportStatus.CRITICAL]

_GRADE_STATUS = {
    QualityGrade.C: ReportStatus.WARNING,
    QualityGrade.D: ReportStatus.ERROR,
    QualityGrade.F: ReportStatus.CRITICAL,
}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SessionReport:
    """
    Complete session report.

    Example:
        report = SessionReport(source_file='samples.csv')
        report.stats = monitor.final_stats()
        report.analysis = monitor.analyze(final=True)
        report.compute_status(loss_rate_warning=1.0, loss_rate_error=5.0)
        print(report.to_json())
    """
    # Metadata
    version: int = REPORT_VERSION
    created_at: str = field(default_factory=_utcnow)
    pingwatch_version: str = '1.0.0'

    # Source information
    source_file: Optional[str] = None
    target: Optional[str] = None
    session_id: Optional[str] = None
    detection_method: Optional[str] = None

    # Sections
    stats: SessionStats = field(default_factory=SessionStats)
    analysis: Optional[SessionAnalysis] = None
    deviations: Dict[str, int] = field(default_factory=dict)

    # Status
    status: ReportStatus = ReportStatus.OK
    status_reason: Optional[str] = None

    # Errors encountered
    errors: List[dict] = field(default_factory=list)

    def add_error(self, error: PingwatchError) -> None:
        """Add an error to the report."""
        self.errors.append(error.to_dict())

    def _raise_to(self, status: ReportStatus) -> None:
        if _STATUS_ORDER.index(status) > _STATUS_ORDER.index(self.status):
            self.status = status

    def compute_status(
        self,
        loss_rate_warning: float = 1.0,
        loss_rate_error: float = 5.0,
        min_grade_ok: str = 'B',
    ) -> None:
        """
        Compute overall status from grade and packet loss.

        Priority: CRITICAL > ERROR > WARNING > OK
        """
        reasons = []

        if self.analysis is not None:
            grade = self.analysis.quality_grade
            if grade.rank > QualityGrade(min_grade_ok).rank:
                status = _GRADE_STATUS.get(grade, ReportStatus.WARNING)
                self._raise_to(status)
                reasons.append(f"Quality grade {grade.value}")

        loss = self.stats.packet_loss
        if loss >= loss_rate_error:
            self._raise_to(ReportStatus.ERROR)
            reasons.append(f"Packet loss {loss:.2f}% >= {loss_rate_error}%")
        elif loss >= loss_rate_warning:
            self._raise_to(ReportStatus.WARNING)
            reasons.append(f"Packet loss {loss:.2f}% >= {loss_rate_warning}%")

        if reasons:
            self.status_reason = '; '.join(reasons)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'version': self.version,
            'created_at': self.created_at,
            'pingwatch_version': self.pingwatch_version,
            'source': {
                'file': self.source_file,
                'target': self.target,
                'session_id': self.session_id,
                'detection_method': self.detection_method,
            },
            'status': self.status.value,
            'status_reason': self.status_reason,
            'stats': self.stats.to_dict(),
            'analysis': self.analysis.to_dict() if self.analysis else None,
            'deviations': self.deviations,
            'errors': self.errors,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionReport':
        """Create from dictionary."""
        source = data.get('source', {})
        analysis = data.get('analysis')

        return cls(
            version=data.get('version', REPORT_VERSION),
            created_at=data.get('created_at', _utcnow()),
            pingwatch_version=data.get('pingwatch_version', '1.0.0'),
            source_file=source.get('file'),
            target=source.get('target'),
            session_id=source.get('session_id'),
            detection_method=source.get('detection_method'),
            stats=SessionStats.from_dict(data.get('stats', {})),
            analysis=SessionAnalysis.from_dict(analysis) if analysis else None,
            deviations=data.get('deviations', {}),
            status=ReportStatus(data.get('status', 'ok')),
            status_reason=data.get('status_reason'),
            errors=data.get('errors', []),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'SessionReport':
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def summary(self) -> str:
        """Get human-readable summary."""
        stats = self.stats
        lines = [
            "pingwatch Session Report",
            f"Status: {self.status.value.upper()}",
            "",
            "Latency:",
            f"  Samples: {stats.total_pings:,} ({stats.successful_pings:,} ok)",
            f"  Loss:    {stats.packet_loss:.2f}%",
            f"  Median:  {stats.latency_median:.2f} ms",
            f"  P95:     {stats.latency_p95:.2f} ms",
            f"  P99:     {stats.latency_p99:.2f} ms",
            f"  Jitter:  {stats.jitter_mean:.2f} ms",
            "",
        ]

        if self.analysis is not None:
            lines.extend([
                f"Grade: {self.analysis.quality_grade.value}",
                f"  {self.analysis.quality_summary}",
                f"  Bursts: {self.analysis.bursts.burst_count}",
                "",
            ])

        if self.status_reason:
            lines.append(f"Reason: {self.status_reason}")

        return '\n'.join(lines)


def write_events_csv(events: Iterable[DeviationEvent], path: Path) -> int:
    """Export deviation events as CSV. Returns rows written."""
    count = 0
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['id', 'timestamp', 'type', 'value', 'threshold'])
        for event in events:
            writer.writerow([event.id, event.timestamp, event.type.value, event.value, event.threshold])
            count += 1
    return count
