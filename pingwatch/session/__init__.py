"""Per-session monitoring and reports."""

from .monitor import SampleResult, SessionMonitor
from .report import ReportStatus, SessionReport, write_events_csv

__all__ = [
    'SampleResult',
    'SessionMonitor',
    'ReportStatus',
    'SessionReport',
    'write_events_csv',
]
