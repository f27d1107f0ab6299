"""
pingwatch v1.0 - Round-trip latency monitoring and session quality analysis.

This package provides:
- samples: Sample type and CSV / JSON-lines sample files
- streaming: Rolling window statistics and live deviation detection
- analysis: Post-hoc session analysis, burst clustering and quality grade
- session: Per-session monitor and session reports
- config: YAML configuration with environment variable support
- core: Structured error codes
- demo: Synthetic sample streams
- cli: Command-line interface
"""

__version__ = "1.0.0"

from .samples import Sample, SampleReader, write_samples
from .streaming import (
    RollingStats,
    RollingWindowEngine,
    DeviationDetector,
    DeviationEvent,
    DeviationType,
    DetectorState,
    detect,
)
from .analysis import SessionAnalysis, SessionAnalyzer, QualityGrade, SessionStats
from .config import DetectionSettings, DetectionMethod, PingwatchConfig, load_config
from .session import SessionMonitor, SessionReport, ReportStatus

__all__ = [
    # Version
    '__version__',
    # Samples
    'Sample',
    'SampleReader',
    'write_samples',
    # Streaming
    'RollingStats',
    'RollingWindowEngine',
    'DeviationDetector',
    'DeviationEvent',
    'DeviationType',
    'DetectorState',
    'detect',
    # Analysis
    'SessionAnalysis',
    'SessionAnalyzer',
    'QualityGrade',
    'SessionStats',
    # Config
    'DetectionSettings',
    'DetectionMethod',
    'PingwatchConfig',
    'load_config',
    # Session
    'SessionMonitor',
    'SessionReport',
    'ReportStatus',
]
