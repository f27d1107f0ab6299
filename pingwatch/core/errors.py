"""
Error codes for pingwatch.

Structured error codes for machine-parseable reports.

Format: E{category}{number}
- E1xxx: Data errors
- E2xxx: Analysis errors
- E3xxx: Configuration errors
- E4xxx: Export errors
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ErrorCode(Enum):
    """Structured error codes."""

    # E1xxx: Data errors
    E1001_UNSUPPORTED_FORMAT = "E1001"
    E1002_MISSING_COLUMN = "E1002"
    E1003_MALFORMED_ROW = "E1003"
    E1004_OUT_OF_ORDER = "E1004"
    E1005_EMPTY_FILE = "E1005"

    # E2xxx: Analysis errors
    E2001_HIGH_PACKET_LOSS = "E2001"
    E2002_INSUFFICIENT_SAMPLES = "E2002"
    E2003_NO_SUCCESSFUL_SAMPLES = "E2003"

    # E3xxx: Configuration errors
    E3001_INVALID_CONFIG = "E3001"
    E3002_MISSING_ENV_VAR = "E3002"
    E3003_VALIDATION_FAILED = "E3003"

    # E4xxx: Export errors
    E4001_FILE_WRITE_FAILED = "E4001"


# Error code metadata
ERROR_METADATA = {
    ErrorCode.E1001_UNSUPPORTED_FORMAT: {
        'severity': 'error',
        'message': 'Unsupported sample file format',
        'recoverable': False,
    },
    ErrorCode.E1002_MISSING_COLUMN: {
        'severity': 'error',
        'message': 'Required column missing',
        'recoverable': False,
    },
    ErrorCode.E1003_MALFORMED_ROW: {
        'severity': 'warning',
        'message': 'Malformed sample row skipped',
        'recoverable': True,
    },
    ErrorCode.E1004_OUT_OF_ORDER: {
        'severity': 'warning',
        'message': 'Sample timestamps are not in arrival order',
        'recoverable': True,
    },
    ErrorCode.E1005_EMPTY_FILE: {
        'severity': 'warning',
        'message': 'File contains no samples',
        'recoverable': True,
    },
    ErrorCode.E2001_HIGH_PACKET_LOSS: {
        'severity': 'error',
        'message': 'Packet loss exceeds threshold',
        'recoverable': True,
    },
    ErrorCode.E2002_INSUFFICIENT_SAMPLES: {
        'severity': 'warning',
        'message': 'Too few successful samples for live detection',
        'recoverable': True,
    },
    ErrorCode.E2003_NO_SUCCESSFUL_SAMPLES: {
        'severity': 'warning',
        'message': 'Session contains no successful samples',
        'recoverable': True,
    },
    ErrorCode.E3001_INVALID_CONFIG: {
        'severity': 'error',
        'message': 'Invalid configuration',
        'recoverable': False,
    },
    ErrorCode.E3002_MISSING_ENV_VAR: {
        'severity': 'warning',
        'message': 'Environment variable not set',
        'recoverable': True,
    },
    ErrorCode.E3003_VALIDATION_FAILED: {
        'severity': 'error',
        'message': 'Configuration validation failed',
        'recoverable': False,
    },
    ErrorCode.E4001_FILE_WRITE_FAILED: {
        'severity': 'error',
        'message': 'Failed to write output file',
        'recoverable': True,
    },
}


@dataclass
class PingwatchError:
    """
    Structured error with context.

    Example:
        error = PingwatchError(
            code=ErrorCode.E1003_MALFORMED_ROW,
            context={'line': 12, 'reason': 'bad latency'},
        )
    """
    code: ErrorCode
    context: Optional[dict] = None

    @property
    def severity(self) -> str:
        return ERROR_METADATA.get(self.code, {}).get('severity', 'error')

    @property
    def message(self) -> str:
        base_msg = ERROR_METADATA.get(self.code, {}).get('message', 'Unknown error')
        if self.context:
            return f"{base_msg}: {self.context}"
        return base_msg

    @property
    def recoverable(self) -> bool:
        return ERROR_METADATA.get(self.code, {}).get('recoverable', False)

    def to_dict(self) -> dict:
        return {
            'code': self.code.value,
            'severity': self.severity,
            'message': self.message,
            'recoverable': self.recoverable,
            'context': self.context,
        }


class PingwatchInputError(ValueError):
    """
    Rejected input file (sample file or config), carrying the structured error.

    Subclasses ValueError so callers that only care about bad input can
    keep catching ValueError.
    """

    def __init__(self, error: PingwatchError):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> ErrorCode:
        return self.error.code
