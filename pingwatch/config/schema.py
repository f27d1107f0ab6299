"""
Configuration schema for pingwatch.

Supports:
- YAML file loading
- Environment variable substitution (${VAR_NAME})
- Validation with error messages
- Live partial updates of detection settings

Example config (pingwatch.yml):
    version: 1

    session:
      target: ${PINGWATCH_TARGET}
      interval_ms: 100

    detection:
      method: iqr
      iqr_multiplier: 1.5
      rolling_window_size: 100

    thresholds:
      loss_rate_warning: 1.0
      loss_rate_error: 5.0
"""

import logging
import math
import os
import re
from pathlib import Path
from dataclasses import dataclass, field, asdict, fields, replace
from enum import Enum
from typing import Optional, List, Any

import yaml

from ..core.errors import ErrorCode, PingwatchError, PingwatchInputError

logger = logging.getLogger(__name__)


def _substitute_env_vars(value: Any, missing: Optional[List[str]] = None) -> Any:
    """
    Substitute ${VAR_NAME} with environment variable values.

    Unset variables are left in place and their names appended to
    `missing` when a list is given.

    Example:
        ${PINGWATCH_TARGET} → os.environ.get('PINGWATCH_TARGET')
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'

        def replace_var(match):
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning(f"Environment variable not set: {var_name}")
                if missing is not None:
                    missing.append(var_name)
                return match.group(0)  # Keep original if not found
            return env_value

        return re.sub(pattern, replace_var, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v, missing) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(v, missing) for v in value]

    return value


class DetectionMethod(str, Enum):
    """Latency spike strategies."""
    IQR = 'iqr'
    ZSCORE = 'zscore'
    MANUAL = 'manual'


# camelCase names used on the wire by session settings messages
_SETTINGS_ALIASES = {
    'detectionMethod': 'detection_method',
    'method': 'detection_method',
    'iqrMultiplier': 'iqr_multiplier',
    'zScoreThreshold': 'zscore_threshold',
    'manualLatencyThreshold': 'manual_latency_threshold',
    'manualJitterThreshold': 'manual_jitter_threshold',
    'rollingWindowSize': 'rolling_window_size',
}


@dataclass(frozen=True)
class DetectionSettings:
    """
    Deviation detection settings.

    Values are not coerced here: a malformed method or threshold only
    disables the affected detection axis, see streaming.detector.
    """
    detection_method: str = DetectionMethod.IQR.value
    iqr_multiplier: float = 1.5
    zscore_threshold: float = 2.0
    manual_latency_threshold: Optional[float] = None
    manual_jitter_threshold: Optional[float] = None
    rolling_window_size: int = 100

    @classmethod
    def from_dict(cls, data: dict) -> 'DetectionSettings':
        """Create from snake_case or camelCase keys. Unknown keys are ignored."""
        return cls(**_normalize_settings(data))

    def merged(self, **changes) -> 'DetectionSettings':
        """Return a copy with the given (possibly camelCase) fields replaced."""
        return replace(self, **_normalize_settings(changes))

    def to_dict(self) -> dict:
        return asdict(self)

    def to_wire(self) -> dict:
        return {
            'detectionMethod': self.detection_method,
            'iqrMultiplier': self.iqr_multiplier,
            'zScoreThreshold': self.zscore_threshold,
            'manualLatencyThreshold': self.manual_latency_threshold,
            'manualJitterThreshold': self.manual_jitter_threshold,
            'rollingWindowSize': self.rolling_window_size,
        }

    def validate(self) -> List[str]:
        """Return list of problems (empty if valid)."""
        errors = []
        methods = [m.value for m in DetectionMethod]

        if self.detection_method not in methods:
            errors.append(
                f"Invalid detection method: {self.detection_method!r} (expected one of {methods})"
            )
        if not _is_number(self.iqr_multiplier) or self.iqr_multiplier <= 0:
            errors.append(f"Invalid iqr_multiplier: {self.iqr_multiplier}")
        if not _is_number(self.zscore_threshold) or self.zscore_threshold <= 0:
            errors.append(f"Invalid zscore_threshold: {self.zscore_threshold}")
        if self.manual_latency_threshold is not None and not _is_number(self.manual_latency_threshold):
            errors.append(f"Invalid manual_latency_threshold: {self.manual_latency_threshold}")
        if self.manual_jitter_threshold is not None and not _is_number(self.manual_jitter_threshold):
            errors.append(f"Invalid manual_jitter_threshold: {self.manual_jitter_threshold}")
        if self.detection_method == DetectionMethod.MANUAL.value and self.manual_latency_threshold is None:
            errors.append("Manual detection selected but manual_latency_threshold not set")
        if not isinstance(self.rolling_window_size, int) or self.rolling_window_size <= 0:
            errors.append(f"Invalid rolling_window_size: {self.rolling_window_size}")

        return errors


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _normalize_settings(data: dict) -> dict:
    known = {f.name for f in fields(DetectionSettings)}
    result = {}
    for key, value in data.items():
        key = _SETTINGS_ALIASES.get(key, key)
        if key in known:
            if isinstance(value, Enum):
                value = value.value
            result[key] = value
    return result


@dataclass
class SessionConfig:
    """Probe session metadata."""
    target: str = ''
    interval_ms: int = 100


@dataclass
class ThresholdsConfig:
    """Report status thresholds."""
    loss_rate_warning: float = 1.0  # percent
    loss_rate_error: float = 5.0
    min_grade_ok: str = 'B'


@dataclass
class PingwatchConfig:
    """Root configuration."""

    version: int = 1
    session: SessionConfig = field(default_factory=SessionConfig)
    detection: DetectionSettings = field(default_factory=DetectionSettings)
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)

    # Non-fatal problems found while loading (E3002)
    errors: List[PingwatchError] = field(default_factory=list, compare=False, repr=False)

    @classmethod
    def load(cls, path: Path) -> 'PingwatchConfig':
        """
        Load from YAML file with env var substitution.

        Raises:
            FileNotFoundError: If the file doesn't exist
            PingwatchInputError: If the YAML is malformed or has the wrong shape (E3001)
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise _invalid_config(path, f"YAML parse error: {e}") from e

        if not isinstance(data, dict):
            raise _invalid_config(path, f"expected a mapping, got {type(data).__name__}")

        missing: List[str] = []
        data = _substitute_env_vars(data, missing)

        try:
            config = cls.from_dict(data)
        except (AttributeError, TypeError) as e:
            raise _invalid_config(path, str(e)) from e

        config.errors = [
            PingwatchError(code=ErrorCode.E3002_MISSING_ENV_VAR, context={'variable': name, 'file': str(path)})
            for name in missing
        ]
        logger.info(f"Loaded config from {path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> 'PingwatchConfig':
        """Create from dictionary. Empty sections fall back to defaults."""
        return cls(
            version=data.get('version') or 1,
            session=SessionConfig(**(data.get('session') or {})),
            detection=DetectionSettings.from_dict(data.get('detection') or {}),
            thresholds=ThresholdsConfig(**(data.get('thresholds') or {})),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'version': self.version,
            'session': asdict(self.session),
            'detection': self.detection.to_dict(),
            'thresholds': asdict(self.thresholds),
        }

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Validate config. Returns list of errors (empty if valid)."""
        errors = list(self.detection.validate())

        if not _is_number(self.session.interval_ms) or self.session.interval_ms <= 0:
            errors.append(f"Invalid interval_ms: {self.session.interval_ms}")

        warning, error = self.thresholds.loss_rate_warning, self.thresholds.loss_rate_error
        if not _is_number(warning) or not _is_number(error):
            errors.append(f"Invalid loss rate thresholds: {warning}, {error}")
        elif warning >= error:
            errors.append("loss_rate_warning should be less than loss_rate_error")

        if self.thresholds.min_grade_ok not in ('A', 'B', 'C', 'D', 'F'):
            errors.append(f"Invalid min_grade_ok: {self.thresholds.min_grade_ok}")

        return errors


def load_config(path: Optional[Path] = None) -> PingwatchConfig:
    """Load config from file or return defaults."""
    if path and Path(path).exists():
        return PingwatchConfig.load(path)

    search_paths = [
        Path('./pingwatch.yml'),
        Path('./pingwatch.yaml'),
        Path.home() / '.pingwatch' / 'config.yml',
    ]

    for p in search_paths:
        if p.exists():
            return PingwatchConfig.load(p)

    return PingwatchConfig()


def generate_default_config() -> str:
    """Generate default config as YAML."""
    return """# pingwatch configuration
version: 1

session:
  target: ${PINGWATCH_TARGET}
  interval_ms: 100

detection:
  # iqr | zscore | manual
  method: iqr
  iqr_multiplier: 1.5
  zscore_threshold: 2.0
  manual_latency_threshold: null
  manual_jitter_threshold: null
  rolling_window_size: 100

thresholds:
  loss_rate_warning: 1.0
  loss_rate_error: 5.0
  min_grade_ok: B
"""


def _invalid_config(path: Path, reason: str) -> PingwatchInputError:
    return PingwatchInputError(PingwatchError(
        code=ErrorCode.E3001_INVALID_CONFIG,
        context={'file': str(path), 'reason': reason},
    ))
