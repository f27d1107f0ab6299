"""Configuration management for pingwatch."""

from .schema import (
    PingwatchConfig,
    SessionConfig,
    DetectionSettings,
    DetectionMethod,
    ThresholdsConfig,
    load_config,
    generate_default_config,
)

__all__ = [
    'PingwatchConfig',
    'SessionConfig',
    'DetectionSettings',
    'DetectionMethod',
    'ThresholdsConfig',
    'load_config',
    'generate_default_config',
]
