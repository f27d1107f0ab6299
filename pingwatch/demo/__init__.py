"""Synthetic sample streams for demos."""

from .sample_generator import (
    LatencyProfile,
    CongestionEpisode,
    ScenarioConfig,
    SampleGenerator,
    SCENARIOS,
    builtin_scenario,
    load_scenario,
)

__all__ = [
    'LatencyProfile',
    'CongestionEpisode',
    'ScenarioConfig',
    'SampleGenerator',
    'SCENARIOS',
    'builtin_scenario',
    'load_scenario',
]
