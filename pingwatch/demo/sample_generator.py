"""
Generate realistic synthetic sample streams for demos and tests.

Streams are synthetic but model real home-network behavior:
- Gaussian base latency around a stable mean
- Independent random packet loss
- Congestion episodes that raise latency for a stretch of samples
- Timestamp jitter on the probe interval
"""

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..samples.sample import Sample


@dataclass
class LatencyProfile:
    """Statistical profile for latency generation (ms)."""
    mean: float
    std: float

    def sample(self, rng: random.Random = None) -> float:
        """Sample a latency value (never below 0.1 ms)."""
        r = rng if rng else random
        return max(0.1, r.gauss(self.mean, self.std))


@dataclass
class CongestionEpisode:
    """A stretch of elevated latency starting at a given sample index."""
    start: int
    length: int
    added: LatencyProfile
    loss_rate: float = 0.0


@dataclass
class ScenarioConfig:
    """Configuration for sample generation."""
    sample_count: int = 600
    interval_ms: int = 100
    start_timestamp: int = 1_700_000_000_000
    base: LatencyProfile = field(default_factory=lambda: LatencyProfile(4.0, 0.5))
    loss_rate: float = 0.0
    episodes: List[CongestionEpisode] = field(default_factory=list)


SCENARIOS: Dict[str, Dict[str, Any]] = {
    'stable': {
        'sample_count': 600,
        'base': {'mean': 4.0, 'std': 0.4},
    },
    'congested': {
        'sample_count': 1200,
        'base': {'mean': 6.0, 'std': 1.0},
        'loss_rate': 0.002,
        'episodes': [
            {'start': 200, 'length': 30, 'added': {'mean': 25.0, 'std': 8.0}},
            {'start': 700, 'length': 60, 'added': {'mean': 45.0, 'std': 15.0}, 'loss_rate': 0.1},
        ],
    },
    'lossy': {
        'sample_count': 600,
        'base': {'mean': 12.0, 'std': 3.0},
        'loss_rate': 0.05,
    },
}


def config_from_profile(profile: Dict[str, Any]) -> ScenarioConfig:
    """Create ScenarioConfig from a scenario profile dict."""
    base = profile.get('base', {'mean': 4.0, 'std': 0.5})
    return ScenarioConfig(
        sample_count=profile.get('sample_count', 600),
        interval_ms=profile.get('interval_ms', 100),
        start_timestamp=profile.get('start_timestamp', 1_700_000_000_000),
        base=LatencyProfile(**base),
        loss_rate=profile.get('loss_rate', 0.0),
        episodes=[
            CongestionEpisode(
                start=e['start'],
                length=e['length'],
                added=LatencyProfile(**e['added']),
                loss_rate=e.get('loss_rate', 0.0),
            )
            for e in profile.get('episodes', [])
        ],
    )


def load_scenario(scenario_path: Path) -> ScenarioConfig:
    """Load scenario from YAML file."""
    with open(scenario_path) as f:
        return config_from_profile(yaml.safe_load(f) or {})


def builtin_scenario(name: str) -> ScenarioConfig:
    if name not in SCENARIOS:
        raise ValueError(f"Unknown scenario '{name}' (available: {', '.join(SCENARIOS)})")
    return config_from_profile(SCENARIOS[name])


class SampleGenerator:
    """Seeded generator, identical output for identical seed and config."""

    def __init__(self, seed: int = 42):
        self.seed = seed
        self.rng = random.Random(seed)

    def _episode_at(self, config: ScenarioConfig, index: int) -> Optional[CongestionEpisode]:
        for episode in config.episodes:
            if episode.start <= index < episode.start + episode.length:
                return episode
        return None

    def generate(self, config: ScenarioConfig) -> List[Sample]:
        samples = []
        timestamp = config.start_timestamp

        for i in range(config.sample_count):
            episode = self._episode_at(config, i)
            loss_rate = config.loss_rate + (episode.loss_rate if episode else 0.0)

            if self.rng.random() < loss_rate:
                latency = None
            else:
                latency = config.base.sample(self.rng)
                if episode:
                    latency += max(0.0, episode.added.sample(self.rng))
                latency = round(latency, 3)

            samples.append(Sample(timestamp=timestamp, latency=latency, seq=i + 1))

            step = config.interval_ms + int(self.rng.gauss(0, config.interval_ms * 0.05))
            timestamp += max(1, step)

        return samples
