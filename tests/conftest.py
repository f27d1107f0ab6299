"""Pytest fixtures shared across the pingwatch test suite."""

from typing import List, Optional, Sequence

import pytest

from pingwatch.samples import Sample
from pingwatch.streaming import RollingStats


def make_samples(
    latencies: Sequence[Optional[float]],
    start: int = 1_000,
    interval: int = 100,
) -> List[Sample]:
    """Samples at a fixed interval; None entries are losses."""
    return [
        Sample(timestamp=start + i * interval, latency=latency, seq=i + 1)
        for i, latency in enumerate(latencies)
    ]


def make_stats(**overrides) -> RollingStats:
    """RollingStats past the warm-up gate unless overridden."""
    values = {'sample_count': 20}
    values.update(overrides)
    return RollingStats(**values)


@pytest.fixture
def steady_samples() -> List[Sample]:
    """Fifty 4 ms samples, no loss."""
    return make_samples([4.0] * 50)


@pytest.fixture
def stable_csv(tmp_path):
    """CSV sample file for a clean, grade-A session."""
    path = tmp_path / 'stable.csv'
    lines = ['timestamp,latency,seq']
    for i in range(50):
        lines.append(f"{1_000 + i * 100},{4.0 + (i % 3) * 0.5},{i + 1}")
    path.write_text('\n'.join(lines) + '\n')
    return path
