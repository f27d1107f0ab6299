"""
Tests for rolling window statistics.

CRITICAL TESTS:
1. test_reference_window - nearest-rank selection must match exactly
2. test_loss_resets_jitter - no jitter delta across a lost sample
3. test_order_invariants - quartile and percentile ordering always holds
"""

import math
import random

import pytest

from pingwatch.streaming.rolling_window import RollingWindowEngine, RollingStats
from pingwatch.streaming.quantiles import nearest_rank, median_sorted, rank_index


class TestQuantileHelpers:
    """Test nearest-rank helpers."""

    def test_rank_index_floor(self):
        """Index is floor(n * p)."""
        assert rank_index(5, 0.25) == 1
        assert rank_index(5, 0.75) == 3
        assert rank_index(5, 0.95) == 4

    def test_rank_index_clamped(self):
        """Index never exceeds n - 1."""
        assert rank_index(1, 0.99) == 0
        assert rank_index(100, 0.999) == 99

    def test_nearest_rank_empty(self):
        assert nearest_rank([], 0.95) == 0.0

    def test_median_even(self):
        """Even n averages the two middle elements."""
        assert median_sorted([1, 2, 3, 4]) == 2.5

    def test_median_odd(self):
        assert median_sorted([1, 2, 9]) == 2


class TestEmptyWindow:
    """Test behavior with no successful samples."""

    def test_all_zero(self):
        """Empty window yields zeros, never NaN."""
        engine = RollingWindowEngine(window_size=10)
        stats = engine.stats()

        assert stats == RollingStats()
        assert stats.sample_count == 0
        assert not math.isnan(stats.mean)

    def test_only_losses(self):
        """Losses never occupy a slot."""
        engine = RollingWindowEngine(window_size=10)
        for _ in range(5):
            stats = engine.update(None)

        assert stats.sample_count == 0
        assert stats.mean == 0.0


class TestStatistics:
    """Test statistic computation."""

    def test_reference_window(self):
        """Window [10,20,30,40,50] matches the nearest-rank reference values."""
        engine = RollingWindowEngine(window_size=10)
        for latency in [10, 20, 30, 40, 50]:
            stats = engine.update(latency)

        assert stats.sample_count == 5
        assert stats.median == 30
        assert stats.q1 == 20
        assert stats.q3 == 40
        assert stats.iqr == 20
        assert stats.p95 == 50
        assert stats.p99 == 50
        assert stats.min == 10
        assert stats.max == 50
        assert stats.mean == 30

    def test_population_stddev(self):
        """Standard deviation divides by n, not n - 1."""
        engine = RollingWindowEngine(window_size=10)
        for latency in [10, 20, 30, 40, 50]:
            stats = engine.update(latency)

        assert stats.std_dev == pytest.approx(math.sqrt(200))

    def test_jitter_is_mean_delta(self):
        """Jitter is the mean absolute difference of consecutive samples."""
        engine = RollingWindowEngine(window_size=10)
        for latency in [10, 14, 12, 20]:
            stats = engine.update(latency)

        # deltas 4, 2, 8
        assert stats.jitter == pytest.approx(14 / 3)

    def test_unsorted_input(self):
        """Statistics do not depend on arrival order of the values."""
        engine = RollingWindowEngine(window_size=10)
        for latency in [50, 10, 40, 20, 30]:
            stats = engine.update(latency)

        assert stats.median == 30
        assert stats.q1 == 20
        assert stats.q3 == 40

    def test_packet_loss_rate_left_to_caller(self):
        """The window is loss-blind; loss rate is filled in by the session."""
        engine = RollingWindowEngine(window_size=10)
        engine.update(5.0)
        stats = engine.update(None)

        assert stats.packet_loss_rate == 0.0
        assert stats.with_packet_loss_rate(50.0).packet_loss_rate == 50.0


class TestLossHandling:
    """Test loss behavior."""

    def test_loss_excluded_from_stats(self):
        """A loss does not contribute a latency."""
        engine = RollingWindowEngine(window_size=10)
        engine.update(10)
        engine.update(None)
        stats = engine.update(20)

        assert stats.sample_count == 2
        assert stats.mean == 15

    def test_loss_resets_jitter(self):
        """
        CRITICAL TEST: jitter is never computed across a loss.

        10 -> loss -> 20 must not produce a 10 ms delta.
        """
        engine = RollingWindowEngine(window_size=10)
        engine.update(10)
        engine.update(None)
        stats = engine.update(20)

        assert stats.jitter == 0.0
        assert engine.last_latency == 20

    def test_loss_clears_last_latency(self):
        engine = RollingWindowEngine(window_size=10)
        engine.update(10)
        engine.update(None)

        assert engine.last_latency is None


class TestEviction:
    """Test window bounds."""

    def test_oldest_evicted(self):
        """Only the last window_size latencies are kept."""
        engine = RollingWindowEngine(window_size=3)
        for latency in [0, 10, 12, 15, 16]:
            stats = engine.update(latency)

        assert list(engine.latencies) == [12, 15, 16]
        assert stats.min == 12

    def test_deltas_bounded(self):
        """Jitter deltas are trimmed to the same bound."""
        engine = RollingWindowEngine(window_size=3)
        for latency in [0, 10, 12, 15, 16]:
            stats = engine.update(latency)

        # deltas 10, 2, 3, 1 -> last three 2, 3, 1
        assert list(engine.deltas) == [2, 3, 1]
        assert stats.jitter == pytest.approx(2.0)

    def test_resize_shrinks(self):
        """Shrinking drops the oldest entries and keeps the rest."""
        engine = RollingWindowEngine(window_size=5)
        for latency in [1, 2, 3, 4, 5]:
            engine.update(latency)

        engine.resize(2)

        assert list(engine.latencies) == [4, 5]
        assert engine.last_latency == 5

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            RollingWindowEngine(window_size=0)

    def test_reset(self):
        engine = RollingWindowEngine(window_size=5)
        engine.update(3)
        engine.reset()

        assert engine.sample_count == 0
        assert engine.last_latency is None


class TestInvariants:
    """Test ordering properties on random data."""

    @pytest.mark.parametrize("seed", [1, 7, 42, 1234])
    def test_order_invariants(self, seed):
        """q1 <= median <= q3 and min <= p95 <= p99 <= max for every update."""
        rng = random.Random(seed)
        engine = RollingWindowEngine(window_size=rng.randint(1, 60))

        for _ in range(300):
            latency = None if rng.random() < 0.05 else rng.lognormvariate(1.5, 0.6)
            stats = engine.update(latency)
            if stats.sample_count == 0:
                continue
            assert stats.q1 <= stats.median <= stats.q3
            assert stats.min <= stats.p95 <= stats.p99 <= stats.max
            assert stats.sample_count <= engine.window_size


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
