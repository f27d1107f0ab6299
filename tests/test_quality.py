"""Tests for the session quality grade."""

import pytest

from pingwatch.analysis import NO_DATA_SUMMARY, QualityGrade, assess_quality, grade_for, percentage_at
from pingwatch.analysis.session import compute_threshold_counts


class TestGradeCascade:
    """Test the first-match grade cascade."""

    @pytest.mark.parametrize('pct10,pct20,p95,expected', [
        (0.5, 0.0, 8.0, QualityGrade.A),
        (0.5, 0.0, 10.0, QualityGrade.B),
        (2.0, 0.5, 12.0, QualityGrade.B),
        (4.0, 2.0, 30.0, QualityGrade.C),
        (8.0, 0.5, 30.0, QualityGrade.C),
        (8.0, 2.0, 30.0, QualityGrade.D),
        (15.0, 2.0, 30.0, QualityGrade.D),
        (15.0, 5.0, 30.0, QualityGrade.F),
    ])
    def test_cascade(self, pct10, pct20, p95, expected):
        assert grade_for(pct10, pct20, p95) == expected

    def test_rank_order(self):
        ranks = [g.rank for g in QualityGrade]
        assert ranks == [0, 1, 2, 3, 4]
        assert QualityGrade.F.rank > QualityGrade.B.rank


class TestAssessQuality:
    """Test grade plus summary text."""

    def test_no_data(self):
        assessment = assess_quality(0.0, compute_threshold_counts([]), sample_count=0)

        assert assessment.grade == QualityGrade.F
        assert assessment.summary == NO_DATA_SUMMARY

    def test_excellent_summary(self):
        thresholds = compute_threshold_counts([4.0] * 100)
        assessment = assess_quality(4.0, thresholds, sample_count=100)

        assert assessment.grade == QualityGrade.A
        assert assessment.summary == (
            "Excellent for game streaming. 100.0% of samples under 10ms. P95: 4.0ms."
        )

    def test_poor_summary(self):
        thresholds = compute_threshold_counts([60.0] * 10)
        assessment = assess_quality(60.0, thresholds, sample_count=10)

        assert assessment.grade == QualityGrade.F
        assert "100.0% of samples >=10ms" in assessment.summary
        assert "100.0% >=50ms" in assessment.summary

    def test_d_summary_mentions_20ms(self):
        # 10% >= 10 ms, 2% >= 20 ms
        thresholds = compute_threshold_counts([4.0] * 90 + [12.0] * 8 + [25.0] * 2)
        assessment = assess_quality(12.0, thresholds, sample_count=100)

        assert assessment.grade == QualityGrade.D
        assert "10.0% of samples >=10ms" in assessment.summary
        assert "2.0% >=20ms" in assessment.summary


class TestPercentageAt:
    """Test the tail-risk lookup shared by the grade and SessionAnalysis."""

    def test_known_levels(self):
        thresholds = compute_threshold_counts([4.0] * 90 + [12.0] * 8 + [25.0] * 2)

        assert percentage_at(thresholds, 10) == 10.0
        assert percentage_at(thresholds, 20) == 2.0
        assert percentage_at(thresholds, 50) == 0.0

    def test_unknown_level_is_zero(self):
        thresholds = compute_threshold_counts([60.0] * 10)

        assert percentage_at(thresholds, 15) == 0.0
        assert percentage_at((), 10) == 0.0
