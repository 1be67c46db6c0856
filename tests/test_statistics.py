"""Tests for summary statistics."""

from __future__ import annotations

import math
import sys
from decimal import Decimal

import pytest

from market_valuer.engine.statistics import calculate_statistics, mode, percentile


class TestCalculateStatistics:
    def test_basic_sample(self) -> None:
        stats = calculate_statistics([10, 20, 30, 40, 50])
        assert stats.min == 10
        assert stats.max == 50
        assert stats.mean == 30
        assert stats.median == 30
        assert stats.q1 == 20
        assert stats.q3 == 40
        assert stats.iqr == 20
        assert stats.variance == pytest.approx(250.0)
        assert stats.standard_deviation == pytest.approx(math.sqrt(250.0))
        assert stats.sample_size == 5

    def test_unsorted_input(self) -> None:
        assert calculate_statistics([50, 10, 40, 20, 30]).median == 30

    def test_empty_sample(self) -> None:
        """Empty input yields zeros rather than NaN."""
        stats = calculate_statistics([])
        assert stats.sample_size == 0
        assert stats.mean == 0
        assert stats.standard_deviation == 0
        assert stats.coefficient_of_variation == 0

    def test_single_value(self) -> None:
        stats = calculate_statistics([42])
        assert stats.mean == 42
        assert stats.median == 42
        assert stats.variance == 0

    def test_decimal_input(self) -> None:
        stats = calculate_statistics([Decimal("10.50"), Decimal("20.50")])
        assert stats.mean == pytest.approx(15.5)

    def test_non_finite_values_dropped(self) -> None:
        stats = calculate_statistics([10, float("nan"), 20, float("inf")])
        assert stats.sample_size == 2
        assert not math.isnan(stats.mean)

    def test_huge_values_do_not_overflow(self) -> None:
        """Moments of extreme finite prices are computed at scale, variance clamped."""
        stats = calculate_statistics([1e200, 1.0])
        assert stats.sample_size == 2
        assert stats.mean == pytest.approx(5e199)
        assert stats.standard_deviation == pytest.approx(math.sqrt(0.5) * 1e200)
        assert stats.variance == sys.float_info.max

    def test_sum_beyond_float_range(self) -> None:
        stats = calculate_statistics([1.5e308, 1.7e308])
        assert stats.mean == pytest.approx(1.6e308)
        assert math.isfinite(stats.standard_deviation)

    def test_outlier_count_carried(self) -> None:
        assert calculate_statistics([1, 2, 3], outlier_count=4).outlier_count == 4

    def test_coefficient_of_variation(self) -> None:
        stats = calculate_statistics([10, 20, 30, 40, 50])
        assert stats.coefficient_of_variation == pytest.approx(math.sqrt(250.0) / 30)


class TestHelpers:
    def test_percentile_rank(self) -> None:
        """index = ceil(p × n) − 1."""
        values = [1, 2, 3, 4, 5, 6, 7, 8]
        assert percentile(values, 0.25) == 2
        assert percentile(values, 0.5) == 4
        assert percentile(values, 0.75) == 6
        assert percentile(values, 0.0) == 1
        assert percentile(values, 1.0) == 8
        assert percentile([], 0.5) == 0

    def test_mode_most_frequent(self) -> None:
        assert mode([10, 20, 20, 30]) == 20

    def test_mode_tie_prefers_smallest(self) -> None:
        assert mode([30, 10, 20]) == 10
        assert mode([]) == 0
