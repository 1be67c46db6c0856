"""Tests for the weighted market-value calculation."""

from __future__ import annotations

import math

import pytest

from market_valuer.config import Methodology
from market_valuer.engine.market_value import calculate_weighted_market_value

STEADY = [40, 42, 45, 48, 50, 55]


class TestNoData:
    def test_empty_sample(self) -> None:
        result = calculate_weighted_market_value([])
        assert result.value == 0
        assert result.confidence == 0
        assert result.methodology == Methodology.NO_DATA.value
        assert result.statistics.sample_size == 0


class TestSmallSample:
    def test_two_prices_use_mean(self) -> None:
        result = calculate_weighted_market_value([10, 20])
        assert result.value == 15.0
        assert result.confidence == 0.6
        assert result.methodology == "simple average (small sample)"

    def test_single_price(self) -> None:
        result = calculate_weighted_market_value([25])
        assert result.value == 25.0
        assert result.confidence == 0.4


class TestHighVariance:
    def test_median_used(self) -> None:
        """A CV above 0.8 falls back to the median."""
        result = calculate_weighted_market_value([1, 1, 1, 100, 200])
        assert result.methodology == Methodology.HIGH_VARIANCE.value
        assert result.value == 1.0
        assert result.confidence == 0.7

    def test_threshold_override(self) -> None:
        result = calculate_weighted_market_value([1, 1, 1, 100, 200], high_variance_cv=5.0)
        assert result.methodology == Methodology.WEIGHTED.value


class TestWeighted:
    def test_weighted_combination(self) -> None:
        """0.4 × median + 0.3 × mean + 0.2 × mode + 0.1 × mean (no recent sales)."""
        result = calculate_weighted_market_value(STEADY)
        mean = sum(STEADY) / len(STEADY)
        expected = 0.4 * 45 + 0.3 * mean + 0.2 * 40 + 0.1 * mean
        assert result.methodology == Methodology.WEIGHTED.value
        assert result.value == round(expected, 2)
        assert result.confidence == 0.69

    def test_recent_sales_weighted(self) -> None:
        result = calculate_weighted_market_value(STEADY, recent_prices=[50])
        mean = sum(STEADY) / len(STEADY)
        assert result.value == round(0.4 * 45 + 0.3 * mean + 0.2 * 40 + 0.1 * 50, 2)

    def test_custom_weights(self) -> None:
        result = calculate_weighted_market_value(STEADY, weights=(1.0, 0.0, 0.0, 0.0))
        assert result.value == 45.0

    def test_confidence_capped(self) -> None:
        result = calculate_weighted_market_value([10.0] * 40)
        assert result.value == 10.0
        assert result.confidence == 0.95

    def test_outlier_count_reported(self) -> None:
        result = calculate_weighted_market_value(STEADY, outlier_count=1)
        assert result.statistics.outlier_count == 1


class TestNumericSafety:
    def test_no_nan_in_results(self) -> None:
        result = calculate_weighted_market_value([10, float("nan"), 12, 14])
        assert math.isfinite(result.value)
        assert math.isfinite(result.confidence)
        assert result.statistics.sample_size == 3

    @pytest.mark.parametrize(
        "prices",
        [[5], [5, 6], [1, 1, 1, 100, 200], STEADY, [10.0] * 40],
    )
    def test_confidence_in_unit_interval(self, prices: list[float]) -> None:
        result = calculate_weighted_market_value(prices)
        assert 0.0 <= result.confidence <= 1.0

    @pytest.mark.parametrize(
        "prices",
        [
            [1e200, 1.0],
            [1e300, 1e300, 1e300, 1.0],
            [1e307, 2e307, 3e307, 4e307],
        ],
    )
    def test_huge_prices_stay_finite(self, prices: list[float]) -> None:
        """Extreme but finite prices degrade to finite results instead of raising."""
        result = calculate_weighted_market_value(prices)
        stats = result.statistics

        assert math.isfinite(result.value)
        assert math.isfinite(result.confidence)
        assert all(
            math.isfinite(v)
            for v in (stats.mean, stats.standard_deviation, stats.variance, stats.iqr)
        )
        assert math.isfinite(stats.coefficient_of_variation)

    def test_huge_recent_prices_stay_finite(self) -> None:
        result = calculate_weighted_market_value(
            [1e307, 1.1e307, 1.2e307], recent_prices=[1.5e308, 1.6e308]
        )
        assert result.methodology == Methodology.WEIGHTED.value
        assert math.isfinite(result.value)
