"""Tests for price trend classification."""

from __future__ import annotations

from market_valuer.engine.trends import Trend, Volatility, analyze_price_trends


class TestAnalyzePriceTrends:
    def test_insufficient_data(self) -> None:
        result = analyze_price_trends([10, 20])
        assert result.trend is Trend.STABLE
        assert result.insights == ("Insufficient data for trend analysis",)

    def test_increasing(self) -> None:
        result = analyze_price_trends([10, 11, 12, 13, 14])
        assert result.trend is Trend.INCREASING
        assert result.volatility is Volatility.LOW
        assert any("upward" in insight for insight in result.insights)

    def test_decreasing(self) -> None:
        result = analyze_price_trends([20, 19, 18, 17])
        assert result.trend is Trend.DECREASING

    def test_stable(self) -> None:
        result = analyze_price_trends([10, 10.5, 10])
        assert result.trend is Trend.STABLE
        assert "Stable prices suggest established market value" in result.insights

    def test_volatile(self) -> None:
        result = analyze_price_trends([1, 100, 1, 100, 1])
        assert result.trend is Trend.VOLATILE
        assert result.volatility is Volatility.HIGH

    def test_seasonality(self) -> None:
        """Repeated large swings over six or more points."""
        result = analyze_price_trends([10, 20, 10, 20, 10, 20])
        assert result.seasonality is True
        assert any("Seasonal" in insight for insight in result.insights)

    def test_short_series_not_seasonal(self) -> None:
        assert analyze_price_trends([10, 20, 10]).seasonality is False

    def test_min_sample_size_override(self) -> None:
        result = analyze_price_trends([10, 20], min_sample_size=2)
        assert result.trend is Trend.INCREASING
        assert "Insufficient data for trend analysis" not in result.insights

    def test_high_variance_cv_override(self) -> None:
        """A tighter CV threshold reclassifies a gentle rise as volatile."""
        result = analyze_price_trends([10, 11, 12, 13, 14], high_variance_cv=0.05)
        assert result.trend is Trend.VOLATILE

    def test_extreme_swings_do_not_raise(self) -> None:
        result = analyze_price_trends([1e300, 1e-300, 1e300, 1e-300, 1e300, 1e-300])
        assert result.trend is Trend.VOLATILE
        assert result.seasonality is True
