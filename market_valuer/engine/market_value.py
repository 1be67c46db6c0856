"""
Market Valuer — Weighted Market Value

Regimes:
    n < MIN_SAMPLE_SIZE      value = mean
                             confidence = max(0.3, 0.8 − (3 − n) × 0.2)
    CV > HIGH_VARIANCE_CV    value = median, confidence = 0.7
    otherwise                value = 0.4 × median + 0.3 × mean
                                   + 0.2 × mode + 0.1 × recent_average
                             confidence = min(0.95, 0.6 + (n / 20) × 0.3)

recent_average is the mean of recent sale prices, falling back to the
overall mean. The weights and the CV threshold are tunable defaults.
A value beyond the float range is clamped rather than raised.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

import structlog
from pydantic import BaseModel, ConfigDict

from market_valuer.config import Methodology, settings
from market_valuer.engine.statistics import (
    Statistics,
    as_floats,
    calculate_statistics,
    clamp_finite,
)

logger = structlog.get_logger(__name__)


class MarketValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    confidence: float
    methodology: str
    statistics: Statistics


def _small_sample_confidence(n: int, min_sample_size: int) -> float:
    return max(0.3, 0.8 - (min_sample_size - n) * 0.2)


def _weighted_confidence(n: int) -> float:
    return min(0.95, 0.6 + (n / 20) * 0.3)


def calculate_weighted_market_value(
    prices: Iterable[float | Decimal | int],
    recent_prices: Iterable[float | Decimal | int] | None = None,
    weights: tuple[float, float, float, float] | None = None,
    high_variance_cv: float | None = None,
    min_sample_size: int | None = None,
    outlier_count: int = 0,
) -> MarketValue:
    """
    Reduce a (filtered) price sample to a single market value.

    Args:
        prices: Price sample, normally already outlier-filtered.
        recent_prices: Prices of sales inside the recent window.
        weights: (median, mean, mode, recent) weights. Defaults from settings.
        high_variance_cv: Override for HIGH_VARIANCE_CV.
        min_sample_size: Override for MIN_SAMPLE_SIZE.
        outlier_count: Carried into the returned statistics.

    Returns:
        MarketValue with value and confidence rounded to 2 dp.
    """
    stats = calculate_statistics(prices, outlier_count=outlier_count)
    n = stats.sample_size
    min_n = min_sample_size if min_sample_size is not None else settings.MIN_SAMPLE_SIZE
    cv_threshold = high_variance_cv if high_variance_cv is not None else settings.HIGH_VARIANCE_CV

    if n == 0:
        return MarketValue(
            value=0.0,
            confidence=0.0,
            methodology=Methodology.NO_DATA.value,
            statistics=stats,
        )

    if n < min_n:
        value = stats.mean
        confidence = _small_sample_confidence(n, min_n)
        methodology = Methodology.SMALL_SAMPLE
    elif stats.coefficient_of_variation > cv_threshold:
        value = stats.median
        confidence = 0.7
        methodology = Methodology.HIGH_VARIANCE
    else:
        w_median, w_mean, w_mode, w_recent = weights or (
            settings.WEIGHT_MEDIAN,
            settings.WEIGHT_MEAN,
            settings.WEIGHT_MODE,
            settings.WEIGHT_RECENT,
        )
        recent = as_floats(recent_prices or [])
        recent_average = calculate_statistics(recent).mean if recent else stats.mean
        value = clamp_finite(
            stats.median * w_median
            + stats.mean * w_mean
            + stats.mode * w_mode
            + recent_average * w_recent
        )
        confidence = _weighted_confidence(n)
        methodology = Methodology.WEIGHTED

    result = MarketValue(
        value=round(value, 2),
        confidence=round(max(0.0, min(1.0, confidence)), 2),
        methodology=methodology.value,
        statistics=stats,
    )
    logger.debug(
        "market_value_calculated",
        value=result.value,
        confidence=result.confidence,
        methodology=result.methodology,
        sample_size=n,
        cv=round(stats.coefficient_of_variation, 4),
        source="market_value",
    )
    return result
