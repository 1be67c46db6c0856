"""
Market Valuer — Price Trend Analysis

Classifies a chronologically ordered price series:

    |                       | trend      |
    |:----------------------|:-----------|
    | CV > HIGH_VARIANCE_CV | VOLATILE   |
    | last > first × 1.1    | INCREASING |
    | last < first × 0.9    | DECREASING |
    | otherwise             | STABLE     |

Volatility: CV < 0.3 low, CV < 0.6 medium, else high.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field

from market_valuer.config import settings
from market_valuer.engine.statistics import as_floats, calculate_statistics

logger = structlog.get_logger(__name__)


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    VOLATILE = "volatile"


class Volatility(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PriceTrend(BaseModel):
    model_config = ConfigDict(frozen=True)

    trend: Trend = Trend.STABLE
    volatility: Volatility = Volatility.LOW
    seasonality: bool = False
    insights: tuple[str, ...] = Field(default_factory=tuple)


def analyze_price_trends(
    prices: Iterable[float | Decimal | int],
    min_sample_size: int | None = None,
    high_variance_cv: float | None = None,
) -> PriceTrend:
    """
    Trend, volatility and insights for prices ordered oldest first.

    Fewer than MIN_SAMPLE_SIZE prices -> stable/low with an
    "Insufficient data" insight. Both thresholds fall back to settings.
    """
    min_n = min_sample_size if min_sample_size is not None else settings.MIN_SAMPLE_SIZE
    cv_threshold = high_variance_cv if high_variance_cv is not None else settings.HIGH_VARIANCE_CV

    values = as_floats(prices)
    if len(values) < min_n:
        return PriceTrend(insights=("Insufficient data for trend analysis",))

    cv = calculate_statistics(values).coefficient_of_variation

    if cv > cv_threshold:
        trend = Trend.VOLATILE
    elif values[-1] > values[0] * 1.1:
        trend = Trend.INCREASING
    elif values[-1] < values[0] * 0.9:
        trend = Trend.DECREASING
    else:
        trend = Trend.STABLE

    if cv < 0.3:
        volatility = Volatility.LOW
    elif cv < 0.6:
        volatility = Volatility.MEDIUM
    else:
        volatility = Volatility.HIGH

    # Large step-to-step swings across a long enough series
    seasonality = False
    if len(values) >= 6:
        steps = [abs(b - a) / a for a, b in zip(values, values[1:]) if a > 0]
        seasonality = bool(steps) and sum(steps) / len(steps) > 0.2

    insights: list[str] = []
    if trend is Trend.INCREASING:
        insights.append("Prices showing upward trend - consider holding for appreciation")
    elif trend is Trend.DECREASING:
        insights.append("Prices declining - good time to buy, but monitor for further drops")
    elif trend is Trend.VOLATILE:
        insights.append("High price volatility - consider dollar-cost averaging approach")

    if volatility is Volatility.HIGH:
        insights.append("High price volatility indicates market uncertainty")
    elif volatility is Volatility.LOW:
        insights.append("Stable prices suggest established market value")

    if seasonality:
        insights.append("Seasonal price patterns detected - timing may affect value")

    logger.debug(
        "price_trend_classified",
        trend=trend.value,
        volatility=volatility.value,
        cv=round(cv, 4),
        data_points=len(values),
        source="trends",
    )
    return PriceTrend(
        trend=trend,
        volatility=volatility,
        seasonality=seasonality,
        insights=tuple(insights),
    )
