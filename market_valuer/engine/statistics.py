"""
Market Valuer — Summary Statistics

Quartiles and median use rank interpolation on the sorted sample:
    index = ceil(p × n) − 1, clamped to [0, n − 1]

Mode is the most frequent value (ties -> smallest value). Standard
deviation and variance are sample statistics (n − 1 denominator).
Empty input yields an all-zero result.

When huge finite prices overflow the direct computation, the moments are
recomputed on values scaled by the largest magnitude. A result that still
exceeds the float range is clamped to ±sys.float_info.max.
"""

from __future__ import annotations

import math
import sys
from collections import Counter
from decimal import Decimal
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict


class Statistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    mode: float = 0.0
    standard_deviation: float = 0.0
    variance: float = 0.0
    q1: float = 0.0
    q3: float = 0.0
    iqr: float = 0.0
    outlier_count: int = 0
    sample_size: int = 0

    @property
    def coefficient_of_variation(self) -> float:
        if self.mean == 0:
            return 0.0
        return self.standard_deviation / self.mean


def as_floats(prices: Iterable[float | Decimal | int]) -> list[float]:
    """Convert to floats, dropping NaN and infinite values."""
    values: list[float] = []
    for price in prices:
        value = float(price)
        if math.isfinite(value):
            values.append(value)
    return values


def clamp_finite(value: float) -> float:
    """Clamp an overflowed result back into the representable float range."""
    if math.isfinite(value):
        return value
    if math.isnan(value):
        return 0.0
    return math.copysign(sys.float_info.max, value)


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Rank-interpolated percentile of an ascending sequence (0 when empty)."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = math.ceil(p * n) - 1
    index = max(0, min(n - 1, index))
    return sorted_values[index]


def mode(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    counts = Counter(values)
    best = max(counts.values())
    return min(value for value, count in counts.items() if count == best)


def _moments(values: Sequence[float]) -> tuple[float, float, float]:
    """(mean, standard deviation, variance) of a non-empty sample."""
    n = len(values)
    try:
        mean = math.fsum(values) / n
        variance = math.fsum((v - mean) ** 2 for v in values) / (n - 1) if n > 1 else 0.0
        return mean, clamp_finite(math.sqrt(variance)), clamp_finite(variance)
    except OverflowError:
        return _scaled_moments(values)


def _scaled_moments(values: Sequence[float]) -> tuple[float, float, float]:
    # values is sorted, so the largest magnitude sits at one end
    n = len(values)
    scale = max(abs(values[0]), abs(values[-1]))
    scaled = [v / scale for v in values]
    scaled_mean = math.fsum(scaled) / n
    scaled_variance = (
        math.fsum((v - scaled_mean) ** 2 for v in scaled) / (n - 1) if n > 1 else 0.0
    )
    return (
        clamp_finite(scaled_mean * scale),
        clamp_finite(math.sqrt(scaled_variance) * scale),
        clamp_finite(scaled_variance * scale * scale),
    )


def calculate_statistics(
    prices: Iterable[float | Decimal | int],
    outlier_count: int = 0,
) -> Statistics:
    """
    Summary statistics over a price sample.

    Args:
        prices: Price observations (any order).
        outlier_count: Number of outliers removed upstream, carried through.

    Returns:
        Statistics. sample_size equals the number of finite prices used.
    """
    values = sorted(as_floats(prices))
    n = len(values)
    if n == 0:
        return Statistics(outlier_count=outlier_count)

    mean, standard_deviation, variance = _moments(values)
    q1 = percentile(values, 0.25)
    q3 = percentile(values, 0.75)

    return Statistics(
        min=values[0],
        max=values[-1],
        mean=mean,
        median=percentile(values, 0.5),
        mode=mode(values),
        standard_deviation=standard_deviation,
        variance=variance,
        q1=q1,
        q3=q3,
        iqr=clamp_finite(q3 - q1),
        outlier_count=outlier_count,
        sample_size=n,
    )
