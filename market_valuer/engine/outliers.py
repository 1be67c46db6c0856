"""
Market Valuer — IQR Outlier Filter

bounds = [Q1 − k × IQR, Q3 + k × IQR], k = IQR_MULTIPLIER (1.5)

Samples smaller than MIN_SAMPLE_SIZE are returned unchanged (method "none").
If the filter would drop more than OUTLIER_MAX_REMOVAL_RATIO of the sample,
it is abandoned and the original sample is returned (method "iqr_abandoned").
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

import structlog
from pydantic import BaseModel, ConfigDict

from market_valuer.config import settings
from market_valuer.engine.statistics import as_floats, percentile

logger = structlog.get_logger(__name__)

METHOD_NONE = "none"
METHOD_IQR = "iqr"
METHOD_ABANDONED = "iqr_abandoned"


class OutlierResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    filtered: tuple[float, ...]
    outliers: tuple[float, ...] = ()
    method: str
    lower_bound: float | None = None
    upper_bound: float | None = None

    @property
    def outlier_count(self) -> int:
        return len(self.outliers)


def filter_outliers_smart(
    prices: Iterable[float | Decimal | int],
    multiplier: float | None = None,
    max_removal_ratio: float | None = None,
    min_sample_size: int | None = None,
) -> OutlierResult:
    """
    Remove IQR outliers from a price sample, preserving input order.

    Args:
        prices: Price observations.
        multiplier: Override for IQR_MULTIPLIER.
        max_removal_ratio: Override for OUTLIER_MAX_REMOVAL_RATIO.
        min_sample_size: Override for MIN_SAMPLE_SIZE.
    """
    values = as_floats(prices)
    k = multiplier if multiplier is not None else settings.IQR_MULTIPLIER
    ratio = max_removal_ratio if max_removal_ratio is not None else settings.OUTLIER_MAX_REMOVAL_RATIO
    min_n = min_sample_size if min_sample_size is not None else settings.MIN_SAMPLE_SIZE

    if len(values) < min_n:
        return OutlierResult(filtered=tuple(values), method=METHOD_NONE)

    ordered = sorted(values)
    q1 = percentile(ordered, 0.25)
    q3 = percentile(ordered, 0.75)
    iqr = q3 - q1
    lower = q1 - k * iqr
    upper = q3 + k * iqr

    kept = [v for v in values if lower <= v <= upper]
    outliers = [v for v in values if v < lower or v > upper]

    if len(outliers) / len(values) > ratio:
        logger.info(
            "outlier_filter_abandoned",
            sample_size=len(values),
            would_remove=len(outliers),
            max_removal_ratio=ratio,
            source="outliers",
        )
        return OutlierResult(
            filtered=tuple(values),
            method=METHOD_ABANDONED,
            lower_bound=lower,
            upper_bound=upper,
        )

    logger.debug(
        "outliers_filtered",
        sample_size=len(values),
        removed=len(outliers),
        lower_bound=round(lower, 4),
        upper_bound=round(upper, 4),
        source="outliers",
    )
    return OutlierResult(
        filtered=tuple(kept),
        outliers=tuple(outliers),
        method=METHOD_IQR,
        lower_bound=lower,
        upper_bound=upper,
    )
