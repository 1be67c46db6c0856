"""
Market Valuer — Parse Result Validation

Pure data-quality checks over a ParseResult. The caller decides whether to
retry with another query or continue with degraded data.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from market_valuer.config import settings
from market_valuer.errors import ValidationWarning
from market_valuer.parser import ParseResult, ValidationReport

logger = structlog.get_logger(__name__)

NO_ITEMS = "no_items"
NO_VALID_PRICES = "no_valid_prices"
NON_POSITIVE_PRICES = "non_positive_prices"
IMPLAUSIBLE_PRICES = "implausible_prices"
IMPLAUSIBLE_PRICES_EXCLUDED = "implausible_prices_excluded"
NO_SOLD_DATES = "no_sold_dates"
SKIPPED_CARDS = "skipped_cards"


def validate_parsed_results(
    result: ParseResult,
    price_ceiling: float | None = None,
) -> ValidationReport:
    """
    Flag data-quality problems in a parse result.

    Args:
        result: Output of parse_active() or parse_sold().
        price_ceiling: Override for PRICE_SANITY_CEILING.

    Returns:
        ValidationReport with is_valid=False when any warning was raised.
    """
    ceiling = Decimal(str(price_ceiling if price_ceiling is not None else settings.PRICE_SANITY_CEILING))
    prices = result.prices
    warnings: list[ValidationWarning] = []

    if result.count == 0:
        warnings.append(ValidationWarning(code=NO_ITEMS, message="No items found"))

    if not result.positive_prices:
        warnings.append(ValidationWarning(code=NO_VALID_PRICES, message="No valid prices found"))

    if any(p <= 0 for p in prices):
        warnings.append(
            ValidationWarning(code=NON_POSITIVE_PRICES, message="Some prices are invalid (<= 0)")
        )

    if any(p > ceiling for p in prices):
        warnings.append(
            ValidationWarning(
                code=IMPLAUSIBLE_PRICES,
                message=f"Some prices seem unreasonably high (> ${ceiling:,.0f})",
            )
        )

    if result.sold and not result.sold_dates:
        warnings.append(
            ValidationWarning(code=NO_SOLD_DATES, message="No valid dates found for sold items")
        )

    if result.skipped_cards:
        warnings.append(
            ValidationWarning(
                code=SKIPPED_CARDS,
                message=f"{result.skipped_cards} listing cards could not be parsed",
            )
        )

    if warnings:
        logger.warning(
            "parse_validation_issues",
            sold=result.sold,
            issues=[w.code for w in warnings],
            source="listing_validation",
        )

    return ValidationReport(is_valid=not warnings, warnings=tuple(warnings))
