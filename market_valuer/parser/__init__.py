"""Market Valuer — Listing Parser"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from market_valuer.config import settings
from market_valuer.errors import ValidationWarning


class Listing(BaseModel):
    """One marketplace listing card. Produced only by the parser."""

    model_config = ConfigDict(frozen=True)

    title: str
    price: Decimal
    shipping: Decimal = Decimal("0")
    location: str = "Unknown"
    condition: str = "Unknown"
    sold_date: datetime | None = None


class ParseOptions(BaseModel):
    sold_window_days: int = Field(default_factory=lambda: settings.SOLD_WINDOW_DAYS, ge=0)
    min_price: Decimal | None = None
    max_price: Decimal | None = None


class ParseResult(BaseModel):
    """Listings recovered from one results page."""

    model_config = ConfigDict(frozen=True)

    sold: bool = False
    count: int = 0
    listings: tuple[Listing, ...] = ()
    total_results: int | None = None
    skipped_cards: int = 0

    @property
    def prices(self) -> list[Decimal]:
        return [listing.price for listing in self.listings]

    @property
    def positive_prices(self) -> list[Decimal]:
        return [listing.price for listing in self.listings if listing.price > 0]

    @property
    def sold_dates(self) -> list[datetime]:
        return [listing.sold_date for listing in self.listings if listing.sold_date is not None]

    @property
    def median_price(self) -> Decimal:
        prices = sorted(self.positive_prices)
        if not prices:
            return Decimal("0")
        mid = len(prices) // 2
        if len(prices) % 2 == 0:
            return (prices[mid - 1] + prices[mid]) / 2
        return prices[mid]


class ValidationReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    warnings: tuple[ValidationWarning, ...] = ()

    @property
    def issues(self) -> list[str]:
        return [w.message for w in self.warnings]
