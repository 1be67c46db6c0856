"""
Market Valuer — Valuation Orchestrator

Per item:
    1. Generate search queries; the top-ranked query drives both fetches.
    2. Fetch + parse active and sold listings concurrently (joined before stats).
    3. Pool positive prices up to PRICE_SANITY_CEILING and run the IQR
       outlier filter over the pool.
    4. Weighted market value + statistics over the filtered pool.
    5. Assemble a MarketValueResult with deep links.

State progression:
    INIT → QUERIES_GENERATED → FETCHING → PARSED → STATISTICS_COMPUTED → RESULT_READY

A failed sub-fetch contributes an empty listing set. With no usable prices
the result is value=0, confidence=0, methodology="No data available".
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

import structlog
from pydantic import BaseModel, ConfigDict

from market_valuer.config import ValuationState, settings
from market_valuer.engine.market_value import calculate_weighted_market_value
from market_valuer.engine.outliers import METHOD_IQR, OutlierResult, filter_outliers_smart
from market_valuer.engine.statistics import Statistics
from market_valuer.engine.trends import PriceTrend, analyze_price_trends
from market_valuer.errors import ValidationWarning
from market_valuer.parser import ParseOptions, ParseResult
from market_valuer.parser.listings import parse_active, parse_sold
from market_valuer.parser.validation import IMPLAUSIBLE_PRICES_EXCLUDED, validate_parsed_results
from market_valuer.pipeline.deep_link import SearchLinks, build_search_links, build_search_url
from market_valuer.pipeline.queries import generate_queries
from market_valuer.scraper import ScrapeOptions
from market_valuer.scraper.client import ResilientScraperClient

logger = structlog.get_logger(__name__)


class MarketValueResult(BaseModel):
    """Final valuation artifact. Plain and serialisable; never persisted here."""

    model_config = ConfigDict(frozen=True)

    item_name: str
    value: float
    confidence: float
    methodology: str
    statistics: Statistics
    outlier_filtered: bool
    outlier_method: str
    sold_window_days: int
    search_urls: SearchLinks
    query: str
    timestamp: datetime

    active_count: int = 0
    sold_count: int = 0
    median_active_price: float = 0.0
    median_sold_price: float = 0.0
    active_prices: tuple[float, ...] = ()
    sold_prices: tuple[float, ...] = ()
    sold_dates: tuple[datetime, ...] = ()
    blocking_detected: bool = False
    warnings: tuple[ValidationWarning, ...] = ()
    trend: PriceTrend = PriceTrend()


class _PageFetch(BaseModel):
    parsed: ParseResult
    warnings: tuple[ValidationWarning, ...] = ()
    blocked: bool = False


def _median(values: list[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def _kept(value: float, outliers: OutlierResult) -> bool:
    if outliers.method != METHOD_IQR:
        return True
    assert outliers.lower_bound is not None and outliers.upper_bound is not None
    return outliers.lower_bound <= value <= outliers.upper_bound


class ValuationOrchestrator:
    """
    Composes query generation, scraping, parsing and statistics per item.

    Usage:
        async with ValuationOrchestrator() as orchestrator:
            result = await orchestrator.get_market_value("lego 75257")

    Raises:
        ConfigurationError: at construction when no scraper is injected and
            SCRAPER_API_KEY is missing.
    """

    def __init__(
        self,
        scraper: ResilientScraperClient | None = None,
        scrape_options: ScrapeOptions | None = None,
        query_fallback_limit: int | None = None,
        recent_sales_days: int | None = None,
        price_ceiling: float | None = None,
        min_sample_size: int | None = None,
        high_variance_cv: float | None = None,
    ) -> None:
        self._owns_scraper = scraper is None
        self._scraper = scraper if scraper is not None else ResilientScraperClient()
        self._scrape_options = scrape_options
        self._query_fallback_limit = (
            query_fallback_limit if query_fallback_limit is not None else settings.QUERY_FALLBACK_LIMIT
        )
        self._recent_sales_days = (
            recent_sales_days if recent_sales_days is not None else settings.RECENT_SALES_DAYS
        )
        self._price_ceiling = price_ceiling if price_ceiling is not None else settings.PRICE_SANITY_CEILING
        self._min_sample_size = min_sample_size
        self._high_variance_cv = high_variance_cv

    async def __aenter__(self) -> ValuationOrchestrator:
        if self._owns_scraper:
            await self._scraper.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._owns_scraper:
            await self._scraper.aclose()

    @property
    def scraper(self) -> ResilientScraperClient:
        return self._scraper

    async def get_market_value(
        self,
        item_name: str,
        sold_window_days: int | None = None,
        category_hint: str | None = None,
    ) -> MarketValueResult:
        """
        Value one item from marketplace listings.

        Args:
            item_name: Item to value, e.g. "lego 75257".
            sold_window_days: Sold-listing window (default SOLD_WINDOW_DAYS).
                Negative values are clamped to 0.
            category_hint: Optional category used for query variants.

        Returns:
            MarketValueResult. Never raises for data-quality reasons.
        """
        window = sold_window_days if sold_window_days is not None else settings.SOLD_WINDOW_DAYS
        window = max(0, window)
        now = datetime.now(timezone.utc)
        self._advance(ValuationState.INIT, item_name)

        queries = generate_queries(item_name, category_hint)
        self._advance(ValuationState.QUERIES_GENERATED, item_name, queries=queries)

        candidates = queries[: 1 + max(0, self._query_fallback_limit)]
        query = candidates[0]
        active = sold = _PageFetch(parsed=ParseResult())
        for query in candidates:
            self._advance(ValuationState.FETCHING, item_name, query=query)
            active, sold = await asyncio.gather(
                self._fetch_page(query, sold=False, window=window, now=now),
                self._fetch_page(query, sold=True, window=window, now=now),
            )
            if active.parsed.positive_prices or sold.parsed.positive_prices:
                break
            logger.info(
                "valuation_query_yielded_no_prices",
                item_name=item_name,
                query=query,
                source="valuation",
            )

        self._advance(
            ValuationState.PARSED,
            item_name,
            active_count=active.parsed.count,
            sold_count=sold.parsed.count,
        )

        ceiling = Decimal(str(self._price_ceiling))
        active_pool = active.parsed.positive_prices
        sold_pool = [listing for listing in sold.parsed.listings if listing.price > 0]
        active_prices = [float(p) for p in active_pool if p <= ceiling]
        sold_listings = [listing for listing in sold_pool if listing.price <= ceiling]
        sold_prices = [float(listing.price) for listing in sold_listings]

        excluded: tuple[ValidationWarning, ...] = ()
        excluded_count = (
            len(active_pool) - len(active_prices) + len(sold_pool) - len(sold_listings)
        )
        if excluded_count:
            logger.warning(
                "valuation_prices_above_ceiling",
                item_name=item_name,
                excluded=excluded_count,
                ceiling=self._price_ceiling,
                source="valuation",
            )
            excluded = (
                ValidationWarning(
                    code=IMPLAUSIBLE_PRICES_EXCLUDED,
                    message=(
                        f"{excluded_count} price(s) above {self._price_ceiling:g} "
                        "excluded from valuation"
                    ),
                ),
            )

        outliers = filter_outliers_smart(
            active_prices + sold_prices, min_sample_size=self._min_sample_size
        )
        kept_active = [p for p in active_prices if _kept(p, outliers)]
        kept_sold = [listing for listing in sold_listings if _kept(float(listing.price), outliers)]

        recent_cutoff = now - timedelta(days=self._recent_sales_days)
        recent_prices = [
            float(listing.price)
            for listing in kept_sold
            if listing.sold_date is not None and listing.sold_date >= recent_cutoff
        ]

        market_value = calculate_weighted_market_value(
            outliers.filtered,
            recent_prices=recent_prices,
            high_variance_cv=self._high_variance_cv,
            min_sample_size=self._min_sample_size,
            outlier_count=outliers.outlier_count,
        )
        dated = sorted(
            (listing for listing in kept_sold if listing.sold_date is not None),
            key=lambda listing: listing.sold_date,
        )
        trend = analyze_price_trends(
            (float(listing.price) for listing in dated),
            min_sample_size=self._min_sample_size,
            high_variance_cv=self._high_variance_cv,
        )
        self._advance(
            ValuationState.STATISTICS_COMPUTED,
            item_name,
            sample_size=market_value.statistics.sample_size,
            outlier_count=outliers.outlier_count,
        )

        result = MarketValueResult(
            item_name=item_name,
            value=market_value.value,
            confidence=market_value.confidence,
            methodology=market_value.methodology,
            statistics=market_value.statistics,
            outlier_filtered=outliers.outlier_count > 0,
            outlier_method=outliers.method,
            sold_window_days=window,
            search_urls=build_search_links(query),
            query=query,
            timestamp=datetime.now(timezone.utc),
            active_count=active.parsed.count,
            sold_count=sold.parsed.count,
            median_active_price=_median(active_prices),
            median_sold_price=_median(sold_prices),
            active_prices=tuple(kept_active),
            sold_prices=tuple(float(listing.price) for listing in kept_sold),
            sold_dates=tuple(listing.sold_date for listing in dated),
            blocking_detected=active.blocked or sold.blocked,
            warnings=active.warnings + sold.warnings + excluded,
            trend=trend,
        )
        self._advance(ValuationState.RESULT_READY, item_name, value=result.value)

        logger.info(
            "valuation_complete",
            item_name=item_name,
            query=query,
            value=result.value,
            confidence=result.confidence,
            methodology=result.methodology,
            sample_size=result.statistics.sample_size,
            outlier_count=result.statistics.outlier_count,
            blocking_detected=result.blocking_detected,
            source="valuation",
        )
        return result

    async def get_market_values(
        self,
        item_names: Iterable[str],
        sold_window_days: int | None = None,
        category_hint: str | None = None,
    ) -> list[MarketValueResult]:
        """Value several items concurrently over the shared scraper client."""
        return list(
            await asyncio.gather(
                *(
                    self.get_market_value(name, sold_window_days, category_hint)
                    for name in item_names
                )
            )
        )

    async def _fetch_page(
        self,
        query: str,
        sold: bool,
        window: int,
        now: datetime,
    ) -> _PageFetch:
        url = build_search_url(query, sold=sold)
        scraped = await self._scraper.scrape(url, self._scrape_options)

        if not scraped.success or not scraped.html:
            logger.warning(
                "valuation_fetch_failed",
                query=query,
                sold=sold,
                error=scraped.error,
                blocked=scraped.blocked,
                attempts=scraped.attempt,
                source="valuation",
            )
            parsed = ParseResult(sold=sold)
        else:
            options = ParseOptions(sold_window_days=window)
            parsed = parse_sold(scraped.html, options, now=now) if sold else parse_active(scraped.html, options)

        report = validate_parsed_results(parsed, price_ceiling=self._price_ceiling)
        return _PageFetch(parsed=parsed, warnings=report.warnings, blocked=scraped.blocked)

    @staticmethod
    def _advance(state: ValuationState, item_name: str, **context: Any) -> None:
        logger.debug(
            "valuation_state",
            state=state.value,
            item_name=item_name,
            source="valuation",
            **context,
        )
