"""
Market Valuer — Configuration & Constants

Every threshold, weight, retry constant and detection phrase lives here.
Business logic reads these as defaults and accepts explicit overrides.

Usage:
    from market_valuer.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ValuationState(str, Enum):
    """Per-request progression of a valuation."""
    INIT = "init"
    QUERIES_GENERATED = "queries_generated"
    FETCHING = "fetching"
    PARSED = "parsed"
    STATISTICS_COMPUTED = "statistics_computed"
    RESULT_READY = "result_ready"


class Methodology(str, Enum):
    """Label of the statistical regime that produced a market value."""
    NO_DATA = "No data available"
    SMALL_SAMPLE = "simple average (small sample)"
    HIGH_VARIANCE = "median (high variance)"
    WEIGHTED = "weighted statistical combination"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for the valuation pipeline.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Scraping proxy
    # -----------------------------------------------------------------------
    SCRAPER_API_KEY: str = ""
    SCRAPER_API_URL: str = "http://api.scraperapi.com"
    SCRAPER_COUNTRY_CODE: str = "us"
    SCRAPER_RENDER: bool = False
    SCRAPER_USE_PROXY: bool = True           # residential proxy pool
    SCRAPER_ANTI_DETECTION: bool = True
    SCRAPER_JS_SCENARIO: str = "ebay_anti_detection"

    # -----------------------------------------------------------------------
    # Retry / backoff
    # delay(n) = min(max, base × 2^n) × jitter × (1 + 0.5 × blocked)
    # -----------------------------------------------------------------------
    SCRAPER_MAX_RETRIES: int = 3
    SCRAPER_BASE_DELAY_SECONDS: float = 2.0
    SCRAPER_MAX_DELAY_SECONDS: float = 30.0
    SCRAPER_TIMEOUT_SECONDS: float = 20.0
    SCRAPER_JITTER_MIN: float = 0.85
    SCRAPER_JITTER_MAX: float = 1.15
    SCRAPER_BLOCKED_BACKOFF_FACTOR: float = 0.5
    SCRAPER_TIMEOUT_BACKOFF_MULTIPLIER: float = 3.0

    # -----------------------------------------------------------------------
    # Rate limiting
    # -----------------------------------------------------------------------
    SCRAPER_REQUESTS_PER_SECOND: float = 1.0
    SCRAPER_RATE_LIMIT_BUDGET: int = 10
    SCRAPER_QUEUE_PAUSE_SECONDS: float = 0.5

    # -----------------------------------------------------------------------
    # Blocking detection (case-insensitive substring matchers)
    # -----------------------------------------------------------------------
    SCRAPER_MIN_RESPONSE_BYTES: int = 1000
    BLOCKING_ERROR_PHRASES: list[str] = [
        "blocked",
        "forbidden",
        "access denied",
        "rate limit",
        "too many requests",
        "error page detected",
        "captcha",
        "robot",
        "bot detection",
    ]
    BLOCKING_HTML_PHRASES: list[str] = [
        "access denied",
        "blocked",
        "forbidden",
        "captcha",
        "robot check",
        "bot detection",
        "rate limit exceeded",
        "too many requests",
        "please wait",
        "verification required",
    ]
    MARKETPLACE_ERROR_PHRASES: list[str] = [
        "sorry, we couldn't find that page",
        "this listing was ended by the seller",
        "this item is no longer available",
        "page not found",
        "error occurred",
        "temporarily unavailable",
        "maintenance mode",
    ]

    # -----------------------------------------------------------------------
    # Marketplace
    # -----------------------------------------------------------------------
    MARKETPLACE_SEARCH_URL: str = "https://www.ebay.com/sch/i.html"
    PLACEHOLDER_TITLES: list[str] = ["Shop on eBay"]

    # -----------------------------------------------------------------------
    # Parsing & validation
    # -----------------------------------------------------------------------
    SOLD_WINDOW_DAYS: int = 30
    PRICE_SANITY_CEILING: float = 100_000.0

    # -----------------------------------------------------------------------
    # Statistics
    # -----------------------------------------------------------------------
    MIN_SAMPLE_SIZE: int = 3
    IQR_MULTIPLIER: float = 1.5
    OUTLIER_MAX_REMOVAL_RATIO: float = 0.5    # abandon filtering above this
    HIGH_VARIANCE_CV: float = 0.8
    WEIGHT_MEDIAN: float = 0.4
    WEIGHT_MEAN: float = 0.3
    WEIGHT_MODE: float = 0.2
    WEIGHT_RECENT: float = 0.1
    RECENT_SALES_DAYS: int = 30

    # -----------------------------------------------------------------------
    # Query generation
    # -----------------------------------------------------------------------
    MAX_QUERY_VARIANTS: int = 5
    QUERY_FALLBACK_LIMIT: int = 0

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True


# Singleton instance
settings = Settings()
