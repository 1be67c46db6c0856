"""Market Valuer — Scraper Layer"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from market_valuer.config import settings


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    BLOCKED = "blocked"


class ScrapeOptions(BaseModel):
    """Per-call scrape options. Unset fields fall back to settings."""

    max_retries: int = Field(default_factory=lambda: settings.SCRAPER_MAX_RETRIES, ge=1)
    base_delay: float = Field(default_factory=lambda: settings.SCRAPER_BASE_DELAY_SECONDS, ge=0)
    max_delay: float = Field(default_factory=lambda: settings.SCRAPER_MAX_DELAY_SECONDS, ge=0)
    timeout: float = Field(default_factory=lambda: settings.SCRAPER_TIMEOUT_SECONDS, gt=0)
    requests_per_second: float = Field(
        default_factory=lambda: settings.SCRAPER_REQUESTS_PER_SECOND, gt=0
    )
    user_agent: str | None = None
    country_code: str = Field(default_factory=lambda: settings.SCRAPER_COUNTRY_CODE)
    render: bool = Field(default_factory=lambda: settings.SCRAPER_RENDER)
    use_proxy: bool = Field(default_factory=lambda: settings.SCRAPER_USE_PROXY)
    anti_detection: bool = Field(default_factory=lambda: settings.SCRAPER_ANTI_DETECTION)
    min_response_bytes: int = Field(
        default_factory=lambda: settings.SCRAPER_MIN_RESPONSE_BYTES, ge=0
    )


class ScrapeAttempt(BaseModel):
    """One network attempt inside a logical fetch. Never mutated."""

    model_config = ConfigDict(frozen=True)

    url: str
    attempt: int
    outcome: AttemptOutcome
    status_code: int | None = None
    duration: float
    error: str | None = None
    timestamp: datetime


class ScrapeResult(BaseModel):
    """Terminal output of the scraper client for one logical fetch."""

    model_config = ConfigDict(frozen=True)

    success: bool
    html: str | None = None
    status_code: int | None = None
    error: str | None = None
    blocked: bool = False
    attempt: int
    duration: float
    timestamp: datetime
    url: str
    retry_after: float | None = None
    attempts: tuple[ScrapeAttempt, ...] = ()


class ScraperMetrics(BaseModel):
    """Cumulative counters for one scraper client."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    blocked_requests: int = 0
    average_response_time: float = 0.0
    last_request_time: datetime | None = None
    rate_limit_remaining: int = Field(default_factory=lambda: settings.SCRAPER_RATE_LIMIT_BUDGET)


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    message: str
    metrics: ScraperMetrics
