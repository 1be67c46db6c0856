"""
Market Valuer — Error Taxonomy

Per-attempt scrape failures are raised inside the scraper client and
handled by its retry loop. Parse errors are handled per card. Only
ConfigurationError crosses the public API.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class MarketValuerError(Exception):
    """Base class for all package errors."""


class ConfigurationError(MarketValuerError):
    """Missing or invalid configuration detected at construction time."""


class ScrapeError(MarketValuerError):
    """A single scrape attempt failed."""

    blocked: bool = False

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after


class NetworkError(ScrapeError):
    """Connection or timeout failure talking to the scraping proxy."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after: float | None = None,
        is_timeout: bool = False,
    ) -> None:
        super().__init__(message, status_code, retry_after)
        self.is_timeout = is_timeout


class BlockedError(ScrapeError):
    """Anti-bot response detected at transport or content level."""

    blocked = True


class ShortResponseError(ScrapeError):
    """Response body below the minimum size threshold."""


class ParseError(MarketValuerError):
    """Unexpected or malformed listing markup."""


class ValidationWarning(BaseModel):
    """Non-fatal data-quality observation attached to a parse result."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
