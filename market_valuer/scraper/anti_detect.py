"""
Market Valuer — Anti-Detection Layer

Manages:
- Round-robin user-agent rotation (one signature per attempt)
- Browser-like request headers
- Blocking detection over transport errors and response bodies

Detection phrases come from settings and can be replaced per instance.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from market_valuer.config import settings

logger = structlog.get_logger(__name__)

# Realistic user agents for rotation
USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.3 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
)

BROWSER_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class UserAgentRotator:
    """Cycles through a fixed pool of browser signatures."""

    def __init__(self, user_agents: Iterable[str] = USER_AGENTS) -> None:
        self._user_agents = tuple(user_agents)
        if not self._user_agents:
            raise ValueError("user_agents must not be empty")
        self._index = 0

    def next(self) -> str:
        agent = self._user_agents[self._index]
        self._index = (self._index + 1) % len(self._user_agents)
        return agent

    @property
    def pool(self) -> tuple[str, ...]:
        return self._user_agents


def build_headers(user_agent: str) -> dict[str, str]:
    """Browser-like headers for a proxy request."""
    return {"User-Agent": user_agent, **BROWSER_HEADERS}


class PhraseMatcher:
    """Case-insensitive substring matcher over a configurable phrase list."""

    def __init__(self, phrases: Iterable[str]) -> None:
        self._phrases = tuple(p.lower() for p in phrases if p)

    def match(self, text: str | None) -> str | None:
        """Return the first phrase found in text, or None."""
        if not text:
            return None
        lowered = text.lower()
        for phrase in self._phrases:
            if phrase in lowered:
                return phrase
        return None

    @property
    def phrases(self) -> tuple[str, ...]:
        return self._phrases


class BlockingDetector:
    """
    Two independent blocking checks.

    - error messages from the transport (403 Forbidden, captcha, ...)
    - response bodies (block pages and marketplace error pages)
    """

    def __init__(
        self,
        error_phrases: Iterable[str] | None = None,
        html_phrases: Iterable[str] | None = None,
        error_page_phrases: Iterable[str] | None = None,
    ) -> None:
        self.error_matcher = PhraseMatcher(
            error_phrases if error_phrases is not None else settings.BLOCKING_ERROR_PHRASES
        )
        self.html_matcher = PhraseMatcher(
            html_phrases if html_phrases is not None else settings.BLOCKING_HTML_PHRASES
        )
        self.error_page_matcher = PhraseMatcher(
            error_page_phrases if error_page_phrases is not None else settings.MARKETPLACE_ERROR_PHRASES
        )

    def is_blocking_error(self, message: str | None) -> bool:
        phrase = self.error_matcher.match(message)
        if phrase:
            logger.debug("blocking_error_matched", phrase=phrase, source="anti_detect")
        return phrase is not None

    def blocking_reason(self, html: str | None) -> str | None:
        """
        Describe why a body looks like a block or error page.

        Returns:
            Error text for the attempt, or None when the body looks usable.
        """
        phrase = self.html_matcher.match(html)
        if phrase:
            logger.debug("blocking_html_matched", phrase=phrase, source="anti_detect")
            return "Blocking detected in response content"

        phrase = self.error_page_matcher.match(html)
        if phrase:
            logger.debug("error_page_matched", phrase=phrase, source="anti_detect")
            return "Marketplace error page detected in response"

        return None
