"""
Market Valuer — Request Rate Limiter

Enforces a minimum interval between outbound requests for one scraper
client. The last-request timestamp is guarded by an asyncio.Lock so
concurrent valuations sharing a client cannot race on it.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

from market_valuer.config import settings

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Minimum-interval limiter (1 / requests_per_second seconds apart).

    Usage:
        limiter = RateLimiter(requests_per_second=1.0)
        await limiter.acquire()
    """

    def __init__(
        self,
        requests_per_second: float | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        rps = requests_per_second if requests_per_second is not None else settings.SCRAPER_REQUESTS_PER_SECOND
        if rps <= 0:
            raise ValueError(f"requests_per_second must be positive, got {rps}")
        self._requests_per_second = rps
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self._lock = asyncio.Lock()

    @property
    def requests_per_second(self) -> float:
        return self._requests_per_second

    def min_interval(self, requests_per_second: float | None = None) -> float:
        rps = requests_per_second if requests_per_second is not None else self._requests_per_second
        return 1.0 / rps

    async def acquire(self, requests_per_second: float | None = None) -> float:
        """
        Suspend until the minimum interval since the last request has elapsed.

        Args:
            requests_per_second: Per-call override of the configured rate.

        Returns:
            Seconds spent waiting.
        """
        interval = self.min_interval(requests_per_second)
        async with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < interval:
                    waited = interval - elapsed
                    logger.debug(
                        "rate_limit_wait",
                        wait_seconds=round(waited, 3),
                        source="rate_limiter",
                    )
                    await self._sleep(waited)
            self._last_request = self._clock()
            return waited

    def reset(self) -> None:
        self._last_request = None
