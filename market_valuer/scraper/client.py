"""
Market Valuer — Resilient Scraper Client

Fetches marketplace pages through a third-party scraping proxy with:
- retries and exponential backoff with jitter (scraper/backoff.py)
- a shared minimum-interval rate limiter (scraper/rate_limiter.py)
- user-agent rotation and blocking detection (scraper/anti_detect.py)
- per-attempt timeouts

scrape() never raises: every failure mode is reported in the returned
ScrapeResult. Per-attempt failures are raised as ScrapeError subclasses
inside _perform_request() and handled by the retry loop.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx
import structlog

from market_valuer.config import settings
from market_valuer.errors import (
    BlockedError,
    ConfigurationError,
    NetworkError,
    ScrapeError,
    ShortResponseError,
)
from market_valuer.scraper import (
    AttemptOutcome,
    HealthStatus,
    ScrapeAttempt,
    ScrapeOptions,
    ScrapeResult,
    ScraperMetrics,
)
from market_valuer.scraper.anti_detect import BlockingDetector, UserAgentRotator, build_headers
from market_valuer.scraper.backoff import retry_delay
from market_valuer.scraper.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

_BLOCKING_STATUS_CODES = frozenset({403, 429})

Sleeper = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _closed_result(url: str) -> ScrapeResult:
    return ScrapeResult(
        success=False,
        error="Scraper client closed",
        attempt=0,
        duration=0.0,
        timestamp=_utcnow(),
        url=url,
    )


class ResilientScraperClient:
    """
    Async scraping-proxy client with retry, backoff and blocking detection.

    Usage:
        async with ResilientScraperClient() as client:
            result = await client.scrape("https://www.ebay.com/sch/i.html?_nkw=lego")
            if result.success:
                listings = parse_active(result.html)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        detector: BlockingDetector | None = None,
        user_agents: UserAgentRotator | None = None,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.SCRAPER_API_KEY
        if not self._api_key:
            raise ConfigurationError("SCRAPER_API_KEY is not configured")

        self._base_url = (base_url or settings.SCRAPER_API_URL).rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep
        self._clock = clock
        self._rate_limiter = rate_limiter or RateLimiter(clock=clock, sleep=sleep)
        self._detector = detector or BlockingDetector()
        self._user_agents = user_agents or UserAgentRotator()
        self._metrics = ScraperMetrics()

        self._queue: asyncio.Queue[tuple[str, ScrapeOptions | None, asyncio.Future[ScrapeResult]]] | None = None
        self._queue_worker: asyncio.Task[None] | None = None

    async def __aenter__(self) -> ResilientScraperClient:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._queue_worker is not None:
            self._queue_worker.cancel()
            try:
                await self._queue_worker
            except asyncio.CancelledError:
                pass
            self._queue_worker = None
        if self._queue is not None:
            while not self._queue.empty():
                url, _, future = self._queue.get_nowait()
                if not future.done():
                    future.set_result(_closed_result(url))
                self._queue.task_done()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self._client

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def scrape(self, url: str, options: ScrapeOptions | None = None) -> ScrapeResult:
        """
        Fetch one page through the scraping proxy, retrying on failure.

        Args:
            url: Target marketplace URL (sent URL-encoded to the proxy).
            options: Per-call options. Defaults come from settings.

        Returns:
            ScrapeResult. success=False with the last error once retries are
            exhausted; blocked=True if any attempt was blocked.
        """
        opts = options or ScrapeOptions()
        started = self._clock()
        attempts: list[ScrapeAttempt] = []
        blocked_count = 0
        last_error: str | None = None
        last_status: int | None = None
        retry_after: float | None = None

        for attempt in range(1, opts.max_retries + 1):
            await self._rate_limiter.acquire(opts.requests_per_second)
            user_agent = opts.user_agent or self._user_agents.next()
            attempt_started = self._clock()

            logger.info(
                "scrape_attempt",
                url=url,
                attempt=attempt,
                max_retries=opts.max_retries,
                timeout_seconds=opts.timeout,
                source="scraper_client",
            )

            try:
                html, status_code = await self._perform_request(url, opts, user_agent, attempt)
            except ScrapeError as e:
                blocked = e.blocked or self._detector.is_blocking_error(e.message)
                is_timeout = isinstance(e, NetworkError) and e.is_timeout
                last_error = e.message
                last_status = e.status_code
                if e.retry_after is not None:
                    retry_after = e.retry_after

                if blocked:
                    blocked_count += 1
                    self._metrics.blocked_requests += 1

                attempts.append(
                    ScrapeAttempt(
                        url=url,
                        attempt=attempt,
                        outcome=AttemptOutcome.BLOCKED if blocked else AttemptOutcome.FAILURE,
                        status_code=e.status_code,
                        duration=self._clock() - attempt_started,
                        error=e.message,
                        timestamp=_utcnow(),
                    )
                )
                logger.warning(
                    "scrape_attempt_failed",
                    url=url,
                    attempt=attempt,
                    error=e.message,
                    error_type=type(e).__name__,
                    status_code=e.status_code,
                    blocked=blocked,
                    timeout=is_timeout,
                    source="scraper_client",
                )

                if attempt < opts.max_retries:
                    wait = retry_delay(
                        attempt,
                        blocked_count=blocked_count if blocked else 0,
                        is_timeout=is_timeout,
                        base_delay=opts.base_delay,
                        max_delay=opts.max_delay,
                    )
                    if e.retry_after is not None:
                        wait = max(wait, min(e.retry_after, opts.max_delay))
                    logger.info(
                        "scrape_backoff_wait",
                        url=url,
                        attempt=attempt,
                        wait_seconds=round(wait, 3),
                        blocked_count=blocked_count,
                        source="scraper_client",
                    )
                    await self._sleep(wait)
                continue

            attempts.append(
                ScrapeAttempt(
                    url=url,
                    attempt=attempt,
                    outcome=AttemptOutcome.SUCCESS,
                    status_code=status_code,
                    duration=self._clock() - attempt_started,
                    timestamp=_utcnow(),
                )
            )
            duration = self._clock() - started
            self._update_metrics(True, duration)

            logger.info(
                "scrape_success",
                url=url,
                attempt=attempt,
                duration_seconds=round(duration, 3),
                bytes=len(html),
                source="scraper_client",
            )
            return ScrapeResult(
                success=True,
                html=html,
                status_code=status_code,
                blocked=False,
                attempt=attempt,
                duration=duration,
                timestamp=_utcnow(),
                url=url,
                attempts=tuple(attempts),
            )

        duration = self._clock() - started
        self._update_metrics(False, duration)

        logger.error(
            "scrape_exhausted",
            url=url,
            attempts=opts.max_retries,
            blocked_count=blocked_count,
            error=last_error,
            source="scraper_client",
        )
        return ScrapeResult(
            success=False,
            html=None,
            status_code=last_status,
            error=last_error or "All attempts failed",
            blocked=blocked_count > 0,
            attempt=opts.max_retries,
            duration=duration,
            timestamp=_utcnow(),
            url=url,
            retry_after=retry_after,
            attempts=tuple(attempts),
        )

    async def queue_scrape(self, url: str, options: ScrapeOptions | None = None) -> ScrapeResult:
        """
        Scrape through the internal request queue.

        Queued requests run one at a time with SCRAPER_QUEUE_PAUSE_SECONDS
        between them. Requests still pending when the client closes resolve
        to a failed result.
        """
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._queue_worker is None or self._queue_worker.done():
            self._queue_worker = asyncio.create_task(self._drain_queue())

        future: asyncio.Future[ScrapeResult] = asyncio.get_running_loop().create_future()
        await self._queue.put((url, options, future))
        return await future

    def get_metrics(self) -> ScraperMetrics:
        return self._metrics.model_copy()

    def reset_metrics(self) -> None:
        self._metrics = ScraperMetrics()
        logger.debug("scraper_metrics_reset", source="scraper_client")

    def health_check(self) -> HealthStatus:
        """Classify the client by success rate: >= 0.9 healthy, >= 0.7 degraded."""
        metrics = self.get_metrics()

        if metrics.total_requests == 0:
            return HealthStatus(
                status="healthy",
                message="Service ready, no requests yet",
                metrics=metrics,
            )

        success_rate = metrics.successful_requests / metrics.total_requests
        pct = f"{success_rate * 100:.1f}%"
        if success_rate >= 0.9:
            status, message = "healthy", f"Service healthy with {pct} success rate"
        elif success_rate >= 0.7:
            status, message = "degraded", f"Service degraded with {pct} success rate"
        else:
            status, message = "unhealthy", f"Service unhealthy with {pct} success rate"

        return HealthStatus(status=status, message=message, metrics=metrics)

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _build_params(self, url: str, opts: ScrapeOptions, attempt: int) -> dict[str, str]:
        params = {
            "api_key": self._api_key,
            "url": url,
            "render": str(opts.render).lower(),
            "country_code": opts.country_code,
            "premium": "true",
            "session_number": str(attempt),  # new proxy session per attempt
            "keep_headers": "true",
        }
        if opts.use_proxy:
            params["proxy"] = "residential"
        if opts.anti_detection:
            params["js_scenario"] = settings.SCRAPER_JS_SCENARIO
            params["custom_google"] = "true"
            params["premium_proxy"] = "true"
        return params

    async def _perform_request(
        self,
        url: str,
        opts: ScrapeOptions,
        user_agent: str,
        attempt: int,
    ) -> tuple[str, int]:
        """
        One proxy round trip.

        Raises:
            NetworkError: transport failure, timeout or non-blocking HTTP error.
            BlockedError: blocking status, phrase or page detected.
            ShortResponseError: body under opts.min_response_bytes.
        """
        client = self._ensure_client()

        try:
            response = await client.get(
                f"{self._base_url}/",
                params=self._build_params(url, opts, attempt),
                headers=build_headers(user_agent),
                timeout=opts.timeout,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Scraping request timeout after {opts.timeout}s: {e}", is_timeout=True
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Scraping request failed: {e}") from e

        status_code = response.status_code
        if status_code >= 400:
            message = f"Scraper proxy error: {status_code} {response.reason_phrase}"
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            if status_code in _BLOCKING_STATUS_CODES or self._detector.is_blocking_error(message):
                raise BlockedError(message, status_code, retry_after)
            raise NetworkError(message, status_code, retry_after)

        size = len(response.content)
        if size < opts.min_response_bytes:
            raise ShortResponseError(
                f"Response too short ({size} bytes), likely an error page", status_code
            )

        html = response.text
        reason = self._detector.blocking_reason(html)
        if reason:
            raise BlockedError(reason, status_code)

        return html, status_code

    def _update_metrics(self, success: bool, duration: float) -> None:
        m = self._metrics
        m.total_requests += 1
        if success:
            m.successful_requests += 1
            m.rate_limit_remaining = max(0, m.rate_limit_remaining - 1)
        else:
            m.failed_requests += 1

        total_duration = m.average_response_time * (m.total_requests - 1) + duration
        m.average_response_time = total_duration / m.total_requests
        m.last_request_time = _utcnow()

    async def _drain_queue(self) -> None:
        assert self._queue is not None
        while True:
            url, options, future = await self._queue.get()
            try:
                if not future.done():
                    try:
                        result = await self.scrape(url, options)
                    except asyncio.CancelledError:
                        if not future.done():
                            future.set_result(_closed_result(url))
                        raise
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()
            await self._sleep(settings.SCRAPER_QUEUE_PAUSE_SECONDS)
