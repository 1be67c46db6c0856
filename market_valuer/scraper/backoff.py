"""
Market Valuer — Retry Backoff

Pure delay arithmetic for the scraper retry loop. The client decides when
to sleep; this module only answers "for how long".

    delay(n) = min(max_delay, base_delay × 2^n) × jitter
    blocked:   delay × (1 + factor × blocked_count)
    timeout:   min(max_delay, base_delay × 2^n × 3), no jitter
"""

from __future__ import annotations

import random

from market_valuer.config import settings


def retry_delay(
    attempt: int,
    blocked_count: int = 0,
    is_timeout: bool = False,
    base_delay: float | None = None,
    max_delay: float | None = None,
    jitter: float | None = None,
) -> float:
    """
    Seconds to wait after a failed attempt before the next one.

    Args:
        attempt: 1-based index of the attempt that just failed.
        blocked_count: Number of blocked attempts so far in this fetch.
        is_timeout: Whether the failed attempt timed out.
        base_delay: Override for SCRAPER_BASE_DELAY_SECONDS.
        max_delay: Override for SCRAPER_MAX_DELAY_SECONDS.
        jitter: Fixed jitter factor. Drawn from [JITTER_MIN, JITTER_MAX] when None.

    Returns:
        Non-negative delay in seconds, never above max_delay.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be non-negative, got {attempt}")

    base = settings.SCRAPER_BASE_DELAY_SECONDS if base_delay is None else base_delay
    cap = settings.SCRAPER_MAX_DELAY_SECONDS if max_delay is None else max_delay

    exponential = base * (2 ** attempt)

    if is_timeout:
        return min(cap, exponential * settings.SCRAPER_TIMEOUT_BACKOFF_MULTIPLIER)

    delay = min(cap, exponential)
    if blocked_count > 0:
        delay *= 1 + settings.SCRAPER_BLOCKED_BACKOFF_FACTOR * blocked_count

    if jitter is None:
        jitter = random.uniform(settings.SCRAPER_JITTER_MIN, settings.SCRAPER_JITTER_MAX)

    return max(0.0, min(cap, delay * jitter))
