"""
Market Valuer — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Marketplace results-page builders (HTML)
- Fixed reference time
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for anyio tests."""
    return "asyncio"


# ---------------------------------------------------------------------------
# HTML Builders
# ---------------------------------------------------------------------------

# Keeps every built page above SCRAPER_MIN_RESPONSE_BYTES
_FOOTER = (
    "<footer id='glbfooter'>"
    + "<a href='/help'>Help &amp; Contact</a><a href='/sitemap'>Site Map</a>" * 20
    + "</footer>"
)


def listing_card(
    title: str | None,
    price: str | None = None,
    shipping: str | None = None,
    location: str | None = None,
    condition: str | None = None,
    sold_caption: str | None = None,
    css_class: str = "s-item",
) -> str:
    """One classic .s-item card. Omitted parts are left out of the markup."""
    parts = []
    if sold_caption is not None:
        parts.append(
            f"<div class='s-item__title--tagblock'><span class='POSITIVE'>{sold_caption}</span></div>"
        )
    if title is not None:
        parts.append(f"<div class='s-item__title'><span>{title}</span></div>")
    if condition is not None:
        parts.append(
            f"<div class='s-item__subtitle'><span class='SECONDARY_INFO'>{condition}</span></div>"
        )
    if price is not None:
        parts.append(f"<span class='s-item__price'>{price}</span>")
    if shipping is not None:
        parts.append(f"<span class='s-item__shipping'>{shipping}</span>")
    if location is not None:
        parts.append(f"<span class='s-item__location'>{location}</span>")
    return f"<li class='{css_class}'><div class='s-item__info'>{''.join(parts)}</div></li>"


def results_page(cards: list[str], total_results: str | None = None) -> str:
    """Full search-results page wrapping the given cards."""
    heading = ""
    if total_results is not None:
        heading = (
            "<h1 class='srp-controls__count-heading'>"
            f"<span class='BOLD'>{total_results}</span> results</h1>"
        )
    return (
        "<!DOCTYPE html><html><head><title>Search results</title></head><body>"
        f"{heading}<ul class='srp-results srp-list'>{''.join(cards)}</ul>{_FOOTER}"
        "</body></html>"
    )


@pytest.fixture
def make_card() -> Callable[..., str]:
    return listing_card


@pytest.fixture
def make_page() -> Callable[..., str]:
    return results_page


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed reference time for date-sensitive parsing."""
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
