"""
Market Valuer — Marketplace Search URLs

Builds the search-results URLs that are scraped and the deep links that
are returned to callers.
"""

from __future__ import annotations

from urllib.parse import urlencode

import structlog
from pydantic import BaseModel, ConfigDict

from market_valuer.config import settings

logger = structlog.get_logger(__name__)

_SOLD_PARAMS = {"LH_Sold": "1", "LH_Complete": "1"}
_SORT_RECENTLY_ENDED = {"_sop": "16"}


class SearchLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: str
    sold: str


def build_search_url(query: str, sold: bool = False, base_url: str | None = None) -> str:
    """
    Search-results URL for the active or sold listings of a query.

    Args:
        query: Search text.
        sold: Restrict to completed, sold listings.
        base_url: Override for MARKETPLACE_SEARCH_URL.
    """
    params = {"_nkw": query}
    if sold:
        params.update(_SOLD_PARAMS)
    return f"{base_url or settings.MARKETPLACE_SEARCH_URL}?{urlencode(params)}"


def build_search_links(query: str, base_url: str | None = None) -> SearchLinks:
    """Deep links for callers; the sold link is sorted by most recently ended."""
    base = base_url or settings.MARKETPLACE_SEARCH_URL
    active = f"{base}?{urlencode({'_nkw': query})}"
    sold = f"{base}?{urlencode({'_nkw': query, **_SORT_RECENTLY_ENDED, **_SOLD_PARAMS})}"
    logger.debug("search_links_built", query=query, source="deep_link")
    return SearchLinks(active=active, sold=sold)
