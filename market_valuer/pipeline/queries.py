"""
Market Valuer — Search Query Generator

Turns an item name (and optional category hint) into ranked search-query
variants, most specific first:

    1. raw name
    2. "<hint> <name>", "<name> <hint>"   (when a hint is supplied)
    3. quoted exact phrase
    4. "<name> lot", "<name> bundle"
    5. "<name> new", "<name> used"

Duplicates are removed case-insensitively and the list is capped at
MAX_QUERY_VARIANTS.
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel, ConfigDict

from market_valuer.config import settings

logger = structlog.get_logger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class SearchQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    priority: int  # 1 = most specific


def _normalize(text: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def generate_search_queries(
    item_name: str,
    category_hint: str | None = None,
    max_queries: int | None = None,
) -> list[SearchQuery]:
    """Ranked SearchQuery variants. Always contains at least the raw name."""
    name = _normalize(item_name)
    hint = _normalize(category_hint)
    limit = max_queries if max_queries is not None else settings.MAX_QUERY_VARIANTS

    candidates = [name]
    if hint:
        candidates.append(f"{hint} {name}")
        candidates.append(f"{name} {hint}")
    candidates.append(f'"{name}"')
    candidates.append(f"{name} lot")
    candidates.append(f"{name} bundle")
    candidates.append(f"{name} new")
    candidates.append(f"{name} used")

    seen: set[str] = set()
    unique: list[str] = []
    for candidate in candidates:
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)

    queries = [
        SearchQuery(text=text, priority=rank)
        for rank, text in enumerate(unique[: max(1, limit)], start=1)
    ]
    logger.debug(
        "search_queries_generated",
        item_name=name,
        category_hint=hint or None,
        queries=[q.text for q in queries],
        source="query_generator",
    )
    return queries


def generate_queries(
    item_name: str,
    category_hint: str | None = None,
    max_queries: int | None = None,
) -> list[str]:
    """Ranked query strings (see generate_search_queries)."""
    return [q.text for q in generate_search_queries(item_name, category_hint, max_queries)]
