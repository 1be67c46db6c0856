from market_valuer.pipeline.deep_link import SearchLinks, build_search_links, build_search_url
from market_valuer.pipeline.queries import SearchQuery, generate_queries, generate_search_queries
from market_valuer.pipeline.valuation import MarketValueResult, ValuationOrchestrator

__all__ = [
    "MarketValueResult",
    "SearchLinks",
    "SearchQuery",
    "ValuationOrchestrator",
    "build_search_links",
    "build_search_url",
    "generate_queries",
    "generate_search_queries",
]
