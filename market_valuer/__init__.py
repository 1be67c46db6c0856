"""
Market Valuer — estimates the market value of an item from marketplace
listings scraped through a resilient proxy client.
"""

from market_valuer.errors import ConfigurationError, MarketValuerError
from market_valuer.pipeline.valuation import MarketValueResult, ValuationOrchestrator

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "MarketValueResult",
    "MarketValuerError",
    "ValuationOrchestrator",
]
