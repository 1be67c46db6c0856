from market_valuer.engine.market_value import MarketValue, calculate_weighted_market_value
from market_valuer.engine.outliers import OutlierResult, filter_outliers_smart
from market_valuer.engine.statistics import Statistics, calculate_statistics
from market_valuer.engine.trends import PriceTrend, analyze_price_trends

__all__ = [
    "MarketValue",
    "OutlierResult",
    "PriceTrend",
    "Statistics",
    "analyze_price_trends",
    "calculate_statistics",
    "calculate_weighted_market_value",
    "filter_outliers_smart",
]
