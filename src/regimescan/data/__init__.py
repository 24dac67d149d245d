"""Market data provider implementations."""

from .base import MarketDataProvider, UniverseFilter
from .csv_data import CsvDataProvider
from .okx_market_data import OkxMarketDataProvider
from .yfinance_data import YFinanceDataProvider

__all__ = [
    "MarketDataProvider",
    "UniverseFilter",
    "CsvDataProvider",
    "OkxMarketDataProvider",
    "YFinanceDataProvider",
]
