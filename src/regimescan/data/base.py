"""Market data provider contract and shared normalization."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np
import pandas as pd

from regimescan.config import Settings
from regimescan.domain.models import PriceSeries, TickerSnapshot
from regimescan.errors import DataProviderError

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


class MarketDataProvider(Protocol):
    """Interface for universe and candle retrieval."""

    def fetch_universe(self) -> list[TickerSnapshot]:
        """Return filtered 24h tickers; raise DataProviderError on failure."""

    def fetch_series(self, symbol: str) -> PriceSeries:
        """Return chronological OHLCV bars; raise DataProviderError on failure."""


@dataclass(frozen=True)
class UniverseFilter:
    """Liquidity and exclusion rules applied to every fetched universe."""

    excluded_bases: frozenset[str] = frozenset()
    min_price: float = 0.0
    min_volume: float = 0.0
    max_assets: int = 200
    symbols: tuple[str, ...] = field(default=())

    @classmethod
    def from_settings(cls, settings: Settings) -> UniverseFilter:
        return cls(
            excluded_bases=frozenset(symbol.upper() for symbol in settings.excluded_symbols),
            min_price=settings.min_price,
            min_volume=settings.min_volume,
            max_assets=settings.max_assets,
            symbols=tuple(settings.watchlist()),
        )

    def apply(self, tickers: Iterable[TickerSnapshot]) -> list[TickerSnapshot]:
        """Drop excluded and illiquid assets, keep the most traded ``max_assets``."""
        allowed = set(self.symbols)
        kept: list[TickerSnapshot] = []
        for ticker in tickers:
            if allowed and ticker.symbol not in allowed:
                continue
            if base_asset(ticker.symbol) in self.excluded_bases:
                continue
            if ticker.last < self.min_price or ticker.volume_24h < self.min_volume:
                continue
            kept.append(ticker)
        kept.sort(key=lambda ticker: ticker.volume_24h, reverse=True)
        return kept[: self.max_assets]


def base_asset(symbol: str) -> str:
    """Base currency of a pair such as ``BTC-USDT`` or ``ETH/USD``."""
    compact = symbol.strip().upper().replace("/", "-")
    return compact.split("-", 1)[0]


def normalize_ohlcv(frame: pd.DataFrame, symbol: str) -> pd.DataFrame:
    """Coerce OHLCV columns to numbers, sort oldest first, drop broken rows."""
    missing = [column for column in OHLCV_COLUMNS if column not in frame.columns]
    if missing:
        raise DataProviderError(f"{symbol}: bars missing {', '.join(missing)}")
    normalized = frame[OHLCV_COLUMNS].copy()
    normalized = normalized.apply(pd.to_numeric, errors="coerce")
    normalized = normalized.replace([np.inf, -np.inf], np.nan)
    normalized = normalized.dropna(subset=["open", "high", "low", "close"])
    normalized["volume"] = normalized["volume"].fillna(0.0)
    normalized = normalized.sort_index()
    if normalized.empty:
        raise DataProviderError(f"{symbol}: data has no valid OHLCV rows")
    return normalized


def ticker_from_bars(
    symbol: str,
    bars: pd.DataFrame,
    volume_in_quote: bool = False,
) -> TickerSnapshot:
    """Approximate 24h statistics from the last daily bars.

    Volume is reported in quote currency so the minimum-volume filter means
    the same thing for every source; base-currency volume is converted at the
    last close.
    """
    if bars.empty:
        raise DataProviderError(f"{symbol}: no bars to derive a ticker from")
    last_bar = bars.iloc[-1]
    last = float(last_bar["close"])
    previous = float(bars["close"].iloc[-2]) if len(bars) > 1 else float(last_bar["open"])
    change = (last - previous) / previous * 100.0 if previous > 0 else 0.0
    return TickerSnapshot(
        symbol=symbol,
        last=last,
        high_24h=float(last_bar["high"]),
        low_24h=float(last_bar["low"]),
        change_24h=change,
        volume_24h=float(last_bar["volume"]) * (1.0 if volume_in_quote else last),
    )
