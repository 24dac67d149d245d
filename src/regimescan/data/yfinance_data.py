"""Yahoo Finance market data provider."""

from __future__ import annotations

import re
from typing import Any

import pandas as pd

from regimescan.data.base import UniverseFilter, normalize_ohlcv, ticker_from_bars
from regimescan.domain.models import PriceSeries, TickerSnapshot
from regimescan.errors import DataProviderError


class YFinanceDataProvider:
    """Fetch daily bars for a fixed crypto basket via yfinance."""

    def __init__(
        self,
        symbols: list[str],
        universe_filter: UniverseFilter | None = None,
        period: str = "6mo",
        interval: str = "1d",
    ) -> None:
        self.symbols = list(symbols)
        self.universe_filter = universe_filter or UniverseFilter()
        self.period = period
        self.interval = interval
        self._bars_cache: dict[str, pd.DataFrame] = {}

    def fetch_universe(self) -> list[TickerSnapshot]:
        self._bars_cache.clear()
        tickers: list[TickerSnapshot] = []
        failures: list[str] = []
        for symbol in self.symbols:
            try:
                bars = self._history(symbol)
            except DataProviderError as exc:
                failures.append(str(exc))
                continue
            tickers.append(ticker_from_bars(symbol, bars, volume_in_quote=True))
        if not tickers:
            detail = "; ".join(failures) or "no symbols configured"
            raise DataProviderError(f"yfinance universe is empty: {detail}")
        return self.universe_filter.apply(tickers)

    def fetch_series(self, symbol: str) -> PriceSeries:
        return PriceSeries(symbol=symbol, bars=self._history(symbol).copy())

    def _history(self, symbol: str) -> pd.DataFrame:
        cached = self._bars_cache.get(symbol)
        if cached is not None:
            return cached
        import yfinance as yf

        ticker = self._resolve_yfinance_symbol(symbol)
        try:
            history = yf.Ticker(ticker).history(
                period=self.period,
                interval=self.interval,
                auto_adjust=False,
                actions=False,
            )
        except Exception as exc:
            raise DataProviderError(
                f"yfinance request failed for {symbol} ({ticker}): {exc}"
            ) from exc
        frame = self._normalize_history(history, symbol, ticker)
        self._bars_cache[symbol] = frame
        return frame

    @staticmethod
    def _normalize_history(history: Any, symbol: str, ticker: str) -> pd.DataFrame:
        if history is None:
            raise DataProviderError(f"yfinance returned no rows for {symbol} ({ticker})")
        frame = pd.DataFrame(history).copy()
        if frame.empty:
            raise DataProviderError(f"yfinance returned no rows for {symbol} ({ticker})")

        renamed: dict[Any, str] = {}
        for field in ("open", "high", "low", "close", "volume"):
            column = YFinanceDataProvider._pick_column(frame, field)
            if column is None and field == "close":
                column = YFinanceDataProvider._pick_column(frame, "adj_close")
            if column is None and field == "volume":
                continue
            if column is None:
                raise DataProviderError(
                    f"yfinance payload missing OHLC columns for {symbol} ({ticker})"
                )
            renamed[column] = field
        normalized = frame[list(renamed)].rename(columns=renamed)
        if "volume" not in normalized.columns:
            normalized["volume"] = 0.0
        normalized.index = pd.to_datetime(frame.index, utc=False)
        return normalize_ohlcv(normalized, symbol)

    @staticmethod
    def _pick_column(frame: pd.DataFrame, field: str) -> Any | None:
        for column in frame.columns:
            key = YFinanceDataProvider._column_key(column)
            if key == field or key.startswith(f"{field}_"):
                return column
        return None

    @staticmethod
    def _column_key(value: Any) -> str:
        if isinstance(value, tuple):
            text = "_".join(str(part) for part in value if part is not None)
        else:
            text = str(value)
        return re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_").lower()

    @staticmethod
    def _resolve_yfinance_symbol(symbol: str) -> str:
        compact = symbol.strip().upper().replace("/", "").replace("-", "")
        for quote in ("USDT", "USDC", "USD"):
            if compact.endswith(quote) and len(compact) > len(quote):
                return f"{compact[: -len(quote)]}-USD"
        return symbol.strip().upper()
