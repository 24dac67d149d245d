"""OKX public spot market data provider."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import pandas as pd
import requests

from regimescan.data.base import UniverseFilter, normalize_ohlcv
from regimescan.domain.models import PriceSeries, TickerSnapshot
from regimescan.errors import DataProviderError

RATE_LIMIT_CODES = {"50011", "50061"}


class OkxMarketDataProvider:
    """Fetch spot tickers and daily candles from OKX's v5 REST API."""

    def __init__(
        self,
        base_url: str,
        universe_filter: UniverseFilter,
        quote_currency: str = "USDT",
        candle_bar: str = "1D",
        candle_limit: int = 100,
        rate_limit: float = 20.0,
        timeout: int = 20,
        max_retries: int = 3,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.universe_filter = universe_filter
        self.quote_currency = quote_currency.strip().upper()
        self.candle_bar = candle_bar
        self.candle_limit = candle_limit
        self.min_interval = 1.0 / rate_limit if rate_limit > 0 else 0.0
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None

    def fetch_universe(self) -> list[TickerSnapshot]:
        rows = self._request_with_retry("/api/v5/market/tickers", {"instType": "SPOT"})
        suffix = f"-{self.quote_currency}"
        tickers: list[TickerSnapshot] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            inst_id = str(row.get("instId", "")).upper()
            if not inst_id.endswith(suffix):
                continue
            ticker = self._row_to_ticker(inst_id, row)
            if ticker is not None:
                tickers.append(ticker)
        return self.universe_filter.apply(tickers)

    def fetch_series(self, symbol: str) -> PriceSeries:
        inst_id = symbol.strip().upper()
        rows = self._request_with_retry(
            "/api/v5/market/candles",
            {"instId": inst_id, "bar": self.candle_bar, "limit": str(self.candle_limit)},
        )
        return PriceSeries(symbol=symbol, bars=self._candles_to_frame(inst_id, rows))

    def _request_with_retry(self, path: str, params: dict[str, str]) -> list[dict[str, Any]]:
        url = f"{self.base_url}{path}"
        for attempt in range(1, self.max_retries + 1):
            self._throttle()
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as exc:
                if attempt == self.max_retries:
                    raise DataProviderError(f"OKX request failed: {exc}") from exc
                self._sleep(float(attempt))
                continue
            if response.status_code == 429:
                if attempt == self.max_retries:
                    raise DataProviderError("OKX rate limit exceeded")
                self._sleep(float(attempt))
                continue
            if response.status_code >= 500:
                if attempt == self.max_retries:
                    raise DataProviderError(f"OKX server error: {response.status_code}")
                self._sleep(float(attempt))
                continue
            if response.status_code >= 400:
                detail = response.text.strip() or "No response body"
                raise DataProviderError(f"OKX error {response.status_code}: {detail}")

            try:
                payload = response.json()
            except ValueError as exc:
                raise DataProviderError(f"OKX returned a non-JSON body: {exc}") from exc
            if not isinstance(payload, dict):
                raise DataProviderError(
                    f"OKX returned an unexpected payload: {type(payload).__name__}"
                )
            code = str(payload.get("code", "0"))
            if code in RATE_LIMIT_CODES and attempt < self.max_retries:
                self._sleep(float(attempt))
                continue
            if code != "0":
                raise DataProviderError(f"OKX error code {code}: {payload.get('msg', '')}")
            data = payload.get("data", [])
            return data if isinstance(data, list) else []
        raise DataProviderError("OKX request exhausted retries")

    def _throttle(self) -> None:
        now = self._clock()
        if self._last_request is not None:
            wait = self.min_interval - (now - self._last_request)
            if wait > 0:
                self._sleep(wait)
                now = self._clock()
        self._last_request = now

    @staticmethod
    def _row_to_ticker(inst_id: str, row: dict[str, Any]) -> TickerSnapshot | None:
        try:
            last = float(row["last"])
            open_24h = float(row.get("open24h") or 0.0)
            high = float(row.get("high24h") or last)
            low = float(row.get("low24h") or last)
            volume = float(row.get("volCcy24h") or 0.0)
        except (KeyError, TypeError, ValueError):
            return None
        change = (last - open_24h) / open_24h * 100.0 if open_24h > 0 else 0.0
        return TickerSnapshot(
            symbol=inst_id,
            last=last,
            high_24h=high,
            low_24h=low,
            change_24h=change,
            volume_24h=volume,
        )

    @staticmethod
    def _candles_to_frame(symbol: str, rows: list[Any]) -> pd.DataFrame:
        usable = [row[:6] for row in rows if isinstance(row, list) and len(row) >= 6]
        if not usable:
            raise DataProviderError(f"No candles returned for {symbol}")
        frame = pd.DataFrame(usable, columns=["ts", "open", "high", "low", "close", "volume"])
        stamps = pd.to_numeric(frame["ts"], errors="coerce")
        frame = frame[stamps.notna()].copy()
        if frame.empty:
            raise DataProviderError(f"No candles with a valid timestamp for {symbol}")
        try:
            frame.index = pd.to_datetime(stamps[stamps.notna()], unit="ms", utc=True)
        except (ValueError, OverflowError) as exc:
            raise DataProviderError(f"{symbol}: candle timestamps out of range: {exc}") from exc
        return normalize_ohlcv(frame, symbol)
