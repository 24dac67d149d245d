"""CSV-backed market data provider."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from regimescan.data.base import UniverseFilter, normalize_ohlcv, ticker_from_bars
from regimescan.domain.models import PriceSeries, TickerSnapshot
from regimescan.errors import DataProviderError

TICKERS_FILE = "tickers.csv"
TICKER_COLUMNS = ("symbol", "last", "high_24h", "low_24h", "change_24h", "volume_24h")


class CsvDataProvider:
    """Serve a frozen universe from local files.

    ``<data_dir>/<SYMBOL>.csv`` holds daily bars. An optional
    ``tickers.csv`` supplies the 24h statistics; without it they are
    derived from each file's last bars.
    """

    date_column_candidates = ("date", "datetime", "timestamp")

    def __init__(self, data_dir: str, universe_filter: UniverseFilter | None = None) -> None:
        self.data_dir = Path(data_dir)
        self.universe_filter = universe_filter or UniverseFilter()
        self._bars_cache: dict[str, pd.DataFrame] = {}

    def fetch_universe(self) -> list[TickerSnapshot]:
        if not self.data_dir.exists():
            raise DataProviderError(f"Historical data directory not found: {self.data_dir}")
        tickers_path = self.data_dir / TICKERS_FILE
        if tickers_path.exists():
            tickers = self._read_tickers(tickers_path)
        else:
            tickers = [
                ticker_from_bars(symbol, self._load_bars(symbol)) for symbol in self._bar_symbols()
            ]
        return self.universe_filter.apply(tickers)

    def fetch_series(self, symbol: str) -> PriceSeries:
        return PriceSeries(symbol=symbol, bars=self._load_bars(symbol).copy())

    def _bar_symbols(self) -> list[str]:
        return sorted(
            path.stem.upper() for path in self.data_dir.glob("*.csv") if path.name != TICKERS_FILE
        )

    def _read_tickers(self, path: Path) -> list[TickerSnapshot]:
        try:
            frame = pd.read_csv(path)
        except ValueError as exc:
            raise DataProviderError(f"Unreadable {path.name}: {exc}") from exc
        frame.columns = [str(column).strip().lower() for column in frame.columns]
        missing = [column for column in TICKER_COLUMNS if column not in frame.columns]
        if missing:
            raise DataProviderError(f"{path.name} missing columns: {', '.join(missing)}")
        tickers: list[TickerSnapshot] = []
        for row in frame.to_dict(orient="records"):
            tickers.append(
                TickerSnapshot(
                    symbol=str(row["symbol"]).strip().upper(),
                    last=float(row["last"]),
                    high_24h=float(row["high_24h"]),
                    low_24h=float(row["low_24h"]),
                    change_24h=float(row["change_24h"]),
                    volume_24h=float(row["volume_24h"]),
                )
            )
        return tickers

    def _load_bars(self, symbol: str) -> pd.DataFrame:
        cached = self._bars_cache.get(symbol)
        if cached is not None:
            return cached
        path = self._resolve_path(symbol)
        if path is None:
            raise DataProviderError(f"No CSV found for {symbol} under {self.data_dir}")
        try:
            frame = pd.read_csv(path)
        except ValueError as exc:
            raise DataProviderError(f"Unreadable CSV for {symbol}: {exc}") from exc
        frame.columns = [str(column).strip().lower() for column in frame.columns]
        date_column = self._pick_date_column(frame)
        frame.index = pd.to_datetime(frame[date_column], errors="coerce")
        frame = frame[frame.index.notna()]
        normalized = normalize_ohlcv(frame, symbol)
        self._bars_cache[symbol] = normalized
        return normalized

    def _resolve_path(self, symbol: str) -> Path | None:
        for name in (symbol.upper(), symbol.lower(), symbol):
            candidate = self.data_dir / f"{name}.csv"
            if candidate.exists():
                return candidate
        return None

    def _pick_date_column(self, frame: pd.DataFrame) -> str:
        for candidate in self.date_column_candidates:
            if candidate in frame.columns:
                return candidate
        candidates = ", ".join(self.date_column_candidates)
        raise DataProviderError(f"CSV missing date column. Expected one of: {candidates}")
