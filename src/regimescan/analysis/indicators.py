"""Stateless technical indicators over pandas price/volume series.

Every function here is total. Short, empty, or degenerate input resolves to a
documented neutral fallback instead of raising or returning NaN, so callers
can treat thin history as low confidence rather than as an error.

Series are expected in chronological order (oldest first).
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import pandas as pd

from regimescan.domain.models import IndicatorResult

OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
MFI_OVERBOUGHT = 80.0
MFI_OVERSOLD = 20.0
MACD_FAST = 12
MACD_SLOW = 26
FLOW_TOLERANCE = 0.1
BUYING_POWER_HIGH = 0.6
BUYING_POWER_LOW = 0.4


def _as_series(values: pd.Series | Iterable[float] | None) -> pd.Series:
    if values is None:
        return pd.Series(dtype="float64")
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype="object")
    numeric = pd.to_numeric(series, errors="coerce").astype("float64")
    numeric = numeric.replace([np.inf, -np.inf], np.nan).dropna()
    return numeric.reset_index(drop=True)


def _ohlcv(bars: pd.DataFrame | None) -> pd.DataFrame:
    if bars is None or any(column not in bars.columns for column in OHLCV_COLUMNS):
        return pd.DataFrame(columns=list(OHLCV_COLUMNS), dtype="float64")
    frame = bars[list(OHLCV_COLUMNS)].apply(pd.to_numeric, errors="coerce")
    frame = frame.replace([np.inf, -np.inf], np.nan).dropna()
    return frame.reset_index(drop=True)


def _finite(value: object, fallback: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    return number if np.isfinite(number) else fallback


def sma(prices: pd.Series | Iterable[float], period: int) -> float:
    """Simple moving average; short series fall back to the latest price."""
    series = _as_series(prices)
    if series.empty:
        return 0.0
    latest = float(series.iloc[-1])
    if period <= 0 or len(series) < period:
        return latest
    return _finite(series.iloc[-period:].mean(), latest)


def ema(prices: pd.Series | Iterable[float], period: int) -> float:
    """Exponential moving average; short series fall back to the latest price."""
    series = _as_series(prices)
    if series.empty:
        return 0.0
    latest = float(series.iloc[-1])
    if period <= 0 or len(series) < period:
        return latest
    return _finite(series.ewm(span=period, adjust=False).mean().iloc[-1], latest)


def rsi(closes: pd.Series | Iterable[float], period: int = 14) -> IndicatorResult:
    """Relative Strength Index from simple average gains and losses.

    Needs ``period + 1`` closes; otherwise returns ``(50, "neutral", "neutral")``.
    """
    series = _as_series(closes)
    if period <= 0 or len(series) < period + 1:
        return IndicatorResult(50.0, "neutral", "neutral")
    changes = series.diff().iloc[-period:]
    avg_gain = float(changes.clip(lower=0.0).sum()) / period
    avg_loss = float(-changes.clip(upper=0.0).sum()) / period
    if avg_loss == 0:
        value = 100.0 if avg_gain > 0 else 50.0
    else:
        value = 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))
    value = _finite(value, 50.0)
    if value > RSI_OVERBOUGHT:
        signal = "overbought"
    elif value < RSI_OVERSOLD:
        signal = "oversold"
    else:
        signal = "neutral"
    if value > 50:
        trend = "bullish"
    elif value < 50:
        trend = "bearish"
    else:
        trend = "neutral"
    return IndicatorResult(value, signal, trend)


def macd(closes: pd.Series | Iterable[float]) -> IndicatorResult:
    """12/26 EMA difference; neutral zero until 26 closes exist."""
    series = _as_series(closes)
    if len(series) < MACD_SLOW:
        return IndicatorResult(0.0, "neutral", "neutral")
    value = _finite(ema(series, MACD_FAST) - ema(series, MACD_SLOW), 0.0)
    signal = "bullish" if value > 0 else "bearish"
    return IndicatorResult(value, signal, signal)


def money_flow_index(bars: pd.DataFrame | None, period: int = 14) -> IndicatorResult:
    """Volume-weighted RSI over typical price."""
    frame = _ohlcv(bars)
    if period <= 0 or len(frame) < period + 1:
        return IndicatorResult(50.0, "neutral", "neutral")
    window = frame.iloc[-(period + 1) :]
    typical = (window["high"] + window["low"] + window["close"]) / 3.0
    flow = typical * window["volume"]
    direction = typical.diff()
    positive = float(flow[direction > 0].sum())
    negative = float(flow[direction < 0].sum())
    if negative == 0:
        value = 100.0 if positive > 0 else 50.0
    else:
        value = 100.0 - (100.0 / (1.0 + positive / negative))
    value = _finite(value, 50.0)
    if value > MFI_OVERBOUGHT:
        signal = "overbought"
    elif value < MFI_OVERSOLD:
        signal = "oversold"
    else:
        signal = "neutral"
    trend = "positive" if positive > negative else "negative"
    return IndicatorResult(value, signal, trend)


def accumulation_distribution(bars: pd.DataFrame | None, window: int = 7) -> IndicatorResult:
    """Cumulative close-location value weighted by volume over ``window`` bars."""
    frame = _ohlcv(bars)
    if window <= 0 or frame.empty:
        return IndicatorResult(0.0, "neutral", "neutral")
    recent = frame.iloc[-window:]
    spread = recent["high"] - recent["low"]
    pressure = (recent["close"] - recent["low"]) - (recent["high"] - recent["close"])
    location = pressure / spread.where(spread > 0)
    value = _finite((location.fillna(0.0) * recent["volume"]).sum(), 0.0)
    if value > 0:
        trend = "accumulation"
    elif value < 0:
        trend = "distribution"
    else:
        trend = "neutral"
    return IndicatorResult(value, trend, trend)


def support_resistance(
    bars: pd.DataFrame | None,
    window: int = 20,
) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Return (supports ascending, resistances descending) from window extremes."""
    frame = _ohlcv(bars)
    if window <= 0 or frame.empty:
        return (), ()
    recent = frame.iloc[-window:]
    resistances = tuple(sorted((float(v) for v in recent["high"].nlargest(2)), reverse=True))
    supports = tuple(sorted(float(v) for v in recent["low"].nsmallest(2)))
    return supports, resistances


def realized_volatility(closes: pd.Series | Iterable[float], window: int = 7) -> float:
    """Sample std of day-over-day fractional returns; 0.0 below two returns."""
    series = _as_series(closes)
    returns = series.pct_change().iloc[1:]
    returns = returns.replace([np.inf, -np.inf], np.nan).dropna().iloc[-window:]
    if window <= 0 or len(returns) < 2:
        return 0.0
    return _finite(returns.std(), 0.0)


def trend_strength(closes: pd.Series | Iterable[float], window: int = 10) -> float:
    """Fraction of up-days over the last ``window`` changes; 0.5 without data."""
    series = _as_series(closes)
    changes = series.diff().iloc[1:].iloc[-window:] if window > 0 else series.iloc[0:0]
    if changes.empty:
        return 0.5
    return float((changes > 0).sum()) / float(len(changes))


def moving_average_signal(
    closes: pd.Series | Iterable[float],
    short_window: int = 20,
    long_window: int = 50,
) -> IndicatorResult:
    """Buy when price leads a rising short average, sell on the mirror image."""
    series = _as_series(closes)
    if series.empty:
        return IndicatorResult(0.0, "hold", "neutral")
    close = float(series.iloc[-1])
    short_ma = sma(series, short_window)
    long_ma = sma(series, long_window)
    spread = _finite((short_ma - long_ma) / long_ma, 0.0) if long_ma else 0.0
    if close > short_ma > long_ma:
        signal = "buy"
    elif close < short_ma < long_ma:
        signal = "sell"
    else:
        signal = "hold"
    if short_ma > long_ma:
        trend = "bullish"
    elif short_ma < long_ma:
        trend = "bearish"
    else:
        trend = "neutral"
    return IndicatorResult(spread, signal, trend)


def liquidity_flow(
    volumes: pd.Series | Iterable[float],
    recent: int = 3,
    window: int = 7,
) -> IndicatorResult:
    """Recent mean volume relative to the preceding window."""
    series = _as_series(volumes)
    if recent <= 0 or window <= 0 or len(series) < recent + 1:
        return IndicatorResult(1.0, "stable", "stable")
    recent_mean = float(series.iloc[-recent:].mean())
    prior = series.iloc[-(recent + window) : -recent]
    prior_mean = float(prior.mean()) if not prior.empty else 0.0
    if prior_mean <= 0:
        return IndicatorResult(1.0, "stable", "stable")
    ratio = _finite(recent_mean / prior_mean, 1.0)
    if ratio > 1.0 + FLOW_TOLERANCE:
        signal = "increasing"
    elif ratio < 1.0 - FLOW_TOLERANCE:
        signal = "decreasing"
    else:
        signal = "stable"
    return IndicatorResult(ratio, signal, signal)


def buying_power(bars: pd.DataFrame | None, window: int = 7) -> IndicatorResult:
    """Share of window volume traded on bars that closed above their open."""
    frame = _ohlcv(bars)
    recent = frame.iloc[-window:] if window > 0 else frame.iloc[0:0]
    total = float(recent["volume"].sum()) if not recent.empty else 0.0
    if total <= 0:
        return IndicatorResult(0.5, "medium", "neutral")
    up_volume = float(recent.loc[recent["close"] > recent["open"], "volume"].sum())
    share = _finite(up_volume / total, 0.5)
    if share >= BUYING_POWER_HIGH:
        return IndicatorResult(share, "high", "bullish")
    if share <= BUYING_POWER_LOW:
        return IndicatorResult(share, "low", "bearish")
    return IndicatorResult(share, "medium", "neutral")


def volume_ratio(volumes: pd.Series | Iterable[float], window: int = 7) -> float:
    """Latest volume over the trailing mean of the previous ``window`` bars."""
    series = _as_series(volumes)
    if window <= 0 or len(series) < 2:
        return 1.0
    trailing = series.iloc[-(window + 1) : -1]
    baseline = float(trailing.mean())
    if baseline <= 0:
        return 1.0
    return _finite(float(series.iloc[-1]) / baseline, 1.0)
