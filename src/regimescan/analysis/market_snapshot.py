"""Universe-wide aggregation of ticker statistics and indicator outputs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

import numpy as np
import pandas as pd

from regimescan.analysis import indicators
from regimescan.config import Settings
from regimescan.domain.models import (
    AssetAnalysis,
    CorrelationMetrics,
    MarketSnapshot,
    PriceSeries,
    StrengthMetrics,
    TickerSnapshot,
    TrendMetrics,
    VolatilityMetrics,
    VolumeMetrics,
    VolumeTrend,
)
from regimescan.regime.classifier import classify_volatility

VOLATILITY_TREND_TOLERANCE = 0.1
LIQUIDITY_RECENT_BARS = 3


def trend_metrics(tickers: Sequence[TickerSnapshot], band: float) -> TrendMetrics:
    """Count bullish, bearish, and neutral 24h moves."""
    total = len(tickers)
    if total == 0:
        return TrendMetrics()
    gains = [t.change_24h for t in tickers if t.change_24h > band]
    losses = [t.change_24h for t in tickers if t.change_24h < -band]
    neutral_count = total - len(gains) - len(losses)
    bullish_ratio = len(gains) / total
    bearish_ratio = len(losses) / total
    return TrendMetrics(
        bullish_count=len(gains),
        bearish_count=len(losses),
        neutral_count=neutral_count,
        bullish_ratio=bullish_ratio,
        bearish_ratio=bearish_ratio,
        neutral_ratio=neutral_count / total,
        strength=abs(bullish_ratio - bearish_ratio),
        avg_positive_change=float(np.mean(gains)) if gains else 0.0,
        avg_negative_change=float(np.mean([abs(v) for v in losses])) if losses else 0.0,
    )


def intraday_range(ticker: TickerSnapshot) -> float | None:
    """(high - low) / last, or None when the ticker cannot support it."""
    if ticker.last <= 0 or ticker.high_24h < ticker.low_24h:
        return None
    value = (ticker.high_24h - ticker.low_24h) / ticker.last
    return float(value) if np.isfinite(value) else None


def volatility_metrics(
    tickers: Sequence[TickerSnapshot],
    reference_series: PriceSeries | None,
    settings: Settings,
    previous: MarketSnapshot | None = None,
) -> VolatilityMetrics:
    ranges = [value for value in (intraday_range(t) for t in tickers) if value is not None]
    average = float(np.mean(ranges)) if ranges else 0.0
    high_ratio = (
        sum(1 for value in ranges if value > settings.high_volatility_threshold) / len(ranges)
        if ranges
        else 0.0
    )
    reference = (
        indicators.realized_volatility(reference_series.closes, window=settings.short_period)
        if reference_series is not None
        else 0.0
    )
    trend = "stable"
    if previous is not None and previous.volatility.average > 0:
        change = average / previous.volatility.average - 1.0
        if change > VOLATILITY_TREND_TOLERANCE:
            trend = "rising"
        elif change < -VOLATILITY_TREND_TOLERANCE:
            trend = "falling"
    return VolatilityMetrics(
        average=average,
        high_volatility_ratio=high_ratio,
        regime=classify_volatility(
            average,
            high=settings.high_volatility_threshold,
            low=settings.low_volatility_threshold,
        ),
        reference=reference,
        trend=trend,
    )


def volume_metrics(
    tickers: Sequence[TickerSnapshot],
    series_by_symbol: Mapping[str, PriceSeries],
    settings: Settings,
) -> VolumeMetrics:
    if not tickers:
        return VolumeMetrics()
    volumes = [max(0.0, float(t.volume_24h)) for t in tickers]
    total = sum(volumes)
    top = sorted(volumes, reverse=True)[: settings.volume_concentration_top_n]
    concentration = sum(top) / total if total > 0 else 0.0

    spikes: list[str] = []
    dry: list[str] = []
    flow_ratios: list[float] = []
    for ticker in tickers:
        series = series_by_symbol.get(ticker.symbol)
        if series is None or len(series) < 2:
            continue
        ratio = indicators.volume_ratio(series.volumes, window=settings.short_period)
        if ratio > settings.volume_surge_multiplier:
            spikes.append(ticker.symbol)
        elif ratio < settings.volume_dry_multiplier:
            dry.append(ticker.symbol)
        if len(series) > LIQUIDITY_RECENT_BARS:
            flow = indicators.liquidity_flow(
                series.volumes,
                recent=LIQUIDITY_RECENT_BARS,
                window=settings.short_period,
            )
            flow_ratios.append(flow.value)

    trend_ratio = float(np.mean(flow_ratios)) if flow_ratios else 1.0
    if trend_ratio > 1.0 + settings.volume_trend_tolerance:
        trend = VolumeTrend.INCREASING
    elif trend_ratio < 1.0 - settings.volume_trend_tolerance:
        trend = VolumeTrend.DECREASING
    else:
        trend = VolumeTrend.FLAT
    return VolumeMetrics(
        average=total / len(volumes),
        spike_symbols=tuple(spikes),
        dry_symbols=tuple(dry),
        concentration=concentration,
        trend=trend,
        trend_ratio=trend_ratio,
    )


def strength_metrics(analyses: Sequence[AssetAnalysis]) -> StrengthMetrics:
    if not analyses:
        return StrengthMetrics()
    count = len(analyses)
    average_rsi = float(np.mean([a.rsi.value for a in analyses]))
    macd_ratio = sum(1 for a in analyses if a.macd.signal == "bullish") / count
    return StrengthMetrics(
        average_rsi=average_rsi,
        macd_bullish_ratio=macd_ratio,
        overbought_ratio=sum(1 for a in analyses if a.rsi.signal == "overbought") / count,
        oversold_ratio=sum(1 for a in analyses if a.rsi.signal == "oversold") / count,
        overall=(average_rsi / 100.0 + macd_ratio) / 2.0,
    )


def correlation_metrics(
    first: PriceSeries | None,
    second: PriceSeries | None,
    window: int,
) -> CorrelationMetrics:
    """Pearson correlation of the benchmarks' recent daily returns."""
    pair = tuple(series.symbol for series in (first, second) if series is not None)
    if first is None or second is None:
        return CorrelationMetrics(pair=pair)
    left = _returns(first.closes).iloc[-window:]
    right = _returns(second.closes).iloc[-window:]
    size = min(len(left), len(right))
    if size < 3:
        return CorrelationMetrics(pair=pair)
    left = left.iloc[-size:].reset_index(drop=True)
    right = right.iloc[-size:].reset_index(drop=True)
    coefficient = left.corr(right)
    if coefficient is None or not np.isfinite(coefficient):
        coefficient = 0.0
    return CorrelationMetrics(pair=pair, coefficient=float(coefficient))


def _returns(closes: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(closes, errors="coerce").astype("float64")
    returns = numeric.pct_change().replace([np.inf, -np.inf], np.nan)
    return returns.dropna()


def build_snapshot(
    tickers: Sequence[TickerSnapshot],
    analyses: Mapping[str, AssetAnalysis],
    series_by_symbol: Mapping[str, PriceSeries],
    settings: Settings,
    previous: MarketSnapshot | None = None,
    timestamp: datetime | None = None,
) -> MarketSnapshot:
    """Aggregate the five metric groups across the asset universe."""
    first_symbol, second_symbol = settings.benchmark_symbols
    first = series_by_symbol.get(first_symbol)
    second = series_by_symbol.get(second_symbol)
    return MarketSnapshot(
        trend=trend_metrics(tickers, settings.trend_neutral_band),
        volatility=volatility_metrics(tickers, first, settings, previous=previous),
        volume=volume_metrics(tickers, series_by_symbol, settings),
        strength=strength_metrics(list(analyses.values())),
        correlation=correlation_metrics(first, second, window=settings.medium_period),
        timestamp=timestamp or datetime.now(tz=UTC),
        asset_count=len(tickers),
    )
