"""Per-asset technical analysis built from the indicator library."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from regimescan.analysis import indicators
from regimescan.config import Settings
from regimescan.domain.models import AssetAnalysis, PriceSeries, TickerSnapshot


def analyze_asset(
    ticker: TickerSnapshot,
    series: PriceSeries | None,
    settings: Settings,
) -> AssetAnalysis:
    """Run every indicator against one asset's own series."""
    fallback_supports = (float(ticker.low_24h),) if ticker.low_24h > 0 else ()
    fallback_resistances = (float(ticker.high_24h),) if ticker.high_24h > 0 else ()
    if series is None or len(series) == 0:
        return AssetAnalysis(
            symbol=ticker.symbol,
            price=float(ticker.last),
            change_24h=float(ticker.change_24h),
            volume_24h=float(ticker.volume_24h),
            supports=fallback_supports,
            resistances=fallback_resistances,
        )

    bars = series.bars
    closes = series.closes
    volumes = series.volumes
    supports, resistances = indicators.support_resistance(bars, window=settings.medium_period)
    return AssetAnalysis(
        symbol=ticker.symbol,
        price=float(ticker.last),
        change_24h=float(ticker.change_24h),
        volume_24h=float(ticker.volume_24h),
        rsi=indicators.rsi(closes, period=settings.rsi_period),
        macd=indicators.macd(closes),
        mfi=indicators.money_flow_index(bars, period=settings.rsi_period),
        accumulation=indicators.accumulation_distribution(bars, window=settings.short_period),
        moving_average=indicators.moving_average_signal(
            closes,
            short_window=settings.medium_period,
            long_window=settings.long_period,
        ),
        liquidity_flow=indicators.liquidity_flow(volumes, window=settings.short_period),
        buying_power=indicators.buying_power(bars, window=settings.short_period),
        supports=supports or fallback_supports,
        resistances=resistances or fallback_resistances,
        volatility=indicators.realized_volatility(closes, window=settings.short_period),
        trend_strength=indicators.trend_strength(closes, window=settings.trend_window),
        volume_ratio=indicators.volume_ratio(volumes, window=settings.short_period),
        bar_count=len(series),
    )


def analyze_universe(
    tickers: Iterable[TickerSnapshot],
    series_by_symbol: Mapping[str, PriceSeries],
    settings: Settings,
) -> dict[str, AssetAnalysis]:
    """Analyze every ticker that has a fetched series, keeping fetch order."""
    analyses: dict[str, AssetAnalysis] = {}
    for ticker in tickers:
        series = series_by_symbol.get(ticker.symbol)
        if series is None:
            continue
        analyses[ticker.symbol] = analyze_asset(ticker, series, settings)
    return analyses
