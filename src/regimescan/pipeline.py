"""One refresh cycle: analyze, classify, score, plan, rank.

Everything here except ``fetch_inputs`` is a pure function of its inputs,
so the same frozen tickers and series always give the same result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import numpy as np

from regimescan.alerts import build_alerts
from regimescan.analysis import analyze_universe, build_snapshot
from regimescan.config import Settings, dedupe_symbols
from regimescan.data.base import MarketDataProvider
from regimescan.domain.models import (
    AssetAnalysis,
    CycleResult,
    MarketSnapshot,
    PriceSeries,
    Regime,
    ScoredAsset,
    TickerSnapshot,
)
from regimescan.errors import DataProviderError
from regimescan.regime import RegimeThresholds, classify_regime, regime_changed
from regimescan.scoring import create_scorer
from regimescan.strategy import synthesize_plan

SkipCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class CycleInputs:
    """Raw data fetched for one cycle."""

    tickers: tuple[TickerSnapshot, ...]
    series_by_symbol: dict[str, PriceSeries] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)


def fetch_inputs(
    provider: MarketDataProvider,
    settings: Settings,
    on_skip: SkipCallback | None = None,
) -> CycleInputs:
    """Fetch the universe, then each asset's series plus the benchmarks.

    A universe failure propagates and aborts the cycle. A series failure
    only drops that asset.
    """
    tickers = tuple(provider.fetch_universe())
    universe = {ticker.symbol for ticker in tickers}
    series_by_symbol: dict[str, PriceSeries] = {}
    skipped: dict[str, str] = {}
    symbols = dedupe_symbols([*[ticker.symbol for ticker in tickers], *settings.benchmark_symbols])
    for symbol in symbols:
        try:
            series_by_symbol[symbol] = provider.fetch_series(symbol)
        except DataProviderError as exc:
            if symbol not in universe:
                continue
            reason = f"no data: {exc}"
            skipped[symbol] = reason
            if on_skip is not None:
                on_skip(symbol, reason)
    return CycleInputs(tickers=tickers, series_by_symbol=series_by_symbol, skipped=skipped)


def valid_price(value: float) -> bool:
    return bool(np.isfinite(value)) and value > 0


def partition_tickers(
    tickers: Sequence[TickerSnapshot],
) -> tuple[list[TickerSnapshot], dict[str, str]]:
    """Split tickers into usable ones and those with a broken last price."""
    usable: list[TickerSnapshot] = []
    rejected: dict[str, str] = {}
    for ticker in tickers:
        if valid_price(ticker.last):
            usable.append(ticker)
        else:
            rejected[ticker.symbol] = f"invalid price: {ticker.last}"
    return usable, rejected


def classify_market(
    tickers: Sequence[TickerSnapshot],
    analyses: Mapping[str, AssetAnalysis],
    series_by_symbol: Mapping[str, PriceSeries],
    settings: Settings,
    previous_snapshot: MarketSnapshot | None = None,
    timestamp: datetime | None = None,
) -> tuple[MarketSnapshot, Regime]:
    snapshot = build_snapshot(
        tickers,
        analyses,
        series_by_symbol,
        settings,
        previous=previous_snapshot,
        timestamp=timestamp,
    )
    return snapshot, classify_regime(snapshot, RegimeThresholds.from_settings(settings))


def rank_assets(assets: Sequence[ScoredAsset]) -> tuple[ScoredAsset, ...]:
    """Descending score; ties keep their input order."""
    ordered = sorted(assets, key=lambda asset: asset.score, reverse=True)
    return tuple(replace(asset, rank=index) for index, asset in enumerate(ordered, start=1))


def run_cycle(
    tickers: Sequence[TickerSnapshot],
    series_by_symbol: Mapping[str, PriceSeries],
    settings: Settings,
    previous_regime: Regime | None = None,
    previous_snapshot: MarketSnapshot | None = None,
    skipped: Mapping[str, str] | None = None,
    cycle_id: str | None = None,
    now: datetime | None = None,
) -> CycleResult:
    """Produce the ranked, regime-conditioned result for one universe."""
    completed_at = now or datetime.now(tz=UTC)
    skipped_assets = dict(skipped or {})
    usable, rejected = partition_tickers(tickers)
    skipped_assets.update(rejected)

    analyses = analyze_universe(usable, series_by_symbol, settings)
    for ticker in usable:
        if ticker.symbol not in analyses:
            skipped_assets.setdefault(ticker.symbol, "no price series")

    snapshot, regime = classify_market(
        usable,
        analyses,
        series_by_symbol,
        settings,
        previous_snapshot=previous_snapshot,
        timestamp=completed_at,
    )
    scorer = create_scorer(regime, settings)

    scored: list[ScoredAsset] = []
    for symbol, analysis in analyses.items():
        card = scorer.score(analysis, regime, snapshot)
        try:
            plan = synthesize_plan(analysis.price, analysis, regime, snapshot, settings)
        except ValueError as exc:
            skipped_assets[symbol] = f"no valid plan: {exc}"
            continue
        scored.append(
            ScoredAsset(
                symbol=symbol,
                price=analysis.price,
                analysis=analysis,
                score=card.score,
                risk_tier=card.risk_tier,
                plan=plan,
                regime=regime,
                card=card,
            )
        )

    result = CycleResult(
        cycle_id=cycle_id or f"cycle-{completed_at:%Y%m%dT%H%M%S}",
        regime=regime,
        snapshot=snapshot,
        assets=rank_assets(scored),
        previous_regime=previous_regime,
        regime_changed=regime_changed(previous_regime, regime),
        skipped=skipped_assets,
        completed_at=completed_at,
    )
    return replace(result, alerts=build_alerts(result, settings))


def reprice(
    result: CycleResult,
    tickers: Sequence[TickerSnapshot],
    now: datetime | None = None,
) -> CycleResult:
    """Refresh last price, change and volume without rescoring.

    Assets whose new price is missing or invalid keep their previous values.
    Ranks, scores and plans are left untouched until the next full cycle.
    """
    latest = {ticker.symbol: ticker for ticker in tickers if valid_price(ticker.last)}
    refreshed: list[ScoredAsset] = []
    for asset in result.assets:
        ticker = latest.get(asset.symbol)
        if ticker is None:
            refreshed.append(asset)
            continue
        analysis = replace(
            asset.analysis,
            price=float(ticker.last),
            change_24h=float(ticker.change_24h),
            volume_24h=float(ticker.volume_24h),
        )
        refreshed.append(replace(asset, price=analysis.price, analysis=analysis))
    return replace(
        result,
        assets=tuple(refreshed),
        completed_at=now or datetime.now(tz=UTC),
    )
