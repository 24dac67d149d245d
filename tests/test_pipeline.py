from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pandas as pd

from regimescan.config import Settings
from regimescan.data import OkxMarketDataProvider, UniverseFilter
from regimescan.domain.models import (
    PriceSeries,
    Regime,
    TickerSnapshot,
    VolatilityRegime,
    VolumeTrend,
)
from regimescan.errors import DataProviderError
from regimescan.pipeline import fetch_inputs, partition_tickers, reprice, run_cycle

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def _ticker(symbol: str, last: float = 100.0, change: float = 2.0) -> TickerSnapshot:
    return TickerSnapshot(
        symbol=symbol,
        last=last,
        high_24h=last * 1.02,
        low_24h=last * 0.98,
        change_24h=change,
        volume_24h=5_000_000.0,
    )


def _series(symbol: str, start: float = 80.0, step: float = 0.5) -> PriceSeries:
    closes = [start + step * index for index in range(60)]
    bars = pd.DataFrame(
        {
            "open": [close * 0.99 for close in closes],
            "high": [close * 1.02 for close in closes],
            "low": [close * 0.98 for close in closes],
            "close": closes,
            "volume": [1000.0 + 10 * index for index in range(60)],
        },
        index=pd.date_range("2025-01-01", periods=60, freq="D"),
    )
    return PriceSeries(symbol=symbol, bars=bars)


def _flat_series(symbol: str, periods: int = 10) -> PriceSeries:
    closes = [100.0 + (index % 2) for index in range(periods)]
    bars = pd.DataFrame(
        {
            "open": closes,
            "high": [close * 1.01 for close in closes],
            "low": [close * 0.99 for close in closes],
            "close": closes,
            "volume": [1000.0] * periods,
        },
        index=pd.date_range("2025-01-01", periods=periods, freq="D"),
    )
    return PriceSeries(symbol=symbol, bars=bars)

def _universe() -> tuple[list[TickerSnapshot], dict[str, PriceSeries]]:
    tickers = [
        _ticker("BTC-USDT", change=3.0),
        _ticker("ETH-USDT", change=-1.5),
        _ticker("SOL-USDT", change=6.0),
    ]
    series = {
        "BTC-USDT": _series("BTC-USDT"),
        "ETH-USDT": _series("ETH-USDT", start=120.0, step=-0.3),
        "SOL-USDT": _series("SOL-USDT", start=50.0, step=1.0),
    }
    return tickers, series


def test_run_cycle_is_deterministic_for_the_same_inputs() -> None:
    tickers, series = _universe()
    settings = Settings()

    first = run_cycle(tickers, series, settings, cycle_id="cycle-1", now=NOW)
    second = run_cycle(tickers, series, settings, cycle_id="cycle-1", now=NOW)

    assert first.regime is second.regime
    assert first.snapshot == second.snapshot
    assert [(a.symbol, a.score, a.rank) for a in first.assets] == [
        (a.symbol, a.score, a.rank) for a in second.assets
    ]
    assert [a.plan for a in first.assets] == [a.plan for a in second.assets]
    assert first.completed_at == NOW


def test_run_cycle_ranks_by_descending_score() -> None:
    tickers, series = _universe()

    result = run_cycle(tickers, series, Settings(), now=NOW)

    scores = [asset.score for asset in result.assets]
    assert scores == sorted(scores, reverse=True)
    assert [asset.rank for asset in result.assets] == [1, 2, 3]
    assert all(asset.regime is result.regime for asset in result.assets)
    assert result.cycle_id == "cycle-20250301T120000"


def test_tied_scores_keep_fetch_order() -> None:
    symbols = ["CCC-USDT", "AAA-USDT", "BBB-USDT"]
    tickers = [_ticker(symbol) for symbol in symbols]
    series = {symbol: _series(symbol) for symbol in symbols}

    result = run_cycle(tickers, series, Settings(), now=NOW)

    assert len({asset.score for asset in result.assets}) == 1
    assert [asset.symbol for asset in result.assets] == symbols


def test_broken_assets_are_skipped_not_fatal() -> None:
    tickers, series = _universe()
    tickers.append(_ticker("NAN-USDT", last=float("nan")))
    tickers.append(_ticker("BARE-USDT"))

    skipped = {"OLD-USDT": "no data: 404"}
    result = run_cycle(tickers, series, Settings(), skipped=skipped, now=NOW)

    assert {asset.symbol for asset in result.assets} == {"BTC-USDT", "ETH-USDT", "SOL-USDT"}
    assert result.skipped["NAN-USDT"] == "invalid price: nan"
    assert result.skipped["BARE-USDT"] == "no price series"
    assert result.skipped["OLD-USDT"] == "no data: 404"


def test_balanced_three_asset_market_is_neutral() -> None:
    tickers = [
        _ticker("BTC-USDT", change=3.0),
        _ticker("ETH-USDT", change=-3.0),
        _ticker("SOL-USDT", change=0.1),
    ]
    # Ten flat-volume bars: too short for RSI or MACD, so both read neutral.
    series = {ticker.symbol: _flat_series(ticker.symbol) for ticker in tickers}

    result = run_cycle(tickers, series, Settings(), cycle_id="cycle-1", now=NOW)

    snapshot = result.snapshot
    assert snapshot.trend.bullish_ratio == snapshot.trend.bearish_ratio
    assert snapshot.trend.strength == 0.0
    assert snapshot.strength.average_rsi == 50.0
    assert snapshot.volatility.regime is VolatilityRegime.NORMAL
    assert snapshot.volume.trend is VolumeTrend.FLAT
    assert result.regime is Regime.NEUTRAL
    assert len(result.assets) == 3


def test_empty_universe_still_classifies() -> None:
    result = run_cycle([], {}, Settings(), now=NOW)

    assert result.assets == ()
    assert result.snapshot.asset_count == 0
    assert result.snapshot.volatility.average == 0.0


def test_regime_change_is_flagged_and_alerted() -> None:
    tickers, series = _universe()
    baseline = run_cycle(tickers, series, Settings(), now=NOW)
    other = next(regime for regime in Regime if regime is not baseline.regime)

    changed = run_cycle(tickers, series, Settings(), previous_regime=other, now=NOW)
    same = run_cycle(tickers, series, Settings(), previous_regime=baseline.regime, now=NOW)

    assert baseline.regime_changed is False
    assert not any(alert.kind == "regime_change" for alert in baseline.alerts)
    assert changed.regime_changed is True
    assert changed.previous_regime is other
    assert changed.alerts[0].kind == "regime_change"
    assert changed.alerts[0].message == f"regime {other.value} -> {baseline.regime.value}"
    assert same.regime_changed is False


def test_partition_tickers_rejects_non_positive_prices() -> None:
    usable, rejected = partition_tickers([_ticker("A"), _ticker("B", last=0.0)])

    assert [ticker.symbol for ticker in usable] == ["A"]
    assert rejected == {"B": "invalid price: 0.0"}


class FakeProvider:
    def __init__(self, tickers: list[TickerSnapshot], series: dict[str, PriceSeries]) -> None:
        self.tickers = tickers
        self.series = series
        self.requested: list[str] = []

    def fetch_universe(self) -> list[TickerSnapshot]:
        return list(self.tickers)

    def fetch_series(self, symbol: str) -> PriceSeries:
        self.requested.append(symbol)
        if symbol not in self.series:
            raise DataProviderError(f"no candles for {symbol}")
        return self.series[symbol]


def test_fetch_inputs_skips_assets_without_series() -> None:
    tickers = [_ticker("SOL-USDT"), _ticker("ADA-USDT")]
    provider = FakeProvider(tickers, {"SOL-USDT": _series("SOL-USDT")})
    skips: list[tuple[str, str]] = []

    inputs = fetch_inputs(provider, Settings(), on_skip=lambda s, r: skips.append((s, r)))

    assert provider.requested == ["SOL-USDT", "ADA-USDT", "BTC-USDT", "ETH-USDT"]
    assert list(inputs.series_by_symbol) == ["SOL-USDT"]
    assert inputs.skipped == {"ADA-USDT": "no data: no candles for ADA-USDT"}
    assert skips == [("ADA-USDT", "no data: no candles for ADA-USDT")]
    assert inputs.tickers == tuple(tickers)


def test_fetch_inputs_loads_benchmarks_outside_the_universe() -> None:
    provider = FakeProvider(
        [_ticker("SOL-USDT")],
        {
            "SOL-USDT": _series("SOL-USDT"),
            "BTC-USDT": _series("BTC-USDT"),
            "ETH-USDT": _series("ETH-USDT"),
        },
    )

    inputs = fetch_inputs(provider, Settings())

    assert set(inputs.series_by_symbol) == {"SOL-USDT", "BTC-USDT", "ETH-USDT"}
    assert inputs.skipped == {}


class OkxResponse:
    def __init__(self, payload: dict[str, Any] | None, text: str = "") -> None:
        self.status_code = 200
        self._payload = payload
        self.text = text

    def json(self) -> dict[str, Any]:
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class RoutedOkxSession:
    def __init__(self, routes: dict[str, OkxResponse]) -> None:
        self.routes = routes

    def get(self, url: str, params: dict[str, str], timeout: int) -> OkxResponse:
        _ = url, timeout
        return self.routes[params.get("instId", "tickers")]


def test_fetch_inputs_survives_malformed_exchange_responses() -> None:
    tickers = [
        {"instId": "SOL-USDT", "last": "20", "open24h": "19", "volCcy24h": "9000000"},
        {"instId": "ADA-USDT", "last": "0.5", "open24h": "0.5", "volCcy24h": "4000000"},
    ]
    candles = [
        ["1736035200000", "21", "22", "20", "21.5", "100"],
        ["notatime", "20", "21", "19", "20.5", "100"],
        ["1735948800000", "20", "21", "19", "20.5", "100"],
    ]
    unknown = {"code": "51001", "msg": "Instrument ID does not exist", "data": []}
    session = RoutedOkxSession(
        {
            "tickers": OkxResponse({"code": "0", "data": tickers}),
            "SOL-USDT": OkxResponse({"code": "0", "data": candles}),
            "ADA-USDT": OkxResponse(None, text="<html>502 Bad Gateway</html>"),
            "BTC-USDT": OkxResponse(unknown),
            "ETH-USDT": OkxResponse(unknown),
        }
    )
    provider = OkxMarketDataProvider(
        base_url="https://okx.test",
        universe_filter=UniverseFilter(),
        session=session,  # type: ignore[arg-type]
        sleep=lambda seconds: None,
    )

    inputs = fetch_inputs(provider, Settings())

    assert list(inputs.series_by_symbol) == ["SOL-USDT"]
    assert list(inputs.series_by_symbol["SOL-USDT"].closes) == [20.5, 21.5]
    assert list(inputs.skipped) == ["ADA-USDT"]
    assert "non-JSON" in inputs.skipped["ADA-USDT"]


def test_reprice_updates_prices_without_rescoring() -> None:
    tickers, series = _universe()
    result = run_cycle(tickers, series, Settings(), cycle_id="cycle-1", now=NOW)
    later = datetime(2025, 3, 1, 12, 1, tzinfo=UTC)

    refreshed = reprice(
        result,
        [_ticker("SOL-USDT", last=111.0, change=9.0), _ticker("BTC-USDT", last=float("nan"))],
        now=later,
    )

    sol_before = result.asset("SOL-USDT")
    sol_after = refreshed.asset("SOL-USDT")
    btc_after = refreshed.asset("BTC-USDT")
    assert sol_before is not None and sol_after is not None and btc_after is not None
    assert sol_after.price == 111.0
    assert sol_after.analysis.change_24h == 9.0
    assert sol_after.score == sol_before.score
    assert sol_after.rank == sol_before.rank
    assert sol_after.plan == sol_before.plan
    assert btc_after == result.asset("BTC-USDT")
    assert refreshed.cycle_id == "cycle-1"
    assert refreshed.completed_at == later
    assert refreshed.alerts == result.alerts
