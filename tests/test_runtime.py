from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from regimescan.config import Settings
from regimescan.domain.models import PriceSeries, TickerSnapshot
from regimescan.errors import DataProviderError
from regimescan.logging.event_sink import JsonlEventSink, load_events
from regimescan.logging.logger import HumanLogger
from regimescan.runtime import (
    CadenceTask,
    NoopStateStore,
    ScanContext,
    Scheduler,
    build_scheduler,
    execute_full_cycle,
    refresh_prices,
    refresh_regime,
    run,
)
from regimescan.state.board import ResultBoard
from regimescan.state.sqlite_store import SqliteStateStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _bars(start: float, step: float, periods: int = 60) -> pd.DataFrame:
    closes = [start + step * index for index in range(periods)]
    return pd.DataFrame(
        {
            "open": [close * 0.99 for close in closes],
            "high": [close * 1.02 for close in closes],
            "low": [close * 0.98 for close in closes],
            "close": closes,
            "volume": [50_000.0] * periods,
        },
        index=pd.date_range("2025-01-01", periods=periods, freq="D"),
    )


class FakeProvider:
    def __init__(self) -> None:
        self.bars = {
            "BTC-USDT": _bars(90.0, 0.2),
            "ETH-USDT": _bars(60.0, -0.1),
            "SOL-USDT": _bars(20.0, 0.3),
        }
        self.prices = {symbol: float(bars["close"].iloc[-1]) for symbol, bars in self.bars.items()}
        self.fail = False

    def fetch_universe(self) -> list[TickerSnapshot]:
        if self.fail:
            raise DataProviderError("exchange unavailable")
        return [
            TickerSnapshot(
                symbol=symbol,
                last=price,
                high_24h=price * 1.02,
                low_24h=price * 0.98,
                change_24h=1.0,
                volume_24h=5_000_000.0,
            )
            for symbol, price in self.prices.items()
        ]

    def fetch_series(self, symbol: str) -> PriceSeries:
        return PriceSeries(symbol=symbol, bars=self.bars[symbol])


def _context(tmp_path: Path, provider: FakeProvider | None = None) -> ScanContext:
    return ScanContext(
        settings=Settings(),
        provider=provider or FakeProvider(),
        store=NoopStateStore(),
        board=ResultBoard(),
        event_sink=JsonlEventSink(str(tmp_path / "events.jsonl")),
        human_logger=HumanLogger(),
        run_id="0123456789abcdef",
    )


def _event_types(tmp_path: Path) -> list[str]:
    return [event["event_type"] for event in load_events(tmp_path / "events.jsonl")]


def test_scheduler_runs_cadences_serially_until_max_cycles() -> None:
    clock = FakeClock()
    calls: list[str] = []
    tasks = [
        CadenceTask("slow", 900.0, lambda: calls.append("slow")),
        CadenceTask("normal", 300.0, lambda: calls.append("normal")),
        CadenceTask("fast", 60.0, lambda: calls.append("fast")),
    ]

    Scheduler(tasks, clock=clock, sleep=clock.sleep, max_cycles=2).run()

    assert calls == ["slow", "normal", "fast", "fast", "fast", "fast", "fast", "normal", "fast"]
    assert clock.sleeps == [60.0] * 5


def test_scheduler_reports_failures_and_keeps_going() -> None:
    clock = FakeClock()
    errors: list[tuple[str, str]] = []

    def broken() -> None:
        raise RuntimeError("boom")

    scheduler = Scheduler(
        [CadenceTask("normal", 300.0, broken)],
        clock=clock,
        sleep=clock.sleep,
        on_error=lambda task, exc: errors.append((task, str(exc))),
        max_cycles=2,
    )
    scheduler.run()

    assert errors == [("normal", "boom"), ("normal", "boom")]
    assert clock.sleeps == [300.0]


def test_scheduler_without_error_handler_propagates() -> None:
    def broken() -> None:
        raise RuntimeError("boom")

    scheduler = Scheduler([CadenceTask("normal", 300.0, broken)], clock=lambda: 0.0)

    with pytest.raises(RuntimeError):
        scheduler.run_pending()


def test_full_cycle_publishes_and_reports(tmp_path: Path) -> None:
    context = _context(tmp_path)

    result = execute_full_cycle(context)

    assert context.board.current is result
    assert result.cycle_id == "01234567-00001"
    assert len(result.assets) == 3
    types = _event_types(tmp_path)
    assert types[0] == "regime"
    assert types[-1] == "cycle_summary"


def test_failed_cycle_keeps_previous_result(tmp_path: Path) -> None:
    provider = FakeProvider()
    context = _context(tmp_path, provider)
    first = execute_full_cycle(context)
    provider.fail = True
    clock = FakeClock()

    scheduler = build_scheduler(context, clock=clock, sleep=clock.sleep)
    ran = scheduler.run_pending()

    assert ran == ["normal"]
    assert context.board.current is first
    events = load_events(tmp_path / "events.jsonl")
    assert events[-1]["event_type"] == "error"
    assert events[-1]["payload"] == {"task": "normal", "message": "exchange unavailable"}


def test_price_refresh_updates_prices_without_rescoring(tmp_path: Path) -> None:
    provider = FakeProvider()
    context = _context(tmp_path, provider)
    first = execute_full_cycle(context)
    provider.prices["SOL-USDT"] = 42.0

    repriced = refresh_prices(context)

    assert repriced is not None
    assert context.board.current is repriced
    assert context.board.publish_count == 2
    sol_before = first.asset("SOL-USDT")
    sol_after = repriced.asset("SOL-USDT")
    assert sol_before is not None and sol_after is not None
    assert sol_after.price == 42.0
    assert sol_after.score == sol_before.score
    assert _event_types(tmp_path)[-1] == "price_refresh"


def test_price_refresh_before_first_cycle_is_a_noop(tmp_path: Path) -> None:
    context = _context(tmp_path)

    assert refresh_prices(context) is None
    assert _event_types(tmp_path) == []


def test_regime_refresh_without_change_keeps_scores(tmp_path: Path) -> None:
    context = _context(tmp_path)
    first = execute_full_cycle(context)

    result = refresh_regime(context)

    assert result is not None
    assert context.board.current is result
    assert context.board.publish_count == 2
    assert result.regime is first.regime
    assert result.assets is first.assets
    assert result.previous_regime is first.regime
    assert result.regime_changed is False
    assert result.snapshot is not first.snapshot
    events = load_events(tmp_path / "events.jsonl")
    assert events[-1]["event_type"] == "regime"
    assert events[-1]["payload"]["task"] == "slow"
    assert events[-1]["payload"]["changed"] is False


def test_regime_refresh_on_empty_board_runs_a_full_cycle(tmp_path: Path) -> None:
    context = _context(tmp_path)

    result = refresh_regime(context)

    assert result is not None
    assert context.board.current is result
    assert _event_types(tmp_path)[-1] == "cycle_summary"


def _write_history(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for symbol, start, step in (
        ("BTC-USDT", 90.0, 0.2),
        ("ETH-USDT", 60.0, -0.1),
        ("SOL-USDT", 20.0, 0.3),
    ):
        frame = _bars(start, step)
        frame.index.name = "date"
        frame.to_csv(directory / f"{symbol}.csv")


def test_run_once_with_csv_writes_events_report_and_state(tmp_path: Path) -> None:
    _write_history(tmp_path / "history")
    settings = Settings(
        data_source="csv",
        historical_data_dir=str(tmp_path / "history"),
        events_dir=str(tmp_path / "runs"),
        state_db_path=str(tmp_path / "state.db"),
    )

    exit_code = run(settings, once=True)

    assert exit_code == 0
    run_dirs = list((tmp_path / "runs").iterdir())
    assert len(run_dirs) == 1
    types = [event["event_type"] for event in load_events(run_dirs[0] / "events.jsonl")]
    assert types[0] == "run_started"
    assert "regime" in types
    assert types[-1] == "cycle_summary"
    assert (run_dirs[0] / "report.html").exists()
    store = SqliteStateStore(str(tmp_path / "state.db"))
    assert store.last_regime() is not None
    store.close()


def test_run_reports_fatal_cycle_errors(tmp_path: Path) -> None:
    settings = Settings(
        data_source="csv",
        historical_data_dir=str(tmp_path / "missing"),
        events_dir=str(tmp_path / "runs"),
        persist_state=False,
    )

    exit_code = run(settings, once=True)

    assert exit_code == 1
    run_dir = next((tmp_path / "runs").iterdir())
    events = load_events(run_dir / "events.jsonl")
    assert events[-1]["event_type"] == "error"
    assert "Historical data directory not found" in events[-1]["payload"]["message"]
    assert (run_dir / "report.html").exists()
