from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from regimescan.domain.models import (
    CorrelationMetrics,
    CycleResult,
    MarketSnapshot,
    Regime,
    StrengthMetrics,
    TrendMetrics,
    VolatilityMetrics,
    VolumeMetrics,
)
from regimescan.state.board import ResultBoard
from regimescan.state.sqlite_store import SqliteStateStore


def _snapshot(bullish: float = 0.5) -> MarketSnapshot:
    return MarketSnapshot(
        trend=TrendMetrics(bullish_ratio=bullish, bearish_ratio=1 - bullish),
        volatility=VolatilityMetrics(average=0.03),
        volume=VolumeMetrics(),
        strength=StrengthMetrics(overall=0.55),
        correlation=CorrelationMetrics(),
        timestamp=datetime(2025, 1, 1, tzinfo=UTC),
    )


def test_sqlite_store_persists_runs_and_regime_history(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "state.db"
    store = SqliteStateStore(str(db_path))
    store.record_run("run-1", "okx", ["BTC-USDT", "ETH-USDT"])
    store.record_regime("run-1", Regime.NEUTRAL, _snapshot())
    store.record_regime("run-1", Regime.BULL_STABLE, _snapshot(bullish=0.7))
    store.close()

    reopened = SqliteStateStore(str(db_path))
    history = reopened.regime_history()

    assert reopened.last_regime() is Regime.BULL_STABLE
    assert [record.regime for record in history] == [Regime.BULL_STABLE, Regime.NEUTRAL]
    assert history[0].bullish_ratio == 0.7
    assert history[0].strength == 0.55
    assert history[0].run_id == "run-1"
    assert len(reopened.regime_history(limit=1)) == 1
    reopened.close()

    connection = sqlite3.connect(db_path)
    row = connection.execute(
        "SELECT run_id, data_source, symbols FROM runs WHERE run_id='run-1'"
    ).fetchone()
    connection.close()

    assert row == ("run-1", "okx", "BTC-USDT,ETH-USDT")


def test_sqlite_store_without_history_has_no_regime(tmp_path: Path) -> None:
    store = SqliteStateStore(str(tmp_path / "empty.db"))

    assert store.last_regime() is None
    assert store.regime_history() == []
    store.close()


def test_result_board_replaces_results_wholesale() -> None:
    board = ResultBoard()
    first = CycleResult(cycle_id="c1", regime=Regime.NEUTRAL, snapshot=_snapshot())
    second = CycleResult(cycle_id="c2", regime=Regime.BEAR_STABLE, snapshot=_snapshot(0.2))

    assert board.current is None
    assert board.regime is None

    board.publish(first)
    board.publish(second)

    assert board.current is second
    assert board.regime is Regime.BEAR_STABLE
    assert board.publish_count == 2
