"""Runtime wiring and refresh loop orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
from uuid import uuid4

from regimescan.analysis import analyze_universe
from regimescan.config import Settings
from regimescan.data.base import MarketDataProvider, UniverseFilter
from regimescan.data.csv_data import CsvDataProvider
from regimescan.data.okx_market_data import OkxMarketDataProvider
from regimescan.data.yfinance_data import YFinanceDataProvider
from regimescan.domain.events import ScanEvent
from regimescan.domain.models import CycleResult, MarketSnapshot, Regime
from regimescan.logging.event_sink import JsonlEventSink, generate_plotly_report
from regimescan.logging.logger import HumanLogger
from regimescan.pipeline import (
    CycleInputs,
    classify_market,
    fetch_inputs,
    partition_tickers,
    reprice,
    run_cycle,
)
from regimescan.state.board import ResultBoard
from regimescan.state.sqlite_store import SqliteStateStore
from regimescan.state.store import RegimeRecord, StateStore

SLOW_TASK = "slow"
NORMAL_TASK = "normal"
FAST_TASK = "fast"


class NoopStateStore:
    """No-op state store for ephemeral runs."""

    def record_run(self, run_id: str, data_source: str, symbols: list[str]) -> None:
        _ = (run_id, data_source, symbols)

    def record_regime(self, run_id: str, regime: Regime, snapshot: MarketSnapshot) -> None:
        _ = (run_id, regime, snapshot)

    def last_regime(self) -> Regime | None:
        return None

    def regime_history(self, limit: int = 50) -> list[RegimeRecord]:
        _ = limit
        return []

    def close(self) -> None:
        return None


@dataclass
class ScanContext:
    """Collaborators shared by every task of one run."""

    settings: Settings
    provider: MarketDataProvider
    store: StateStore
    board: ResultBoard
    event_sink: JsonlEventSink
    human_logger: HumanLogger
    run_id: str
    cycle_count: int = 0

    def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        self.event_sink.emit(ScanEvent(run_id=self.run_id, event_type=event_type, payload=payload))

    def next_cycle_id(self) -> str:
        self.cycle_count += 1
        return f"{self.run_id[:8]}-{self.cycle_count:05d}"


@dataclass
class CadenceTask:
    """One periodic refresh with its own interval."""

    name: str
    interval: float
    action: Callable[[], object]
    next_due: float = 0.0
    runs: int = 0


class Scheduler:
    """Run due tasks serially in registration order; never overlap cycles."""

    def __init__(
        self,
        tasks: list[CadenceTask],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_error: Callable[[str, Exception], None] | None = None,
        max_cycles: int | None = None,
        counted_task: str = NORMAL_TASK,
    ) -> None:
        if not tasks:
            raise ValueError("scheduler needs at least one task")
        self.tasks = tasks
        self._clock = clock
        self._sleep = sleep
        self._on_error = on_error
        self.max_cycles = max_cycles
        self.counted_task = counted_task

    def run_pending(self) -> list[str]:
        """Run every task that is due now and return their names."""
        now = self._clock()
        ran: list[str] = []
        for task in self.tasks:
            if now < task.next_due:
                continue
            try:
                task.action()
            except Exception as exc:
                if self._on_error is None:
                    raise
                self._on_error(task.name, exc)
            task.runs += 1
            task.next_due = now + task.interval
            ran.append(task.name)
        return ran

    def run(self) -> None:
        while not self._finished():
            self.run_pending()
            if self._finished():
                return
            wait = min(task.next_due for task in self.tasks) - self._clock()
            if wait > 0:
                self._sleep(wait)

    def _finished(self) -> bool:
        if self.max_cycles is None:
            return False
        counted = [task for task in self.tasks if task.name == self.counted_task]
        return bool(counted) and counted[0].runs >= self.max_cycles


def run(settings: Settings, once: bool = False) -> int:
    """Run one full cycle or the continuous three-cadence refresh loop."""
    data_provider = build_data_provider(settings)
    state_store = build_state_store(settings)

    run_id = uuid4().hex
    run_directory = Path(settings.events_dir) / run_id
    run_directory.mkdir(parents=True, exist_ok=True)
    events_path = run_directory / "events.jsonl"
    report_path = run_directory / "report.html"

    context = ScanContext(
        settings=settings,
        provider=data_provider,
        store=state_store,
        board=ResultBoard(),
        event_sink=JsonlEventSink(str(events_path)),
        human_logger=HumanLogger(level=settings.log_level),
        run_id=run_id,
    )

    symbols = settings.watchlist()
    state_store.record_run(run_id, settings.data_source, symbols)
    context.human_logger.run_started(run_id, settings.data_source, symbols)
    context.emit("run_started", {"data_source": settings.data_source, "symbols": symbols})

    exit_code = 0
    try:
        if once:
            execute_full_cycle(context)
        else:
            build_scheduler(context).run()
    except KeyboardInterrupt:
        exit_code = 0
    except Exception as exc:
        report_error(context, NORMAL_TASK, exc)
        exit_code = 1
    finally:
        try:
            generate_plotly_report(str(events_path), str(report_path))
        finally:
            state_store.close()

    return exit_code


def build_scheduler(
    context: ScanContext,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Scheduler:
    """Slow regime refresh, normal full cycle, fast price refresh.

    The full cycle is due immediately; the others first fire one interval in.
    """
    settings = context.settings
    start = clock()
    tasks = [
        CadenceTask(
            name=SLOW_TASK,
            interval=float(settings.slow_interval_seconds),
            action=lambda: refresh_regime(context),
            next_due=start + settings.slow_interval_seconds,
        ),
        CadenceTask(
            name=NORMAL_TASK,
            interval=float(settings.normal_interval_seconds),
            action=lambda: execute_full_cycle(context),
            next_due=start,
        ),
        CadenceTask(
            name=FAST_TASK,
            interval=float(settings.fast_interval_seconds),
            action=lambda: refresh_prices(context),
            next_due=start + settings.fast_interval_seconds,
        ),
    ]
    return Scheduler(
        tasks,
        clock=clock,
        sleep=sleep,
        on_error=lambda task, exc: report_error(context, task, exc),
        max_cycles=settings.max_cycles,
    )


def execute_full_cycle(context: ScanContext) -> CycleResult:
    """Fetch, analyze, classify, score, rank and publish."""
    inputs = fetch_inputs(context.provider, context.settings, on_skip=context.human_logger.skipped)
    return publish_cycle(context, inputs, NORMAL_TASK)


def refresh_regime(context: ScanContext) -> CycleResult | None:
    """Reclassify the market; rescore only when the regime moved.

    An unchanged regime republishes the current scores under the fresh snapshot.
    """
    settings = context.settings
    inputs = fetch_inputs(context.provider, settings, on_skip=context.human_logger.skipped)
    current = context.board.current
    if current is None:
        return publish_cycle(context, inputs, SLOW_TASK)

    usable, _ = partition_tickers(inputs.tickers)
    analyses = analyze_universe(usable, inputs.series_by_symbol, settings)
    snapshot, regime = classify_market(
        usable,
        analyses,
        inputs.series_by_symbol,
        settings,
        previous_snapshot=current.snapshot,
    )
    if regime is not current.regime:
        return publish_cycle(context, inputs, SLOW_TASK)

    context.store.record_regime(context.run_id, regime, snapshot)
    unchanged = replace(
        current,
        snapshot=snapshot,
        previous_regime=current.regime,
        regime_changed=False,
    )
    context.board.publish(unchanged)
    context.emit("regime", regime_payload(SLOW_TASK, unchanged))
    return unchanged


def refresh_prices(context: ScanContext) -> CycleResult | None:
    """Update last prices on the published result without rescoring."""
    current = context.board.current
    if current is None:
        return None
    tickers = context.provider.fetch_universe()
    repriced = reprice(current, tickers)
    context.board.publish(repriced)
    known = {asset.symbol for asset in current.assets}
    refreshed = sum(1 for ticker in tickers if ticker.symbol in known)
    context.human_logger.price_refresh(refreshed, len(current.assets))
    context.emit("price_refresh", {"refreshed": refreshed, "total": len(current.assets)})
    return repriced


def publish_cycle(context: ScanContext, inputs: CycleInputs, task: str) -> CycleResult:
    settings = context.settings
    previous = context.board.current
    previous_regime = previous.regime if previous is not None else context.store.last_regime()
    result = run_cycle(
        inputs.tickers,
        inputs.series_by_symbol,
        settings,
        previous_regime=previous_regime,
        previous_snapshot=previous.snapshot if previous is not None else None,
        skipped=inputs.skipped,
        cycle_id=context.next_cycle_id(),
    )
    context.board.publish(result)
    context.store.record_regime(context.run_id, result.regime, result.snapshot)
    report_cycle(context, task, result)
    return result


def report_cycle(context: ScanContext, task: str, result: CycleResult) -> None:
    human_logger = context.human_logger
    human_logger.regime(result)
    context.emit("regime", regime_payload(task, result))
    top = result.top(context.settings.top_n_log)
    for asset in top:
        human_logger.asset(asset)
    for alert in result.alerts:
        human_logger.alert(alert)
        context.emit(
            "alert",
            {
                "kind": alert.kind,
                "symbol": alert.symbol,
                "message": alert.message,
                "value": alert.value,
            },
        )
    human_logger.cycle_summary(task, result)
    context.emit(
        "cycle_summary",
        {
            "task": task,
            "cycle_id": result.cycle_id,
            "regime": result.regime.value,
            "ranked": len(result.assets),
            "skipped": len(result.skipped),
            "alerts": len(result.alerts),
            "top": [
                {
                    "symbol": asset.symbol,
                    "score": asset.score,
                    "risk_tier": asset.risk_tier.value,
                    "plan_type": asset.plan.plan_type,
                }
                for asset in top
            ],
        },
    )


def regime_payload(task: str, result: CycleResult) -> dict[str, Any]:
    snapshot = result.snapshot
    return {
        "task": task,
        "regime": result.regime.value,
        "previous_regime": result.previous_regime.value if result.previous_regime else None,
        "changed": result.regime_changed,
        "bullish_ratio": snapshot.trend.bullish_ratio,
        "bearish_ratio": snapshot.trend.bearish_ratio,
        "volatility": snapshot.volatility.average,
        "volatility_regime": snapshot.volatility.regime.value,
        "strength": snapshot.strength.overall,
    }


def report_error(context: ScanContext, task: str, exc: Exception) -> None:
    context.human_logger.error(f"{task}: {exc}")
    context.emit("error", {"task": task, "message": str(exc)})


def build_data_provider(settings: Settings) -> MarketDataProvider:
    """Select data provider from the configured source."""
    universe_filter = UniverseFilter.from_settings(settings)
    if settings.data_source == "csv":
        return CsvDataProvider(
            data_dir=settings.historical_data_dir,
            universe_filter=universe_filter,
        )
    if settings.data_source == "yfinance":
        return YFinanceDataProvider(
            symbols=settings.watchlist(),
            universe_filter=universe_filter,
        )
    return OkxMarketDataProvider(
        base_url=settings.okx_base_url,
        universe_filter=universe_filter,
        quote_currency=settings.quote_currency,
        candle_bar=settings.candle_bar,
        candle_limit=settings.candle_limit,
        rate_limit=settings.okx_rate_limit,
    )


def build_state_store(settings: Settings) -> StateStore:
    if not settings.persist_state:
        return NoopStateStore()
    return SqliteStateStore(settings.state_db_path)
