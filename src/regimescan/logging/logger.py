"""Concise human-readable run logger."""

from __future__ import annotations

import logging

from regimescan.domain.models import Alert, CycleResult, ScoredAsset


class HumanLogger:
    """Console logger with fixed line types."""

    def __init__(self, level: str = "INFO") -> None:
        self._logger = logging.getLogger("regimescan")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s | %(message)s", "%Y-%m-%d %H:%M:%S")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    def run_started(self, run_id: str, data_source: str, symbols: list[str]) -> None:
        universe = ",".join(symbols) if symbols else "full universe"
        self._logger.info("run | %s | source %s | %s", run_id[:12], data_source, universe)

    def regime(self, result: CycleResult) -> None:
        snapshot = result.snapshot
        parts = [
            f"regime | {result.regime.value}",
            f"bull {snapshot.trend.bullish_ratio:.0%}",
            f"bear {snapshot.trend.bearish_ratio:.0%}",
            f"vol {snapshot.volatility.average * 100:.2f}% ({snapshot.volatility.regime.value})",
            f"strength {snapshot.strength.overall:.2f}",
        ]
        if result.regime_changed and result.previous_regime is not None:
            parts.append(f"changed from {result.previous_regime.value}")
        self._logger.info(" | ".join(parts))

    def asset(self, asset: ScoredAsset) -> None:
        plan = asset.plan
        targets = "/".join(self._format_price(target) for target in plan.targets)
        self._logger.info(
            "asset | #%d %s | score %.1f | risk %s | %s | entry %s | stop %s | targets %s "
            "| size %.2f%% | conf %.0f",
            asset.rank,
            asset.symbol,
            asset.score,
            asset.risk_tier.value,
            plan.plan_type,
            self._format_price(plan.entry_price),
            self._format_price(plan.stop_loss),
            targets,
            plan.position_size * 100.0,
            plan.confidence,
        )

    def alert(self, alert: Alert) -> None:
        self._logger.info("alert | %s | %s | %s", alert.kind, alert.symbol, alert.message)

    def skipped(self, symbol: str, reason: str) -> None:
        self._logger.debug("skipped | %s | %s", symbol, reason)

    def price_refresh(self, refreshed: int, total: int) -> None:
        self._logger.info("prices | refreshed %d of %d", refreshed, total)

    def cycle_summary(self, task: str, result: CycleResult) -> None:
        self._logger.info(
            "cycle | %s | %s | %d ranked | %d skipped | %d alerts",
            task,
            result.regime.value,
            len(result.assets),
            len(result.skipped),
            len(result.alerts),
        )

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)

    @staticmethod
    def _format_price(value: float) -> str:
        if value >= 1:
            return f"${value:,.2f}"
        return f"${value:.6g}"
