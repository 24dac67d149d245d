"""State store contract used by runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from regimescan.domain.models import MarketSnapshot, Regime


@dataclass(frozen=True)
class RegimeRecord:
    """One persisted regime decision."""

    run_id: str
    regime: Regime
    bullish_ratio: float
    bearish_ratio: float
    volatility: float
    strength: float
    recorded_ts: str


class StateStore(Protocol):
    """Persistence API for runs and regime history."""

    def record_run(self, run_id: str, data_source: str, symbols: list[str]) -> None:
        """Persist run metadata."""

    def record_regime(self, run_id: str, regime: Regime, snapshot: MarketSnapshot) -> None:
        """Append one regime decision."""

    def last_regime(self) -> Regime | None:
        """Return the most recently persisted regime, if any."""

    def regime_history(self, limit: int = 50) -> list[RegimeRecord]:
        """Return recent regime decisions, newest first."""

    def close(self) -> None:
        """Close persistence resources."""
