"""Per-regime price-level templates for long-only trade plans."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from regimescan.domain.models import AssetAnalysis, Regime


@dataclass(frozen=True)
class PriceLevels:
    """Entry, stop, and ascending targets before sizing and confidence."""

    entry: float
    stop: float
    targets: tuple[float, ...]
    notes: tuple[str, ...] = ()


class PlanTemplate(ABC):
    """Strategy object that turns a price and analysis into plan levels."""

    plan_type: str
    time_horizon: str

    @abstractmethod
    def levels(self, price: float, analysis: AssetAnalysis) -> PriceLevels:
        """Return plan levels for ``price``."""


@dataclass(frozen=True)
class MultiplierTemplate(PlanTemplate):
    """Fixed multipliers applied to the current price."""

    plan_type: str
    time_horizon: str
    entry: float
    stop: float
    targets: tuple[float, ...]

    def __post_init__(self) -> None:
        ladder = (self.stop, self.entry, *self.targets)
        if ladder[0] <= 0 or any(low >= high for low, high in zip(ladder, ladder[1:])):
            raise ValueError(f"{self.plan_type}: multipliers must ascend from stop to last target")

    def levels(self, price: float, analysis: AssetAnalysis) -> PriceLevels:
        _ = analysis
        return PriceLevels(
            entry=price * self.entry,
            stop=price * self.stop,
            targets=tuple(price * multiplier for multiplier in self.targets),
        )


@dataclass(frozen=True)
class RangeTemplate(PlanTemplate):
    """Anchor entry above support and exit below resistance.

    Falls back to the multiplier table when the support/resistance band
    cannot bracket a valid long plan.
    """

    plan_type: str
    time_horizon: str
    fallback: MultiplierTemplate
    support_offset: float = 0.01
    resistance_offset: float = 0.02
    stop_offset: float = 0.04

    def levels(self, price: float, analysis: AssetAnalysis) -> PriceLevels:
        if analysis.supports and analysis.resistances:
            entry = min(analysis.first_support * (1 + self.support_offset), price)
            exit_target = analysis.first_resistance * (1 - self.resistance_offset)
            stop = entry * (1 - self.stop_offset)
            midpoint = (entry + exit_target) / 2
            if 0 < stop < entry < midpoint < exit_target:
                return PriceLevels(
                    entry=entry,
                    stop=stop,
                    targets=(midpoint, exit_target),
                    notes=("entry anchored to support, exit below resistance",),
                )
        fallback = self.fallback.levels(price, analysis)
        return PriceLevels(
            entry=fallback.entry,
            stop=fallback.stop,
            targets=fallback.targets,
            notes=("range too narrow, using multiplier table",),
        )


REGIME_TEMPLATES: dict[Regime, PlanTemplate] = {
    Regime.BULL_STABLE: MultiplierTemplate(
        plan_type="momentum_breakout",
        time_horizon="2-4 weeks",
        entry=0.995,
        stop=0.92,
        targets=(1.15, 1.30, 1.50),
    ),
    Regime.BULL_VOLATILE: MultiplierTemplate(
        plan_type="momentum_pullback",
        time_horizon="1-2 weeks",
        entry=0.985,
        stop=0.90,
        targets=(1.12, 1.25, 1.45),
    ),
    Regime.BEAR_STABLE: MultiplierTemplate(
        plan_type="defensive_rebound",
        time_horizon="3-7 days",
        entry=0.97,
        stop=0.92,
        targets=(1.04, 1.08),
    ),
    Regime.BEAR_VOLATILE: MultiplierTemplate(
        plan_type="capitulation_rebound",
        time_horizon="1-3 days",
        entry=0.95,
        stop=0.91,
        targets=(1.02, 1.06),
    ),
    Regime.SIDEWAYS_STABLE: RangeTemplate(
        plan_type="range_trading",
        time_horizon="3-7 days",
        fallback=MultiplierTemplate(
            plan_type="range_trading",
            time_horizon="3-7 days",
            entry=0.98,
            stop=0.94,
            targets=(1.04, 1.08),
        ),
        stop_offset=0.04,
    ),
    Regime.VOLATILE_SIDEWAYS: RangeTemplate(
        plan_type="volatile_range",
        time_horizon="1-5 days",
        fallback=MultiplierTemplate(
            plan_type="volatile_range",
            time_horizon="1-5 days",
            entry=0.97,
            stop=0.92,
            targets=(1.05, 1.10),
        ),
        stop_offset=0.05,
    ),
    Regime.NEUTRAL: MultiplierTemplate(
        plan_type="balanced_swing",
        time_horizon="1-2 weeks",
        entry=0.985,
        stop=0.93,
        targets=(1.06, 1.12, 1.20),
    ),
}


def template_for(regime: Regime) -> PlanTemplate:
    return REGIME_TEMPLATES[regime]
