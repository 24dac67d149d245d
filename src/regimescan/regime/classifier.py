"""Deterministic market regime classification."""

from __future__ import annotations

from dataclasses import dataclass

from regimescan.config import Settings
from regimescan.domain.models import (
    MarketSnapshot,
    Regime,
    VolatilityRegime,
    VolumeTrend,
)

STRONG_MARKET = 0.6
WEAK_MARKET = 0.4
CHOPPY_TREND = 0.2
FLAT_TREND = 0.15


@dataclass(frozen=True)
class RegimeThresholds:
    """Trend-ratio thresholds used by the classifier."""

    bull_threshold: float = 0.65
    bear_threshold: float = 0.35

    @classmethod
    def from_settings(cls, settings: Settings) -> RegimeThresholds:
        return cls(
            bull_threshold=settings.bull_threshold,
            bear_threshold=settings.bear_threshold,
        )


def classify_volatility(average: float, high: float, low: float) -> VolatilityRegime:
    """Three-way split of average volatility against configured thresholds."""
    if average > high:
        return VolatilityRegime.HIGH
    if average < low:
        return VolatilityRegime.LOW
    return VolatilityRegime.NORMAL


def classify_regime(snapshot: MarketSnapshot, thresholds: RegimeThresholds) -> Regime:
    """Map a market snapshot to a regime label.

    Rules are evaluated in a fixed order and the first match wins, so
    directional conviction always outranks ambiguous volatility readings.
    """
    trend = snapshot.trend
    strength = snapshot.strength.overall
    high_volatility = snapshot.volatility.regime is VolatilityRegime.HIGH

    if (
        trend.bullish_ratio > thresholds.bull_threshold
        and strength > STRONG_MARKET
        and snapshot.volume.trend is VolumeTrend.INCREASING
    ):
        return Regime.BULL_VOLATILE if high_volatility else Regime.BULL_STABLE

    if trend.bearish_ratio > 1 - thresholds.bear_threshold and strength < WEAK_MARKET:
        return Regime.BEAR_VOLATILE if high_volatility else Regime.BEAR_STABLE

    if high_volatility and trend.strength < CHOPPY_TREND:
        return Regime.VOLATILE_SIDEWAYS

    if trend.strength < FLAT_TREND and snapshot.volatility.regime is VolatilityRegime.LOW:
        return Regime.SIDEWAYS_STABLE

    return Regime.NEUTRAL


def regime_changed(previous: Regime | None, current: Regime) -> bool:
    """True when a previously recorded regime differs from the current one."""
    return previous is not None and previous != current
