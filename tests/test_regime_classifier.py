from __future__ import annotations

from datetime import UTC, datetime

from regimescan.domain.models import (
    CorrelationMetrics,
    MarketSnapshot,
    Regime,
    StrengthMetrics,
    TrendMetrics,
    VolatilityMetrics,
    VolatilityRegime,
    VolumeMetrics,
    VolumeTrend,
)
from regimescan.regime import RegimeThresholds, classify_regime, regime_changed
from regimescan.regime.classifier import classify_volatility


def _snapshot(
    bullish: float = 0.5,
    bearish: float = 0.5,
    trend_strength: float | None = None,
    strength: float = 0.5,
    volatility: VolatilityRegime = VolatilityRegime.NORMAL,
    volume: VolumeTrend = VolumeTrend.FLAT,
) -> MarketSnapshot:
    return MarketSnapshot(
        trend=TrendMetrics(
            bullish_ratio=bullish,
            bearish_ratio=bearish,
            strength=abs(bullish - bearish) if trend_strength is None else trend_strength,
        ),
        volatility=VolatilityMetrics(regime=volatility),
        volume=VolumeMetrics(trend=volume),
        strength=StrengthMetrics(overall=strength),
        correlation=CorrelationMetrics(),
        timestamp=datetime(2025, 1, 1, tzinfo=UTC),
    )


THRESHOLDS = RegimeThresholds()


def test_balanced_market_with_normal_volatility_is_neutral() -> None:
    assert classify_regime(_snapshot(), THRESHOLDS) is Regime.NEUTRAL


def test_bull_requires_breadth_strength_and_rising_volume() -> None:
    bull = _snapshot(bullish=0.7, bearish=0.2, strength=0.7, volume=VolumeTrend.INCREASING)
    flat_volume = _snapshot(bullish=0.7, bearish=0.2, strength=0.7, volume=VolumeTrend.FLAT)

    assert classify_regime(bull, THRESHOLDS) is Regime.BULL_STABLE
    assert classify_regime(flat_volume, THRESHOLDS) is Regime.NEUTRAL


def test_bull_in_high_volatility_outranks_volatile_sideways() -> None:
    snapshot = _snapshot(
        bullish=0.7,
        bearish=0.2,
        trend_strength=0.1,
        strength=0.7,
        volatility=VolatilityRegime.HIGH,
        volume=VolumeTrend.INCREASING,
    )

    assert classify_regime(snapshot, THRESHOLDS) is Regime.BULL_VOLATILE


def test_bull_outranks_sideways_stable_when_both_match() -> None:
    snapshot = _snapshot(
        bullish=0.7,
        bearish=0.2,
        trend_strength=0.1,
        strength=0.7,
        volatility=VolatilityRegime.LOW,
        volume=VolumeTrend.INCREASING,
    )
    sideways_only = _snapshot(
        bullish=0.5,
        bearish=0.45,
        trend_strength=0.1,
        volatility=VolatilityRegime.LOW,
    )

    assert classify_regime(snapshot, THRESHOLDS) is Regime.BULL_STABLE
    assert classify_regime(sideways_only, THRESHOLDS) is Regime.SIDEWAYS_STABLE


def test_bear_variants_follow_volatility() -> None:
    calm = _snapshot(bullish=0.2, bearish=0.7, strength=0.3)
    stormy = _snapshot(
        bullish=0.2,
        bearish=0.7,
        strength=0.3,
        volatility=VolatilityRegime.HIGH,
    )
    not_weak = _snapshot(bullish=0.2, bearish=0.7, strength=0.45)

    assert classify_regime(calm, THRESHOLDS) is Regime.BEAR_STABLE
    assert classify_regime(stormy, THRESHOLDS) is Regime.BEAR_VOLATILE
    assert classify_regime(not_weak, THRESHOLDS) is Regime.NEUTRAL


def test_directionless_markets_split_on_volatility() -> None:
    choppy = _snapshot(trend_strength=0.1, volatility=VolatilityRegime.HIGH)
    quiet = _snapshot(trend_strength=0.1, volatility=VolatilityRegime.LOW)
    drifting = _snapshot(trend_strength=0.18, volatility=VolatilityRegime.LOW)

    assert classify_regime(choppy, THRESHOLDS) is Regime.VOLATILE_SIDEWAYS
    assert classify_regime(quiet, THRESHOLDS) is Regime.SIDEWAYS_STABLE
    assert classify_regime(drifting, THRESHOLDS) is Regime.NEUTRAL


def test_custom_thresholds_shift_the_bull_boundary() -> None:
    snapshot = _snapshot(bullish=0.6, bearish=0.2, strength=0.7, volume=VolumeTrend.INCREASING)

    assert classify_regime(snapshot, THRESHOLDS) is Regime.NEUTRAL
    loose = RegimeThresholds(bull_threshold=0.55, bear_threshold=0.35)
    assert classify_regime(snapshot, loose) is Regime.BULL_STABLE


def test_regime_changed_needs_a_previous_regime() -> None:
    assert regime_changed(None, Regime.NEUTRAL) is False
    assert regime_changed(Regime.NEUTRAL, Regime.NEUTRAL) is False
    assert regime_changed(Regime.NEUTRAL, Regime.BEAR_STABLE) is True


def test_classify_volatility_boundaries_are_normal() -> None:
    assert classify_volatility(0.06, high=0.05, low=0.02) is VolatilityRegime.HIGH
    assert classify_volatility(0.05, high=0.05, low=0.02) is VolatilityRegime.NORMAL
    assert classify_volatility(0.02, high=0.05, low=0.02) is VolatilityRegime.NORMAL
    assert classify_volatility(0.01, high=0.05, low=0.02) is VolatilityRegime.LOW
