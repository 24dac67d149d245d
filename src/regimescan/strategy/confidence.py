"""Confidence scoring for synthesized plans."""

from __future__ import annotations

from regimescan.domain.models import AssetAnalysis, MarketSnapshot, Regime, VolatilityRegime
from regimescan.scoring.base import (
    clamp_score,
    high_buying_power,
    liquidity_increasing,
    macd_positive,
    near_support,
    rsi_positive,
)

BASE_CONFIDENCE = 50.0
SIGNAL_POINTS = 10.0
OVERSOLD_BEAR_BONUS = 15.0
TREND_BULL_BONUS = 10.0
SUPPORT_SIDEWAYS_BONUS = 10.0
HIGH_VOLATILITY_PENALTY = 10.0
OVERBOUGHT_PENALTY = 15.0
STRONG_TREND = 0.7
SUPPORT_TOLERANCE = 0.02


def plan_confidence(
    analysis: AssetAnalysis,
    regime: Regime,
    snapshot: MarketSnapshot,
) -> tuple[float, tuple[str, ...]]:
    """Return (confidence in [0, 100], notes explaining each adjustment)."""
    confidence = BASE_CONFIDENCE
    notes: list[str] = []

    if rsi_positive(analysis):
        confidence += SIGNAL_POINTS
        notes.append("RSI bullish")
    if macd_positive(analysis):
        confidence += SIGNAL_POINTS
        notes.append("MACD bullish")
    if liquidity_increasing(analysis):
        confidence += SIGNAL_POINTS
        notes.append("liquidity inflow")
    if high_buying_power(analysis):
        confidence += SIGNAL_POINTS
        notes.append("strong buying power")

    family = regime.family
    if family == "bear" and analysis.rsi.signal == "oversold":
        confidence += OVERSOLD_BEAR_BONUS
        notes.append("oversold in a bear market")
    elif family == "bull" and analysis.trend_strength >= STRONG_TREND:
        confidence += TREND_BULL_BONUS
        notes.append("trend aligned with bull market")
    elif family == "sideways" and near_support(analysis, SUPPORT_TOLERANCE):
        confidence += SUPPORT_SIDEWAYS_BONUS
        notes.append("sitting on range support")

    if snapshot.volatility.regime is VolatilityRegime.HIGH:
        confidence -= HIGH_VOLATILITY_PENALTY
        notes.append("high market volatility")
    if analysis.rsi.signal == "overbought":
        confidence -= OVERBOUGHT_PENALTY
        notes.append("RSI overbought")

    return clamp_score(confidence), tuple(notes)
