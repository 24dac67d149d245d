"""Range-bound scorer for the sideways regimes."""

from __future__ import annotations

from regimescan.domain.models import AssetAnalysis, MarketSnapshot, Regime, ScoreFactor
from regimescan.scoring.base import RegimeScorer, liquidity_increasing, near_support

RANGE_MIN_VOLATILITY = 0.04
SUPPORT_PROXIMITY_TOLERANCE = 0.02
MEAN_REVERSION_MAX_RSI = 40.0


class SidewaysScorer(RegimeScorer):
    scorer_id = "sideways"
    regimes = (Regime.SIDEWAYS_STABLE, Regime.VOLATILE_SIDEWAYS)
    weights_key = "sideways"

    def regime_factors(
        self,
        analysis: AssetAnalysis,
        snapshot: MarketSnapshot,
    ) -> list[ScoreFactor]:
        _ = snapshot
        factors: list[ScoreFactor] = []
        if analysis.volatility >= RANGE_MIN_VOLATILITY and liquidity_increasing(analysis):
            factors.append(self.factor("range_volatility"))
        if near_support(analysis, SUPPORT_PROXIMITY_TOLERANCE):
            factors.append(self.factor("support_proximity"))
        if analysis.rsi.value < MEAN_REVERSION_MAX_RSI and analysis.mfi.signal != "overbought":
            factors.append(self.factor("mean_reversion"))
        return factors
