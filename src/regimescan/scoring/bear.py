"""Bear-market scorer: favors resilient, oversold names near support."""

from __future__ import annotations

from regimescan.domain.models import (
    AssetAnalysis,
    MarketSnapshot,
    Regime,
    ScoreFactor,
    ScoreMultiplier,
)
from regimescan.scoring.base import RegimeScorer, near_support

SUPPORT_BOUNCE_TOLERANCE = 0.03
RESILIENCE_MAX_DRAWDOWN = -3.0
RESILIENCE_MAX_RSI = 40.0


class BearScorer(RegimeScorer):
    """Shared table for the stable and volatile bear regimes."""

    scorer_id = "bear"
    regimes = (Regime.BEAR_STABLE, Regime.BEAR_VOLATILE)
    weights_key = "bear"

    def regime_factors(
        self,
        analysis: AssetAnalysis,
        snapshot: MarketSnapshot,
    ) -> list[ScoreFactor]:
        _ = snapshot
        factors: list[ScoreFactor] = []
        if analysis.rsi.signal == "oversold":
            factors.append(self.factor("rsi_oversold"))
        if near_support(analysis, SUPPORT_BOUNCE_TOLERANCE):
            factors.append(self.factor("support_bounce"))
        if (
            RESILIENCE_MAX_DRAWDOWN <= analysis.change_24h < 0
            and analysis.rsi.value < RESILIENCE_MAX_RSI
        ):
            factors.append(self.factor("resilience"))
        return factors

    def regime_multipliers(self, analysis: AssetAnalysis) -> list[ScoreMultiplier]:
        # Counter-trend spikes in a downtrend are discounted.
        if analysis.change_24h >= self.settings.extreme_gain_threshold:
            return [ScoreMultiplier("extreme_gain_penalty", self.settings.extreme_gain_multiplier)]
        return []
