"""Bull-market scorer: rewards confirmed momentum and volume breakouts."""

from __future__ import annotations

from regimescan.domain.models import AssetAnalysis, MarketSnapshot, Regime, ScoreFactor
from regimescan.scoring.base import RegimeScorer

MOMENTUM_TREND_STRENGTH = 0.7
MOMENTUM_MIN_CHANGE = 5.0


class BullScorer(RegimeScorer):
    """Shared table for the stable and volatile bull regimes."""

    scorer_id = "bull"
    regimes = (Regime.BULL_STABLE, Regime.BULL_VOLATILE)
    weights_key = "bull"

    def regime_factors(
        self,
        analysis: AssetAnalysis,
        snapshot: MarketSnapshot,
    ) -> list[ScoreFactor]:
        _ = snapshot
        factors: list[ScoreFactor] = []
        if (
            analysis.trend_strength >= MOMENTUM_TREND_STRENGTH
            and analysis.change_24h >= MOMENTUM_MIN_CHANGE
        ):
            factors.append(self.factor("momentum_confirmation"))
        if analysis.volume_ratio >= self.settings.volume_surge_multiplier:
            factors.append(self.factor("volume_breakout"))
        return factors
