"""Scorer contract: additive, predicate-gated point tables per regime."""

from __future__ import annotations

from abc import ABC
from collections.abc import Callable

import numpy as np

from regimescan.config import Settings
from regimescan.domain.models import (
    AssetAnalysis,
    MarketSnapshot,
    Regime,
    ScoreCard,
    ScoreFactor,
    ScoreMultiplier,
    VolatilityRegime,
)

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def clamp_score(value: float) -> float:
    """Clamp into [0, 100]; non-finite values score zero."""
    if not np.isfinite(value):
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, float(value)))


def rsi_positive(analysis: AssetAnalysis) -> bool:
    return analysis.rsi.trend == "bullish" and analysis.rsi.signal != "overbought"


def macd_positive(analysis: AssetAnalysis) -> bool:
    return analysis.macd.signal == "bullish"


def liquidity_increasing(analysis: AssetAnalysis) -> bool:
    return analysis.liquidity_flow.signal == "increasing"


def high_buying_power(analysis: AssetAnalysis) -> bool:
    return analysis.buying_power.signal == "high"


def ma_buy_signal(analysis: AssetAnalysis) -> bool:
    return analysis.moving_average.signal == "buy"


def near_support(analysis: AssetAnalysis, tolerance: float) -> bool:
    """Price sits at or just above its first support level."""
    support = analysis.first_support
    if support <= 0 or not analysis.supports:
        return False
    distance = (analysis.price - support) / support
    return 0.0 <= distance <= tolerance


CORE_RULES: tuple[tuple[str, Callable[[AssetAnalysis], bool]], ...] = (
    ("rsi_positive", rsi_positive),
    ("macd_positive", macd_positive),
    ("liquidity_increasing", liquidity_increasing),
    ("buying_power", high_buying_power),
    ("ma_buy_signal", ma_buy_signal),
)


class RegimeScorer(ABC):
    """Base scorer; subclasses add regime bonuses and penalties."""

    scorer_id: str
    regimes: tuple[Regime, ...] = ()
    weights_key: str

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.weights = settings.weights_for(self.weights_key)
        self.market_weights = settings.weights_for("market")

    def score(
        self,
        analysis: AssetAnalysis,
        regime: Regime,
        snapshot: MarketSnapshot,
    ) -> ScoreCard:
        """Sum the gated factors, apply multipliers, clamp to [0, 100]."""
        factors = [*self.core_factors(analysis), *self.regime_factors(analysis, snapshot)]
        multipliers = list(self.regime_multipliers(analysis))
        market_factors, market_multipliers = self.market_adjustments(analysis, snapshot)
        factors.extend(market_factors)
        multipliers.extend(market_multipliers)

        total = sum(factor.points for factor in factors)
        for multiplier in multipliers:
            total *= multiplier.factor
        return ScoreCard(
            score=clamp_score(total),
            risk_tier=self.settings.risk_tier_for(regime),
            factors=tuple(factors),
            multipliers=tuple(multipliers),
            scorer_id=self.scorer_id,
        )

    def core_factors(self, analysis: AssetAnalysis) -> list[ScoreFactor]:
        return [self.factor(name) for name, rule in CORE_RULES if rule(analysis)]

    def regime_factors(
        self,
        analysis: AssetAnalysis,
        snapshot: MarketSnapshot,
    ) -> list[ScoreFactor]:
        _ = (analysis, snapshot)
        return []

    def regime_multipliers(self, analysis: AssetAnalysis) -> list[ScoreMultiplier]:
        _ = analysis
        return []

    def market_adjustments(
        self,
        analysis: AssetAnalysis,
        snapshot: MarketSnapshot,
    ) -> tuple[list[ScoreFactor], list[ScoreMultiplier]]:
        """Dampen every score in a high-volatility market, reward calmer assets."""
        if snapshot.volatility.regime is not VolatilityRegime.HIGH:
            return [], []
        factors: list[ScoreFactor] = []
        if analysis.volatility < snapshot.volatility.average:
            factors.append(
                ScoreFactor("stability_bonus", float(self.market_weights["stability_bonus"]))
            )
        multipliers = [
            ScoreMultiplier("high_volatility_dampening", self.settings.high_volatility_multiplier)
        ]
        return factors, multipliers

    def factor(self, name: str) -> ScoreFactor:
        return ScoreFactor(name, float(self.weights[name]))
