"""Regime-conditioned trade plan synthesis."""

from __future__ import annotations

import numpy as np

from regimescan.config import Settings
from regimescan.domain.models import AssetAnalysis, MarketSnapshot, Regime, StrategyPlan
from regimescan.strategy.confidence import plan_confidence
from regimescan.strategy.templates import template_for


def synthesize_plan(
    price: float,
    analysis: AssetAnalysis,
    regime: Regime,
    snapshot: MarketSnapshot,
    settings: Settings,
) -> StrategyPlan:
    """Build entry, stop, targets, sizing, and confidence for one asset.

    Raises ValueError when ``price`` is not a positive finite number or when
    the resulting levels break the long-plan ordering.
    """
    if not np.isfinite(price) or price <= 0:
        raise ValueError(f"{analysis.symbol}: price must be positive and finite, got {price}")
    template = template_for(regime)
    levels = template.levels(float(price), analysis)
    confidence, notes = plan_confidence(analysis, regime, snapshot)
    return StrategyPlan(
        plan_type=template.plan_type,
        entry_price=levels.entry,
        stop_loss=levels.stop,
        targets=levels.targets,
        position_size=settings.position_size_for(regime),
        time_horizon=template.time_horizon,
        confidence=confidence,
        notes=(*levels.notes, *notes),
    )
