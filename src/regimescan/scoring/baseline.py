"""Regime-agnostic fallback scorer."""

from __future__ import annotations

from regimescan.scoring.base import RegimeScorer


class BaselineScorer(RegimeScorer):
    """Core signal rules only; used for regimes without a dedicated scorer."""

    scorer_id = "baseline"
    regimes = ()
    weights_key = "baseline"
