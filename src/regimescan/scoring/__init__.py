"""Adaptive, regime-conditioned scoring."""

from .base import RegimeScorer, clamp_score
from .registry import available_scorer_ids, create_scorer, registered_regimes

__all__ = [
    "RegimeScorer",
    "available_scorer_ids",
    "clamp_score",
    "create_scorer",
    "registered_regimes",
]
