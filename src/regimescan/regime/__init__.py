"""Market regime classification."""

from .classifier import (
    RegimeThresholds,
    classify_regime,
    classify_volatility,
    regime_changed,
)

__all__ = ["RegimeThresholds", "classify_regime", "classify_volatility", "regime_changed"]
