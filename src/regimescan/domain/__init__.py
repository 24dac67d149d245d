"""Domain models and event types."""

from .events import ScanEvent
from .models import (
    Alert,
    AssetAnalysis,
    CorrelationMetrics,
    CycleResult,
    IndicatorResult,
    MarketSnapshot,
    PriceSeries,
    Regime,
    RiskTier,
    ScoreCard,
    ScoredAsset,
    ScoreFactor,
    ScoreMultiplier,
    StrategyPlan,
    StrengthMetrics,
    TickerSnapshot,
    TrendMetrics,
    VolatilityMetrics,
    VolatilityRegime,
    VolumeMetrics,
    VolumeTrend,
)

__all__ = [
    "Alert",
    "AssetAnalysis",
    "CorrelationMetrics",
    "CycleResult",
    "IndicatorResult",
    "MarketSnapshot",
    "PriceSeries",
    "Regime",
    "RiskTier",
    "ScanEvent",
    "ScoreCard",
    "ScoreFactor",
    "ScoreMultiplier",
    "ScoredAsset",
    "StrategyPlan",
    "StrengthMetrics",
    "TickerSnapshot",
    "TrendMetrics",
    "VolatilityMetrics",
    "VolatilityRegime",
    "VolumeMetrics",
    "VolumeTrend",
]
