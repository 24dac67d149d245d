"""Core market-scan domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

import pandas as pd


class Regime(StrEnum):
    """Market-wide condition labels."""

    BULL_STABLE = "bull_stable"
    BULL_VOLATILE = "bull_volatile"
    BEAR_STABLE = "bear_stable"
    BEAR_VOLATILE = "bear_volatile"
    VOLATILE_SIDEWAYS = "volatile_sideways"
    SIDEWAYS_STABLE = "sideways_stable"
    NEUTRAL = "neutral"

    @property
    def family(self) -> str:
        """Weight/sizing table key shared by a stable/volatile pair."""
        if self in {Regime.BULL_STABLE, Regime.BULL_VOLATILE}:
            return "bull"
        if self in {Regime.BEAR_STABLE, Regime.BEAR_VOLATILE}:
            return "bear"
        if self in {Regime.SIDEWAYS_STABLE, Regime.VOLATILE_SIDEWAYS}:
            return "sideways"
        return "neutral"

    @property
    def is_volatile(self) -> bool:
        return self in {Regime.BULL_VOLATILE, Regime.BEAR_VOLATILE, Regime.VOLATILE_SIDEWAYS}

    @property
    def severity(self) -> int | None:
        """Severity within the bull and bear pairs only (stable < volatile)."""
        if self.family not in {"bull", "bear"}:
            return None
        return 1 if self.is_volatile else 0


class VolatilityRegime(StrEnum):
    """Three-way classification of aggregate volatility."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class VolumeTrend(StrEnum):
    """Direction of universe-wide volume."""

    INCREASING = "increasing"
    FLAT = "flat"
    DECREASING = "decreasing"


class RiskTier(StrEnum):
    """Risk label attached to every scored asset."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


@dataclass(frozen=True)
class TickerSnapshot:
    """Instantaneous 24h statistics for one asset."""

    symbol: str
    last: float
    high_24h: float
    low_24h: float
    change_24h: float
    volume_24h: float


@dataclass(frozen=True, eq=False)
class PriceSeries:
    """OHLCV bars for one asset in chronological order."""

    symbol: str
    bars: pd.DataFrame

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def closes(self) -> pd.Series:
        return self.bars["close"]

    @property
    def volumes(self) -> pd.Series:
        return self.bars["volume"]

    def latest(self, count: int) -> pd.DataFrame:
        """Return the most recent ``count`` bars, oldest first."""
        if count <= 0:
            return self.bars.iloc[0:0]
        return self.bars.iloc[-count:]


@dataclass(frozen=True)
class IndicatorResult:
    """Numeric indicator value with its categorical reading."""

    value: float
    signal: str = "neutral"
    trend: str = "neutral"


@dataclass(frozen=True)
class AssetAnalysis:
    """Every per-asset indicator for one cycle, with neutral defaults."""

    symbol: str
    price: float
    change_24h: float = 0.0
    volume_24h: float = 0.0
    rsi: IndicatorResult = field(default_factory=lambda: IndicatorResult(50.0))
    macd: IndicatorResult = field(default_factory=lambda: IndicatorResult(0.0))
    mfi: IndicatorResult = field(default_factory=lambda: IndicatorResult(50.0))
    accumulation: IndicatorResult = field(default_factory=lambda: IndicatorResult(0.0))
    moving_average: IndicatorResult = field(
        default_factory=lambda: IndicatorResult(0.0, signal="hold")
    )
    liquidity_flow: IndicatorResult = field(
        default_factory=lambda: IndicatorResult(1.0, signal="stable")
    )
    buying_power: IndicatorResult = field(
        default_factory=lambda: IndicatorResult(0.5, signal="medium")
    )
    supports: tuple[float, ...] = ()
    resistances: tuple[float, ...] = ()
    volatility: float = 0.0
    trend_strength: float = 0.5
    volume_ratio: float = 1.0
    bar_count: int = 0

    @property
    def first_support(self) -> float:
        return self.supports[0] if self.supports else self.price

    @property
    def first_resistance(self) -> float:
        return self.resistances[0] if self.resistances else self.price


@dataclass(frozen=True)
class TrendMetrics:
    """Direction of 24h changes across the universe."""

    bullish_count: int = 0
    bearish_count: int = 0
    neutral_count: int = 0
    bullish_ratio: float = 0.0
    bearish_ratio: float = 0.0
    neutral_ratio: float = 0.0
    strength: float = 0.0
    avg_positive_change: float = 0.0
    avg_negative_change: float = 0.0


@dataclass(frozen=True)
class VolatilityMetrics:
    """Aggregate intraday range statistics."""

    average: float = 0.0
    high_volatility_ratio: float = 0.0
    regime: VolatilityRegime = VolatilityRegime.NORMAL
    reference: float = 0.0
    trend: str = "stable"


@dataclass(frozen=True)
class VolumeMetrics:
    """Aggregate volume profile."""

    average: float = 0.0
    spike_symbols: tuple[str, ...] = ()
    dry_symbols: tuple[str, ...] = ()
    concentration: float = 0.0
    trend: VolumeTrend = VolumeTrend.FLAT
    trend_ratio: float = 1.0

    @property
    def spike_count(self) -> int:
        return len(self.spike_symbols)


@dataclass(frozen=True)
class StrengthMetrics:
    """Oscillator breadth across the universe."""

    average_rsi: float = 50.0
    macd_bullish_ratio: float = 0.5
    overbought_ratio: float = 0.0
    oversold_ratio: float = 0.0
    overall: float = 0.5


@dataclass(frozen=True)
class CorrelationMetrics:
    """Co-movement between the two benchmark assets."""

    pair: tuple[str, ...] = ()
    coefficient: float = 0.0


@dataclass(frozen=True)
class MarketSnapshot:
    """Market-wide metrics that feed the regime classifier."""

    trend: TrendMetrics
    volatility: VolatilityMetrics
    volume: VolumeMetrics
    strength: StrengthMetrics
    correlation: CorrelationMetrics
    timestamp: datetime
    asset_count: int = 0


@dataclass(frozen=True)
class ScoreFactor:
    """Named additive score contribution."""

    name: str
    points: float


@dataclass(frozen=True)
class ScoreMultiplier:
    """Named multiplicative score adjustment."""

    name: str
    factor: float


@dataclass(frozen=True)
class ScoreCard:
    """Explainable adapted score for one asset."""

    score: float
    risk_tier: RiskTier
    factors: tuple[ScoreFactor, ...] = ()
    multipliers: tuple[ScoreMultiplier, ...] = ()
    scorer_id: str = ""

    @property
    def raw_points(self) -> float:
        return sum(factor.points for factor in self.factors)

    def factor_names(self) -> list[str]:
        return [factor.name for factor in self.factors]


@dataclass(frozen=True)
class StrategyPlan:
    """Long-only trade recommendation derived from analysis and regime."""

    plan_type: str
    entry_price: float
    stop_loss: float
    targets: tuple[float, ...]
    position_size: float
    time_horizon: str
    confidence: float
    notes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("plan requires at least one target")
        if self.stop_loss <= 0:
            raise ValueError("stop_loss must be positive")
        if not self.stop_loss < self.entry_price:
            raise ValueError("stop_loss must be below entry_price")
        levels = (self.entry_price, *self.targets)
        for lower, upper in zip(levels, levels[1:]):
            if not lower < upper:
                raise ValueError("targets must ascend strictly above entry_price")
        if not 0 < self.position_size <= 1:
            raise ValueError("position_size must be in (0, 1]")
        if not 0 <= self.confidence <= 100:
            raise ValueError("confidence must be in [0, 100]")


@dataclass(frozen=True)
class ScoredAsset:
    """Ranked output row for one asset."""

    symbol: str
    price: float
    analysis: AssetAnalysis
    score: float
    risk_tier: RiskTier
    plan: StrategyPlan
    regime: Regime
    rank: int = 0
    card: ScoreCard | None = None


@dataclass(frozen=True)
class Alert:
    """Alert candidate handed to the notification collaborator."""

    kind: str
    symbol: str
    message: str
    value: float = 0.0


@dataclass(frozen=True)
class CycleResult:
    """Everything one refresh cycle publishes."""

    cycle_id: str
    regime: Regime
    snapshot: MarketSnapshot
    assets: tuple[ScoredAsset, ...] = ()
    previous_regime: Regime | None = None
    regime_changed: bool = False
    skipped: dict[str, str] = field(default_factory=dict)
    alerts: tuple[Alert, ...] = ()
    completed_at: datetime | None = None

    def top(self, count: int) -> tuple[ScoredAsset, ...]:
        return self.assets[: max(0, count)]

    def asset(self, symbol: str) -> ScoredAsset | None:
        for scored in self.assets:
            if scored.symbol == symbol:
                return scored
        return None
