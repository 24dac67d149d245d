"""Environment and CLI runtime configuration."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Self

from dotenv import load_dotenv

from regimescan.domain.models import Regime, RiskTier
from regimescan.errors import ConfigError

DATA_SOURCES = {"okx", "csv", "yfinance"}
DEFAULT_EXCLUDED_SYMBOLS = ["USDT", "USDC", "BUSD", "DAI", "TUSD", "FDUSD"]
DEFAULT_BENCHMARK_SYMBOLS = ["BTC-USDT", "ETH-USDT"]
DEFAULT_YFINANCE_UNIVERSE = ["BTC-USD", "ETH-USD", "SOL-USD", "XRP-USD", "ADA-USD", "DOGE-USD"]

CORE_WEIGHT_KEYS = (
    "rsi_positive",
    "macd_positive",
    "liquidity_increasing",
    "buying_power",
    "ma_buy_signal",
)
FAMILY_WEIGHT_KEYS: dict[str, tuple[str, ...]] = {
    "bull": (*CORE_WEIGHT_KEYS, "momentum_confirmation", "volume_breakout"),
    "bear": (*CORE_WEIGHT_KEYS, "rsi_oversold", "support_bounce", "resilience"),
    "sideways": (*CORE_WEIGHT_KEYS, "range_volatility", "support_proximity", "mean_reversion"),
    "baseline": CORE_WEIGHT_KEYS,
    "market": ("stability_bonus",),
}
POSITION_SIZE_KEYS = ("bull", "bear", "sideways", "neutral")


def default_scoring_weights() -> dict[str, dict[str, float]]:
    """Point tables per scorer family."""
    return {
        "bull": {
            "rsi_positive": 15.0,
            "macd_positive": 15.0,
            "liquidity_increasing": 15.0,
            "buying_power": 15.0,
            "ma_buy_signal": 15.0,
            "momentum_confirmation": 15.0,
            "volume_breakout": 10.0,
        },
        "bear": {
            "rsi_positive": 10.0,
            "macd_positive": 10.0,
            "liquidity_increasing": 10.0,
            "buying_power": 15.0,
            "ma_buy_signal": 10.0,
            "rsi_oversold": 15.0,
            "support_bounce": 15.0,
            "resilience": 15.0,
        },
        "sideways": {
            "rsi_positive": 15.0,
            "macd_positive": 10.0,
            "liquidity_increasing": 15.0,
            "buying_power": 10.0,
            "ma_buy_signal": 10.0,
            "range_volatility": 15.0,
            "support_proximity": 15.0,
            "mean_reversion": 10.0,
        },
        "baseline": {
            "rsi_positive": 20.0,
            "macd_positive": 20.0,
            "liquidity_increasing": 20.0,
            "buying_power": 20.0,
            "ma_buy_signal": 20.0,
        },
        "market": {"stability_bonus": 10.0},
    }


def default_position_sizes() -> dict[str, float]:
    """Maximum portfolio fraction per regime family."""
    return {"bull": 0.05, "bear": 0.02, "sideways": 0.03, "neutral": 0.02}


def default_risk_tiers() -> dict[str, str]:
    """Risk tier per regime."""
    return {
        Regime.BULL_STABLE.value: RiskTier.LOW.value,
        Regime.BULL_VOLATILE.value: RiskTier.MEDIUM.value,
        Regime.BEAR_STABLE.value: RiskTier.HIGH.value,
        Regime.BEAR_VOLATILE.value: RiskTier.VERY_HIGH.value,
        Regime.VOLATILE_SIDEWAYS.value: RiskTier.HIGH.value,
        Regime.SIDEWAYS_STABLE.value: RiskTier.MEDIUM.value,
        Regime.NEUTRAL.value: RiskTier.MEDIUM.value,
    }


def parse_bool(value: str | None, default: bool) -> bool:
    """Parse truthy environment strings."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_optional_positive_int(value: str | None, *, field_name: str) -> int | None:
    """Parse optional positive integer values from env strings."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    parsed = int(text)
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return parsed


def parse_float(value: str | None, default: float, *, field_name: str) -> float:
    """Parse a float env value, reporting the field on failure."""
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{field_name} must be a number, got {value!r}") from exc


def parse_symbols(value: str | None, default: list[str] | None = None) -> list[str]:
    """Parse comma-separated symbols."""
    fallback = default or []
    if not value:
        return list(fallback)
    symbols = [item.strip().upper() for item in value.split(",") if item.strip()]
    return dedupe_symbols(symbols) or list(fallback)


def dedupe_symbols(symbols: list[str]) -> list[str]:
    """Remove duplicate symbols while preserving order."""
    deduped: list[str] = []
    seen: set[str] = set()
    for symbol in symbols:
        if symbol in seen:
            continue
        seen.add(symbol)
        deduped.append(symbol)
    return deduped


def merge_tables(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Merge override tables onto defaults one level deep."""
    merged: dict[str, Any] = {}
    for key, value in defaults.items():
        merged[key] = dict(value) if isinstance(value, Mapping) else value
    for key, value in (overrides or {}).items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            current.update(value)
        else:
            merged[key] = dict(value) if isinstance(value, Mapping) else value
    return merged


def load_regime_config(path: str | None) -> dict[str, Any]:
    """Load per-regime table overrides from a JSON file."""
    if path is None or not path.strip():
        return {}
    config_path = Path(path.strip())
    if not config_path.exists():
        raise ConfigError(f"REGIME_CONFIG_FILE not found: {config_path}")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"REGIME_CONFIG_FILE is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("REGIME_CONFIG_FILE must contain a JSON object")
    return payload


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    data_source: str = "okx"
    symbols: list[str] = field(default_factory=list)
    okx_base_url: str = "https://www.okx.com"
    okx_rate_limit: float = 20.0
    quote_currency: str = "USDT"
    candle_bar: str = "1D"
    candle_limit: int = 100
    historical_data_dir: str = "historical_data"
    events_dir: str = "runs"
    state_db_path: str = "state/regimescan_state.db"
    persist_state: bool = True
    log_level: str = "INFO"
    top_n_log: int = 10
    min_volume: float = 1_000_000.0
    min_price: float = 0.0001
    max_assets: int = 200
    excluded_symbols: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_SYMBOLS))
    benchmark_symbols: list[str] = field(default_factory=lambda: list(DEFAULT_BENCHMARK_SYMBOLS))
    bull_threshold: float = 0.65
    bear_threshold: float = 0.35
    high_volatility_threshold: float = 0.05
    low_volatility_threshold: float = 0.02
    volume_surge_multiplier: float = 2.0
    volume_dry_multiplier: float = 0.5
    volume_trend_tolerance: float = 0.1
    volume_concentration_top_n: int = 10
    trend_neutral_band: float = 0.5
    short_period: int = 7
    medium_period: int = 21
    long_period: int = 50
    trend_window: int = 10
    rsi_period: int = 14
    scoring_weights: dict[str, dict[str, float]] = field(default_factory=default_scoring_weights)
    extreme_gain_threshold: float = 10.0
    extreme_gain_multiplier: float = 0.7
    high_volatility_multiplier: float = 0.9
    position_sizes: dict[str, float] = field(default_factory=default_position_sizes)
    volatile_size_multiplier: float = 0.7
    risk_tiers: dict[str, str] = field(default_factory=default_risk_tiers)
    alert_high_score: float = 85.0
    alert_volume_spike: float = 5.0
    alert_price_breakout: float = 0.10
    fast_interval_seconds: int = 60
    normal_interval_seconds: int = 300
    slow_interval_seconds: int = 900
    max_cycles: int | None = None

    @classmethod
    def from_env(cls) -> Self:
        """Create settings from environment variables."""
        load_dotenv()
        defaults = cls()
        tables = load_regime_config(os.getenv("REGIME_CONFIG_FILE"))
        raw = cls(
            data_source=str(os.getenv("DATA_SOURCE", defaults.data_source)).strip().lower(),
            symbols=parse_symbols(os.getenv("SYMBOLS"), defaults.symbols),
            okx_base_url=str(os.getenv("OKX_BASE_URL", defaults.okx_base_url)).strip(),
            okx_rate_limit=parse_float(
                os.getenv("OKX_RATE_LIMIT"), defaults.okx_rate_limit, field_name="okx_rate_limit"
            ),
            quote_currency=str(os.getenv("QUOTE_CURRENCY", defaults.quote_currency))
            .strip()
            .upper(),
            candle_bar=str(os.getenv("CANDLE_BAR", defaults.candle_bar)).strip(),
            candle_limit=parse_optional_positive_int(
                os.getenv("CANDLE_LIMIT"), field_name="candle_limit"
            )
            or defaults.candle_limit,
            historical_data_dir=str(
                os.getenv("HISTORICAL_DATA_DIR", defaults.historical_data_dir)
            ).strip(),
            events_dir=str(os.getenv("EVENTS_DIR", defaults.events_dir)).strip(),
            state_db_path=str(os.getenv("STATE_DB_PATH", defaults.state_db_path)).strip(),
            persist_state=parse_bool(os.getenv("PERSIST_STATE"), defaults.persist_state),
            log_level=str(os.getenv("LOG_LEVEL", defaults.log_level)).strip().upper(),
            top_n_log=parse_optional_positive_int(os.getenv("TOP_N_LOG"), field_name="top_n_log")
            or defaults.top_n_log,
            min_volume=parse_float(
                os.getenv("MIN_VOLUME"), defaults.min_volume, field_name="min_volume"
            ),
            min_price=parse_float(
                os.getenv("MIN_PRICE"), defaults.min_price, field_name="min_price"
            ),
            max_assets=parse_optional_positive_int(os.getenv("MAX_ASSETS"), field_name="max_assets")
            or defaults.max_assets,
            excluded_symbols=parse_symbols(
                os.getenv("EXCLUDED_SYMBOLS"), defaults.excluded_symbols
            ),
            benchmark_symbols=parse_symbols(
                os.getenv("BENCHMARK_SYMBOLS"), defaults.benchmark_symbols
            ),
            bull_threshold=parse_float(
                os.getenv("BULL_THRESHOLD"), defaults.bull_threshold, field_name="bull_threshold"
            ),
            bear_threshold=parse_float(
                os.getenv("BEAR_THRESHOLD"), defaults.bear_threshold, field_name="bear_threshold"
            ),
            high_volatility_threshold=parse_float(
                os.getenv("HIGH_VOLATILITY_THRESHOLD"),
                defaults.high_volatility_threshold,
                field_name="high_volatility_threshold",
            ),
            low_volatility_threshold=parse_float(
                os.getenv("LOW_VOLATILITY_THRESHOLD"),
                defaults.low_volatility_threshold,
                field_name="low_volatility_threshold",
            ),
            volume_surge_multiplier=parse_float(
                os.getenv("VOLUME_SURGE_MULTIPLIER"),
                defaults.volume_surge_multiplier,
                field_name="volume_surge_multiplier",
            ),
            volume_dry_multiplier=parse_float(
                os.getenv("VOLUME_DRY_MULTIPLIER"),
                defaults.volume_dry_multiplier,
                field_name="volume_dry_multiplier",
            ),
            trend_neutral_band=parse_float(
                os.getenv("TREND_NEUTRAL_BAND"),
                defaults.trend_neutral_band,
                field_name="trend_neutral_band",
            ),
            scoring_weights=merge_tables(defaults.scoring_weights, tables.get("scoring_weights")),
            position_sizes=merge_tables(defaults.position_sizes, tables.get("position_sizes")),
            risk_tiers=merge_tables(defaults.risk_tiers, tables.get("risk_tiers")),
            alert_high_score=parse_float(
                os.getenv("ALERT_HIGH_SCORE"),
                defaults.alert_high_score,
                field_name="alert_high_score",
            ),
            alert_volume_spike=parse_float(
                os.getenv("ALERT_VOLUME_SPIKE"),
                defaults.alert_volume_spike,
                field_name="alert_volume_spike",
            ),
            alert_price_breakout=parse_float(
                os.getenv("ALERT_PRICE_BREAKOUT"),
                defaults.alert_price_breakout,
                field_name="alert_price_breakout",
            ),
            fast_interval_seconds=parse_optional_positive_int(
                os.getenv("FAST_INTERVAL_SECONDS"), field_name="fast_interval_seconds"
            )
            or defaults.fast_interval_seconds,
            normal_interval_seconds=parse_optional_positive_int(
                os.getenv("NORMAL_INTERVAL_SECONDS"), field_name="normal_interval_seconds"
            )
            or defaults.normal_interval_seconds,
            slow_interval_seconds=parse_optional_positive_int(
                os.getenv("SLOW_INTERVAL_SECONDS"), field_name="slow_interval_seconds"
            )
            or defaults.slow_interval_seconds,
            max_cycles=parse_optional_positive_int(
                os.getenv("MAX_CYCLES"), field_name="max_cycles"
            ),
        )
        return raw.validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        updated = replace(self, **kwargs)
        return updated.validate()

    def risk_tier_for(self, regime: Regime) -> RiskTier:
        return RiskTier(self.risk_tiers[regime.value])

    def position_size_for(self, regime: Regime) -> float:
        """Regime-family size, scaled down for the volatile variants."""
        size = float(self.position_sizes[regime.family])
        if regime.is_volatile:
            size *= self.volatile_size_multiplier
        return size

    def watchlist(self) -> list[str]:
        """Explicit symbols to scan; empty means the whole filtered universe."""
        if self.symbols:
            return list(self.symbols)
        if self.data_source == "yfinance":
            return list(DEFAULT_YFINANCE_UNIVERSE)
        return []

    def weights_for(self, family: str) -> dict[str, float]:
        return self.scoring_weights[family]

    def validate(self) -> Self:
        """Validate settings fields."""
        if self.data_source not in DATA_SOURCES:
            raise ConfigError(f"data_source must be one of {', '.join(sorted(DATA_SOURCES))}")
        if self.okx_rate_limit <= 0:
            raise ConfigError("okx_rate_limit must be positive")
        if self.candle_limit <= 0:
            raise ConfigError("candle_limit must be positive")
        if self.min_volume < 0 or self.min_price < 0:
            raise ConfigError("min_volume and min_price must be non-negative")
        if self.max_assets <= 0:
            raise ConfigError("max_assets must be positive")
        if self.top_n_log < 0:
            raise ConfigError("top_n_log must be non-negative")
        if len(self.benchmark_symbols) != 2:
            raise ConfigError("benchmark_symbols must name exactly two assets")
        if not 0 < self.bear_threshold < self.bull_threshold < 1:
            raise ConfigError("thresholds must satisfy 0 < bear_threshold < bull_threshold < 1")
        if not 0 < self.low_volatility_threshold < self.high_volatility_threshold:
            raise ConfigError(
                "volatility thresholds must satisfy 0 < low_volatility_threshold "
                "< high_volatility_threshold"
            )
        if self.volume_surge_multiplier <= 1:
            raise ConfigError("volume_surge_multiplier must be greater than 1")
        if not 0 < self.volume_dry_multiplier < 1:
            raise ConfigError("volume_dry_multiplier must be between 0 and 1")
        if self.trend_neutral_band < 0:
            raise ConfigError("trend_neutral_band must be non-negative")
        for name in ("short_period", "medium_period", "long_period", "trend_window", "rsi_period"):
            if getattr(self, name) <= 1:
                raise ConfigError(f"{name} must be greater than 1")
        self._validate_tables()
        if not 0 < self.volatile_size_multiplier <= 1:
            raise ConfigError("volatile_size_multiplier must be in (0, 1]")
        multipliers = (self.extreme_gain_multiplier, self.high_volatility_multiplier)
        if any(not 0 < multiplier <= 1 for multiplier in multipliers):
            raise ConfigError("score multipliers must be in (0, 1]")
        if not 0 <= self.alert_high_score <= 100:
            raise ConfigError("alert_high_score must be between 0 and 100")
        if self.alert_volume_spike <= 0 or self.alert_price_breakout <= 0:
            raise ConfigError("alert thresholds must be positive")
        for name in ("fast_interval_seconds", "normal_interval_seconds", "slow_interval_seconds"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.max_cycles is not None and self.max_cycles <= 0:
            raise ConfigError("max_cycles must be positive")
        return self

    def _validate_tables(self) -> None:
        for family, keys in FAMILY_WEIGHT_KEYS.items():
            table = self.scoring_weights.get(family)
            if table is None:
                raise ConfigError(f"scoring_weights is missing the '{family}' table")
            missing = [key for key in keys if key not in table]
            if missing:
                raise ConfigError(f"scoring_weights['{family}'] is missing {', '.join(missing)}")
        for family in POSITION_SIZE_KEYS:
            size = self.position_sizes.get(family)
            if size is None:
                raise ConfigError(f"position_sizes is missing '{family}'")
            if not 0 < float(size) <= 1:
                raise ConfigError(f"position_sizes['{family}'] must be in (0, 1]")
        valid_tiers = {tier.value for tier in RiskTier}
        for regime in Regime:
            tier = self.risk_tiers.get(regime.value)
            if tier not in valid_tiers:
                raise ConfigError(
                    f"risk_tiers['{regime.value}'] must be one of {sorted(valid_tiers)}"
                )
