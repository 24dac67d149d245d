"""Indicator library, per-asset analysis, and market snapshot aggregation."""

from .asset_analyzer import analyze_asset, analyze_universe
from .market_snapshot import build_snapshot

__all__ = ["analyze_asset", "analyze_universe", "build_snapshot"]
