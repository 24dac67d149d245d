"""Alert candidates derived from a finished cycle."""

from __future__ import annotations

from regimescan.config import Settings
from regimescan.domain.models import Alert, CycleResult, ScoredAsset

MARKET_SYMBOL = "MARKET"
BREAKOUT_PROXIMITY = 0.99


def build_alerts(result: CycleResult, settings: Settings) -> tuple[Alert, ...]:
    """Regime change first, then per-asset alerts in rank order."""
    alerts: list[Alert] = []
    if result.regime_changed and result.previous_regime is not None:
        alerts.append(
            Alert(
                kind="regime_change",
                symbol=MARKET_SYMBOL,
                message=f"regime {result.previous_regime.value} -> {result.regime.value}",
            )
        )
    for asset in result.assets:
        alerts.extend(asset_alerts(asset, settings))
    return tuple(alerts)


def asset_alerts(asset: ScoredAsset, settings: Settings) -> list[Alert]:
    alerts: list[Alert] = []
    analysis = asset.analysis
    if asset.score >= settings.alert_high_score:
        alerts.append(
            Alert(
                kind="high_score",
                symbol=asset.symbol,
                message=f"score {asset.score:.1f} in {asset.regime.value}",
                value=asset.score,
            )
        )
    if analysis.volume_ratio >= settings.alert_volume_spike:
        alerts.append(
            Alert(
                kind="volume_spike",
                symbol=asset.symbol,
                message=f"volume {analysis.volume_ratio:.1f}x its trailing average",
                value=analysis.volume_ratio,
            )
        )
    # change_24h is in percent; the breakout threshold is a fraction.
    change = analysis.change_24h / 100.0
    if (
        change >= settings.alert_price_breakout
        and asset.price >= analysis.first_resistance * BREAKOUT_PROXIMITY
    ):
        alerts.append(
            Alert(
                kind="price_breakout",
                symbol=asset.symbol,
                message=(
                    f"{analysis.change_24h:+.2f}% pressing resistance "
                    f"{analysis.first_resistance:.6g}"
                ),
                value=analysis.change_24h,
            )
        )
    return alerts
