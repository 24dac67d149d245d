"""JSONL event sink and per-run Plotly report generator."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
import plotly.express as px

from regimescan.domain.events import ScanEvent


class JsonlEventSink:
    """Append-only JSONL writer."""

    def __init__(self, path: str) -> None:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.path = output_path

    def emit(self, event: ScanEvent) -> None:
        record = event.to_record()
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, sort_keys=True))
            handle.write("\n")


def load_events(path: str | Path) -> list[dict[str, Any]]:
    """Load JSONL records from disk."""
    records: list[dict[str, Any]] = []
    input_path = Path(path)
    if not input_path.exists():
        return records
    with input_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            text = line.strip()
            if not text:
                continue
            records.append(json.loads(text))
    return records


def regime_frame(events: list[dict[str, Any]]) -> pd.DataFrame:
    """Regime decisions over time."""
    rows = [
        {
            "ts": event.get("ts"),
            "regime": event.get("payload", {}).get("regime", ""),
            "bullish_ratio": event.get("payload", {}).get("bullish_ratio", 0.0),
        }
        for event in events
        if event.get("event_type") == "regime"
    ]
    frame = pd.DataFrame(rows, columns=["ts", "regime", "bullish_ratio"])
    frame["ts"] = pd.to_datetime(frame["ts"], utc=True, errors="coerce")
    return frame


def latest_scores_frame(events: list[dict[str, Any]]) -> pd.DataFrame:
    """Top assets from the most recent cycle summary."""
    for event in reversed(events):
        if event.get("event_type") != "cycle_summary":
            continue
        top = event.get("payload", {}).get("top", [])
        return pd.DataFrame(top, columns=["symbol", "score", "risk_tier"])
    return pd.DataFrame(columns=["symbol", "score", "risk_tier"])


def generate_plotly_report(events_jsonl_path: str, output_html_path: str) -> None:
    """Render the regime timeline and the latest top scores."""
    events = load_events(events_jsonl_path)
    output = Path(output_html_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    if not events:
        empty_df = pd.DataFrame({"event_type": ["none"], "count": [0]})
        figure = px.bar(empty_df, x="event_type", y="count", title="Run Event Summary")
        figure.write_html(str(output), include_plotlyjs="cdn")
        return

    counts = (
        pd.DataFrame({"event_type": [event.get("event_type") for event in events]})
        .groupby("event_type", dropna=False)
        .size()
        .reset_index(name="count")
    )
    figures = []
    regimes = regime_frame(events)
    if not regimes.empty:
        figures.append(
            px.scatter(
                regimes,
                x="ts",
                y="regime",
                color="regime",
                title="Regime Timeline",
                hover_data=["bullish_ratio"],
            )
        )
    scores = latest_scores_frame(events)
    if not scores.empty:
        figures.append(
            px.bar(scores, x="symbol", y="score", color="risk_tier", title="Latest Top Scores")
        )
    figures.append(px.bar(counts, x="event_type", y="count", title="Run Event Counts"))

    html_parts = [
        "<html><head><meta charset='utf-8'><title>regimescan run report</title></head><body>"
    ]
    for index, figure in enumerate(figures):
        html_parts.append(
            figure.to_html(full_html=False, include_plotlyjs="cdn" if index == 0 else False)
        )
    html_parts.append("</body></html>")
    output.write_text("".join(html_parts), encoding="utf-8")
