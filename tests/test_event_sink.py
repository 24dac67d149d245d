from __future__ import annotations

from pathlib import Path

from regimescan.domain.events import ScanEvent
from regimescan.logging.event_sink import (
    JsonlEventSink,
    generate_plotly_report,
    latest_scores_frame,
    load_events,
    regime_frame,
)


def _write_run(path: Path) -> None:
    sink = JsonlEventSink(str(path))
    sink.emit(ScanEvent("run-1", "run_started", {"data_source": "csv", "symbols": []}))
    sink.emit(
        ScanEvent(
            "run-1",
            "regime",
            {"regime": "neutral", "bullish_ratio": 0.5},
            ts="2025-01-01T00:00:00+00:00",
        )
    )
    sink.emit(
        ScanEvent(
            "run-1",
            "cycle_summary",
            {"top": [{"symbol": "OLD-USDT", "score": 10.0, "risk_tier": "low"}]},
        )
    )
    sink.emit(
        ScanEvent(
            "run-1",
            "regime",
            {"regime": "bull_stable", "bullish_ratio": 0.72},
            ts="2025-01-01T00:15:00+00:00",
        )
    )
    sink.emit(
        ScanEvent(
            "run-1",
            "cycle_summary",
            {
                "top": [
                    {"symbol": "SOL-USDT", "score": 92.0, "risk_tier": "low", "plan_type": "x"},
                    {"symbol": "BTC-USDT", "score": 80.0, "risk_tier": "low", "plan_type": "x"},
                ]
            },
        )
    )


def test_event_sink_appends_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "run" / "events.jsonl"
    _write_run(path)

    events = load_events(path)

    assert len(events) == 5
    assert events[0]["event_type"] == "run_started"
    assert events[0]["run_id"] == "run-1"
    assert set(events[0]) == {"ts", "run_id", "event_type", "payload"}
    assert load_events(tmp_path / "missing.jsonl") == []


def test_report_frames_follow_regimes_and_latest_scores(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    _write_run(path)
    events = load_events(path)

    regimes = regime_frame(events)
    scores = latest_scores_frame(events)

    assert list(regimes["regime"]) == ["neutral", "bull_stable"]
    assert list(scores["symbol"]) == ["SOL-USDT", "BTC-USDT"]
    assert list(scores.columns) == ["symbol", "score", "risk_tier"]
    assert latest_scores_frame([]).empty


def test_generate_report_writes_html(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    _write_run(events_path)
    report_path = tmp_path / "out" / "report.html"

    generate_plotly_report(str(events_path), str(report_path))

    html = report_path.read_text(encoding="utf-8")
    assert "Regime Timeline" in html
    assert "Latest Top Scores" in html
    assert "Run Event Counts" in html


def test_generate_report_for_empty_run(tmp_path: Path) -> None:
    report_path = tmp_path / "report.html"

    generate_plotly_report(str(tmp_path / "events.jsonl"), str(report_path))

    assert "Run Event Summary" in report_path.read_text(encoding="utf-8")
