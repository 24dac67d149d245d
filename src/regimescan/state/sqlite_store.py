"""SQLite state store for restart-safe regime tracking."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from regimescan.domain.models import MarketSnapshot, Regime
from regimescan.state.store import RegimeRecord


class SqliteStateStore:
    """SQLite-backed run and regime history."""

    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.connection = sqlite3.connect(path)
        self.connection.row_factory = sqlite3.Row
        self._initialize_schema()

    def record_run(self, run_id: str, data_source: str, symbols: list[str]) -> None:
        now = self._utc_now()
        self.connection.execute(
            """
            INSERT OR REPLACE INTO runs(run_id, data_source, symbols, started_ts)
            VALUES(?, ?, ?, ?)
            """,
            (run_id, data_source, ",".join(symbols), now),
        )
        self.connection.commit()

    def record_regime(self, run_id: str, regime: Regime, snapshot: MarketSnapshot) -> None:
        self.connection.execute(
            """
            INSERT INTO regime_history(
                run_id,
                regime,
                bullish_ratio,
                bearish_ratio,
                volatility,
                strength,
                recorded_ts
            )
            VALUES(?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run_id,
                regime.value,
                snapshot.trend.bullish_ratio,
                snapshot.trend.bearish_ratio,
                snapshot.volatility.average,
                snapshot.strength.overall,
                self._utc_now(),
            ),
        )
        self.connection.commit()

    def last_regime(self) -> Regime | None:
        row = self.connection.execute(
            """
            SELECT regime
            FROM regime_history
            ORDER BY id DESC
            LIMIT 1
            """
        ).fetchone()
        if row is None:
            return None
        return Regime(str(row["regime"]))

    def regime_history(self, limit: int = 50) -> list[RegimeRecord]:
        rows = self.connection.execute(
            """
            SELECT run_id, regime, bullish_ratio, bearish_ratio, volatility, strength, recorded_ts
            FROM regime_history
            ORDER BY id DESC
            LIMIT ?
            """,
            (max(0, limit),),
        ).fetchall()
        return [
            RegimeRecord(
                run_id=str(row["run_id"]),
                regime=Regime(str(row["regime"])),
                bullish_ratio=float(row["bullish_ratio"]),
                bearish_ratio=float(row["bearish_ratio"]),
                volatility=float(row["volatility"]),
                strength=float(row["strength"]),
                recorded_ts=str(row["recorded_ts"]),
            )
            for row in rows
        ]

    def close(self) -> None:
        self.connection.close()

    def _initialize_schema(self) -> None:
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS runs(
                run_id TEXT PRIMARY KEY,
                data_source TEXT NOT NULL,
                symbols TEXT NOT NULL,
                started_ts TEXT NOT NULL
            )
            """
        )
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS regime_history(
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_id TEXT NOT NULL,
                regime TEXT NOT NULL,
                bullish_ratio REAL NOT NULL,
                bearish_ratio REAL NOT NULL,
                volatility REAL NOT NULL,
                strength REAL NOT NULL,
                recorded_ts TEXT NOT NULL
            )
            """
        )
        self.connection.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_regime_history_run
            ON regime_history(run_id)
            """
        )
        self.connection.commit()

    @staticmethod
    def _utc_now() -> str:
        return datetime.now(tz=UTC).isoformat()
