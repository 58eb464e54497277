"""Database connection and schema management."""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .models import HourlyValue, LoadCurve

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "solarsizing" / "solarsizing.db"

SCHEMA = """
-- Normalized annual load curves (one row per curve)
CREATE TABLE IF NOT EXISTS load_curves (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    source TEXT NOT NULL,
    reference_year INTEGER NOT NULL,
    total_kwh REAL NOT NULL,
    missing_hours INTEGER NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- The 8760 hourly values of each curve
CREATE TABLE IF NOT EXISTS load_curve_values (
    curve_id INTEGER NOT NULL,
    hour_index INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    value REAL NOT NULL,
    comment TEXT DEFAULT '',
    PRIMARY KEY (curve_id, hour_index),
    FOREIGN KEY (curve_id) REFERENCES load_curves(id)
);

-- Tariff definitions
CREATE TABLE IF NOT EXISTS tariffs (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    tariff_class TEXT NOT NULL,
    vat REAL NOT NULL,
    electricity_tax REAL NOT NULL,
    compensation_price REAL NOT NULL
);

-- Energy price of each tariff period
CREATE TABLE IF NOT EXISTS tariff_prices (
    tariff_id INTEGER NOT NULL,
    period INTEGER NOT NULL,
    price_eur_per_kwh REAL NOT NULL,
    PRIMARY KEY (tariff_id, period),
    FOREIGN KEY (tariff_id) REFERENCES tariffs(id)
);

-- Study runs, stored as the JSON produced by StudyResult.to_dict()
CREATE TABLE IF NOT EXISTS study_results (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    run_at TEXT NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_study_name ON study_results(name, run_at);
"""


def get_db_path() -> Path:
    """Get the database path, creating parent directories if needed."""
    db_path = Path(DEFAULT_DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


@contextmanager
def get_connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with row factory enabled."""
    path = db_path or get_db_path()
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def save_load_curve(
    curve: LoadCurve, source: str, db_path: Path | None = None, replace: bool = False
) -> dict:
    """Store a normalized curve. Returns counts of imported and skipped hours.

    A curve whose name already exists is skipped unless ``replace`` is set.
    """
    with get_connection(db_path) as conn:
        existing = conn.execute("SELECT id FROM load_curves WHERE name = ?", (curve.name,)).fetchone()
        if existing:
            if not replace:
                return {"imported": 0, "skipped": len(curve.entries)}
            conn.execute("DELETE FROM load_curve_values WHERE curve_id = ?", (existing["id"],))
            conn.execute("DELETE FROM load_curves WHERE id = ?", (existing["id"],))

        cursor = conn.execute(
            """INSERT INTO load_curves (name, source, reference_year, total_kwh, missing_hours)
               VALUES (?, ?, ?, ?, ?)""",
            (
                curve.name,
                source,
                curve.entries[0].timestamp.year,
                curve.total,
                curve.missing_hours,
            ),
        )
        curve_id = cursor.lastrowid
        conn.executemany(
            """INSERT INTO load_curve_values (curve_id, hour_index, timestamp, value, comment)
               VALUES (?, ?, ?, ?, ?)""",
            [
                (curve_id, i, e.timestamp.isoformat(), e.value, e.comment)
                for i, e in enumerate(curve.entries)
            ],
        )
        conn.commit()
    return {"imported": len(curve.entries), "skipped": 0}


def get_load_curve(name: str, db_path: Path | None = None) -> LoadCurve | None:
    """Load a stored curve by name, or None if it does not exist."""
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT id FROM load_curves WHERE name = ?", (name,)).fetchone()
        if not row:
            return None
        rows = conn.execute(
            """SELECT timestamp, value, comment FROM load_curve_values
               WHERE curve_id = ? ORDER BY hour_index""",
            (row["id"],),
        ).fetchall()

    return LoadCurve(
        name=name,
        entries=tuple(
            HourlyValue(datetime.fromisoformat(r["timestamp"]), r["value"], r["comment"] or "")
            for r in rows
        ),
    )


def list_load_curves(db_path: Path | None = None) -> list[dict]:
    """Summary of every stored curve, ordered by name."""
    with get_connection(db_path) as conn:
        rows = conn.execute(
            """SELECT name, source, reference_year, total_kwh, missing_hours, created_at
               FROM load_curves ORDER BY name"""
        ).fetchall()
    return [dict(row) for row in rows]


def save_study_result(name: str, payload: dict, db_path: Path | None = None) -> int:
    """Store the result of a study run. Returns the new row id."""
    with get_connection(db_path) as conn:
        cursor = conn.execute(
            "INSERT INTO study_results (name, run_at, payload) VALUES (?, ?, ?)",
            (name, datetime.now().isoformat(timespec="seconds"), json.dumps(payload)),
        )
        conn.commit()
        return cursor.lastrowid


def get_study_results(name: str | None = None, db_path: Path | None = None) -> list[dict]:
    """Stored study runs, newest first, optionally filtered by study name."""
    query = "SELECT id, name, run_at, payload FROM study_results"
    params: tuple = ()
    if name:
        query += " WHERE name = ?"
        params = (name,)
    query += " ORDER BY run_at DESC, id DESC"
    with get_connection(db_path) as conn:
        rows = conn.execute(query, params).fetchall()
    return [
        {"id": r["id"], "name": r["name"], "run_at": r["run_at"], "payload": json.loads(r["payload"])}
        for r in rows
    ]


def get_stats(db_path: Path | None = None) -> dict:
    """Get database statistics."""
    with get_connection(db_path) as conn:
        stats = {}

        row = conn.execute(
            "SELECT COUNT(*) as count, SUM(missing_hours) as missing FROM load_curves"
        ).fetchone()
        stats["load_curves"] = {"count": row["count"], "missing_hours": row["missing"] or 0}

        rows = conn.execute(
            "SELECT source, COUNT(*) as count FROM load_curves GROUP BY source"
        ).fetchall()
        stats["curves_by_source"] = {row["source"]: row["count"] for row in rows}

        row = conn.execute("SELECT COUNT(*) as count FROM tariffs").fetchone()
        stats["tariffs"] = {"count": row["count"]}

        row = conn.execute(
            "SELECT COUNT(*) as count, MAX(run_at) as latest FROM study_results"
        ).fetchone()
        stats["study_results"] = {"count": row["count"], "latest": row["latest"]}

        return stats
