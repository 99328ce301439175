"""
SQLite schema DDL.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables:
  1. readings       one sample per (metric, timestamp, source)
  2. applications   append-only treatment log

Timestamps are stored as fixed-width UTC ISO-8601 text
(``YYYY-MM-DDTHH:MM:SS.ffffff+00:00``) so text comparison is chronological.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_READINGS = """
CREATE TABLE IF NOT EXISTS readings (
    reading_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    metric      TEXT    NOT NULL,
    timestamp   TEXT    NOT NULL,
    value       REAL    NOT NULL,
    source      TEXT    NOT NULL DEFAULT 'manual',
    ingested_at TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (metric, timestamp, source)
);
"""

_DDL_READINGS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_readings_metric_ts ON readings (metric, timestamp);
"""

_DDL_APPLICATIONS = """
CREATE TABLE IF NOT EXISTS applications (
    application_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    category        TEXT    NOT NULL,
    applied_at      TEXT    NOT NULL,
    amount          REAL,
    amount_note     TEXT,
    notes           TEXT,
    created_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    CHECK (amount IS NULL OR amount >= 0)
);
"""

_DDL_APPLICATIONS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_applications_applied_at ON applications (applied_at);
"""

_ALL_DDL: list[str] = [
    _DDL_READINGS,
    _DDL_READINGS_INDEXES,
    _DDL_APPLICATIONS,
    _DDL_APPLICATIONS_INDEXES,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = ["readings", "applications"]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.  Idempotent."""
    logger.debug("Applying schema to database...")
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()
    logger.info("Schema applied: %d tables created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return user-defined index names, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
