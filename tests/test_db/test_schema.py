"""Tests for SQLite schema: idempotency, tables, indexes, constraints."""

from __future__ import annotations

import sqlite3

import pytest

from turfops.db.connection import get_connection
from turfops.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        assert tables == sorted(ALL_TABLE_NAMES)

    def test_idempotent_double_apply(self, in_memory_db):
        """apply_schema() called twice must not raise errors."""
        apply_schema(in_memory_db)
        assert get_existing_tables(in_memory_db) == sorted(ALL_TABLE_NAMES)

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        assert "idx_readings_metric_ts" in indexes
        assert "idx_applications_applied_at" in indexes


class TestConstraints:
    def test_duplicate_reading_rejected(self, in_memory_db):
        sql = "INSERT INTO readings (metric, timestamp, value, source) VALUES (?, ?, ?, ?);"
        row = ("humidity", "2025-06-01T00:00:00.000000+00:00", 60.0, "csv")
        in_memory_db.execute(sql, row)
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(sql, row)

    def test_same_instant_from_other_source_allowed(self, in_memory_db):
        sql = "INSERT INTO readings (metric, timestamp, value, source) VALUES (?, ?, ?, ?);"
        in_memory_db.execute(sql, ("humidity", "2025-06-01T00:00:00.000000+00:00", 60.0, "csv"))
        in_memory_db.execute(sql, ("humidity", "2025-06-01T00:00:00.000000+00:00", 61.0, "owm"))
        count = in_memory_db.execute("SELECT COUNT(*) FROM readings;").fetchone()[0]
        assert count == 2

    def test_negative_amount_rejected(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO applications (category, applied_at, amount) VALUES (?, ?, ?);",
                ("fertilizer", "2025-04-01", -1.0),
            )


class TestGetConnection:
    def test_creates_parent_dirs_and_commits(self, tmp_path):
        db_path = tmp_path / "nested" / "turfops.db"
        with get_connection(str(db_path)) as conn:
            apply_schema(conn)
            conn.execute(
                "INSERT INTO applications (category, applied_at) VALUES ('overseed', '2025-09-10');"
            )
        assert db_path.exists()

        with get_connection(str(db_path)) as conn:
            count = conn.execute("SELECT COUNT(*) AS n FROM applications;").fetchone()["n"]
        assert count == 1

    def test_rolls_back_on_error(self, tmp_path):
        db_path = str(tmp_path / "turfops.db")
        with get_connection(db_path) as conn:
            apply_schema(conn)

        with pytest.raises(RuntimeError):
            with get_connection(db_path) as conn:
                conn.execute(
                    "INSERT INTO applications (category, applied_at) VALUES ('overseed', '2025-09-10');"
                )
                raise RuntimeError("boom")

        with get_connection(db_path) as conn:
            count = conn.execute("SELECT COUNT(*) AS n FROM applications;").fetchone()["n"]
        assert count == 0

    def test_foreign_keys_enabled(self, tmp_path):
        with get_connection(str(tmp_path / "turfops.db")) as conn:
            assert conn.execute("PRAGMA foreign_keys;").fetchone()[0] == 1
