"""
Shared pytest fixtures for the TurfOps test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied.
  - ``make_readings``: factory for evenly spaced readings of one metric.
  - ``default_catalog``: the shipped rule catalog.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator, Sequence

import pytest

from turfops.db.schema import apply_schema
from turfops.engine.catalog import RuleCatalog, load_catalog
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CATALOG_PATH = PROJECT_ROOT / "config" / "rules" / "default_rules.json"


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Domain object factories ───────────────────────────────────────────────────

@pytest.fixture
def make_readings() -> Callable[..., list[Reading]]:
    """Return a factory building readings that end at ``end`` and step backwards.

    ``make_readings(Metric.SOIL_TEMP_10CM, [55, 56, 57], end=ref, step_hours=6)``
    yields three readings stamped ``end - 12h``, ``end - 6h`` and ``end``.
    """

    def _make(
        metric: Metric,
        values: Sequence[float],
        end: datetime,
        step_hours: float = 6.0,
        source: str = "test",
    ) -> list[Reading]:
        n = len(values)
        return [
            Reading(
                metric=metric,
                timestamp=end - timedelta(hours=step_hours * (n - 1 - i)),
                value=v,
                source=source,
            )
            for i, v in enumerate(values)
        ]

    return _make


@pytest.fixture(scope="session")
def default_catalog() -> RuleCatalog:
    """The rule catalog shipped in ``config/rules/default_rules.json``."""
    return load_catalog(DEFAULT_CATALOG_PATH)


@pytest.fixture
def utc() -> Callable[..., datetime]:
    """Shorthand: ``utc(2025, 3, 10, 12)`` → aware UTC datetime."""

    def _utc(*args: int) -> datetime:
        return datetime(*args, tzinfo=timezone.utc)

    return _utc
