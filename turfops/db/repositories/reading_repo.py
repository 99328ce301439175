"""
Repository for environmental readings.

Satisfies ``MetricSeriesProvider``: ``get(metric, since)`` returns a tuple of
``Reading`` models, so a ``ReadingRepository`` can be handed straight to
``RulesEngine.run()``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from turfops.db.repositories.base import BaseRepository, from_db_timestamp, to_db_timestamp
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric

logger = logging.getLogger(__name__)


class ReadingRepository(BaseRepository):
    """Read/write access to the ``readings`` table."""

    def insert_many(self, readings: Iterable[Reading]) -> int:
        """Insert readings, skipping any already stored for the same
        (metric, timestamp, source).

        Returns:
            Number of rows actually inserted.
        """
        before = self.conn.total_changes
        self.executemany(
            """
            INSERT INTO readings (metric, timestamp, value, source)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(metric, timestamp, source) DO NOTHING;
            """,
            [
                (r.metric.value, to_db_timestamp(r.timestamp), r.value, r.source)
                for r in readings
            ],
        )
        inserted = self.conn.total_changes - before
        logger.debug("Inserted %d readings", inserted)
        return inserted

    def get(self, metric: Metric, since: datetime) -> tuple[Reading, ...]:
        """Return readings of ``metric`` stamped at or after ``since``, oldest first."""
        rows = self.fetchall(
            """
            SELECT metric, timestamp, value, source
            FROM readings
            WHERE metric = ? AND timestamp >= ?
            ORDER BY timestamp, source;
            """,
            (Metric(metric).value, to_db_timestamp(since)),
        )
        return tuple(_row_to_reading(row) for row in rows)

    def latest(self, metric: Metric) -> Optional[Reading]:
        """Return the newest reading of ``metric``, or ``None``."""
        row = self.fetchone(
            """
            SELECT metric, timestamp, value, source
            FROM readings
            WHERE metric = ?
            ORDER BY timestamp DESC
            LIMIT 1;
            """,
            (Metric(metric).value,),
        )
        return _row_to_reading(row) if row else None

    def count(self, metric: Optional[Metric] = None) -> int:
        if metric is None:
            row = self.fetchone("SELECT COUNT(*) AS n FROM readings;")
        else:
            row = self.fetchone(
                "SELECT COUNT(*) AS n FROM readings WHERE metric = ?;", (Metric(metric).value,)
            )
        return int(row["n"]) if row else 0

    def prune_older_than(self, cutoff: datetime) -> int:
        """Delete readings stamped before ``cutoff``.  Returns rows deleted."""
        cursor = self.execute(
            "DELETE FROM readings WHERE timestamp < ?;",
            (to_db_timestamp(cutoff),),
        )
        logger.info("Pruned %d readings older than %s", cursor.rowcount, cutoff.isoformat())
        return cursor.rowcount


def _row_to_reading(row) -> Reading:
    return Reading(
        metric=Metric(row["metric"]),
        timestamp=from_db_timestamp(row["timestamp"]),
        value=row["value"],
        source=row["source"],
    )
