"""
In-memory providers backed by immutable snapshots.

Used by tests and by callers that already hold their data (for example the
CLI after a CSV import).  Both classes copy their input into tuples at
construction, so later changes to the caller's lists are never observed.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from turfops.models.application import Application
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric


class InMemorySeriesProvider:
    """Serve readings from a fixed snapshot, filtered per metric."""

    def __init__(self, readings: Iterable[Reading] = ()) -> None:
        self._readings: tuple[Reading, ...] = tuple(readings)

    def get(self, metric: Metric, since: datetime) -> tuple[Reading, ...]:
        return tuple(
            r for r in self._readings
            if r.metric is metric and r.timestamp >= since
        )

    def __len__(self) -> int:
        return len(self._readings)


class InMemoryHistoryProvider:
    """Serve applications from a fixed snapshot."""

    def __init__(self, applications: Iterable[Application] = ()) -> None:
        self._applications: tuple[Application, ...] = tuple(applications)

    def get(self, since: date) -> tuple[Application, ...]:
        return tuple(a for a in self._applications if a.applied_at >= since)

    def __len__(self) -> int:
        return len(self._applications)
