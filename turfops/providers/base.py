"""
Provider protocols consumed by ``RulesEngine``.

The engine never reaches into storage or the network itself.  Each pass it
asks a ``MetricSeriesProvider`` for readings and an
``ApplicationHistoryProvider`` for the treatment log, then snapshots both
into tuples before evaluating anything.

Implementations in this package:
  - ``InMemorySeriesProvider`` / ``InMemoryHistoryProvider`` (``providers.memory``)
  - ``ReadingRepository`` / ``ApplicationRepository`` (``db.repositories``)

A provider may raise anything; the engine classifies non-``ProviderError``
failures as ``ProviderError`` and aborts the pass.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, Sequence, runtime_checkable

from turfops.models.application import Application
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric


@runtime_checkable
class MetricSeriesProvider(Protocol):
    def get(self, metric: Metric, since: datetime) -> Sequence[Reading]:
        """Return readings of ``metric`` stamped at or after ``since``.

        Forecast metrics may return readings stamped in the future.
        """
        ...


@runtime_checkable
class ApplicationHistoryProvider(Protocol):
    def get(self, since: date) -> Sequence[Application]:
        """Return applications dated on or after ``since``."""
        ...
