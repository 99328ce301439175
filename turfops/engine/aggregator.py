"""
Rolling-window aggregation over one metric's readings.

Purpose
-------
Given the readings for a single metric, ``aggregate()`` computes the windowed
statistics the rule catalog compares against: mean, min, max, total, sample
count, and sustained-day counts above/below a threshold.

How it works — step by step
----------------------------
1.  Readings are treated as an unordered multiset.  Nothing about the input
    order is assumed; ties and duplicates are kept as separate samples.
2.  Filter to the window:
    a. trailing (default): ``reference - window_days <= ts <= reference``
    b. lookahead (forecast metrics): ``reference <= ts <= reference + window_days``
    Both ends are inclusive.
3.  **Mean** is the arithmetic mean of all samples in range.  It is not
    time-weighted: the agronomic threshold tables are plain multi-day averages.
4.  **Daily extremes**: samples are bucketed by UTC calendar date and the min
    and max of each bucket are kept.  These power the sustained counts:
    a day is "sustained above t" iff its minimum is > t, i.e. every sample
    that day exceeds t.  Days without samples are never sustained.

Missing data handling
---------------------
- A window with zero samples is *insufficient*.  ``is_insufficient`` is True
  and reading ``mean`` / ``min`` / ``max`` / ``total`` raises
  ``InsufficientData``.  Callers must treat that as "rule cannot evaluate",
  never as "condition false" and never as zero.
- ``sample_count`` and the sustained counts are always readable (0 when empty).

Units
-----
Values are compared in their stored unit (°F, fractional moisture, …).  No
conversion happens here; ingestion owns that.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from turfops.engine.errors import InsufficientData
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric


@dataclass(frozen=True)
class DailyExtremes:
    """Min and max of the samples on one UTC calendar day."""

    day: date
    low: float
    high: float
    count: int


@dataclass(frozen=True)
class AggregateWindow:
    """Windowed statistics for one metric as of a reference instant.

    Attributes:
        metric:            Metric aggregated.
        window_days:       Window length in days (>= 1).
        reference_instant: UTC instant the window is anchored to.
        lookahead:         True when the window runs forward from the reference.
        sample_count:      Number of readings inside the window.
        daily:             Per-day extremes, sorted by date.
    """

    metric:            Metric
    window_days:       int
    reference_instant: datetime
    lookahead:         bool
    sample_count:      int
    daily:             tuple[DailyExtremes, ...]
    _mean:             Optional[float] = None
    _min:              Optional[float] = None
    _max:              Optional[float] = None
    _total:            Optional[float] = None

    @property
    def is_insufficient(self) -> bool:
        return self.sample_count == 0

    @property
    def mean(self) -> float:
        return self._require(self._mean)

    @property
    def min(self) -> float:
        return self._require(self._min)

    @property
    def max(self) -> float:
        return self._require(self._max)

    @property
    def total(self) -> float:
        return self._require(self._total)

    def sustained_days_above(self, threshold: float) -> int:
        """Count days on which every sample is strictly above ``threshold``."""
        return sum(1 for d in self.daily if d.low > threshold)

    def sustained_days_below(self, threshold: float) -> int:
        """Count days on which every sample is strictly below ``threshold``."""
        return sum(1 for d in self.daily if d.high < threshold)

    def _require(self, value: Optional[float]) -> float:
        if self.is_insufficient or value is None:
            raise InsufficientData(str(self.metric), self.window_days)
        return value


def aggregate(
    series: Iterable[Reading],
    window_days: int,
    reference_instant: datetime,
    lookahead: bool = False,
    metric: Optional[Metric] = None,
) -> AggregateWindow:
    """Aggregate one metric's readings over a window anchored at ``reference_instant``.

    Args:
        series:            Readings for a single metric, in any order.
        window_days:       Window length in days; must be >= 1.
        reference_instant: Timezone-aware anchor instant.
        lookahead:         Aggregate forward from the anchor instead of back.
        metric:            Metric being aggregated.  Required when ``series``
                           may be empty; otherwise inferred from the first reading.

    Returns:
        An ``AggregateWindow``.  Empty windows are returned as insufficient,
        not as zeros.

    Raises:
        ValueError: If ``window_days < 1``, ``reference_instant`` is naive,
            the series mixes metrics, or the metric cannot be determined.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}.")
    if reference_instant.tzinfo is None:
        raise ValueError("reference_instant must be timezone-aware.")

    readings = tuple(series)
    if metric is None:
        if not readings:
            raise ValueError("metric is required when the series is empty.")
        metric = readings[0].metric
    mixed = {r.metric for r in readings if r.metric is not metric}
    if mixed:
        raise ValueError(
            f"Series for '{metric}' contains readings of other metrics: {sorted(mixed)}."
        )

    span = timedelta(days=window_days)
    if lookahead:
        lo, hi = reference_instant, reference_instant + span
    else:
        lo, hi = reference_instant - span, reference_instant

    in_window = [r for r in readings if lo <= r.timestamp <= hi]

    if not in_window:
        return AggregateWindow(
            metric=metric,
            window_days=window_days,
            reference_instant=reference_instant,
            lookahead=lookahead,
            sample_count=0,
            daily=(),
        )

    values = [r.value for r in in_window]
    total = sum(values)
    return AggregateWindow(
        metric=metric,
        window_days=window_days,
        reference_instant=reference_instant,
        lookahead=lookahead,
        sample_count=len(values),
        daily=_daily_extremes(in_window),
        _mean=total / len(values),
        _min=min(values),
        _max=max(values),
        _total=total,
    )


# ── Internal helpers ───────────────────────────────────────────────────────────


def _daily_extremes(readings: list[Reading]) -> tuple[DailyExtremes, ...]:
    """Bucket readings by UTC date and keep each bucket's min/max/count."""
    buckets: dict[date, list[float]] = defaultdict(list)
    for r in readings:
        buckets[r.timestamp.date()].append(r.value)
    return tuple(
        DailyExtremes(day=day, low=min(vals), high=max(vals), count=len(vals))
        for day, vals in sorted(buckets.items())
    )
