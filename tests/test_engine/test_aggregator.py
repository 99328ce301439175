"""
Tests for rolling-window aggregation.

What we test
------------
- Trailing windows include both ends and nothing outside them.
- Lookahead windows run forward from the reference instant.
- Input order does not matter; duplicates count as separate samples.
- Empty windows are insufficient: statistic accessors raise, counts are 0.
- Sustained-day counts require every sample of a UTC day to pass strictly.
- Bad arguments raise ValueError.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from turfops.engine.aggregator import aggregate
from turfops.engine.errors import InsufficientData
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric

REF = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _r(ts: datetime, value: float, metric: Metric = Metric.SOIL_TEMP_10CM) -> Reading:
    return Reading(metric=metric, timestamp=ts, value=value, source="test")


class TestWindowBounds:
    def test_trailing_window_includes_both_ends(self):
        series = [
            _r(REF - timedelta(days=7), 50.0),
            _r(REF, 60.0),
        ]
        agg = aggregate(series, 7, REF)
        assert agg.sample_count == 2
        assert agg.mean == pytest.approx(55.0)

    def test_trailing_window_excludes_outside_readings(self):
        series = [
            _r(REF - timedelta(days=7, seconds=1), 10.0),
            _r(REF - timedelta(days=1), 50.0),
            _r(REF + timedelta(seconds=1), 90.0),
        ]
        agg = aggregate(series, 7, REF)
        assert agg.sample_count == 1
        assert agg.mean == pytest.approx(50.0)

    def test_lookahead_window_runs_forward(self):
        series = [
            _r(REF - timedelta(hours=1), 0.9, Metric.FORECAST_RAIN_PROB),
            _r(REF + timedelta(hours=12), 0.4, Metric.FORECAST_RAIN_PROB),
            _r(REF + timedelta(days=2), 0.6, Metric.FORECAST_RAIN_PROB),
            _r(REF + timedelta(days=2, seconds=1), 1.0, Metric.FORECAST_RAIN_PROB),
        ]
        agg = aggregate(series, 2, REF, lookahead=True)
        assert agg.sample_count == 2
        assert agg.max == pytest.approx(0.6)
        assert agg.lookahead is True


class TestStatistics:
    def test_mean_min_max_total(self):
        values = [52.0, 58.0, 61.0, 49.0]
        series = [_r(REF - timedelta(hours=6 * i), v) for i, v in enumerate(values)]
        agg = aggregate(series, 7, REF)
        assert agg.mean == pytest.approx(55.0)
        assert agg.min == pytest.approx(49.0)
        assert agg.max == pytest.approx(61.0)
        assert agg.total == pytest.approx(220.0)

    def test_order_does_not_matter(self):
        series = [_r(REF - timedelta(hours=i), 40.0 + i) for i in range(48)]
        shuffled = list(series)
        random.Random(7).shuffle(shuffled)
        assert aggregate(series, 7, REF) == aggregate(shuffled, 7, REF)

    def test_duplicates_are_separate_samples(self):
        ts = REF - timedelta(hours=3)
        agg = aggregate([_r(ts, 50.0), _r(ts, 50.0), _r(ts, 80.0)], 1, REF)
        assert agg.sample_count == 3
        assert agg.mean == pytest.approx(60.0)


class TestInsufficientData:
    def test_empty_window_is_insufficient(self):
        agg = aggregate([], 7, REF, metric=Metric.SOIL_TEMP_10CM)
        assert agg.is_insufficient
        assert agg.sample_count == 0

    @pytest.mark.parametrize("stat", ["mean", "min", "max", "total"])
    def test_statistics_raise_on_empty_window(self, stat):
        agg = aggregate([_r(REF - timedelta(days=30), 50.0)], 7, REF)
        with pytest.raises(InsufficientData, match="soil_temp_10cm"):
            getattr(agg, stat)

    def test_sustained_counts_are_zero_on_empty_window(self):
        agg = aggregate([], 3, REF, metric=Metric.AMBIENT_TEMP)
        assert agg.sustained_days_above(0.0) == 0
        assert agg.sustained_days_below(200.0) == 0


class TestSustainedDays:
    def _series(self) -> list[Reading]:
        day = lambda d, h: datetime(2025, 3, d, h, tzinfo=timezone.utc)  # noqa: E731
        return [
            _r(day(7, 6), 61.0), _r(day(7, 18), 62.0),   # every sample > 60
            _r(day(8, 6), 59.0), _r(day(8, 18), 65.0),   # mixed
            _r(day(10, 6), 60.0),                        # equal to threshold
        ]

    def test_above_requires_every_sample_strictly_above(self):
        agg = aggregate(self._series(), 7, REF)
        assert agg.sustained_days_above(60.0) == 1

    def test_below_requires_every_sample_strictly_below(self):
        agg = aggregate(self._series(), 7, REF)
        assert agg.sustained_days_below(63.0) == 2   # Mar 7 and Mar 10

    def test_days_without_samples_never_count(self):
        agg = aggregate(self._series(), 7, REF)
        assert len(agg.daily) == 3
        assert agg.sustained_days_below(1000.0) == 3

    def test_days_bucket_by_utc_date(self):
        # 23:30 at UTC-5 is 04:30 UTC the next day.
        est = timezone(timedelta(hours=-5))
        r = _r(datetime(2025, 3, 8, 23, 30, tzinfo=est), 70.0)
        agg = aggregate([r], 7, REF)
        assert agg.daily[0].day.isoformat() == "2025-03-09"


class TestArgumentValidation:
    def test_zero_window_rejected(self):
        with pytest.raises(ValueError, match="window_days"):
            aggregate([_r(REF, 50.0)], 0, REF)

    def test_naive_reference_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            aggregate([_r(REF, 50.0)], 1, REF.replace(tzinfo=None))

    def test_mixed_metrics_rejected(self):
        series = [_r(REF, 50.0), _r(REF, 0.2, Metric.SOIL_MOISTURE)]
        with pytest.raises(ValueError, match="other metrics"):
            aggregate(series, 1, REF)

    def test_empty_series_needs_metric(self):
        with pytest.raises(ValueError, match="metric is required"):
            aggregate([], 1, REF)
