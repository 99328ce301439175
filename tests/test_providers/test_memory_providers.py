"""Tests for the in-memory metric-series and application-history providers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from turfops.models.application import Application
from turfops.models.reading import Reading
from turfops.providers.base import ApplicationHistoryProvider, MetricSeriesProvider
from turfops.providers.memory import InMemoryHistoryProvider, InMemorySeriesProvider
from turfops.taxonomy.lawn_taxonomy import Metric, TreatmentCategory

REF = datetime(2025, 5, 1, tzinfo=timezone.utc)


class TestInMemorySeriesProvider:
    def test_filters_by_metric_and_since(self):
        readings = [
            Reading(metric=Metric.SOIL_TEMP_10CM, timestamp=REF - timedelta(days=10), value=50.0),
            Reading(metric=Metric.SOIL_TEMP_10CM, timestamp=REF - timedelta(days=2), value=55.0),
            Reading(metric=Metric.SOIL_TEMP_10CM, timestamp=REF, value=56.0),
            Reading(metric=Metric.HUMIDITY, timestamp=REF, value=70.0),
        ]
        provider = InMemorySeriesProvider(readings)
        got = provider.get(Metric.SOIL_TEMP_10CM, REF - timedelta(days=3))
        assert [r.value for r in got] == [55.0, 56.0]
        assert len(provider) == 4

    def test_snapshot_ignores_later_mutation(self):
        readings = [Reading(metric=Metric.HUMIDITY, timestamp=REF, value=70.0)]
        provider = InMemorySeriesProvider(readings)
        readings.append(Reading(metric=Metric.HUMIDITY, timestamp=REF, value=90.0))
        assert len(provider.get(Metric.HUMIDITY, REF)) == 1

    def test_satisfies_protocol(self):
        assert isinstance(InMemorySeriesProvider(), MetricSeriesProvider)


class TestInMemoryHistoryProvider:
    def test_filters_by_since(self):
        apps = [
            Application(category=TreatmentCategory.FERTILIZER, applied_at=date(2025, 2, 20)),
            Application(category=TreatmentCategory.FERTILIZER, applied_at=date(2025, 3, 1)),
            Application(category=TreatmentCategory.OVERSEED, applied_at=date(2025, 4, 2)),
        ]
        provider = InMemoryHistoryProvider(apps)
        got = provider.get(date(2025, 3, 1))
        assert [a.applied_at for a in got] == [date(2025, 3, 1), date(2025, 4, 2)]

    def test_empty(self):
        provider = InMemoryHistoryProvider()
        assert provider.get(date(2025, 1, 1)) == ()
        assert len(provider) == 0

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryHistoryProvider(), ApplicationHistoryProvider)
