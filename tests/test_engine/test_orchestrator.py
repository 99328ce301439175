"""
Tests for the RulesEngine orchestrator.

What we test
------------
- A pass is idempotent: identical inputs give equal results.
- Each metric and the history are fetched exactly once per pass.
- Provider failures abort the pass as ProviderError.
- Clock skew is reported on the result, not raised; forecast metrics are exempt.
- Missing data never raises; it only suppresses tiers.
- evaluate_rule / list_rules.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from turfops.engine import EvaluationResult, ProviderError, RulesEngine
from turfops.engine.catalog import parse_catalog
from turfops.models.application import Application
from turfops.models.reading import Reading
from turfops.providers.memory import InMemoryHistoryProvider, InMemorySeriesProvider
from turfops.taxonomy.lawn_taxonomy import Metric, Severity, TreatmentCategory

REF = datetime(2025, 4, 10, 12, tzinfo=timezone.utc)


def _catalog():
    return parse_catalog({
        "version": 1,
        "rules": [
            {
                "rule_id": "warm_soil",
                "name": "Warm Soil",
                "category": "general",
                "inputs": [{"metric": "soil_temp_10cm", "window_days": 3}],
                "tiers": [
                    {"severity": "warning", "message": "Soil {soil_temp_10cm.mean:.0f}°F",
                     "when": {"kind": "metric", "metric": "soil_temp_10cm", "op": ">=", "value": 60}},
                    {"severity": "advisory", "message": "Soil {soil_temp_10cm.mean:.0f}°F",
                     "when": {"kind": "metric", "metric": "soil_temp_10cm", "op": ">=", "value": 50}},
                ],
            },
            {
                "rule_id": "first_feed",
                "name": "First Feed",
                "category": "fertilizer",
                "inputs": [{"metric": "soil_temp_10cm", "window_days": 7}],
                "tiers": [
                    {"severity": "advisory", "message": "Feed now ({fertilizer_count} so far).",
                     "when": {"kind": "all", "conditions": [
                         {"kind": "metric", "metric": "soil_temp_10cm", "op": ">=", "value": 55},
                         {"kind": "fact", "fact": "fertilizer_count", "op": "==", "value": 0},
                     ]}},
                ],
            },
            {
                "rule_id": "rain_coming",
                "name": "Rain Coming",
                "category": "application_timing",
                "inputs": [{"metric": "forecast_rain_prob", "window_days": 2, "lookahead": True}],
                "tiers": [
                    {"severity": "critical", "message": "Rain likely.",
                     "when": {"kind": "metric", "metric": "forecast_rain_prob",
                              "stat": "max", "op": ">=", "value": 0.7}},
                ],
            },
            {
                "rule_id": "summer_only",
                "name": "Summer Only",
                "category": "heat_stress",
                "active_window": {"start": "06-01", "end": "08-31"},
                "inputs": [{"metric": "ambient_temp", "window_days": 1}],
                "tiers": [
                    {"severity": "critical", "message": "Hot.",
                     "when": {"kind": "metric", "metric": "ambient_temp", "op": ">", "value": 0}},
                ],
            },
        ],
    })


def _soil(value: float, at: datetime = REF) -> Reading:
    return Reading(metric=Metric.SOIL_TEMP_10CM, timestamp=at, value=value)


class CountingSeries(InMemorySeriesProvider):
    def __init__(self, readings=()):
        super().__init__(readings)
        self.calls: list[tuple[Metric, datetime]] = []

    def get(self, metric, since):
        self.calls.append((metric, since))
        return super().get(metric, since)


class CountingHistory(InMemoryHistoryProvider):
    def __init__(self, applications=()):
        super().__init__(applications)
        self.calls: list[date] = []

    def get(self, since):
        self.calls.append(since)
        return super().get(since)


class TestRun:
    def test_basic_pass(self):
        engine = RulesEngine(_catalog())
        result = engine.run(
            InMemorySeriesProvider([_soil(58.0)]), InMemoryHistoryProvider(), REF
        )
        assert isinstance(result, EvaluationResult)
        assert result.reference_instant == REF
        assert result.clock_skew is None
        assert [(r.rule_id, r.severity) for r in result.recommendations] == [
            ("warm_soil", Severity.ADVISORY),
            ("first_feed", Severity.ADVISORY),
        ]
        assert result.recommendations[1].message == "Feed now (0 so far)."

    def test_idempotent(self):
        engine = RulesEngine(_catalog())
        series = InMemorySeriesProvider([_soil(62.0), _soil(64.0, REF - timedelta(hours=6))])
        history = InMemoryHistoryProvider()
        first = engine.run(series, history, REF)
        second = engine.run(series, history, REF)
        assert first == second
        assert hash(first) == hash(second)

    def test_history_changes_outcome(self):
        engine = RulesEngine(_catalog())
        history = InMemoryHistoryProvider([
            Application(category=TreatmentCategory.FERTILIZER, applied_at=date(2025, 3, 20)),
        ])
        result = engine.run(InMemorySeriesProvider([_soil(58.0)]), history, REF)
        assert [r.rule_id for r in result.recommendations] == ["warm_soil"]

    def test_non_utc_reference_is_normalised(self):
        engine = RulesEngine(_catalog())
        eastern = timezone(timedelta(hours=-4))
        result = engine.run(
            InMemorySeriesProvider([_soil(58.0)]),
            InMemoryHistoryProvider(),
            REF.astimezone(eastern),
        )
        assert result.reference_instant == REF
        assert result.reference_instant.tzinfo == timezone.utc

    def test_naive_reference_rejected(self):
        engine = RulesEngine(_catalog())
        with pytest.raises(ValueError, match="timezone-aware"):
            engine.run(InMemorySeriesProvider(), InMemoryHistoryProvider(), datetime(2025, 4, 10))

    def test_no_data_yields_empty_result(self):
        engine = RulesEngine(_catalog())
        result = engine.run(InMemorySeriesProvider(), InMemoryHistoryProvider(), REF)
        assert result.recommendations == ()
        assert result.clock_skew is None

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            RulesEngine(_catalog(), clock_skew_tolerance=timedelta(hours=-1))


class TestFetching:
    def test_each_metric_fetched_once_with_widest_window(self):
        series = CountingSeries([_soil(58.0)])
        history = CountingHistory()
        RulesEngine(_catalog()).run(series, history, REF)

        by_metric = {m: s for m, s in series.calls}
        assert len(series.calls) == len(by_metric) == 3
        assert by_metric[Metric.SOIL_TEMP_10CM] == REF - timedelta(days=7)
        assert by_metric[Metric.FORECAST_RAIN_PROB] == REF
        assert by_metric[Metric.AMBIENT_TEMP] == REF - timedelta(days=1)

    def test_history_fetched_once_from_season_start(self):
        history = CountingHistory()
        RulesEngine(_catalog()).run(CountingSeries(), history, REF)
        assert history.calls == [date(2025, 3, 1)]


class TestProviderErrors:
    def test_provider_error_passes_through(self):
        class Broken:
            def get(self, metric, since):
                raise ProviderError("sensor_db", "locked")

        with pytest.raises(ProviderError) as exc_info:
            RulesEngine(_catalog()).run(Broken(), InMemoryHistoryProvider(), REF)
        assert exc_info.value.provider == "sensor_db"

    def test_other_exceptions_are_wrapped(self):
        class Broken:
            def get(self, since):
                raise OSError("disk gone")

        with pytest.raises(ProviderError, match="disk gone") as exc_info:
            RulesEngine(_catalog()).run(InMemorySeriesProvider(), Broken(), REF)
        assert exc_info.value.provider == "application_history"
        assert isinstance(exc_info.value.__cause__, OSError)


class TestClockSkew:
    def test_future_observed_reading_reported(self, caplog):
        future = REF + timedelta(hours=3)
        engine = RulesEngine(_catalog())
        with caplog.at_level("WARNING", logger="turfops.engine.orchestrator"):
            result = engine.run(
                InMemorySeriesProvider([_soil(58.0), _soil(59.0, future)]),
                InMemoryHistoryProvider(),
                REF,
            )
        assert result.clock_skew is not None
        assert result.clock_skew.latest_reading_at == future
        assert result.clock_skew.skew == timedelta(hours=3)
        assert "Clock skew" in caplog.text
        # The pass still completes.
        assert result.recommendations

    def test_within_tolerance_not_reported(self):
        result = RulesEngine(_catalog()).run(
            InMemorySeriesProvider([_soil(58.0, REF + timedelta(minutes=30))]),
            InMemoryHistoryProvider(),
            REF,
        )
        assert result.clock_skew is None

    def test_zero_tolerance(self):
        result = RulesEngine(_catalog(), clock_skew_tolerance=timedelta(0)).run(
            InMemorySeriesProvider([_soil(58.0, REF + timedelta(minutes=1))]),
            InMemoryHistoryProvider(),
            REF,
        )
        assert result.clock_skew is not None

    def test_forecast_readings_exempt(self):
        rain = Reading(
            metric=Metric.FORECAST_RAIN_PROB, timestamp=REF + timedelta(days=1), value=0.9
        )
        result = RulesEngine(_catalog()).run(
            InMemorySeriesProvider([rain]), InMemoryHistoryProvider(), REF
        )
        assert result.clock_skew is None
        assert [r.rule_id for r in result.recommendations] == ["rain_coming"]


class TestSingleRule:
    def test_list_rules(self):
        assert RulesEngine(_catalog()).list_rules() == [
            ("warm_soil", "Warm Soil"),
            ("first_feed", "First Feed"),
            ("rain_coming", "Rain Coming"),
            ("summer_only", "Summer Only"),
        ]

    def test_evaluate_rule(self):
        engine = RulesEngine(_catalog())
        series = CountingSeries([_soil(61.0)])
        rec = engine.evaluate_rule("warm_soil", series, InMemoryHistoryProvider(), REF)
        assert rec is not None
        assert rec.severity is Severity.WARNING
        assert rec.message == "Soil 61°F"
        assert [m for m, _ in series.calls] == [Metric.SOIL_TEMP_10CM]

    def test_evaluate_rule_no_match(self):
        engine = RulesEngine(_catalog())
        assert engine.evaluate_rule(
            "summer_only", InMemorySeriesProvider(), InMemoryHistoryProvider(), REF
        ) is None

    def test_evaluate_rule_unknown_id(self):
        with pytest.raises(KeyError):
            RulesEngine(_catalog()).evaluate_rule(
                "nope", InMemorySeriesProvider(), InMemoryHistoryProvider(), REF
            )
