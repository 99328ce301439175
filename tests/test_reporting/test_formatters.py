"""Tests for the terminal formatters."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from turfops.engine.errors import ClockSkew
from turfops.engine.orchestrator import EvaluationResult
from turfops.models.application import Application
from turfops.models.recommendation import Recommendation
from turfops.reporting.formatters import (
    format_applications,
    format_clock_skew_banner,
    format_recommendations,
    format_rule_list,
)
from turfops.taxonomy.lawn_taxonomy import Severity, TreatmentCategory

REF = datetime(2025, 3, 10, 12, tzinfo=timezone.utc)


def _result(recs=(), skew=None) -> EvaluationResult:
    return EvaluationResult(reference_instant=REF, recommendations=tuple(recs), clock_skew=skew)


class TestRecommendations:
    def test_table(self):
        rec = Recommendation(
            rule_id="pre_emergent",
            rule_name="Pre-Emergent Timing",
            category="pre_emergent",
            severity=Severity.WARNING,
            message="Pre-emergent window narrowing.",
            action="Apply within days.",
            triggered_at=REF,
            valid_until=datetime(2025, 6, 1, tzinfo=timezone.utc),
        )
        text = format_recommendations(_result([rec]), lawn_name="Front Yard")
        assert "=== Recommendations for Front Yard ===" in text
        assert "WARNING" in text
        assert "Pre-Emergent Timing" in text
        assert "2025-06-01 00:00Z" in text
        assert "-> Apply within days." in text
        assert "[CLOCK SKEW]" not in text

    def test_empty(self):
        text = format_recommendations(_result())
        assert "=== Recommendations ===" in text
        assert "(no recommendations" in text

    def test_clock_skew_banner(self):
        skew = ClockSkew(REF, REF + timedelta(hours=3))
        assert format_clock_skew_banner(None) == ""
        banner = format_clock_skew_banner(skew)
        assert "[CLOCK SKEW]" in banner
        assert "3.0h" in banner
        assert "[CLOCK SKEW]" in format_recommendations(_result(skew=skew))


class TestRuleList:
    def test_lists_shipped_catalog(self, default_catalog):
        text = format_rule_list(default_catalog)
        assert "pre_emergent" in text
        assert "02-01..05-31" in text
        assert "year-round" in text
        assert text.rstrip().endswith(f"{len(default_catalog)} rule(s)")


class TestApplications:
    def test_rows(self):
        apps = [
            Application(application_id=7, category=TreatmentCategory.FERTILIZER,
                        applied_at=date(2025, 4, 1), amount=0.75, notes="slow release"),
            Application(category=TreatmentCategory.OVERSEED, applied_at=date(2025, 9, 10),
                        amount_note="3 lb"),
        ]
        text = format_applications(apps)
        assert "2025-04-01" in text
        assert "0.75" in text
        assert "slow release" in text
        assert "3 lb" in text

    def test_empty(self):
        assert "(no applications logged)" in format_applications([])
