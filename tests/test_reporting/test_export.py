"""Tests for recommendation export to records, CSV and JSON."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timedelta, timezone

from turfops.engine.errors import ClockSkew
from turfops.engine.orchestrator import EvaluationResult
from turfops.models.recommendation import Recommendation
from turfops.reporting.export import (
    RECOMMENDATION_COLUMNS,
    export_to_csv,
    export_to_json,
    recommendations_to_records,
    result_to_document,
)
from turfops.taxonomy.lawn_taxonomy import Severity

REF = datetime(2025, 3, 10, 12, tzinfo=timezone.utc)


def _rec(rule_id: str, severity: Severity, action=None) -> Recommendation:
    return Recommendation(
        rule_id=rule_id,
        rule_name=rule_id.replace("_", " ").title(),
        category="general",
        severity=severity,
        message=f"{rule_id} fired",
        action=action,
        triggered_at=REF,
        valid_until=REF + timedelta(hours=24),
    )


def _result(skew=None) -> EvaluationResult:
    return EvaluationResult(
        reference_instant=REF,
        recommendations=(
            _rec("heat_stress_block", Severity.CRITICAL, action="Do not fertilize."),
            _rec("wind_application", Severity.ADVISORY),
        ),
        clock_skew=skew,
    )


class TestRecords:
    def test_ranked_rows(self):
        rows = recommendations_to_records(_result().recommendations)
        assert [r["rank"] for r in rows] == [1, 2]
        assert rows[0]["severity"] == "critical"
        assert rows[0]["action"] == "Do not fertilize."
        assert rows[1]["action"] == ""
        assert rows[0]["triggered_at"] == "2025-03-10T12:00:00+00:00"
        assert list(rows[0]) == RECOMMENDATION_COLUMNS

    def test_document(self):
        doc = result_to_document(_result(), lawn_name="Front Yard")
        assert doc["lawn"] == "Front Yard"
        assert doc["clock_skew"] is None
        assert len(doc["recommendations"]) == 2

    def test_document_with_skew(self):
        skew = ClockSkew(REF, REF + timedelta(hours=2))
        doc = result_to_document(_result(skew))
        assert doc["clock_skew"] == {
            "latest_reading_at": "2025-03-10T14:00:00+00:00",
            "skew_seconds": 7200.0,
        }


class TestWriters:
    def test_csv_round_trip(self, tmp_path):
        path = export_to_csv(
            recommendations_to_records(_result().recommendations), tmp_path / "out" / "recs.csv"
        )
        with path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [r["rule_id"] for r in rows] == ["heat_stress_block", "wind_application"]

    def test_csv_empty_still_has_header(self, tmp_path):
        path = export_to_csv([], tmp_path / "empty.csv")
        assert path.read_text(encoding="utf-8").strip() == ",".join(RECOMMENDATION_COLUMNS)

    def test_json(self, tmp_path):
        path = export_to_json(result_to_document(_result()), tmp_path / "recs.json")
        loaded = json.loads(path.read_text(encoding="utf-8"))
        assert loaded["reference_instant"] == "2025-03-10T12:00:00+00:00"
        assert loaded["recommendations"][0]["rule_id"] == "heat_stress_block"
