"""
Export helpers for recommendations.

All writers create parent directories and return the written ``Path``.
CSV exports are flat (one row per recommendation) so they open directly in a
spreadsheet; JSON exports keep the pass metadata alongside the rows.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional

from turfops.engine.orchestrator import EvaluationResult
from turfops.models.recommendation import Recommendation

RECOMMENDATION_COLUMNS: list[str] = [
    "rank",
    "rule_id",
    "rule_name",
    "category",
    "severity",
    "message",
    "action",
    "triggered_at",
    "valid_until",
]


def recommendations_to_records(recommendations: tuple[Recommendation, ...] | list[Recommendation]) -> list[dict]:
    """Flatten recommendations into row dicts, ranked from 1 in output order."""
    rows: list[dict] = []
    for rank, rec in enumerate(recommendations, start=1):
        rows.append(
            {
                "rank":         rank,
                "rule_id":      rec.rule_id,
                "rule_name":    rec.rule_name,
                "category":     rec.category.value,
                "severity":     rec.severity.value,
                "message":      rec.message,
                "action":       rec.action or "",
                "triggered_at": rec.triggered_at.isoformat(),
                "valid_until":  rec.valid_until.isoformat(),
            }
        )
    return rows


def result_to_document(result: EvaluationResult, lawn_name: Optional[str] = None) -> dict:
    """JSON-ready document for one evaluation pass."""
    skew = result.clock_skew
    return {
        "lawn": lawn_name,
        "reference_instant": result.reference_instant.isoformat(),
        "clock_skew": None if skew is None else {
            "latest_reading_at": skew.latest_reading_at.isoformat(),
            "skew_seconds": skew.skew.total_seconds(),
        },
        "recommendations": recommendations_to_records(result.recommendations),
    }


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path (parent dirs created if missing).
        fieldnames: Column order.  If None, uses the keys of the first record,
                    or ``RECOMMENDATION_COLUMNS`` when there are no records.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    cols = fieldnames or (list(records[0].keys()) if records else RECOMMENDATION_COLUMNS)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path
