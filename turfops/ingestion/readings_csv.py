"""
CSV import parsers for sensor readings and the application log.

Readings format — comma delimited, with a header row.
Required columns:
  metric, timestamp, value
Optional columns (empty string → default):
  source                    default "csv"

  metric     → any Metric.value (e.g. "soil_temp_10cm", "soil_moisture")
  timestamp  → ISO 8601 with timezone, e.g. 2025-03-10T06:00:00Z or +00:00
  value      → float in the metric's fixed unit (°F, fraction, percent, mm, mph)

Applications format — comma delimited, with a header row.
Required columns:
  category, applied_at
Optional columns (empty string → None):
  amount, amount_note, notes

  category    → any TreatmentCategory.value (e.g. "fertilizer", "pre_emergent")
  applied_at  → YYYY-MM-DD

Both parsers validate every row before returning any.  If any row fails,
a single ``ValueError`` is raised listing the first 10 failures.
"""

from __future__ import annotations

import csv
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional, TypeVar

from pydantic import ValidationError

from turfops.models.application import Application
from turfops.models.reading import Reading
from turfops.taxonomy.lawn_taxonomy import Metric, TreatmentCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")

READING_CSV_COLUMNS = frozenset({"metric", "timestamp", "value"})
APPLICATION_CSV_COLUMNS = frozenset({"category", "applied_at"})

_MAX_ERRORS_SHOWN = 10


def parse_readings_csv(path: Path, default_source: str = "csv") -> list[Reading]:
    """Parse a CSV file of readings into validated ``Reading`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    readings = _parse_csv(
        path,
        READING_CSV_COLUMNS,
        lambda row: _row_to_reading(row, default_source),
        "readings",
    )
    return readings


def parse_applications_csv(path: Path) -> list[Application]:
    """Parse a CSV file of past treatments into validated ``Application`` objects.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row fails validation.
    """
    return _parse_csv(path, APPLICATION_CSV_COLUMNS, _row_to_application, "applications")


# ── Private helpers ────────────────────────────────────────────────────────────


def _parse_csv(
    path: Path,
    required: frozenset[str],
    convert: Callable[[dict[str, str]], T],
    label: str,
) -> list[T]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)

        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = {c.strip() for c in reader.fieldnames}
        missing = required - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )

        rows = [
            {(k or "").strip(): (v or "") for k, v in row.items()}
            for row in reader
        ]

    if not rows:
        logger.warning("CSV is empty (header only): %s", path)
        return []

    parsed: list[T] = []
    errors: list[tuple[int, str]] = []

    for i, row in enumerate(rows):
        line_no = i + 2  # 1-based, skip header row
        try:
            parsed.append(convert(row))
        except (ValueError, ValidationError) as exc:
            errors.append((line_no, str(exc)))

    if errors:
        detail = "\n".join(f"  Row {ln}: {msg}" for ln, msg in errors[:_MAX_ERRORS_SHOWN])
        suffix = (
            f"\n  … and {len(errors) - _MAX_ERRORS_SHOWN} more"
            if len(errors) > _MAX_ERRORS_SHOWN else ""
        )
        raise ValueError(
            f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}"
        )

    logger.info("Parsed %d %s from %s", len(parsed), label, path.name)
    return parsed


def _row_to_reading(row: dict[str, str], default_source: str) -> Reading:
    return Reading(
        metric=_parse_enum(Metric, "metric", row),
        timestamp=_parse_datetime(row, "timestamp"),
        value=_parse_float(row, "value", required=True),
        source=_opt(row, "source") or default_source,
    )


def _row_to_application(row: dict[str, str]) -> Application:
    return Application(
        category=_parse_enum(TreatmentCategory, "category", row),
        applied_at=_parse_date(row, "applied_at"),
        amount=_parse_float(row, "amount"),
        amount_note=_opt(row, "amount_note"),
        notes=_opt(row, "notes"),
    )


def _opt(row: dict[str, str], key: str) -> Optional[str]:
    """Return an optional string field, or None if absent/empty."""
    v = row.get(key, "").strip()
    return v if v else None


def _parse_enum(enum_cls, key: str, row: dict[str, str]):
    v = _opt(row, key)
    if v is None:
        raise ValueError(f"Required field '{key}' is empty.")
    try:
        return enum_cls(v.lower())
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{v}'. Valid values: {sorted(m.value for m in enum_cls)}"
        )


def _parse_float(row: dict[str, str], key: str, required: bool = False) -> Optional[float]:
    v = _opt(row, key)
    if v is None:
        if required:
            raise ValueError(f"Required numeric field '{key}' is empty.")
        return None
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Invalid number for '{key}': '{v}'.")


def _parse_date(row: dict[str, str], key: str) -> date:
    """Parse a required ISO date string (YYYY-MM-DD)."""
    v = _opt(row, key)
    if v is None:
        raise ValueError(f"Required date field '{key}' is empty.")
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ValueError(f"Invalid date for '{key}': '{v}'. Expected YYYY-MM-DD format.")


def _parse_datetime(row: dict[str, str], key: str) -> datetime:
    """Parse a required ISO 8601 datetime with timezone."""
    v = _opt(row, key)
    if v is None:
        raise ValueError(f"Required datetime field '{key}' is empty.")
    try:
        parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(
            f"Invalid datetime for '{key}': '{v}'. "
            "Expected ISO 8601 with timezone, e.g. '2025-03-10T06:00:00Z'."
        )
    if parsed.tzinfo is None:
        raise ValueError(f"Datetime for '{key}' has no timezone: '{v}'.")
    return parsed
