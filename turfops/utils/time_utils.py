"""
Time and date helpers shared by ingestion, the CLI and reporting.

All instants inside TurfOps are timezone-aware UTC.  Naive input is rejected
at the edges (CLI flags, CSV rows) rather than guessed at.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def parse_instant(text: str) -> datetime:
    """Parse an ISO-8601 instant and return it in UTC.

    A bare date (``2025-03-10``) means midnight UTC that day.  A trailing
    ``Z`` is accepted.

    Raises:
        ValueError: If the text is not ISO-8601 or carries no UTC offset.
    """
    text = text.strip()
    if len(text) == 10:
        return start_of_day(date.fromisoformat(text))
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Instant '{text}' has no UTC offset; add 'Z' or '+00:00'.")
    return parsed.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """Midnight UTC at the start of ``day``."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
