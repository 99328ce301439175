"""
Classified engine errors.

  InsufficientData  — an aggregate window had zero samples.  Raised by
                      ``AggregateWindow`` accessors, caught by the evaluator and
                      folded into "tier does not match".  Never escapes a pass.
  CatalogLoadError  — the rule catalog is malformed.  Fatal at startup.
  ClockSkew         — the reference instant is older than the newest observed
                      reading by more than the tolerance.  Returned on the
                      evaluation result as a warning, not raised.
  ProviderError     — a data provider failed.  Aborts the pass and reaches the
                      caller, since partial data could hide a critical tier.
"""

from __future__ import annotations

from datetime import datetime, timedelta


class EngineError(Exception):
    """Base class for all rules-engine errors."""


class InsufficientData(EngineError):
    """An aggregate statistic was requested from a window with no samples."""

    def __init__(self, metric: str, window_days: int) -> None:
        self.metric = metric
        self.window_days = window_days
        super().__init__(f"No '{metric}' samples in the {window_days}-day window.")


class CatalogLoadError(EngineError):
    """The rule catalog could not be read or failed validation."""


class ClockSkew(EngineError):
    """The reference instant precedes the newest observed reading."""

    def __init__(self, reference_instant: datetime, latest_reading_at: datetime) -> None:
        self.reference_instant = reference_instant
        self.latest_reading_at = latest_reading_at
        super().__init__(
            f"Reference instant {reference_instant.isoformat()} is "
            f"{self.skew} behind the newest reading at {latest_reading_at.isoformat()}."
        )

    @property
    def skew(self) -> timedelta:
        return self.latest_reading_at - self.reference_instant


class ProviderError(EngineError):
    """A metric-series or application-history provider failed."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")
