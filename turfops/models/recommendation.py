"""
Recommendation output model.

``Recommendation`` is what the rules engine returns: one triggered rule tier,
rendered into a message, with the instant it fired and the instant after which
it should be considered stale.  The engine never stores these; persistence or
display is the caller's concern.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from turfops.taxonomy.lawn_taxonomy import RecommendationCategory, Severity


class Recommendation(BaseModel):
    """A timed, severity-ranked recommendation.

    Attributes:
        rule_id: Catalog id of the rule that fired.
        rule_name: Human-readable rule title.
        category: Topic of the rule.
        severity: Severity of the matched tier.
        message: Rendered tier message.
        action: Suggested action text, or ``None``.
        triggered_at: Reference instant of the evaluation pass.
        valid_until: Instant after which the recommendation is stale.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    rule_name: str
    category: RecommendationCategory
    severity: Severity
    message: str
    action: Optional[str] = None
    triggered_at: datetime
    valid_until: datetime

    @model_validator(mode="after")
    def validate_validity_window(self) -> "Recommendation":
        if self.valid_until <= self.triggered_at:
            raise ValueError(
                f"valid_until ({self.valid_until}) must be after "
                f"triggered_at ({self.triggered_at})."
            )
        return self

    def is_valid_at(self, instant: datetime) -> bool:
        """Return ``True`` if the recommendation has not expired at ``instant``."""
        return self.triggered_at <= instant < self.valid_until
