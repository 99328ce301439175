"""
Treatment application model.

``Application`` is the immutable record of something the user did to the lawn
on a given day.  The application log is append-only and is the sole input to
season-state derivation (``engine.season``).
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from turfops.taxonomy.lawn_taxonomy import TreatmentCategory


class Application(BaseModel):
    """A past treatment.

    Attributes:
        application_id: Auto-assigned DB PK; ``None`` before insertion.
        category: What kind of treatment was applied.
        applied_at: Calendar date of the application.
        amount: Rate applied, e.g. lb N per 1000 sqft for fertilizer.
            ``None`` when not recorded.
        amount_note: Free-form description of the amount when it is not a
            plain number (``"1 bag, 5000 sqft"``).
        notes: Free-form annotation.
    """

    model_config = ConfigDict(frozen=True)

    application_id: Optional[int] = None
    category: TreatmentCategory
    applied_at: date
    amount: Optional[float] = None
    amount_note: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"amount must be non-negative, got {v}.")
        return v
