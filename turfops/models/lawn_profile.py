"""
Lawn profile model.

``LawnProfile`` describes the lawn being managed.  The engine turns it into a
handful of facts that sit beside the season facts on every pass, so catalog
rules can gate on grass type and scale nitrogen amounts to the lawn::

    cool_season       bool   grass_type.is_cool_season
    lawn_size_ksqft   float  lawn area in thousands of sq ft
    n_half_rate_lbs   float  lb N for 0.5 lb / 1,000 sq ft over the lawn
    n_full_rate_lbs   float  lb N for 1.0 lb / 1,000 sq ft over the lawn

An unrecorded size falls back to ``DEFAULT_LAWN_SIZE_SQFT``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from turfops.taxonomy.lawn_taxonomy import GrassType

DEFAULT_LAWN_SIZE_SQFT = 5000.0

PROFILE_FACT_NAMES: frozenset[str] = frozenset({
    "cool_season",
    "lawn_size_ksqft",
    "n_half_rate_lbs",
    "n_full_rate_lbs",
})


class LawnProfile(BaseModel):
    """The managed lawn.

    Attributes:
        name: Display name used in reports.
        grass_type: Dominant turf species.
        lawn_size_sqft: Area in square feet; ``None`` when not measured.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "My Lawn"
    grass_type: GrassType = GrassType.TALL_FESCUE
    lawn_size_sqft: Optional[float] = None

    @field_validator("lawn_size_sqft")
    @classmethod
    def validate_size(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"lawn_size_sqft must be positive, got {v}.")
        return v

    @property
    def effective_size_sqft(self) -> float:
        return self.lawn_size_sqft if self.lawn_size_sqft is not None else DEFAULT_LAWN_SIZE_SQFT

    def facts(self) -> dict[str, bool | float]:
        """Profile facts keyed by the names in ``PROFILE_FACT_NAMES``."""
        ksqft = self.effective_size_sqft / 1000.0
        return {
            "cool_season": self.grass_type.is_cool_season,
            "lawn_size_ksqft": ksqft,
            "n_half_rate_lbs": ksqft * 0.5,
            "n_full_rate_lbs": ksqft * 1.0,
        }
