"""
Environmental reading model.

A ``Reading`` is one time-stamped value of one ``Metric``.  Readings are
produced by ingestion (sensor CSV import, forecast client, record store) and
consumed read-only by the rules engine.  They are frozen: once recorded a
reading is never edited, only superseded by newer readings.

Timestamps must be timezone-aware and are normalised to UTC on construction.
Naive datetimes are rejected rather than guessed.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from turfops.taxonomy.lawn_taxonomy import Metric


class Reading(BaseModel):
    """One observed or forecast value for a metric.

    Attributes:
        metric: Which series this value belongs to.
        timestamp: UTC instant the value applies to.  Forecast metrics carry
            future timestamps.
        value: Value in the metric's fixed unit (see ``lawn_taxonomy``).
        source: Free-form origin tag, e.g. ``"noaa_uscrn"`` or ``"openweathermap"``.
    """

    model_config = ConfigDict(frozen=True)

    metric: Metric
    timestamp: datetime
    value: float
    source: str = "manual"

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.tzinfo.utcoffset(v) is None:
            raise ValueError(f"timestamp must be timezone-aware, got naive {v.isoformat()}.")
        return v.astimezone(timezone.utc)

    @field_validator("source")
    @classmethod
    def validate_source_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("source must not be empty.")
        return v.strip()

    @model_validator(mode="after")
    def validate_value_range(self) -> "Reading":
        if self.metric.is_fraction and not 0.0 <= self.value <= 1.0:
            raise ValueError(
                f"{self.metric} must be a fraction in [0.0, 1.0], got {self.value}."
            )
        if self.metric in (Metric.HUMIDITY, Metric.FORECAST_HUMIDITY) and not 0.0 <= self.value <= 100.0:
            raise ValueError(f"{self.metric} must be in [0, 100], got {self.value}.")
        if self.metric in (Metric.PRECIPITATION, Metric.WIND_SPEED) and self.value < 0:
            raise ValueError(f"{self.metric} must be non-negative, got {self.value}.")
        return self
