"""
Lawn-care taxonomy shared by the models, the rule catalog, and the engine.

Five orthogonal vocabularies:
  - ``Metric``                 — the *what was measured* (fixed unit per member)
  - ``TreatmentCategory``      — the *what was applied* to the lawn
  - ``Severity``               — the *how urgent* a recommendation is
  - ``RecommendationCategory`` — the *topic* a rule reports on
  - ``GrassType``              — the *what is growing*, cool- or warm-season

``Severity`` carries an explicit rank table.  Never compare severities by
their string value or declaration order; use ``Severity.rank``.

Units (conversion happens at ingestion, never inside the engine)::

    soil_temp_10cm, ambient_temp, forecast_temp   °F
    soil_moisture                                 volumetric fraction 0.0–1.0
    humidity, forecast_humidity                   percent 0–100
    precipitation                                millimetres
    forecast_rain_prob                            probability 0.0–1.0
    wind_speed                                    mph

This module has NO imports from any other ``turfops`` package.
"""

from enum import StrEnum


class Metric(StrEnum):
    """Environmental series tracked per reading."""

    SOIL_TEMP_10CM = "soil_temp_10cm"
    """Soil temperature at 10 cm depth (°F)."""

    SOIL_MOISTURE = "soil_moisture"
    """Volumetric soil water content (fraction)."""

    AMBIENT_TEMP = "ambient_temp"
    """Air temperature at the lawn sensor (°F)."""

    HUMIDITY = "humidity"
    """Relative humidity (percent)."""

    PRECIPITATION = "precipitation"
    """Observed rainfall per reading interval (mm)."""

    FORECAST_TEMP = "forecast_temp"
    """Forecast air temperature for a future instant (°F)."""

    FORECAST_RAIN_PROB = "forecast_rain_prob"
    """Forecast probability of precipitation for a future instant."""

    FORECAST_HUMIDITY = "forecast_humidity"
    """Forecast relative humidity for a future instant (percent)."""

    WIND_SPEED = "wind_speed"
    """Wind speed, observed or forecast (mph)."""

    @property
    def is_forecast(self) -> bool:
        """True for metrics whose readings are stamped in the future."""
        return self in _FORECAST_METRICS

    @property
    def is_fraction(self) -> bool:
        """True for metrics constrained to the closed interval [0, 1]."""
        return self in _FRACTION_METRICS


_FORECAST_METRICS = frozenset({
    Metric.FORECAST_TEMP,
    Metric.FORECAST_RAIN_PROB,
    Metric.FORECAST_HUMIDITY,
})
_FRACTION_METRICS = frozenset({Metric.SOIL_MOISTURE, Metric.FORECAST_RAIN_PROB})


class TreatmentCategory(StrEnum):
    """Kind of treatment recorded in the application log."""

    FERTILIZER = "fertilizer"
    PRE_EMERGENT = "pre_emergent"
    FUNGICIDE = "fungicide"
    GRUB_CONTROL = "grub_control"
    OVERSEED = "overseed"
    OTHER = "other"


class Severity(StrEnum):
    """Urgency of a recommendation tier."""

    INFO = "info"
    ADVISORY = "advisory"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Total ordering: info < advisory < warning < critical."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.INFO:     0,
    Severity.ADVISORY: 1,
    Severity.WARNING:  2,
    Severity.CRITICAL: 3,
}


class RecommendationCategory(StrEnum):
    """Topic of a rule; used for grouping in reports."""

    PRE_EMERGENT = "pre_emergent"
    GRUB_CONTROL = "grub_control"
    FERTILIZER = "fertilizer"
    FUNGICIDE = "fungicide"
    OVERSEEDING = "overseeding"
    IRRIGATION = "irrigation"
    HEAT_STRESS = "heat_stress"
    FROST_WARNING = "frost_warning"
    APPLICATION_TIMING = "application_timing"
    GENERAL = "general"


class ExpiryPolicy(StrEnum):
    """How a rule's recommendations expire."""

    HOURS = "hours"
    """Weather-dependent: valid for ``expiry_hours`` after triggering."""

    WINDOW_END = "window_end"
    """Phenology-window: valid until the rule's active window closes."""


class GrassType(StrEnum):
    """Turf species of the managed lawn."""

    KENTUCKY_BLUEGRASS = "kentucky_bluegrass"
    TALL_FESCUE = "tall_fescue"
    PERENNIAL_RYEGRASS = "perennial_ryegrass"
    FINE_FESCUE = "fine_fescue"
    BERMUDA = "bermuda"
    ZOYSIA = "zoysia"
    ST_AUGUSTINE = "st_augustine"
    MIXED = "mixed"

    @property
    def is_cool_season(self) -> bool:
        """True for cool-season grasses.  ``MIXED`` counts as warm-season."""
        return self in _COOL_SEASON_GRASSES


_COOL_SEASON_GRASSES = frozenset({
    GrassType.KENTUCKY_BLUEGRASS,
    GrassType.TALL_FESCUE,
    GrassType.PERENNIAL_RYEGRASS,
    GrassType.FINE_FESCUE,
})
