"""
Rule specification models — the schema of the agronomic rule catalog.

A ``RuleSpec`` is pure data: an optional calendar window, the metric windows it
needs, and an ordered ladder of ``Tier`` objects.  Each tier pairs a severity
with a predicate and a message template.

Predicates form a closed tagged-variant tree discriminated on ``kind``::

    {"kind": "all",      "conditions": [...]}                    conjunction
    {"kind": "any",      "conditions": [...]}                    disjunction
    {"kind": "metric",   "metric": "soil_temp_10cm", "stat": "mean",
                         "op": ">=", "value": 50}                aggregate comparison
    {"kind": "fact",     "fact": "fertilizer_count", "op": "<", "value": 2}
    {"kind": "calendar", "measure": "days_until_window_end", "op": "<=", "value": 14}

Because the tree is closed, the catalog can be loaded from JSON, validated up
front, and evaluated without executing any user-provided code.

Tier ordering
-------------
``RuleSpec`` stably sorts its tiers by severity rank, highest first, when it is
constructed.  Authors may list tiers in any order; tiers that share a severity
keep their authoring order, which is the tie-break the evaluator relies on.

Active windows
--------------
``ActiveWindow`` uses month/day granularity and may wrap the new year
(``11-15`` → ``02-01``).  Both ends are normalised to a day-of-year in a fixed
leap year so that Feb 29 is representable and every calendar year compares the
same way.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from turfops.taxonomy.lawn_taxonomy import (
    ExpiryPolicy,
    Metric,
    RecommendationCategory,
    Severity,
)

ComparisonOp = Literal["<", "<=", ">", ">=", "==", "!="]

MetricStat = Literal[
    "mean", "min", "max", "total", "sample_count",
    "sustained_days_above", "sustained_days_below",
]

CalendarMeasure = Literal["days_until_window_end", "days_into_window"]

_SUSTAINED_STATS: frozenset[str] = frozenset({"sustained_days_above", "sustained_days_below"})

# Any leap year works; it only anchors month/day to a day-of-year.
_REFERENCE_LEAP_YEAR = 2000


# ── Calendar window ───────────────────────────────────────────────────────────


class MonthDay(BaseModel):
    """A month/day pair with no year.  Accepts ``"MM-DD"`` strings from JSON."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    day: int = Field(ge=1, le=31)

    @model_validator(mode="before")
    @classmethod
    def parse_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            parts = data.strip().split("-")
            if len(parts) != 2 or not all(p.isdigit() for p in parts):
                raise ValueError(f"Expected 'MM-DD', got '{data}'.")
            return {"month": int(parts[0]), "day": int(parts[1])}
        return data

    @model_validator(mode="after")
    def validate_day_exists(self) -> "MonthDay":
        try:
            date(_REFERENCE_LEAP_YEAR, self.month, self.day)
        except ValueError as exc:
            raise ValueError(f"Invalid month/day {self.month:02d}-{self.day:02d}: {exc}") from exc
        return self

    @classmethod
    def of(cls, d: date) -> "MonthDay":
        return cls(month=d.month, day=d.day)

    @property
    def day_of_year(self) -> int:
        return date(_REFERENCE_LEAP_YEAR, self.month, self.day).timetuple().tm_yday

    def in_year(self, year: int) -> date:
        """Resolve to a concrete date; Feb 29 falls back to Feb 28 in common years."""
        try:
            return date(year, self.month, self.day)
        except ValueError:
            return date(year, self.month, self.day - 1)

    def __str__(self) -> str:
        return f"{self.month:02d}-{self.day:02d}"


class ActiveWindow(BaseModel):
    """Inclusive month/day range during which a rule may fire.

    Attributes:
        start: First active month/day.
        end: Last active month/day.  When ``end`` precedes ``start`` in the
            calendar the window wraps the new year.
    """

    model_config = ConfigDict(frozen=True)

    start: MonthDay
    end: MonthDay

    @property
    def wraps_year(self) -> bool:
        return self.start.day_of_year > self.end.day_of_year

    def contains(self, check_date: date) -> bool:
        """Return ``True`` if ``check_date`` falls inside the window."""
        doy = MonthDay.of(check_date).day_of_year
        start, end = self.start.day_of_year, self.end.day_of_year
        if not self.wraps_year:
            return start <= doy <= end
        # Wrapped: active from start to Dec 31, then Jan 1 to end.
        return doy >= start or doy <= end

    def start_date_for(self, check_date: date) -> date:
        """Concrete start date of the window instance containing ``check_date``."""
        year = check_date.year
        if self.wraps_year and MonthDay.of(check_date).day_of_year <= self.end.day_of_year:
            year -= 1
        return self.start.in_year(year)

    def end_date_for(self, check_date: date) -> date:
        """Concrete end date of the window instance containing ``check_date``."""
        year = check_date.year
        if self.wraps_year and MonthDay.of(check_date).day_of_year >= self.start.day_of_year:
            year += 1
        return self.end.in_year(year)

    def days_until_end(self, check_date: date) -> int:
        return (self.end_date_for(check_date) - check_date).days

    def days_into(self, check_date: date) -> int:
        return (check_date - self.start_date_for(check_date)).days

    def closes_at(self, check_date: date) -> date:
        """First date *after* the window instance containing ``check_date``."""
        return self.end_date_for(check_date) + timedelta(days=1)

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


# ── Predicates ────────────────────────────────────────────────────────────────


class MetricCondition(BaseModel):
    """Compare one statistic of a metric's aggregate window against ``value``.

    ``sustained_days_above`` / ``sustained_days_below`` need a ``threshold``;
    the comparison is then made on the resulting day count.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["metric"] = "metric"
    metric: Metric
    stat: MetricStat = "mean"
    threshold: Optional[float] = None
    op: ComparisonOp
    value: float

    @model_validator(mode="after")
    def validate_threshold_usage(self) -> "MetricCondition":
        if self.stat in _SUSTAINED_STATS and self.threshold is None:
            raise ValueError(f"stat '{self.stat}' requires a threshold.")
        if self.stat not in _SUSTAINED_STATS and self.threshold is not None:
            raise ValueError(f"stat '{self.stat}' does not take a threshold.")
        return self

    def metrics(self) -> frozenset[Metric]:
        return frozenset({self.metric})

    def facts(self) -> frozenset[str]:
        return frozenset()

    def uses_calendar(self) -> bool:
        return False


class FactCondition(BaseModel):
    """Compare a season fact (count, flag, or day count) against ``value``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fact"] = "fact"
    fact: str
    op: ComparisonOp
    value: Union[bool, float]

    def metrics(self) -> frozenset[Metric]:
        return frozenset()

    def facts(self) -> frozenset[str]:
        return frozenset({self.fact})

    def uses_calendar(self) -> bool:
        return False


class CalendarCondition(BaseModel):
    """Compare the position of the reference date inside the active window."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["calendar"] = "calendar"
    measure: CalendarMeasure
    op: ComparisonOp
    value: float

    def metrics(self) -> frozenset[Metric]:
        return frozenset()

    def facts(self) -> frozenset[str]:
        return frozenset()

    def uses_calendar(self) -> bool:
        return True


class AllOf(BaseModel):
    """Conjunction: every nested condition must hold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["all"] = "all"
    conditions: tuple["Predicate", ...] = Field(min_length=1)

    def metrics(self) -> frozenset[Metric]:
        return frozenset().union(*(c.metrics() for c in self.conditions))

    def facts(self) -> frozenset[str]:
        return frozenset().union(*(c.facts() for c in self.conditions))

    def uses_calendar(self) -> bool:
        return any(c.uses_calendar() for c in self.conditions)


class AnyOf(BaseModel):
    """Disjunction: at least one nested condition must hold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["any"] = "any"
    conditions: tuple["Predicate", ...] = Field(min_length=1)

    def metrics(self) -> frozenset[Metric]:
        return frozenset().union(*(c.metrics() for c in self.conditions))

    def facts(self) -> frozenset[str]:
        return frozenset().union(*(c.facts() for c in self.conditions))

    def uses_calendar(self) -> bool:
        return any(c.uses_calendar() for c in self.conditions)


Predicate = Annotated[
    Union[MetricCondition, FactCondition, CalendarCondition, AllOf, AnyOf],
    Field(discriminator="kind"),
]

AllOf.model_rebuild()
AnyOf.model_rebuild()


# ── Rule spec ─────────────────────────────────────────────────────────────────


class MetricInput(BaseModel):
    """A metric a rule reads, with the window it is aggregated over.

    Attributes:
        metric: Metric to aggregate.
        window_days: Length of the window in days (>= 1).
        lookahead: ``False`` for a trailing window ending at the reference
            instant; ``True`` for a forward window starting there.  Forecast
            metrics must use ``lookahead``.
    """

    model_config = ConfigDict(frozen=True)

    metric: Metric
    window_days: int = Field(ge=1)
    lookahead: bool = False

    @model_validator(mode="after")
    def validate_forecast_direction(self) -> "MetricInput":
        if self.metric.is_forecast and not self.lookahead:
            raise ValueError(f"Forecast metric '{self.metric}' must use lookahead=true.")
        return self


class Tier(BaseModel):
    """One rung of a rule's severity ladder."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    when: Predicate
    message: str
    action: Optional[str] = None

    @field_validator("message")
    @classmethod
    def validate_message_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("message must not be empty.")
        return v.strip()


class RuleSpec(BaseModel):
    """Immutable definition of one agronomic rule.

    Attributes:
        rule_id: Stable machine identifier, e.g. ``"pre_emergent"``.
        name: Human-readable title.
        category: Topic used for grouping in reports.
        active_window: Calendar range during which the rule may fire, or
            ``None`` for year-round rules.
        inputs: Metric windows the rule needs.  Each metric at most once.
        tiers: Severity ladder, stored highest severity first.
        expiry: How long a resulting recommendation stays valid.
        expiry_hours: Validity for ``ExpiryPolicy.HOURS`` rules.
        description: Optional agronomic background for reports.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(pattern=r"^[a-z][a-z0-9_]*$")
    name: str
    category: RecommendationCategory
    active_window: Optional[ActiveWindow] = None
    inputs: tuple[MetricInput, ...] = ()
    tiers: tuple[Tier, ...] = Field(min_length=1)
    expiry: ExpiryPolicy = ExpiryPolicy.HOURS
    expiry_hours: int = Field(default=24, ge=1)
    description: Optional[str] = None

    @field_validator("tiers")
    @classmethod
    def sort_tiers_by_severity(cls, v: tuple[Tier, ...]) -> tuple[Tier, ...]:
        # sorted() is stable: equal severities keep authoring order.
        return tuple(sorted(v, key=lambda t: -t.severity.rank))

    @model_validator(mode="after")
    def validate_consistency(self) -> "RuleSpec":
        declared = [i.metric for i in self.inputs]
        if len(declared) != len(set(declared)):
            raise ValueError(f"Rule '{self.rule_id}' declares a metric more than once.")

        for index, tier in enumerate(self.tiers):
            undeclared = tier.when.metrics() - set(declared)
            if undeclared:
                raise ValueError(
                    f"Rule '{self.rule_id}' tier {index} ({tier.severity}) references "
                    f"undeclared metric(s) {sorted(undeclared)}."
                )
            if tier.when.uses_calendar() and self.active_window is None:
                raise ValueError(
                    f"Rule '{self.rule_id}' uses a calendar condition but has no active_window."
                )

        if self.expiry is ExpiryPolicy.WINDOW_END and self.active_window is None:
            raise ValueError(
                f"Rule '{self.rule_id}' expires at window end but has no active_window."
            )
        return self

    def input_for(self, metric: Metric) -> Optional[MetricInput]:
        for item in self.inputs:
            if item.metric is metric:
                return item
        return None

    def is_active_on(self, check_date: date) -> bool:
        return self.active_window is None or self.active_window.contains(check_date)
