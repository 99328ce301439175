"""
Season state derived from the application log.

Seasons are a fixed calendar partition::

    spring  Feb – May
    summer  Jun – Aug
    fall    Sep – Nov
    winter  Dec – Jan   (spans two calendar years)

Facts are scoped to a *season instance* — the season plus the year it started
in — so "Winter 2024" covers Dec 2024 and Jan 2025.

``compute_facts()`` is a pure function of the history and the reference
instant.  It is recomputed wholesale every pass: there are no incremental
counters to drift out of sync with the append-only log.

Fact names (for every ``TreatmentCategory`` value ``c``)::

    {c}_count          int   applications of c in the current season instance
    {c}_applied        bool  {c}_count > 0
    {c}_last_applied   date  most recent c application this season, or None
    days_since_{c}     int   days from that application to the reference date, or None

plus ``fertilizer_n_total`` (sum of recorded fertilizer amounts this season)
and ``applications_total`` (all categories).  The lawn profile facts
(``cool_season``, ``lawn_size_ksqft``, ...) are merged in as well; see
``turfops.models.lawn_profile``.

The ``{c}_last_applied`` dates are available to message templates but cannot
be compared in a rule predicate.  ``comparable_fact_names()`` lists the rest.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Iterable, Iterator, Optional, Union

from turfops.models.application import Application
from turfops.models.lawn_profile import PROFILE_FACT_NAMES, LawnProfile
from turfops.taxonomy.lawn_taxonomy import TreatmentCategory

FactValue = Union[int, float, bool, date, None]


class Season(StrEnum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


_SEASON_BY_MONTH: dict[int, Season] = {
    1: Season.WINTER, 2: Season.SPRING, 3: Season.SPRING, 4: Season.SPRING,
    5: Season.SPRING, 6: Season.SUMMER, 7: Season.SUMMER, 8: Season.SUMMER,
    9: Season.FALL, 10: Season.FALL, 11: Season.FALL, 12: Season.WINTER,
}

# (first month, month after the last) within the starting year.
_SEASON_BOUNDS: dict[Season, tuple[int, int]] = {
    Season.SPRING: (2, 6),
    Season.SUMMER: (6, 9),
    Season.FALL:   (9, 12),
    Season.WINTER: (12, 14),   # Dec of start_year through Jan of start_year + 1
}


@dataclass(frozen=True, order=True)
class SeasonInstance:
    """One occurrence of a season, keyed by the year it started in."""

    start_year: int
    season: Season

    @property
    def start_date(self) -> date:
        first_month, _ = _SEASON_BOUNDS[self.season]
        return date(self.start_year, first_month, 1)

    @property
    def end_date(self) -> date:
        """Last day of the season instance (inclusive)."""
        _, month_after = _SEASON_BOUNDS[self.season]
        year = self.start_year + (month_after - 1) // 12
        month = (month_after - 1) % 12 + 1
        return date(year, month, 1) - timedelta(days=1)

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    @property
    def season_id(self) -> str:
        return f"{self.season}-{self.start_year}"

    def __str__(self) -> str:
        return f"{self.season.value.title()} {self.start_year}"


def season_for(check_date: date) -> SeasonInstance:
    """Return the season instance containing ``check_date``."""
    season = _SEASON_BY_MONTH[check_date.month]
    start_year = check_date.year - 1 if check_date.month == 1 else check_date.year
    return SeasonInstance(start_year=start_year, season=season)


def known_fact_names() -> frozenset[str]:
    """Every fact name ``compute_facts()`` can produce."""
    return comparable_fact_names() | _date_fact_names()


def comparable_fact_names() -> frozenset[str]:
    """Fact names whose values are numbers, booleans or ``None``."""
    names = {"fertilizer_n_total", "applications_total"} | PROFILE_FACT_NAMES
    for category in TreatmentCategory:
        c = category.value
        names.update({f"{c}_count", f"{c}_applied", f"days_since_{c}"})
    return frozenset(names)


def _date_fact_names() -> frozenset[str]:
    return frozenset(f"{category.value}_last_applied" for category in TreatmentCategory)


class SeasonFacts(Mapping):
    """Read-only mapping of fact name → value for one season instance."""

    def __init__(self, season: SeasonInstance, facts: dict[str, FactValue]) -> None:
        self._season = season
        self._facts = dict(facts)

    @property
    def season(self) -> SeasonInstance:
        return self._season

    def __getitem__(self, name: str) -> FactValue:
        return self._facts[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    def __len__(self) -> int:
        return len(self._facts)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SeasonFacts):
            return self._season == other._season and self._facts == other._facts
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._season, tuple(sorted(self._facts.items(), key=lambda kv: kv[0]))))

    def __repr__(self) -> str:
        return f"SeasonFacts({self._season}, {self._facts!r})"


def compute_facts(
    applications: Iterable[Application],
    reference_instant: Union[datetime, date],
    profile: Optional[LawnProfile] = None,
) -> SeasonFacts:
    """Derive season-scoped facts from the full application history.

    Args:
        applications:      Application log, any order.  Entries outside the
                           current season instance, or dated after the
                           reference date, are ignored.
        reference_instant: Evaluation instant (UTC datetime) or date.
        profile:           Lawn whose profile facts are merged in.  Defaults
                           to ``LawnProfile()``.

    Returns:
        ``SeasonFacts`` for the season instance containing the reference date.
    """
    today = reference_instant.date() if isinstance(reference_instant, datetime) else reference_instant
    instance = season_for(today)

    in_season = [
        app for app in applications
        if instance.start_date <= app.applied_at <= today
    ]

    facts: dict[str, FactValue] = {}
    for category in TreatmentCategory:
        c = category.value
        dates = [app.applied_at for app in in_season if app.category is category]
        last: Optional[date] = max(dates) if dates else None
        facts[f"{c}_count"] = len(dates)
        facts[f"{c}_applied"] = bool(dates)
        facts[f"{c}_last_applied"] = last
        facts[f"days_since_{c}"] = (today - last).days if last is not None else None

    facts["fertilizer_n_total"] = sum(
        app.amount for app in in_season
        if app.category is TreatmentCategory.FERTILIZER and app.amount is not None
    )
    facts["applications_total"] = len(in_season)
    facts.update((profile or LawnProfile()).facts())
    return SeasonFacts(instance, facts)
