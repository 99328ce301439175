"""
Rules engine orchestrator: one stateless evaluation pass over the catalog.

A pass, step by step
--------------------
1.  Validate ``reference_instant`` (must be timezone-aware; normalised to UTC).
2.  Collect the distinct metrics the catalog reads.  Fetch each once from the
    series provider with ``since`` covering the widest trailing window that
    uses it, and snapshot the result into a tuple.
3.  Fetch the application history once, from the start of the current season
    instance, and compute season facts once, with the lawn profile facts
    merged in.
4.  Check for clock skew: an observed (non-forecast) reading stamped later
    than ``reference_instant + tolerance`` is reported on the result and
    logged.  The pass still runs.
5.  For each rule, in catalog order: aggregate its declared inputs, evaluate,
    and collect the triggered tier.
6.  Compose once at the end.

The engine holds only its catalog and tolerance.  Nothing is cached between
passes, so identical inputs always give equal results.

Provider failures abort the pass.  A ``ProviderError`` raised by a provider is
re-raised unchanged; any other exception is wrapped in ``ProviderError``.

Usage
-----
    engine = RulesEngine(load_catalog(path))
    result = engine.run(series_provider, history_provider, datetime.now(timezone.utc))
    for rec in result.recommendations:
        print(rec.severity, rec.message)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, TypeVar

from turfops.engine.aggregator import AggregateWindow, aggregate
from turfops.engine.catalog import RuleCatalog
from turfops.engine.composer import compose
from turfops.engine.errors import ClockSkew, ProviderError
from turfops.engine.evaluator import TriggeredTier, evaluate
from turfops.engine.season import SeasonFacts, compute_facts, season_for
from turfops.models.lawn_profile import LawnProfile
from turfops.models.reading import Reading
from turfops.models.recommendation import Recommendation
from turfops.models.rule import RuleSpec
from turfops.providers.base import ApplicationHistoryProvider, MetricSeriesProvider
from turfops.taxonomy.lawn_taxonomy import Metric

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one evaluation pass.

    Attributes:
        reference_instant: UTC instant the pass was evaluated at.
        recommendations:   Ordered, deduplicated recommendations.
        clock_skew:        Set when observed readings are newer than the
                           reference instant allows; ``None`` otherwise.
    """

    reference_instant: datetime
    recommendations:   tuple[Recommendation, ...]
    clock_skew:        Optional[ClockSkew] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvaluationResult):
            return NotImplemented
        return (
            self.reference_instant == other.reference_instant
            and self.recommendations == other.recommendations
            and _skew_key(self.clock_skew) == _skew_key(other.clock_skew)
        )

    def __hash__(self) -> int:
        return hash((self.reference_instant, self.recommendations, _skew_key(self.clock_skew)))


@dataclass(frozen=True)
class _Snapshot:
    series: Mapping[Metric, tuple[Reading, ...]]
    facts: SeasonFacts


class RulesEngine:
    """Evaluates a ``RuleCatalog`` against provider data.

    Args:
        catalog:              Validated rule catalog.
        clock_skew_tolerance: How far past the reference instant an observed
                              reading may be stamped before it is reported.
        profile:              Lawn whose profile facts every pass sees.
                              Defaults to ``LawnProfile()``.
    """

    def __init__(
        self,
        catalog: RuleCatalog,
        clock_skew_tolerance: timedelta = timedelta(hours=1),
        profile: Optional[LawnProfile] = None,
    ) -> None:
        if clock_skew_tolerance < timedelta(0):
            raise ValueError("clock_skew_tolerance must not be negative.")
        self.catalog = catalog
        self.clock_skew_tolerance = clock_skew_tolerance
        self.profile = profile or LawnProfile()

    def list_rules(self) -> list[tuple[str, str]]:
        """Return ``(rule_id, name)`` pairs in catalog order."""
        return [(r.rule_id, r.name) for r in self.catalog]

    def run(
        self,
        series_provider: MetricSeriesProvider,
        history_provider: ApplicationHistoryProvider,
        reference_instant: datetime,
    ) -> EvaluationResult:
        """Run one full evaluation pass.

        Raises:
            ValueError:    If ``reference_instant`` is naive.
            ProviderError: If either provider fails.
        """
        ref = _normalise_instant(reference_instant)
        logger.info("Evaluation pass at %s over %d rules", ref.isoformat(), len(self.catalog))

        snapshot = self._snapshot(self.catalog.rules, series_provider, history_provider, ref)
        skew = self._check_clock_skew(snapshot.series, ref)

        triggered: list[TriggeredTier] = []
        for rule in self.catalog:
            hit = self._evaluate_rule(rule, snapshot, ref)
            if hit is not None:
                triggered.append(hit)

        recommendations = compose(triggered)
        logger.info(
            "Evaluation pass at %s: %d rules triggered, %d recommendations",
            ref.isoformat(), len(triggered), len(recommendations),
        )
        return EvaluationResult(
            reference_instant=ref,
            recommendations=recommendations,
            clock_skew=skew,
        )

    def evaluate_rule(
        self,
        rule_id: str,
        series_provider: MetricSeriesProvider,
        history_provider: ApplicationHistoryProvider,
        reference_instant: datetime,
    ) -> Optional[Recommendation]:
        """Evaluate a single rule and return its recommendation, if any.

        Raises:
            KeyError:      If ``rule_id`` is not in the catalog.
            ValueError:    If ``reference_instant`` is naive.
            ProviderError: If either provider fails.
        """
        rule = self.catalog.get(rule_id)
        if rule is None:
            raise KeyError(f"Unknown rule_id '{rule_id}'.")
        ref = _normalise_instant(reference_instant)

        snapshot = self._snapshot((rule,), series_provider, history_provider, ref)
        hit = self._evaluate_rule(rule, snapshot, ref)
        if hit is None:
            return None
        return compose([hit])[0]

    # ── Internal ──────────────────────────────────────────────────────────────

    def _snapshot(
        self,
        rules: tuple[RuleSpec, ...],
        series_provider: MetricSeriesProvider,
        history_provider: ApplicationHistoryProvider,
        ref: datetime,
    ) -> _Snapshot:
        series: dict[Metric, tuple[Reading, ...]] = {}
        for metric, since in _fetch_plan(rules, ref).items():
            series[metric] = _call_provider(
                "metric_series", lambda m=metric, s=since: tuple(series_provider.get(m, s))
            )

        season_start = season_for(ref.date()).start_date
        applications = _call_provider(
            "application_history", lambda: tuple(history_provider.get(season_start))
        )
        return _Snapshot(series=series, facts=compute_facts(applications, ref, self.profile))

    def _evaluate_rule(
        self,
        rule: RuleSpec,
        snapshot: _Snapshot,
        ref: datetime,
    ) -> Optional[TriggeredTier]:
        aggregates: dict[Metric, AggregateWindow] = {}
        if rule.is_active_on(ref.date()):
            for item in rule.inputs:
                aggregates[item.metric] = aggregate(
                    snapshot.series.get(item.metric, ()),
                    item.window_days,
                    ref,
                    lookahead=item.lookahead,
                    metric=item.metric,
                )
        return evaluate(rule, aggregates, snapshot.facts, ref)

    def _check_clock_skew(
        self,
        series: Mapping[Metric, tuple[Reading, ...]],
        ref: datetime,
    ) -> Optional[ClockSkew]:
        observed = [
            r.timestamp
            for metric, readings in series.items()
            if not metric.is_forecast
            for r in readings
        ]
        if not observed:
            return None
        latest = max(observed)
        if latest <= ref + self.clock_skew_tolerance:
            return None
        skew = ClockSkew(ref, latest)
        logger.warning("Clock skew detected: %s", skew)
        return skew


def _normalise_instant(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        raise ValueError("reference_instant must be timezone-aware.")
    return instant.astimezone(timezone.utc)


def _fetch_plan(rules: tuple[RuleSpec, ...], ref: datetime) -> dict[Metric, datetime]:
    """Map each metric the rules read to the earliest ``since`` any of them needs."""
    plan: dict[Metric, datetime] = {}
    for rule in rules:
        for item in rule.inputs:
            since = ref if item.lookahead else ref - timedelta(days=item.window_days)
            current = plan.get(item.metric)
            plan[item.metric] = since if current is None else min(current, since)
    return plan


def _call_provider(name: str, fetch: Callable[[], T]) -> T:
    try:
        return fetch()
    except ProviderError:
        logger.error("Provider %s failed; aborting pass", name)
        raise
    except Exception as exc:
        logger.error("Provider %s failed; aborting pass: %s", name, exc)
        raise ProviderError(name, f"{type(exc).__name__}: {exc}") from exc


def _skew_key(skew: Optional[ClockSkew]) -> Any:
    if skew is None:
        return None
    return (skew.reference_instant, skew.latest_reading_at)
