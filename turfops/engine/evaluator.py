"""
Condition evaluator: one rule + aggregates + season facts → matched tier or None.

Evaluation order
----------------
1.  Dormancy: if the rule's active window excludes the reference date the
    rule returns ``None`` without touching any aggregate.
2.  Tiers are walked in stored order, which ``RuleSpec`` guarantees is highest
    severity first with authoring order as the tie-break.  The first tier whose
    predicate holds wins, so the highest-severity match is returned.
3.  A tier whose predicate references a metric that is missing from
    ``aggregates`` or has an insufficient window does not match.
    ``InsufficientData`` never escapes this module.
4.  Fact comparisons against an absent or ``None`` fact are false.

Message rendering
-----------------
The matched tier's message and action are rendered with ``str.format_map``
over::

    <metric value>         AggregateWindow  e.g. {soil_temp_10cm.mean:.1f}
    <fact name>            season fact      e.g. {fertilizer_count}
    days_until_window_end  int              (rules with an active window)
    days_into_window       int              (rules with an active window)
    season                 SeasonInstance   e.g. {season}

If rendering fails (say an auxiliary metric is insufficient) the raw template
is kept and a warning is logged.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from turfops.engine.aggregator import AggregateWindow
from turfops.engine.errors import InsufficientData
from turfops.engine.season import SeasonFacts
from turfops.models.rule import (
    AllOf,
    AnyOf,
    CalendarCondition,
    FactCondition,
    MetricCondition,
    RuleSpec,
)
from turfops.taxonomy.lawn_taxonomy import Metric, Severity

logger = logging.getLogger(__name__)

_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class TriggeredTier:
    """A rule tier whose predicate held at ``triggered_at``."""

    rule: RuleSpec
    tier_index: int
    severity: Severity
    message: str
    action: Optional[str]
    triggered_at: datetime

    @property
    def rule_id(self) -> str:
        return self.rule.rule_id


@dataclass(frozen=True)
class _Context:
    aggregates: Mapping[Metric, AggregateWindow]
    facts: Mapping[str, Any]
    rule: RuleSpec
    reference_instant: datetime

    def calendar(self, measure: str) -> int:
        window = self.rule.active_window
        if window is None:
            raise ValueError(f"Rule '{self.rule.rule_id}' has no active window.")
        today = self.reference_instant.date()
        if measure == "days_until_window_end":
            return window.days_until_end(today)
        return window.days_into(today)


def evaluate(
    rule: RuleSpec,
    aggregates: Mapping[Metric, AggregateWindow],
    season_facts: Mapping[str, Any],
    reference_instant: datetime,
) -> Optional[TriggeredTier]:
    """Return the highest-severity matching tier of ``rule``, or ``None``.

    Args:
        rule:              Rule to evaluate.
        aggregates:        Aggregate windows keyed by metric.  Metrics may be
                           missing; tiers needing them simply do not match.
        season_facts:      Facts from ``compute_facts()``.
        reference_instant: UTC instant of the evaluation pass.
    """
    today = reference_instant.date()
    if not rule.is_active_on(today):
        logger.debug("Rule %s dormant on %s (window %s)", rule.rule_id, today, rule.active_window)
        return None

    ctx = _Context(aggregates, season_facts, rule, reference_instant)

    for index, tier in enumerate(rule.tiers):
        if not _metrics_ready(tier.when.metrics(), aggregates):
            continue
        try:
            matched = _holds(tier.when, ctx)
        except InsufficientData:
            matched = False
        if not matched:
            continue

        values = _render_context(ctx)
        message = _render(tier.message, values, rule.rule_id)
        action = _render(tier.action, values, rule.rule_id) if tier.action else None
        logger.debug("Rule %s matched tier %d (%s)", rule.rule_id, index, tier.severity)
        return TriggeredTier(
            rule=rule,
            tier_index=index,
            severity=tier.severity,
            message=message,
            action=action,
            triggered_at=reference_instant,
        )

    return None


# ── Predicate evaluation ───────────────────────────────────────────────────────


def _metrics_ready(
    metrics: frozenset[Metric],
    aggregates: Mapping[Metric, AggregateWindow],
) -> bool:
    for metric in metrics:
        window = aggregates.get(metric)
        if window is None or window.is_insufficient:
            return False
    return True


def _holds(predicate: Any, ctx: _Context) -> bool:
    if isinstance(predicate, AllOf):
        return all(_holds(c, ctx) for c in predicate.conditions)
    if isinstance(predicate, AnyOf):
        return any(_holds(c, ctx) for c in predicate.conditions)
    if isinstance(predicate, MetricCondition):
        return _compare(_metric_value(predicate, ctx.aggregates[predicate.metric]), predicate.op, predicate.value)
    if isinstance(predicate, FactCondition):
        fact = ctx.facts.get(predicate.fact)
        if fact is None:
            return False
        return _compare(fact, predicate.op, predicate.value)
    if isinstance(predicate, CalendarCondition):
        return _compare(ctx.calendar(predicate.measure), predicate.op, predicate.value)
    raise TypeError(f"Unknown predicate type: {type(predicate).__name__}")


def _metric_value(cond: MetricCondition, window: AggregateWindow) -> float:
    if cond.stat == "sustained_days_above":
        return window.sustained_days_above(cond.threshold)
    if cond.stat == "sustained_days_below":
        return window.sustained_days_below(cond.threshold)
    if cond.stat == "sample_count":
        return window.sample_count
    return getattr(window, cond.stat)


def _compare(left: Any, op: str, right: Any) -> bool:
    return _OPS[op](left, right)


# ── Rendering ──────────────────────────────────────────────────────────────────


def _render_context(ctx: _Context) -> dict[str, Any]:
    values: dict[str, Any] = dict(ctx.facts)
    values.update({m.value: w for m, w in ctx.aggregates.items()})
    if isinstance(ctx.facts, SeasonFacts):
        values["season"] = ctx.facts.season
    if ctx.rule.active_window is not None:
        values["days_until_window_end"] = ctx.calendar("days_until_window_end")
        values["days_into_window"] = ctx.calendar("days_into_window")
    return values


def _render(template: str, values: dict[str, Any], rule_id: str) -> str:
    try:
        return template.format_map(values)
    except (KeyError, AttributeError, IndexError, TypeError, ValueError, InsufficientData) as exc:
        logger.warning("Rule %s: could not render template %r: %s", rule_id, template, exc)
        return template
