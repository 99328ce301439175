"""
Recommendation composer: triggered tiers → ordered, deduplicated recommendations.

Ordering
--------
Severity rank descending, then the order tiers were handed in.  The
orchestrator hands them in catalog order, so catalog index is the tie-break.

Deduplication
-------------
At most one recommendation per ``rule_id``.  A later duplicate with equal or
lower severity is dropped; one with higher severity replaces the earlier entry
in place, keeping the earlier entry's input position.

Validity
--------
    expiry = "hours"       valid_until = triggered_at + expiry_hours
    expiry = "window_end"  valid_until = 00:00 UTC of the day after the active
                           window's end date (wrap-around windows resolved
                           against the trigger date)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from turfops.engine.evaluator import TriggeredTier
from turfops.models.recommendation import Recommendation
from turfops.models.rule import RuleSpec
from turfops.taxonomy.lawn_taxonomy import ExpiryPolicy
from turfops.utils.time_utils import start_of_day


def compose(triggered: Iterable[TriggeredTier]) -> tuple[Recommendation, ...]:
    """Build the final recommendation tuple from triggered tiers."""
    best: dict[str, tuple[int, TriggeredTier]] = {}
    for position, item in enumerate(triggered):
        current = best.get(item.rule_id)
        if current is None:
            best[item.rule_id] = (position, item)
        elif item.severity.rank > current[1].severity.rank:
            best[item.rule_id] = (current[0], item)

    ordered = sorted(best.values(), key=lambda pair: (-pair[1].severity.rank, pair[0]))
    return tuple(_to_recommendation(item) for _, item in ordered)


def valid_until(rule: RuleSpec, triggered_at: datetime) -> datetime:
    """Instant after which a recommendation from ``rule`` is stale."""
    if rule.expiry is ExpiryPolicy.WINDOW_END and rule.active_window is not None:
        closes = rule.active_window.closes_at(triggered_at.date())
        return start_of_day(closes)
    return triggered_at + timedelta(hours=rule.expiry_hours)


def _to_recommendation(item: TriggeredTier) -> Recommendation:
    rule = item.rule
    return Recommendation(
        rule_id=rule.rule_id,
        rule_name=rule.name,
        category=rule.category,
        severity=item.severity,
        message=item.message,
        action=item.action,
        triggered_at=item.triggered_at,
        valid_until=valid_until(rule, item.triggered_at),
    )
