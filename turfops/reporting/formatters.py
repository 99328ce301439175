"""
ASCII terminal formatters for CLI commands.

All formatters return plain multi-line strings suitable for ``typer.echo()``.
No third-party dependencies (no ``rich``, no ``colorama``).

Recommendation table
--------------------
::

  === Recommendations for My Lawn ===
    Evaluated at: 2025-03-10T12:00:00+00:00

    #  Severity  Rule                     Valid until
    ---------------------------------------------------------
    1  WARNING   Pre-Emergent Timing      2025-06-01 00:00Z
       Soil temp averaging 58.0°F: the pre-emergent window is narrowing.
       -> Apply pre-emergent within the next few days.
"""

from __future__ import annotations

from typing import Iterable, Optional

from turfops.engine.errors import ClockSkew
from turfops.engine.orchestrator import EvaluationResult
from turfops.models.application import Application
from turfops.models.rule import RuleSpec


def format_clock_skew_banner(skew: Optional[ClockSkew]) -> str:
    """One-line warning when readings are newer than the evaluation instant."""
    if skew is None:
        return ""
    hours = skew.skew.total_seconds() / 3600
    return (
        f"  [CLOCK SKEW] Newest reading ({skew.latest_reading_at.isoformat()}) is "
        f"{hours:.1f}h after the evaluation instant -- check the system clock."
    )


def format_recommendations(result: EvaluationResult, lawn_name: str = "") -> str:
    """Format one evaluation pass as a ranked table."""
    lines: list[str] = []
    lines.append("")
    title = f"=== Recommendations for {lawn_name} ===" if lawn_name else "=== Recommendations ==="
    lines.append(title)
    lines.append(f"  Evaluated at: {result.reference_instant.isoformat()}")
    banner = format_clock_skew_banner(result.clock_skew)
    if banner:
        lines.append(banner)

    if not result.recommendations:
        lines.append("")
        lines.append("  (no recommendations -- nothing needs attention right now)")
        return "\n".join(lines)

    lines.append("")
    header = f"  {'#':>3}  {'Severity':<9} {'Rule':<28} {'Valid until':<17}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for rank, rec in enumerate(result.recommendations, start=1):
        valid = rec.valid_until.strftime("%Y-%m-%d %H:%MZ")
        lines.append(
            f"  {rank:>3}  {rec.severity.value.upper():<9} {rec.rule_name[:28]:<28} {valid:<17}"
        )
        lines.append(f"       {rec.message}")
        if rec.action:
            lines.append(f"       -> {rec.action}")
    return "\n".join(lines)


def format_rule_list(rules: Iterable[RuleSpec]) -> str:
    """Format the rule catalog as a table of id, window and tier count."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Rule Catalog ===")
    header = f"  {'Rule ID':<24} {'Category':<18} {'Window':<14} {'Tiers':>5}  Name"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    count = 0
    for rule in rules:
        window = str(rule.active_window) if rule.active_window else "year-round"
        lines.append(
            f"  {rule.rule_id:<24} {rule.category.value:<18} {window:<14} "
            f"{len(rule.tiers):>5}  {rule.name}"
        )
        count += 1
    lines.append("")
    lines.append(f"  {count} rule(s)")
    return "\n".join(lines)


def format_applications(applications: Iterable[Application]) -> str:
    """Format application log entries, one per line."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Applications ===")
    apps = list(applications)
    if not apps:
        lines.append("  (no applications logged)")
        return "\n".join(lines)

    header = f"  {'ID':>5}  {'Date':<10}  {'Category':<14} {'Amount':>8}  Notes"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for app in apps:
        amount = f"{app.amount:.2f}" if app.amount is not None else "-"
        note = app.notes or app.amount_note or ""
        app_id = app.application_id if app.application_id is not None else "-"
        lines.append(
            f"  {app_id:>5}  {app.applied_at.isoformat():<10}  "
            f"{app.category.value:<14} {amount:>8}  {note}"
        )
    return "\n".join(lines)
