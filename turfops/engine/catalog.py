"""
Rule catalog loader: JSON → validated, ordered, immutable ``RuleCatalog``.

Document format
---------------
::

    {
      "version": 1,
      "rules": [
        {"rule_id": "pre_emergent", "name": "...", "category": "pre_emergent",
         "active_window": {"start": "02-01", "end": "05-31"},
         "inputs": [{"metric": "soil_temp_10cm", "window_days": 7}],
         "tiers": [{"severity": "warning", "when": {...}, "message": "..."}],
         "expiry": "window_end"}
      ]
    }

Validation rules
----------------
Per-rule structure (unknown metrics, unsorted tiers, forecast inputs without
lookahead, undeclared metrics in tiers, calendar predicates without a window)
is enforced by the ``RuleSpec`` model.  On top of that this module rejects:

- Duplicate ``rule_id`` values.
- Fact conditions naming a fact the season tracker never produces, or one
  whose value is a date (``{c}_last_applied``), which no predicate can compare.
- Message or action templates referencing a name outside the rule's render
  context (its declared metrics, season facts, ``season``, and the calendar
  measures when the rule has a window).

Every failure surfaces as ``CatalogLoadError``; the catalog is loaded once at
startup and a bad one is fatal.

Usage
-----
    from turfops.engine.catalog import load_catalog

    catalog = load_catalog(Path("config/rules/default_rules.json"))
    spec = catalog.get("pre_emergent")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from string import Formatter
from typing import Any, Iterable, Iterator, Optional

from pydantic import ValidationError

from turfops.engine.errors import CatalogLoadError
from turfops.engine.season import comparable_fact_names, known_fact_names
from turfops.models.rule import RuleSpec

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

CALENDAR_NAMES: frozenset[str] = frozenset({"days_until_window_end", "days_into_window"})


class RuleCatalog:
    """Ordered, immutable collection of ``RuleSpec`` objects.

    Catalog order is authoring order and is the final tie-break when two
    recommendations share a severity.
    """

    def __init__(self, rules: Iterable[RuleSpec]) -> None:
        self._rules: tuple[RuleSpec, ...] = tuple(rules)
        self._by_id: dict[str, RuleSpec] = {}
        for index, rule in enumerate(self._rules):
            if rule.rule_id in self._by_id:
                raise CatalogLoadError(
                    f"Duplicate rule_id '{rule.rule_id}' at index {index}."
                )
            self._by_id[rule.rule_id] = rule
            _validate_references(rule)

    @property
    def rules(self) -> tuple[RuleSpec, ...]:
        return self._rules

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(r.rule_id for r in self._rules)

    def get(self, rule_id: str) -> Optional[RuleSpec]:
        return self._by_id.get(rule_id)

    def index_of(self, rule_id: str) -> int:
        return self.rule_ids.index(rule_id)

    def __iter__(self) -> Iterator[RuleSpec]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"RuleCatalog({len(self._rules)} rules)"


def parse_catalog(document: Any) -> RuleCatalog:
    """Validate a decoded catalog document.

    Raises:
        CatalogLoadError: On any structural or semantic problem.
    """
    if not isinstance(document, dict):
        raise CatalogLoadError("Catalog document must be a JSON object.")

    version = document.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise CatalogLoadError(
            f"Unsupported catalog version {version!r}. "
            f"Supported: {sorted(SUPPORTED_VERSIONS)}"
        )

    records = document.get("rules")
    if not isinstance(records, list) or not records:
        raise CatalogLoadError("Catalog must contain a non-empty 'rules' list.")

    specs: list[RuleSpec] = []
    for i, rec in enumerate(records):
        rule_id = rec.get("rule_id", f"#{i}") if isinstance(rec, dict) else f"#{i}"
        try:
            specs.append(RuleSpec.model_validate(rec))
        except ValidationError as exc:
            raise CatalogLoadError(f"Rule '{rule_id}' at index {i} is invalid: {exc}") from exc

    return RuleCatalog(specs)


def load_catalog(path: Path) -> RuleCatalog:
    """Read and validate a rule catalog JSON file.

    Raises:
        CatalogLoadError: If the file is missing, unreadable, not JSON, or
            contains an invalid rule.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogLoadError(f"Cannot read rule catalog {path}: {exc}") from exc

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"Rule catalog {path} is not valid JSON: {exc}") from exc

    catalog = parse_catalog(document)
    logger.info("Loaded %d rules from %s", len(catalog), path)
    return catalog


def template_roots(template: str) -> set[str]:
    """Return the root names a ``str.format`` template looks up.

    ``"{soil_temp_10cm.mean:.1f}"`` → ``{"soil_temp_10cm"}``.

    Raises:
        ValueError: If the template is not a valid format string.
    """
    roots: set[str] = set()
    for _literal, field_name, _spec, _conv in Formatter().parse(template):
        if field_name is None:
            continue
        root = field_name.split(".", 1)[0].split("[", 1)[0]
        if not root or root.isdigit():
            raise ValueError(f"positional field '{{{field_name}}}' is not allowed")
        roots.add(root)
    return roots


# ── Internal helpers ───────────────────────────────────────────────────────────


def _context_names(rule: RuleSpec) -> frozenset[str]:
    names = set(known_fact_names()) | {"season"}
    names.update(i.metric.value for i in rule.inputs)
    if rule.active_window is not None:
        names.update(CALENDAR_NAMES)
    return frozenset(names)


def _validate_references(rule: RuleSpec) -> None:
    facts = known_fact_names()
    comparable = comparable_fact_names()
    allowed = _context_names(rule)

    for index, tier in enumerate(rule.tiers):
        named = tier.when.facts()
        unknown_facts = named - facts
        if unknown_facts:
            raise CatalogLoadError(
                f"Rule '{rule.rule_id}' tier {index} references unknown fact(s) "
                f"{sorted(unknown_facts)}."
            )
        dated = named - comparable
        if dated:
            raise CatalogLoadError(
                f"Rule '{rule.rule_id}' tier {index} compares date-valued fact(s) "
                f"{sorted(dated)}; use days_since_<category> instead."
            )

        for label, template in (("message", tier.message), ("action", tier.action)):
            if template is None:
                continue
            try:
                roots = template_roots(template)
            except ValueError as exc:
                raise CatalogLoadError(
                    f"Rule '{rule.rule_id}' tier {index} {label} is not a valid template: {exc}"
                ) from exc
            unknown = roots - allowed
            if unknown:
                raise CatalogLoadError(
                    f"Rule '{rule.rule_id}' tier {index} {label} references "
                    f"unknown name(s) {sorted(unknown)}."
                )
