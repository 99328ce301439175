"""Domain models — frozen pydantic value objects.

Modules
-------
reading         — Reading (one time-stamped metric value)
application     — Application (one past treatment)
lawn_profile    — LawnProfile (grass type and size of the managed lawn)
rule            — RuleSpec, Tier, MetricInput, ActiveWindow, predicate variants
recommendation  — Recommendation (engine output)
"""
