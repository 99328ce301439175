"""
Rules evaluation engine.

  aggregator    rolling-window statistics per metric
  catalog       rule catalog loading and validation
  evaluator     predicate evaluation and message rendering
  season        season-scoped facts from the application log
  composer      ordering, deduplication and expiry of recommendations
  orchestrator  ``RulesEngine``: one stateless pass over the catalog
"""

from turfops.engine.catalog import RuleCatalog, load_catalog
from turfops.engine.errors import (
    CatalogLoadError,
    ClockSkew,
    EngineError,
    InsufficientData,
    ProviderError,
)
from turfops.engine.orchestrator import EvaluationResult, RulesEngine

__all__ = [
    "CatalogLoadError",
    "ClockSkew",
    "EngineError",
    "EvaluationResult",
    "InsufficientData",
    "ProviderError",
    "RuleCatalog",
    "RulesEngine",
    "load_catalog",
]
