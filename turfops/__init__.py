"""TurfOps — lawn-care treatment tracking and agronomic rules engine."""

__version__ = "0.1.0"
