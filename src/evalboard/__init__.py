"""Interview evaluation dashboard: rubric scoring, aggregation and live ranking."""

__version__ = "0.1.0"
