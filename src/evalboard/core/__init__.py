"""Core scoring components: rubric, aggregation, ranking and sessions."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .aggregator import AggregateScore, ScoreAggregator, round1
from .ranking import Leaderboard, RankedCandidate, RankingEngine
from .rubric import (
    DEFAULT_RUBRIC,
    CategoryScore,
    RubricChange,
    RubricModel,
    category_breakdown,
    item_maximum,
    total_maximum,
    validate_rubric,
)
from .session import Draft, EvaluationSession, SessionState

__all__ = [
    "AggregateScore",
    "CategoryScore",
    "DEFAULT_RUBRIC",
    "Draft",
    "EvaluationSession",
    "Leaderboard",
    "RankedCandidate",
    "RankingEngine",
    "RubricChange",
    "RubricModel",
    "ScoreAggregator",
    "SessionState",
    "category_breakdown",
    "item_maximum",
    "round1",
    "total_maximum",
    "validate_rubric",
]
