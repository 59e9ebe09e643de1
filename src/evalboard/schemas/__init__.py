"""Pydantic schema definitions for dashboard records and configuration."""

from __future__ import annotations

from .candidate import DRAFT_ID_PREFIX, Candidate, CandidateInfo
from .evaluation import Evaluation, Tag, TagPolarity
from .rubric import Rubric, RubricCategory, RubricItem

__all__ = [
    "Candidate",
    "CandidateInfo",
    "DRAFT_ID_PREFIX",
    "Evaluation",
    "Rubric",
    "RubricCategory",
    "RubricItem",
    "Tag",
    "TagPolarity",
]
