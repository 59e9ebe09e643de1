from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TagPolarity = Literal["positive", "negative"]


class Tag(BaseModel):
    """Qualitative feedback tag."""

    text: str = Field(..., min_length=1)
    polarity: TagPolarity = "positive"

    model_config = ConfigDict(extra="forbid", frozen=True)


class Evaluation(BaseModel):
    """One evaluator's scored submission for one candidate."""

    id: str
    candidate_id: str
    evaluator_id: str
    scores: dict[str, int] = Field(default_factory=dict)
    total: int = 0
    tags: list[Tag] = Field(default_factory=list)
    note: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(extra="forbid")
