from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .evaluation import Evaluation

DRAFT_ID_PREFIX = "temp_"


class CandidateInfo(BaseModel):
    """Contact and narrative fields captured for a candidate."""

    dob: str = ""
    available_12_months: str = ""
    phone: str = ""
    email: str = ""
    student_id: str = ""
    address: str = ""
    major: str = ""
    grade: str = ""
    career: str = ""
    schedule: str = ""

    model_config = ConfigDict(extra="allow")


class Candidate(BaseModel):
    """Candidate record, annotated with its evaluations when listed."""

    id: str
    name: str = ""
    info: CandidateInfo = Field(default_factory=CandidateInfo)
    created_at: str | None = None
    evaluations: list[Evaluation] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def is_draft(self) -> bool:
        return self.id.startswith(DRAFT_ID_PREFIX)

    def evaluation_by(self, evaluator_id: str) -> Evaluation | None:
        for evaluation in self.evaluations:
            if evaluation.evaluator_id == evaluator_id:
                return evaluation
        return None
