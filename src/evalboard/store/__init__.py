"""Record store contract and implementations."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..schemas import Candidate, Evaluation, Tag
from .json_file import JsonFileRecordStore
from .memory import InMemoryRecordStore


@runtime_checkable
class RecordStore(Protocol):
    """Persistence contract the dashboard depends on.

    Evaluations are keyed uniquely on ``(candidate_id, evaluator_id)``; an
    upsert for an existing pair replaces that evaluation and never touches
    another evaluator's record. Every write is all-or-nothing.
    """

    def list_candidates(self) -> list[Candidate]:
        """Return all candidates, newest first, without evaluations attached."""

    def list_evaluations(self) -> list[Evaluation]:
        """Return all evaluations, newest first."""

    def create_candidate(self, name: str, info: Mapping[str, Any]) -> Candidate:
        """Persist a candidate and assign its durable identity."""

    def update_candidate(self, candidate_id: str, fields: Mapping[str, Any]) -> Candidate:
        """Update ``name`` and/or ``info`` of a candidate."""

    def delete_candidate(self, candidate_id: str) -> None:
        """Delete a candidate together with all of its evaluations."""

    def upsert_evaluation(
        self,
        candidate_id: str,
        evaluator_id: str,
        scores: Mapping[str, int],
        total: int,
        tags: Sequence[Tag],
        note: str,
    ) -> Evaluation:
        """Insert or replace the evaluation for ``(candidate_id, evaluator_id)``."""

    def delete_evaluation(self, evaluation_id: str) -> None:
        """Delete a single evaluation."""

    def update_evaluation(self, evaluation_id: str, fields: Mapping[str, Any]) -> Evaluation:
        """Update fields of a single evaluation."""

    def get_setting(self, key: str) -> Any:
        """Return a setting value or ``None``."""

    def upsert_setting(self, key: str, value: Any) -> None:
        """Insert or replace a setting value."""


__all__ = ["RecordStore", "InMemoryRecordStore", "JsonFileRecordStore"]
