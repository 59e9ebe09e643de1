"""Dashboard service: in-memory candidate list, leaderboard and admin actions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import pendulum
import structlog

from . import __version__
from .core import Leaderboard, RankedCandidate, RankingEngine, RubricModel
from .core.commands import OptimisticCommand, run_optimistic
from .core.rubric import category_breakdown
from .errors import NotFoundError, StoreError, ValidationError
from .resume import parse_resume
from .schemas import Candidate, CandidateInfo, Evaluation, Rubric
from .store import RecordStore


class OutputWriter:
    """Persist leaderboard exports."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class Dashboard:
    """Keeps the current leaderboard in sync with the record store.

    The leaderboard is always recomputed from a full fetch; admin actions that
    remove or edit local rows do so optimistically and restore the row when
    the store rejects the change.
    """

    def __init__(
        self,
        *,
        store: RecordStore,
        rubric_model: RubricModel,
        ranking_engine: RankingEngine,
        writer: OutputWriter | None = None,
    ) -> None:
        self._store = store
        self._rubric_model = rubric_model
        self._ranking = ranking_engine
        self._writer = writer or OutputWriter()
        self._leaderboard = Leaderboard()
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def rubric_model(self) -> RubricModel:
        return self._rubric_model

    @property
    def rubric(self) -> Rubric:
        return self._rubric_model.current

    @property
    def leaderboard(self) -> Leaderboard:
        return self._leaderboard

    @property
    def candidates(self) -> list[Candidate]:
        return [entry.candidate for entry in self._leaderboard.entries]

    def refresh(self) -> Leaderboard:
        """Refetch everything and rebuild the leaderboard.

        A ``StoreError`` propagates and leaves the previous leaderboard intact.
        """
        rubric = self._rubric_model.current
        candidates = self._store.list_candidates()
        evaluations = self._store.list_evaluations()
        self._leaderboard = self._ranking.rank(candidates, evaluations, rubric)
        self._logger.info(
            "leaderboard.refreshed",
            candidates=len(candidates),
            evaluations=len(evaluations),
        )
        return self._leaderboard

    def refresh_after_write(self) -> None:
        """Refresh following a write that already succeeded."""
        try:
            self.refresh()
        except StoreError as exc:
            self._logger.warning("leaderboard.refresh_failed", error=str(exc))

    def find_candidate(self, candidate_id: str) -> Candidate:
        return self._require_entry(candidate_id).candidate

    def find_evaluation(self, evaluation_id: str) -> Evaluation:
        for candidate in self.candidates:
            for evaluation in candidate.evaluations:
                if evaluation.id == evaluation_id:
                    return evaluation
        self._logger.warning("evaluation.not_found", evaluation_id=evaluation_id)
        raise NotFoundError("evaluation", evaluation_id)

    def create_candidate(self, name: str, info: CandidateInfo | Mapping[str, Any] | None = None) -> Candidate:
        if not name or not name.strip():
            raise ValidationError("Candidate name must not be blank")
        payload = info.model_dump() if isinstance(info, CandidateInfo) else dict(info or {})
        created = self._store.create_candidate(name.strip(), payload)
        self._logger.info("candidate.created", candidate_id=created.id)
        self.refresh_after_write()
        entry = self._leaderboard.find(created.id)
        return entry.candidate if entry else created

    def import_resume(self, path: str | Path) -> Candidate:
        parsed = parse_resume(path)
        return self.create_candidate(parsed.name, parsed.info)

    def update_candidate(
        self,
        candidate_id: str,
        *,
        name: str | None = None,
        info: CandidateInfo | Mapping[str, Any] | None = None,
    ) -> Candidate:
        entry = self._require_entry(candidate_id)
        current = entry.candidate
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = name
        if info is not None:
            fields["info"] = info.model_dump() if isinstance(info, CandidateInfo) else dict(info)
        if not fields:
            return current
        tentative = current.model_copy(
            update={
                "name": fields.get("name", current.name),
                "info": CandidateInfo.model_validate(fields["info"]) if "info" in fields else current.info,
            }
        )

        def apply() -> None:
            entry.candidate = tentative

        def revert() -> None:
            entry.candidate = current

        command = OptimisticCommand(name="update_candidate", apply=apply, revert=revert)
        run_optimistic(command, lambda: self._store.update_candidate(candidate_id, fields))
        self.refresh_after_write()
        return self.find_candidate(candidate_id)

    def delete_candidate(self, candidate_id: str) -> None:
        """Remove a candidate and, through the store, all of its evaluations."""
        removed = self._require_entry(candidate_id)
        entries = self._leaderboard.entries
        index = entries.index(removed)

        def apply() -> None:
            entries.pop(index)

        def revert() -> None:
            entries.insert(index, removed)

        command = OptimisticCommand(name="delete_candidate", apply=apply, revert=revert)
        run_optimistic(command, lambda: self._store.delete_candidate(candidate_id))
        self._logger.info(
            "candidate.deleted",
            candidate_id=candidate_id,
            evaluations=len(removed.candidate.evaluations),
        )
        self.refresh_after_write()

    def delete_evaluation(self, evaluation_id: str) -> None:
        evaluation = self.find_evaluation(evaluation_id)
        self._store.delete_evaluation(evaluation_id)
        self._logger.info(
            "evaluation.deleted",
            evaluation_id=evaluation_id,
            candidate_id=evaluation.candidate_id,
        )
        self.refresh_after_write()

    def reassign_evaluation(self, evaluation_id: str, evaluator_id: str) -> Evaluation | None:
        """Correct the evaluator recorded on an evaluation.

        Blank or unchanged identities are ignored and return ``None``.
        """
        evaluation = self.find_evaluation(evaluation_id)
        new_id = (evaluator_id or "").strip()
        if not new_id or new_id == evaluation.evaluator_id:
            return None
        updated = self._store.update_evaluation(evaluation_id, {"evaluator_id": new_id})
        self._logger.info(
            "evaluation.reassigned",
            evaluation_id=evaluation_id,
            previous=evaluation.evaluator_id,
            evaluator_id=new_id,
        )
        self.refresh_after_write()
        return updated

    def _require_entry(self, candidate_id: str) -> RankedCandidate:
        entry = self._leaderboard.find(candidate_id)
        if entry is None:
            self._logger.warning("candidate.not_found", candidate_id=candidate_id)
            raise NotFoundError("candidate", candidate_id)
        return entry

    def export(self, path: Path) -> dict[str, Any]:
        payload = {
            "metadata": {
                "candidate_count": len(self._leaderboard.entries),
                "total_maximum": self._leaderboard.total_maximum,
                "trim_quorum": self._ranking.aggregator.trim_quorum,
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
            },
            "results": leaderboard_payload(self._leaderboard, self.rubric),
        }
        self._writer.write(path, payload)
        return payload


def leaderboard_payload(leaderboard: Leaderboard, rubric: Rubric) -> list[dict[str, Any]]:
    """Serialize leaderboard rows for display or export."""
    rows: list[dict[str, Any]] = []
    for entry in leaderboard.entries:
        candidate = entry.candidate
        rows.append(
            {
                "rank": entry.rank,
                "candidate_id": candidate.id,
                "name": candidate.name,
                "display_score": entry.aggregate.display_score,
                "percentage": entry.percentage,
                "trimmed": entry.aggregate.trimmed,
                "evaluation_count": entry.aggregate.evaluation_count,
                "evaluations": [
                    {
                        "id": evaluation.id,
                        "evaluator_id": evaluation.evaluator_id,
                        "total": evaluation.total,
                        "scores": dict(evaluation.scores),
                        "categories": [
                            {"label": item.label, "awarded": item.awarded, "maximum": item.maximum}
                            for item in category_breakdown(evaluation.scores, rubric)
                        ],
                        "tags": [tag.model_dump() for tag in evaluation.tags],
                        "note": evaluation.note,
                    }
                    for evaluation in candidate.evaluations
                ],
            }
        )
    return rows
