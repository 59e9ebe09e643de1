"""In-process record store."""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Sequence

import pendulum
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, StoreError, ValidationError
from ..schemas import Candidate, CandidateInfo, Evaluation, Tag

_CANDIDATE_FIELDS = frozenset({"name", "info"})
_EVALUATION_FIELDS = frozenset({"evaluator_id", "scores", "total", "tags", "note"})


@dataclass
class StoreState:
    """Snapshot of every record held by a store, in insertion order."""

    candidates: dict[str, Candidate] = field(default_factory=dict)
    evaluations: dict[str, Evaluation] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "StoreState":
        # records are replaced, never mutated in place, so shallow copies suffice
        return StoreState(
            candidates=dict(self.candidates),
            evaluations=dict(self.evaluations),
            settings=dict(self.settings),
        )


class InMemoryRecordStore:
    """Thread-safe record store keeping everything in memory.

    Writes are applied to a copy of the state and only swapped in once
    ``_persist`` succeeds, so a failing write never leaves partial changes.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], pendulum.DateTime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._state = StoreState()
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._logger = structlog.get_logger(__name__)

    # reads

    def list_candidates(self) -> list[Candidate]:
        with self._lock:
            return [record.model_copy(deep=True) for record in reversed(self._snapshot().candidates.values())]

    def list_evaluations(self) -> list[Evaluation]:
        with self._lock:
            return [record.model_copy(deep=True) for record in reversed(self._snapshot().evaluations.values())]

    def get_setting(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._snapshot().settings.get(key))

    # writes

    def create_candidate(self, name: str, info: Mapping[str, Any]) -> Candidate:
        candidate = Candidate(
            id=self._id_factory(),
            name=name,
            info=self._coerce_info(info),
            created_at=self._now(),
        )
        with self._write() as state:
            state.candidates[candidate.id] = candidate
        self._logger.debug("store.candidate_created", candidate_id=candidate.id)
        return candidate.model_copy(deep=True)

    def update_candidate(self, candidate_id: str, fields: Mapping[str, Any]) -> Candidate:
        unknown = set(fields) - _CANDIDATE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown candidate fields: {sorted(unknown)}")
        with self._write() as state:
            current = self._require_candidate(state, candidate_id)
            update: dict[str, Any] = {}
            if "name" in fields:
                update["name"] = str(fields["name"])
            if "info" in fields:
                update["info"] = self._coerce_info(fields["info"])
            updated = current.model_copy(update=update)
            state.candidates[candidate_id] = updated
        return updated.model_copy(deep=True)

    def delete_candidate(self, candidate_id: str) -> None:
        with self._write() as state:
            self._require_candidate(state, candidate_id)
            del state.candidates[candidate_id]
            cascaded = [
                evaluation_id
                for evaluation_id, evaluation in state.evaluations.items()
                if evaluation.candidate_id == candidate_id
            ]
            for evaluation_id in cascaded:
                del state.evaluations[evaluation_id]
        self._logger.debug("store.candidate_deleted", candidate_id=candidate_id, evaluations=len(cascaded))

    def upsert_evaluation(
        self,
        candidate_id: str,
        evaluator_id: str,
        scores: Mapping[str, int],
        total: int,
        tags: Sequence[Tag],
        note: str,
    ) -> Evaluation:
        now = self._now()
        with self._write() as state:
            self._require_candidate(state, candidate_id)
            existing = self._find_evaluation(state, candidate_id, evaluator_id)
            payload = {
                "candidate_id": candidate_id,
                "evaluator_id": evaluator_id,
                "scores": dict(scores),
                "total": int(total),
                "tags": [Tag.model_validate(tag) for tag in tags],
                "note": note or "",
                "updated_at": now,
            }
            if existing is None:
                evaluation = Evaluation(id=self._id_factory(), created_at=now, **payload)
            else:
                evaluation = Evaluation(id=existing.id, created_at=existing.created_at, **payload)
            state.evaluations[evaluation.id] = evaluation
        return evaluation.model_copy(deep=True)

    def delete_evaluation(self, evaluation_id: str) -> None:
        with self._write() as state:
            if evaluation_id not in state.evaluations:
                raise NotFoundError("evaluation", evaluation_id)
            del state.evaluations[evaluation_id]

    def update_evaluation(self, evaluation_id: str, fields: Mapping[str, Any]) -> Evaluation:
        unknown = set(fields) - _EVALUATION_FIELDS
        if unknown:
            raise ValidationError(f"Unknown evaluation fields: {sorted(unknown)}")
        with self._write() as state:
            current = state.evaluations.get(evaluation_id)
            if current is None:
                raise NotFoundError("evaluation", evaluation_id)
            evaluator_id = fields.get("evaluator_id", current.evaluator_id)
            clash = self._find_evaluation(state, current.candidate_id, evaluator_id)
            if clash is not None and clash.id != evaluation_id:
                raise StoreError(
                    f"Evaluator {evaluator_id!r} already evaluated candidate {current.candidate_id!r}"
                )
            data = current.model_dump(mode="python")
            data.update(fields)
            data["updated_at"] = self._now()
            try:
                updated = Evaluation.model_validate(data)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid evaluation update: {exc}") from exc
            state.evaluations[evaluation_id] = updated
        return updated.model_copy(deep=True)

    def upsert_setting(self, key: str, value: Any) -> None:
        with self._write() as state:
            state.settings[key] = copy.deepcopy(value)

    # internals

    @contextmanager
    def _write(self) -> Iterator[StoreState]:
        with self._lock, self._exclusive():
            draft = self._state.copy()
            yield draft
            self._persist(draft)
            self._state = draft

    def _snapshot(self) -> StoreState:
        """Latest committed state; callers hold ``self._lock``."""
        return self._state

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold off other writers sharing the backend and bring ``_state`` up to date."""
        yield

    def _persist(self, state: StoreState) -> None:
        """Durably record ``state``; raise ``StoreError`` to abort the write."""

    def _now(self) -> str:
        return self._clock().to_iso8601_string()

    @staticmethod
    def _coerce_info(info: Mapping[str, Any] | CandidateInfo | None) -> CandidateInfo:
        if isinstance(info, CandidateInfo):
            return info.model_copy(deep=True)
        try:
            return CandidateInfo.model_validate(dict(info or {}))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid candidate info: {exc}") from exc

    @staticmethod
    def _require_candidate(state: StoreState, candidate_id: str) -> Candidate:
        try:
            return state.candidates[candidate_id]
        except KeyError as exc:
            raise NotFoundError("candidate", candidate_id) from exc

    @staticmethod
    def _find_evaluation(state: StoreState, candidate_id: str, evaluator_id: str) -> Evaluation | None:
        for evaluation in state.evaluations.values():
            if evaluation.candidate_id == candidate_id and evaluation.evaluator_id == evaluator_id:
                return evaluation
        return None
