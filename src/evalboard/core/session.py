"""Per-evaluator working state for scoring one candidate at a time."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import pendulum
import structlog

from ..errors import EvalboardError, SaveInProgressError, StoreError, ValidationError
from ..schemas import DRAFT_ID_PREFIX, Candidate, CandidateInfo, Evaluation, Tag, TagPolarity
from .commands import OptimisticCommand, run_optimistic
from .rubric import item_maximum

if TYPE_CHECKING:
    from ..dashboard import Dashboard


class SessionState(str, Enum):
    NO_CANDIDATE = "no_candidate"
    CANDIDATE_LOADED = "candidate_loaded"
    SAVING = "saving"
    SAVE_FAILED = "save_failed"


@dataclass
class Draft:
    """Unsaved scores, tags and note for the selected candidate."""

    candidate: Candidate
    scores: dict[str, int] = field(default_factory=dict)
    tags: list[Tag] = field(default_factory=list)
    note: str = ""

    @property
    def total(self) -> int:
        return sum(self.scores.values())


class EvaluationSession:
    """State machine for one evaluator's scoring workflow.

    Sessions never share draft state; the record store is the only shared
    resource. A session refuses to start a second save while one is in flight.
    """

    def __init__(
        self,
        dashboard: "Dashboard",
        evaluator_id: str | None = None,
        *,
        clock: Callable[[], pendulum.DateTime] | None = None,
    ) -> None:
        self._dashboard = dashboard
        self._evaluator_id = evaluator_id
        self._clock = clock or pendulum.now
        self._state = SessionState.NO_CANDIDATE
        self._draft: Draft | None = None
        self._error: str | None = None
        self._save_lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def evaluator_id(self) -> str | None:
        return self._evaluator_id

    @property
    def draft(self) -> Draft | None:
        return self._draft

    @property
    def candidate(self) -> Candidate | None:
        return self._draft.candidate if self._draft else None

    @property
    def draft_total(self) -> int:
        return self._draft.total if self._draft else 0

    def select_candidate(self, candidate_id: str, evaluator_id: str | None = None) -> Draft:
        """Load the evaluator's stored evaluation for a candidate into the draft.

        Re-selecting the same candidate discards unsaved edits. Stored scores
        are re-derived against the current rubric: keys the rubric no longer
        defines are left out of the draft and values above a lowered maximum
        are clamped.
        """
        if evaluator_id:
            self._evaluator_id = evaluator_id
        evaluator = self._require_evaluator()
        candidate = self._dashboard.find_candidate(candidate_id)
        existing = candidate.evaluation_by(evaluator)

        scores = self._zero_scores()
        tags: list[Tag] = []
        note = ""
        if existing is not None:
            for key, value in existing.scores.items():
                maximum = item_maximum(self._dashboard.rubric, key)
                if maximum is not None:
                    scores[key] = _clamp(value, maximum)
            tags = list(existing.tags)
            note = existing.note

        self._draft = Draft(candidate=candidate.model_copy(deep=True), scores=scores, tags=tags, note=note)
        self._enter(SessionState.CANDIDATE_LOADED)
        self._logger.debug(
            "session.candidate_selected",
            candidate_id=candidate_id,
            evaluator_id=evaluator,
            existing=existing is not None,
        )
        return self._draft

    def start_new_candidate_draft(
        self,
        name: str = "",
        info: CandidateInfo | dict[str, Any] | None = None,
    ) -> Draft:
        """Begin scoring an applicant that is not yet stored."""
        temp_id = f"{DRAFT_ID_PREFIX}{int(self._clock().timestamp() * 1000)}"
        candidate = Candidate(
            id=temp_id,
            name=name,
            info=info if isinstance(info, CandidateInfo) else CandidateInfo.model_validate(info or {}),
        )
        self._draft = Draft(candidate=candidate, scores=self._zero_scores())
        self._enter(SessionState.CANDIDATE_LOADED)
        return self._draft

    def reset(self) -> None:
        self._draft = None
        self._enter(SessionState.NO_CANDIDATE)

    def set_score(self, key: str, value: float) -> int | None:
        """Clamp ``value`` into the item's range and store it.

        Returns the stored value, or ``None`` when nothing is loaded or the key
        is not part of the current rubric. NaN and infinities raise
        ``ValidationError``.
        """
        if not math.isfinite(value):
            raise ValidationError(f"Score for {key!r} must be a finite number")
        draft = self._editable_draft()
        if draft is None:
            return None
        maximum = item_maximum(self._dashboard.rubric, key)
        if maximum is None:
            self._logger.info("session.unknown_field", key=key)
            return None
        draft.scores[key] = _clamp(value, maximum)
        return draft.scores[key]

    def toggle_tag(self, text: str, polarity: TagPolarity = "positive") -> bool:
        """Add the tag, or remove any tag with the same text.

        Returns ``True`` when the tag was added.
        """
        draft = self._editable_draft()
        if draft is None:
            return False
        remaining = [tag for tag in draft.tags if tag.text != text]
        if len(remaining) != len(draft.tags):
            draft.tags = remaining
            return False
        draft.tags = [*draft.tags, Tag(text=text, polarity=polarity)]
        return True

    def set_note(self, note: str) -> None:
        draft = self._editable_draft()
        if draft is not None:
            draft.note = note

    def update_info(self, field_name: str, value: str) -> Candidate | None:
        """Edit the selected candidate's name or an info field.

        Drafts change locally; stored candidates are written through and the
        local edit is undone when the store rejects it.
        """
        draft = self._editable_draft()
        if draft is None:
            return None
        previous = draft.candidate
        if field_name == "name":
            tentative = previous.model_copy(update={"name": value})
        else:
            info = CandidateInfo.model_validate({**previous.info.model_dump(), field_name: value})
            tentative = previous.model_copy(update={"info": info})

        if previous.is_draft:
            draft.candidate = tentative
            return tentative

        def apply() -> None:
            draft.candidate = tentative

        def revert() -> None:
            draft.candidate = previous

        command = OptimisticCommand(name="update_info", apply=apply, revert=revert)
        run_optimistic(
            command,
            lambda: self._dashboard.update_candidate(
                previous.id, name=tentative.name, info=tentative.info
            ),
        )
        return draft.candidate

    def save(self) -> Evaluation:
        """Persist the draft as this evaluator's evaluation of the candidate.

        A draft candidate is created first and the session adopts its durable
        id. On failure the session moves to ``SAVE_FAILED`` with the draft
        intact and the error is re-raised.
        """
        if not self._save_lock.acquire(blocking=False):
            raise SaveInProgressError("A save is already in progress")
        try:
            return self._save()
        finally:
            self._save_lock.release()

    def _save(self) -> Evaluation:
        if self._draft is None:
            raise ValidationError("Select a candidate before saving")

        self._state = SessionState.SAVING
        try:
            evaluator = self._require_evaluator()
            if not self._draft.candidate.name.strip():
                raise ValidationError("Candidate name must not be blank")
            evaluation = self._write(self._draft, evaluator)
        except EvalboardError as exc:
            self._state = SessionState.SAVE_FAILED
            self._error = str(exc)
            self._logger.warning(
                "session.save_failed",
                candidate_id=self._draft.candidate.id,
                error=str(exc),
            )
            raise

        self._enter(SessionState.CANDIDATE_LOADED)
        self._logger.info(
            "session.saved",
            candidate_id=evaluation.candidate_id,
            evaluator_id=evaluation.evaluator_id,
            total=evaluation.total,
        )
        self._dashboard.refresh_after_write()
        return evaluation

    def _write(self, draft: Draft, evaluator: str) -> Evaluation:
        store = self._dashboard.store
        candidate = draft.candidate
        created: Candidate | None = None
        if candidate.is_draft:
            created = store.create_candidate(candidate.name.strip(), candidate.info.model_dump())

        candidate_id = created.id if created else candidate.id
        try:
            evaluation = store.upsert_evaluation(
                candidate_id,
                evaluator,
                dict(draft.scores),
                draft.total,
                list(draft.tags),
                draft.note,
            )
        except EvalboardError:
            if created is not None:
                self._discard_created(created.id)
            raise

        if created is not None:
            draft.candidate = candidate.model_copy(
                update={"id": created.id, "name": created.name, "created_at": created.created_at}
            )
        return evaluation

    def _discard_created(self, candidate_id: str) -> None:
        try:
            self._dashboard.store.delete_candidate(candidate_id)
        except StoreError as exc:
            self._logger.error("session.rollback_failed", candidate_id=candidate_id, error=str(exc))

    def _editable_draft(self) -> Draft | None:
        if self._draft is None or self._state is SessionState.SAVING:
            return None
        return self._draft

    def _require_evaluator(self) -> str:
        if not self._evaluator_id or not self._evaluator_id.strip():
            raise ValidationError("Evaluator identity is not set")
        return self._evaluator_id

    def _zero_scores(self) -> dict[str, int]:
        return {key: 0 for key in self._dashboard.rubric.keys()}

    def _enter(self, state: SessionState) -> None:
        self._state = state
        self._error = None


def _clamp(value: float, maximum: int) -> int:
    return int(min(max(value, 0), maximum))
