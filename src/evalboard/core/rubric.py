"""Rubric lifecycle: default snapshot, validated replacement, persistence."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..schemas import Rubric, RubricCategory, RubricItem
from .aggregator import round1

if TYPE_CHECKING:
    from ..store import RecordStore


DEFAULT_RUBRIC = Rubric(
    categories=[
        RubricCategory(
            label="Job Fit",
            items=[
                RubricItem(key="sincerity", label="Sincerity", max_score=3),
                RubricItem(key="cooperation", label="Cooperation", max_score=3),
                RubricItem(key="planning", label="Planning", max_score=3),
            ],
        ),
        RubricCategory(
            label="Communication",
            items=[
                RubricItem(key="expression", label="Expression", max_score=3),
                RubricItem(key="commonsense", label="Common sense", max_score=3),
            ],
        ),
        RubricCategory(
            label="Character",
            items=[
                RubricItem(key="proactivity", label="Proactivity", max_score=3),
                RubricItem(key="personality", label="Personality", max_score=3),
            ],
        ),
        RubricCategory(
            label="Content",
            items=[
                RubricItem(key="q1", label="Answer 1", max_score=5),
                RubricItem(key="q2", label="Answer 2", max_score=5),
                RubricItem(key="comprehension", label="Comprehension", max_score=5),
                RubricItem(key="logic", label="Logic", max_score=5),
                RubricItem(key="creativity", label="Creativity", max_score=5),
            ],
        ),
    ]
)


def total_maximum(rubric: Rubric) -> int:
    """Sum of all item maxima."""
    return sum(item.max_score for item in rubric.iter_items())


def item_maximum(rubric: Rubric, key: str) -> int | None:
    item = rubric.get_item(key)
    return item.max_score if item else None


def validate_rubric(rubric: Rubric) -> list[str]:
    """Return structural problems with ``rubric``; empty when valid."""
    errors: list[str] = []
    keys = rubric.keys()
    if not keys:
        errors.append("rubric must contain at least one item")

    for item in rubric.iter_items():
        if item.max_score <= 0:
            errors.append(f"item {item.key!r}: max_score must be a positive integer")

    duplicates = sorted(key for key, count in Counter(keys).items() if count > 1)
    for key in duplicates:
        errors.append(f"duplicate field key {key!r}")
    return errors


@dataclass(slots=True)
class CategoryScore:
    """Per-category subtotal of an evaluator's scores."""

    label: str
    awarded: int
    maximum: int
    percent: float


def category_breakdown(scores: Mapping[str, int], rubric: Rubric) -> list[CategoryScore]:
    """Subtotal ``scores`` per rubric category; keys absent from the rubric are ignored."""
    breakdown: list[CategoryScore] = []
    for category in rubric.categories:
        awarded = sum(int(scores.get(item.key, 0)) for item in category.items)
        maximum = sum(item.max_score for item in category.items)
        percent = round1(awarded / maximum * 100) if maximum > 0 else 0.0
        breakdown.append(
            CategoryScore(label=category.label, awarded=awarded, maximum=maximum, percent=percent)
        )
    return breakdown


@dataclass(slots=True)
class RubricChange:
    """Outcome of a rubric replacement."""

    rubric: Rubric
    error: ValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RubricModel:
    """Holds the active rubric and persists replacements as a named setting."""

    def __init__(
        self,
        store: "RecordStore",
        *,
        setting_key: str = "rubric",
        default: Rubric | None = None,
    ) -> None:
        self._store = store
        self._setting_key = setting_key
        if default is not None:
            problems = validate_rubric(default)
            if problems:
                raise ValidationError("Invalid default rubric", errors=problems)
        self._default = default or DEFAULT_RUBRIC
        self._current: Rubric | None = None
        self._logger = structlog.get_logger(__name__)

    @property
    def current(self) -> Rubric:
        if self._current is None:
            return self.load()
        return self._current

    def get_current_rubric(self) -> Rubric:
        return self.current

    def load(self) -> Rubric:
        """(Re)read the persisted rubric, falling back to the default snapshot."""
        raw = self._store.get_setting(self._setting_key)
        rubric = self._default
        if raw is not None:
            try:
                candidate = Rubric.model_validate(raw)
            except PydanticValidationError as exc:
                self._logger.warning("rubric.invalid_setting", key=self._setting_key, error=str(exc))
            else:
                problems = validate_rubric(candidate)
                if problems:
                    self._logger.warning("rubric.invalid_setting", key=self._setting_key, errors=problems)
                else:
                    rubric = candidate
        self._current = rubric
        return rubric

    def replace(self, new_rubric: Rubric | Mapping[str, Any]) -> RubricChange:
        """Validate and swap in ``new_rubric``.

        Validation problems are returned on the change without touching the
        active rubric. A store failure propagates as ``StoreError``, also
        leaving the active rubric in place.
        """
        current = self.current
        if isinstance(new_rubric, Rubric):
            rubric = new_rubric
        else:
            try:
                rubric = Rubric.model_validate(new_rubric)
            except PydanticValidationError as exc:
                messages = [
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in exc.errors()
                ]
                return RubricChange(rubric=current, error=ValidationError("Invalid rubric", errors=messages))

        problems = validate_rubric(rubric)
        if problems:
            self._logger.info("rubric.rejected", errors=problems)
            return RubricChange(rubric=current, error=ValidationError("Invalid rubric", errors=problems))

        self._store.upsert_setting(self._setting_key, rubric.model_dump(mode="json"))
        self._current = rubric
        self._logger.info(
            "rubric.replaced",
            items=len(rubric.keys()),
            total_maximum=total_maximum(rubric),
        )
        return RubricChange(rubric=rubric)
