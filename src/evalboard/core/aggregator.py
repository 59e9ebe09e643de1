"""Olympic-style aggregation of evaluator totals."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..schemas import Evaluation

_ONE_DECIMAL = Decimal("0.1")


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(Decimal(str(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


@dataclass(slots=True, frozen=True)
class AggregateScore:
    """Display score for one candidate."""

    display_score: float
    trimmed: bool
    evaluation_count: int


class ScoreAggregator:
    """Reduce a candidate's evaluation totals to one comparable score.

    Below ``trim_quorum`` evaluations the display score is the plain mean.
    From the quorum on, exactly one highest and one lowest total are dropped
    before averaging, even when several evaluations share the extreme value.
    """

    DEFAULT_TRIM_QUORUM = 5

    def __init__(self, *, trim_quorum: int = DEFAULT_TRIM_QUORUM) -> None:
        if trim_quorum < 3:
            raise ValueError("trim_quorum must be at least 3")
        self._trim_quorum = trim_quorum

    @property
    def trim_quorum(self) -> int:
        return self._trim_quorum

    def aggregate(self, evaluations: Iterable[Evaluation]) -> AggregateScore:
        return self.aggregate_totals([evaluation.total for evaluation in evaluations])

    def aggregate_totals(self, totals: Iterable[float]) -> AggregateScore:
        scores = [float(total) for total in totals]
        count = len(scores)
        if count == 0:
            return AggregateScore(display_score=0.0, trimmed=False, evaluation_count=0)

        if count < self._trim_quorum:
            mean = sum(scores) / count
            return AggregateScore(display_score=round1(mean), trimmed=False, evaluation_count=count)

        trimmed_mean = (sum(scores) - max(scores) - min(scores)) / (count - 2)
        return AggregateScore(display_score=round1(trimmed_mean), trimmed=True, evaluation_count=count)

    @staticmethod
    def percentage(display_score: float, total_maximum: int) -> float:
        if total_maximum <= 0:
            return 0.0
        return round1(display_score / total_maximum * 100)
