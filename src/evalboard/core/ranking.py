"""Leaderboard projection over candidates and evaluations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..schemas import Candidate, Evaluation, Rubric
from .aggregator import AggregateScore, ScoreAggregator
from .rubric import total_maximum


@dataclass(slots=True)
class RankedCandidate:
    """Leaderboard row."""

    rank: int
    candidate: Candidate
    aggregate: AggregateScore
    percentage: float


@dataclass(slots=True)
class Leaderboard:
    """Ranked candidates plus the rubric maximum they were scored against."""

    entries: list[RankedCandidate] = field(default_factory=list)
    total_maximum: int = 0

    def find(self, candidate_id: str) -> RankedCandidate | None:
        for entry in self.entries:
            if entry.candidate.id == candidate_id:
                return entry
        return None

    def candidate_ids(self) -> list[str]:
        return [entry.candidate.id for entry in self.entries]


class RankingEngine:
    """Order candidates by aggregated display score."""

    def __init__(self, aggregator: ScoreAggregator | None = None) -> None:
        self._aggregator = aggregator or ScoreAggregator()

    @property
    def aggregator(self) -> ScoreAggregator:
        return self._aggregator

    def rank(
        self,
        candidates: Iterable[Candidate],
        evaluations: Iterable[Evaluation],
        rubric: Rubric,
    ) -> Leaderboard:
        """Return a freshly computed leaderboard.

        ``candidates`` are expected in fetch order; the sort is stable, so
        that order breaks ties between equal display scores. Inputs are not
        mutated: each entry holds a copy of its candidate with the matching
        evaluations attached.
        """
        by_candidate: dict[str, list[Evaluation]] = {}
        for evaluation in evaluations:
            by_candidate.setdefault(evaluation.candidate_id, []).append(evaluation)

        maximum = total_maximum(rubric)
        scored: list[tuple[Candidate, AggregateScore]] = []
        for candidate in candidates:
            attached = candidate.model_copy(update={"evaluations": list(by_candidate.get(candidate.id, []))})
            scored.append((attached, self._aggregator.aggregate(attached.evaluations)))

        scored.sort(key=lambda item: item[1].display_score, reverse=True)

        entries = [
            RankedCandidate(
                rank=position,
                candidate=candidate,
                aggregate=aggregate,
                percentage=self._aggregator.percentage(aggregate.display_score, maximum),
            )
            for position, (candidate, aggregate) in enumerate(scored, start=1)
        ]
        return Leaderboard(entries=entries, total_maximum=maximum)
