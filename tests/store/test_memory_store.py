from __future__ import annotations

import itertools

import pendulum
import pytest

from evalboard.errors import NotFoundError, StoreError, ValidationError
from evalboard.schemas import Tag
from evalboard.store import InMemoryRecordStore, RecordStore
from evalboard.store.memory import StoreState


class FailingStore(InMemoryRecordStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False

    def _persist(self, state: StoreState) -> None:
        if self.fail_writes:
            raise StoreError("disk full")


def build_store() -> InMemoryRecordStore:
    counter = itertools.count(1)
    return InMemoryRecordStore(
        clock=lambda: pendulum.datetime(2026, 2, 17, 9, 0, 0),
        id_factory=lambda: f"id-{next(counter)}",
    )


def test_store_satisfies_protocol():
    assert isinstance(build_store(), RecordStore)


def test_lists_are_newest_first_copies():
    store = build_store()
    store.create_candidate("First", {})
    store.create_candidate("Second", {"major": "CS"})

    candidates = store.list_candidates()
    candidates[0].name = "mutated"

    assert [candidate.name for candidate in store.list_candidates()] == ["Second", "First"]
    assert store.list_candidates()[0].info.major == "CS"


def test_upsert_keeps_one_evaluation_per_pair():
    store = build_store()
    candidate = store.create_candidate("Kim", {})

    first = store.upsert_evaluation(candidate.id, "a", {"logic": 2}, 2, [], "")
    second = store.upsert_evaluation(candidate.id, "a", {"logic": 4}, 4, [Tag(text="sharp")], "better")
    store.upsert_evaluation(candidate.id, "b", {"logic": 1}, 1, [], "")

    evaluations = store.list_evaluations()
    assert len(evaluations) == 2
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert {evaluation.evaluator_id: evaluation.total for evaluation in evaluations} == {"a": 4, "b": 1}


def test_upsert_for_unknown_candidate_fails():
    with pytest.raises(NotFoundError):
        build_store().upsert_evaluation("missing", "a", {}, 0, [], "")


def test_delete_candidate_cascades():
    store = build_store()
    kept = store.create_candidate("Kept", {})
    removed = store.create_candidate("Removed", {})
    store.upsert_evaluation(kept.id, "a", {}, 0, [], "")
    store.upsert_evaluation(removed.id, "a", {}, 0, [], "")
    store.upsert_evaluation(removed.id, "b", {}, 0, [], "")

    store.delete_candidate(removed.id)

    assert [candidate.id for candidate in store.list_candidates()] == [kept.id]
    assert [evaluation.candidate_id for evaluation in store.list_evaluations()] == [kept.id]


def test_update_candidate_rejects_unknown_fields():
    store = build_store()
    candidate = store.create_candidate("Kim", {})

    with pytest.raises(ValidationError):
        store.update_candidate(candidate.id, {"salary": 1})

    updated = store.update_candidate(candidate.id, {"name": "Kim Minji", "info": {"phone": "010"}})
    assert updated.name == "Kim Minji"
    assert updated.info.phone == "010"


def test_update_evaluation_refuses_evaluator_collision():
    store = build_store()
    candidate = store.create_candidate("Kim", {})
    store.upsert_evaluation(candidate.id, "a", {}, 3, [], "")
    other = store.upsert_evaluation(candidate.id, "b", {}, 5, [], "")

    with pytest.raises(StoreError):
        store.update_evaluation(other.id, {"evaluator_id": "a"})

    moved = store.update_evaluation(other.id, {"evaluator_id": "c"})
    assert moved.evaluator_id == "c"
    assert moved.total == 5


def test_missing_records_raise_not_found():
    store = build_store()

    with pytest.raises(NotFoundError):
        store.delete_candidate("missing")
    with pytest.raises(NotFoundError):
        store.delete_evaluation("missing")
    with pytest.raises(NotFoundError):
        store.update_evaluation("missing", {"note": "x"})


def test_settings_round_trip_and_are_copied():
    store = build_store()
    value = {"categories": []}

    store.upsert_setting("rubric", value)
    value["categories"].append("mutated")

    assert store.get_setting("rubric") == {"categories": []}
    assert store.get_setting("absent") is None


def test_failed_persist_leaves_state_unchanged():
    store = FailingStore()
    candidate = store.create_candidate("Kim", {})
    store.upsert_evaluation(candidate.id, "a", {"logic": 1}, 1, [], "")
    store.fail_writes = True

    with pytest.raises(StoreError):
        store.delete_candidate(candidate.id)
    with pytest.raises(StoreError):
        store.upsert_evaluation(candidate.id, "a", {"logic": 5}, 5, [], "")

    assert len(store.list_candidates()) == 1
    assert store.list_evaluations()[0].total == 1
