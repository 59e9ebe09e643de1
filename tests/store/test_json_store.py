from __future__ import annotations

import json

import pytest

from evalboard.errors import StoreError
from evalboard.schemas import Tag
from evalboard.store import JsonFileRecordStore


def test_records_survive_reload(tmp_path):
    path = tmp_path / "records.json"
    store = JsonFileRecordStore(path)
    candidate = store.create_candidate("김민지", {"major": "경영학과"})
    store.upsert_evaluation(candidate.id, "a", {"logic": 4}, 4, [Tag(text="논리적")], "good")
    store.upsert_setting("rubric", {"categories": []})

    reloaded = JsonFileRecordStore(path)

    assert [c.name for c in reloaded.list_candidates()] == ["김민지"]
    assert reloaded.list_candidates()[0].info.major == "경영학과"
    evaluation = reloaded.list_evaluations()[0]
    assert evaluation.tags == [Tag(text="논리적", polarity="positive")]
    assert reloaded.get_setting("rubric") == {"categories": []}


def test_document_layout(tmp_path):
    path = tmp_path / "records.json"
    store = JsonFileRecordStore(path)
    candidate = store.create_candidate("Kim", {})
    store.upsert_evaluation(candidate.id, "a", {}, 0, [], "")

    document = json.loads(path.read_text(encoding="utf-8"))

    assert document["version"] == 1
    assert "evaluations" not in document["candidates"][0]
    assert document["evaluations"][0]["candidate_id"] == candidate.id


def test_missing_file_starts_empty(tmp_path):
    store = JsonFileRecordStore(tmp_path / "absent.json")

    assert store.list_candidates() == []
    assert not (tmp_path / "absent.json").exists()


@pytest.mark.parametrize(
    "content",
    ["{not json", "[1, 2]", '{"candidates": [{"name": "no id"}]}'],
)
def test_corrupted_file_raises_store_error(tmp_path, content):
    path = tmp_path / "records.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StoreError):
        JsonFileRecordStore(path)


def test_write_failure_keeps_previous_state(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = JsonFileRecordStore(blocker / "records.json")

    with pytest.raises(StoreError):
        store.create_candidate("Kim", {})

    assert store.list_candidates() == []


def test_stores_sharing_a_file_keep_each_others_writes(tmp_path):
    path = tmp_path / "records.json"
    seed = JsonFileRecordStore(path)
    candidate = seed.create_candidate("Kim", {})
    store_a = JsonFileRecordStore(path)
    store_b = JsonFileRecordStore(path)

    store_b.upsert_evaluation(candidate.id, "evaluator-b", {"logic": 2}, 2, [], "")
    store_a.upsert_evaluation(candidate.id, "evaluator-a", {"logic": 4}, 4, [], "")

    persisted = JsonFileRecordStore(path).list_evaluations()
    assert sorted(evaluation.evaluator_id for evaluation in persisted) == ["evaluator-a", "evaluator-b"]
    assert len(store_b.list_evaluations()) == 2


def test_upsert_from_a_second_store_replaces_the_same_pair(tmp_path):
    path = tmp_path / "records.json"
    store_a = JsonFileRecordStore(path)
    candidate = store_a.create_candidate("Kim", {})
    first = store_a.upsert_evaluation(candidate.id, "evaluator-a", {}, 1, [], "")

    second = JsonFileRecordStore(path).upsert_evaluation(candidate.id, "evaluator-a", {}, 3, [], "")

    assert second.id == first.id
    assert [evaluation.total for evaluation in store_a.list_evaluations()] == [3]
