#!/usr/bin/env python3
"""
Tests for answer store implementations.

Both stores must follow the same contract: empty results for unknown
sessions, upsert by (session, variant, question id), variants kept apart.
"""

import json

import pytest

from budgetflow.core.errors import StoreFailure
from budgetflow.core.models import FlowVariant
from budgetflow.survey.datastore import InMemoryAnswerStore, JsonAnswerStore, load_all_answers


@pytest.fixture(params=["memory", "json"])
def any_store(request, temp_dir):
    if request.param == "memory":
        return InMemoryAnswerStore()
    return JsonAnswerStore(temp_dir / "answers")


@pytest.mark.survey
class TestAnswerStoreContract:
    def test_unknown_session_is_empty(self, any_store):
        assert any_store.load_answers("nobody", FlowVariant.EXPENSE) == []

    def test_upsert_replaces_existing_answer(self, any_store):
        any_store.upsert_answer("s1", FlowVariant.EXPENSE, "food.dining", "C. Food > Dining out", 200, 200.0)
        any_store.upsert_answer("s1", FlowVariant.EXPENSE, "food.dining", "C. Food > Dining out", 150, 150.0)

        answers = any_store.load_answers("s1", FlowVariant.EXPENSE)

        assert len(answers) == 1
        assert answers[0].value == 150
        assert answers[0].normalized_monthly_value == 150.0
        assert answers[0].category == "C. Food > Dining out"

    def test_identical_upsert_is_idempotent(self, any_store):
        for _ in range(2):
            any_store.upsert_answer("s1", FlowVariant.EXPENSE, "housing.status", None, "Rent", None)

        assert len(any_store.load_answers("s1", FlowVariant.EXPENSE)) == 1

    def test_variants_and_sessions_are_separate(self, any_store):
        any_store.upsert_answer("s1", FlowVariant.EXPENSE, "q", None, 1, None)
        any_store.upsert_answer("s1", FlowVariant.INCOME, "q", None, 2, None)
        any_store.upsert_answer("s2", FlowVariant.EXPENSE, "q", None, 3, None)

        assert [a.value for a in any_store.load_answers("s1", FlowVariant.EXPENSE)] == [1]
        assert [a.value for a in any_store.load_answers("s1", FlowVariant.INCOME)] == [2]
        assert len(load_all_answers(any_store, "s1")) == 2

    def test_structured_values_round_trip(self, any_store):
        table = {"Electric": 80, "Water": 35.5}
        any_store.upsert_answer("s1", FlowVariant.EXPENSE, "utilities.amounts", None, table, 115.5)
        any_store.upsert_answer("s1", FlowVariant.EXPENSE, "utilities.which", None, ["Electric", "Water"], None)

        answers = {a.question_id: a for a in any_store.load_answers("s1", FlowVariant.EXPENSE)}

        assert answers["utilities.amounts"].value == table
        assert answers["utilities.which"].value == ["Electric", "Water"]


@pytest.mark.survey
class TestJsonAnswerStore:
    """Test the file-backed store specifics."""

    def test_writes_one_file_per_session(self, temp_dir):
        store = JsonAnswerStore(temp_dir)
        store.upsert_answer("household", FlowVariant.EXPENSE, "food.dining", None, 100, 100.0)

        records = json.loads((temp_dir / "household.json").read_text())

        assert records[0]["question_id"] == "food.dining"
        assert records[0]["flow_variant"] == "expense"
        assert records[0]["raw_value"] == 100
        assert "updated_at" in records[0]

    def test_reanswered_question_keeps_position(self, temp_dir):
        store = JsonAnswerStore(temp_dir)
        for question_id in ("a", "b", "c"):
            store.upsert_answer("s1", FlowVariant.EXPENSE, question_id, None, 1, None)
        store.upsert_answer("s1", FlowVariant.EXPENSE, "a", None, 2, None)

        answers = store.load_answers("s1", FlowVariant.EXPENSE)

        assert [a.question_id for a in answers] == ["a", "b", "c"]
        assert answers[0].value == 2

    def test_corrupt_file_raises_store_failure(self, temp_dir):
        (temp_dir / "s1.json").write_text("{not json")
        store = JsonAnswerStore(temp_dir)

        with pytest.raises(StoreFailure):
            store.load_answers("s1", FlowVariant.EXPENSE)

        with pytest.raises(StoreFailure):
            store.upsert_answer("s1", FlowVariant.EXPENSE, "q", None, 1, None)

    def test_non_list_file_raises_store_failure(self, temp_dir):
        (temp_dir / "s1.json").write_text('{"answers": []}')

        with pytest.raises(StoreFailure):
            JsonAnswerStore(temp_dir).load_answers("s1", FlowVariant.EXPENSE)

    def test_unserializable_value_raises_store_failure(self, temp_dir):
        store = JsonAnswerStore(temp_dir)

        with pytest.raises(StoreFailure):
            store.upsert_answer("s1", FlowVariant.EXPENSE, "q", None, object(), None)

        assert store.load_answers("s1", FlowVariant.EXPENSE) == []

    @pytest.mark.parametrize("session_id", ["", "../escape", ".hidden"])
    def test_invalid_session_ids(self, temp_dir, session_id):
        with pytest.raises(StoreFailure):
            JsonAnswerStore(temp_dir).load_answers(session_id, FlowVariant.EXPENSE)

    def test_list_sessions_and_summary(self, temp_dir):
        store = JsonAnswerStore(temp_dir)
        assert store.list_sessions() == []

        store.upsert_answer("beta", FlowVariant.EXPENSE, "q", None, 1, None)
        store.upsert_answer("alpha", FlowVariant.INCOME, "q", None, 1, None)
        store.upsert_answer("alpha", FlowVariant.EXPENSE, "q", None, 1, None)

        assert store.list_sessions() == ["alpha", "beta"]
        assert store.summary_text("alpha") == "Session alpha: 1 income, 1 expense answers"
        assert store.last_modified("alpha") is not None
        assert store.last_modified("missing") is None
        assert "No answers" in store.summary_text("missing")
