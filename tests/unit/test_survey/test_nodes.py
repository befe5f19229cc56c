#!/usr/bin/env python3
"""Tests for question node types and branch resolution."""

import pytest

from budgetflow.core.errors import FlowDefinitionError, InvalidAnswerShape
from budgetflow.survey.nodes import (
    CurrencyNode,
    MultiSelectNode,
    NumberNode,
    SingleSelectNode,
    SummaryNode,
    TableNode,
    YesNoNode,
    node_from_dict,
)


@pytest.mark.survey
class TestYesNoNode:
    """Test yes/no branching."""

    def test_routes_to_yes_and_no_branches(self):
        node = YesNoNode(id="q", prompt="?", if_yes="yes_q", if_no="no_q", next="fallback")

        assert node.resolve_next(True) == "yes_q"
        assert node.resolve_next(False) == "no_q"

    def test_falls_back_to_next_when_branch_missing(self):
        node = YesNoNode(id="q", prompt="?", if_yes="yes_q", next="fallback")

        assert node.resolve_next(True) == "yes_q"
        assert node.resolve_next(False) == "fallback"

    def test_terminates_without_branch_or_next(self):
        node = YesNoNode(id="q", prompt="?", if_yes="yes_q")

        assert node.resolve_next(False) is None

    def test_rejects_non_boolean(self):
        node = YesNoNode(id="q", prompt="?")

        with pytest.raises(InvalidAnswerShape) as exc_info:
            node.validate_value("yes")

        assert exc_info.value.question_id == "q"
        node.validate_value(False)


@pytest.mark.survey
class TestSingleSelectNode:
    """Test single-select branching through the explicit branches mapping."""

    def test_each_branched_option_routes_to_its_target(self):
        node = SingleSelectNode(
            id="q",
            prompt="?",
            options=("Rent", "Own", "Other"),
            branches={"Rent": "rent_q", "Own": "own_q"},
            next="fallback",
        )

        assert node.resolve_next("Rent") == "rent_q"
        assert node.resolve_next("Own") == "own_q"
        assert node.resolve_next("Other") == "fallback"

    def test_unknown_option_is_rejected(self):
        node = SingleSelectNode(id="q", prompt="?", options=("A", "B"))

        assert node.check_value("C") is not None
        assert node.check_value(1) is not None
        assert node.check_value("A") is None

    def test_branches_are_read_only(self):
        node = SingleSelectNode(id="q", prompt="?", options=("A",), branches={"A": "x"})

        with pytest.raises(TypeError):
            node.branches["A"] = "y"


@pytest.mark.survey
class TestMultiSelectNode:
    """Test multi-select follow-up resolution."""

    @pytest.fixture
    def node(self):
        return MultiSelectNode(
            id="q",
            prompt="?",
            options=("A", "B", "C", "None"),
            multi_branch={"A": "qA", "B": "qB", "C": "qC", "None": None},
            next="after",
        )

    def test_follow_ups_keep_selection_order(self, node):
        assert node.follow_ups(["C", "A"]) == ["qC", "qA"]
        assert node.follow_ups(["A", "B", "C"]) == ["qA", "qB", "qC"]

    def test_null_targets_are_skipped(self, node):
        assert node.follow_ups(["None"]) == []
        assert node.resolve_next(["None"]) == "after"

    def test_resolve_next_is_first_follow_up(self, node):
        assert node.resolve_next(["B", "A"]) == "qB"

    def test_validation(self, node):
        assert node.check_value([]) is not None
        assert node.check_value("A") is not None
        assert node.check_value(["A", "A"]) is not None
        assert node.check_value(["Z"]) is not None
        assert node.check_value(["A", "None"]) is None


@pytest.mark.survey
class TestNumericNodes:
    """Test currency and number validation."""

    def test_currency_rejects_negative_and_bool(self):
        node = CurrencyNode(id="q", prompt="?")

        assert node.check_value(-1) is not None
        assert node.check_value(True) is not None
        assert node.check_value("12") is not None
        assert node.check_value(12.5) is None

    def test_currency_default_normalized_value(self):
        node = CurrencyNode(id="q", prompt="?")

        assert node.default_normalized_value(1200) == 1200.0

    def test_number_bounds(self):
        node = NumberNode(id="q", prompt="?", min=0, max=60)

        assert node.check_value(61) is not None
        assert node.check_value(-1) is not None
        assert node.check_value(float("nan")) is not None
        assert node.check_value(25) is None
        assert node.default_normalized_value(25) is None


@pytest.mark.survey
class TestTableNode:
    """Test table answers."""

    def test_static_rows_limit_keys(self):
        node = TableNode(id="q", prompt="?", rows=("Fuel", "Insurance"))

        assert node.check_value({"Fuel": 100}) is None
        assert node.check_value({"Parking": 20}) is not None

    def test_amounts_must_be_non_negative_numbers(self):
        node = TableNode(id="q", prompt="?", rows_from="which")

        assert node.check_value({"Electric": -5}) is not None
        assert node.check_value({"Electric": "5"}) is not None
        assert node.check_value([5]) is not None

    def test_normalized_value_is_row_sum(self):
        node = TableNode(id="q", prompt="?", rows_from="which")

        assert node.default_normalized_value({"Electric": 80, "Water": 40.5}) == 120.5


@pytest.mark.survey
class TestSummaryNode:
    def test_summary_never_advances_and_takes_no_answer(self):
        node = SummaryNode(id="done", prompt="Done")

        assert node.resolve_next(None) is None
        assert node.is_terminal
        with pytest.raises(InvalidAnswerShape):
            node.validate_value(True)


@pytest.mark.survey
class TestNodeFromDict:
    """Test building nodes from flow definition entries."""

    def test_if_option_keys_fold_into_branches(self):
        node = node_from_dict(
            "housing",
            {
                "type": "single_select",
                "question": "Housing?",
                "options": ["Rent", "Own"],
                "if_Rent": "rent",
                "if_Own": "own",
                "next": "later",
            },
        )

        assert isinstance(node, SingleSelectNode)
        assert dict(node.branches) == {"Rent": "rent", "Own": "own"}
        assert node.prompt == "Housing?"

    def test_presentation_keys(self):
        node = node_from_dict(
            "q",
            {"type": "yes_no", "prompt": "Car?", "questionNumber": 5, "categoryLabel": "Transportation"},
        )

        assert node.display_number == "5"
        assert node.get_display_title() == "Transportation - Question #5: Car?"

    def test_unknown_type_raises(self):
        with pytest.raises(FlowDefinitionError):
            node_from_dict("q", {"type": "slider", "prompt": "?"})

    def test_missing_prompt_raises(self):
        with pytest.raises(FlowDefinitionError):
            node_from_dict("q", {"type": "yes_no"})

    def test_mismatched_id_raises(self):
        with pytest.raises(FlowDefinitionError):
            node_from_dict("q", {"id": "other", "type": "yes_no", "prompt": "?"})
