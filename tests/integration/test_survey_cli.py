#!/usr/bin/env python3
"""
Integration tests for the survey CLI.

Drives the interactive questionnaires with scripted input and checks what
ends up in the answer store.
"""

import pytest
from click.testing import CliRunner

from budgetflow.cli.main import main
from budgetflow.core.config import get_config
from budgetflow.core.models import FlowVariant
from budgetflow.survey.datastore import JsonAnswerStore

# Rent 1000, electric 90 + water 40, no car with 50 transit, groceries 400,
# dining 200, streaming 30, no debt, savings 100 emergency + 500 retirement
EXPENSE_INPUT = "\n".join(
    ["1", "1000", "1,3", "90", "40", "n", "50", "400", "200", "Streaming", "30", "n", "100", "500", "0", "0"]
) + "\n"


def stored(session_id: str, variant: FlowVariant) -> dict:
    store = JsonAnswerStore(get_config().survey.answers_dir)
    return {answer.question_id: answer for answer in store.load_answers(session_id, variant)}


@pytest.mark.integration
@pytest.mark.survey
class TestTakeQuestionnaire:
    def setup_method(self):
        self.runner = CliRunner()

    def test_income_flow_to_completion(self):
        result = self.runner.invoke(main, ["survey", "take", "income", "--session", "home"], input="y\ny\n25\n")

        assert result.exit_code == 0, result.output
        assert "Income questionnaire complete" in result.output
        answers = stored("home", FlowVariant.INCOME)
        assert answers["income.has_income"].value is True
        assert answers["income.tax_rate"].value == 25

    def test_out_of_range_answer_is_asked_again(self):
        result = self.runner.invoke(
            main, ["survey", "take", "income", "--session", "home"], input="y\ny\n75\n25\n"
        )

        assert result.exit_code == 0, result.output
        assert "❌" in result.output
        assert stored("home", FlowVariant.INCOME)["income.tax_rate"].value == 25

    def test_unparseable_answer_is_asked_again(self):
        result = self.runner.invoke(
            main, ["survey", "take", "income", "--session", "home"], input="maybe\nn\n"
        )

        assert result.exit_code == 0, result.output
        assert "Please answer y or n" in result.output
        assert stored("home", FlowVariant.INCOME)["income.has_income"].value is False

    def test_back_returns_to_previous_question(self):
        result = self.runner.invoke(
            main, ["survey", "take", "income", "--session", "home"], input="y\nback\ny\nn\n"
        )

        assert result.exit_code == 0, result.output
        assert result.output.count("Question #1") == 2
        assert stored("home", FlowVariant.INCOME)["income.tax_applicable"].value is False

    def test_back_at_first_question(self):
        result = self.runner.invoke(main, ["survey", "take", "income", "--session", "home"], input="back\nn\n")

        assert result.exit_code == 0, result.output
        assert "Already at the first question." in result.output

    def test_quit_then_resume(self):
        first = self.runner.invoke(main, ["survey", "take", "income", "--session", "home"], input="y\nquit\n")

        assert first.exit_code == 0, first.output
        assert "Progress saved" in first.output
        assert "income.tax_applicable" not in stored("home", FlowVariant.INCOME)

        second = self.runner.invoke(main, ["survey", "take", "income", "--session", "home"], input="y\n30\n")

        assert second.exit_code == 0, second.output
        assert "Question #2" in second.output
        assert "Question #1" not in second.output
        assert stored("home", FlowVariant.INCOME)["income.tax_rate"].value == 30

    def test_expense_flow_with_tables_and_follow_ups(self):
        result = self.runner.invoke(main, ["survey", "take", "expense", "--session", "home"], input=EXPENSE_INPUT)

        assert result.exit_code == 0, result.output
        assert "Expense questionnaire complete" in result.output
        answers = stored("home", FlowVariant.EXPENSE)
        assert answers["utilities.which"].value == ["Electric", "Water"]
        assert answers["utilities.amounts"].value == {"Electric": 90, "Water": 40}
        assert answers["utilities.amounts"].normalized_monthly_value == 130
        assert answers["personal.streaming"].category == "D. Personal & Lifestyle > Streaming"
        assert "transport.car_costs" not in answers

    def test_edit_specific_question(self):
        self.runner.invoke(main, ["survey", "take", "expense", "--session", "home"], input=EXPENSE_INPUT)

        result = self.runner.invoke(
            main,
            ["survey", "take", "expense", "--session", "home", "--question", "food.dining"],
            input="150\nquit\n",
        )

        assert result.exit_code == 0, result.output
        assert "Current answer: $200.00" in result.output
        assert stored("home", FlowVariant.EXPENSE)["food.dining"].value == 150

    def test_unknown_question_offers_restart(self):
        result = self.runner.invoke(
            main,
            ["survey", "take", "expense", "--session", "home", "--question", "housing.boat"],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "no longer exists" in result.output
        assert stored("home", FlowVariant.EXPENSE) == {}

    def test_flow_file_variant_must_match(self, temp_dir):
        flow_file = temp_dir / "flow.yaml"
        flow_file.write_text(
            "variant: income\nstart: q\nquestions:\n  q:\n    type: summary\n    prompt: Done\n"
        )

        result = self.runner.invoke(
            main, ["survey", "take", "expense", "--session", "home", "--flow-file", str(flow_file)]
        )

        assert result.exit_code == 1
        assert "defines the income flow" in result.output


@pytest.mark.integration
@pytest.mark.survey
class TestSurveyCommands:
    def setup_method(self):
        self.runner = CliRunner()

    def test_add_income(self):
        result = self.runner.invoke(
            main,
            ["survey", "add-income", "--session", "home", "--type", "1099", "--amount", "1200", "--frequency", "weekly"],
        )

        assert result.exit_code == 0, result.output
        assert "Saved income_stream_1: $5,200.00/month" in result.output
        answer = stored("home", FlowVariant.INCOME)["income_stream_1"]
        assert answer.normalized_monthly_value == 5200
        assert answer.category == "Income: 1099"

    def test_add_income_appends_streams(self):
        self.runner.invoke(main, ["survey", "add-income", "--session", "home", "--type", "W2", "--amount", "6000"])
        result = self.runner.invoke(
            main, ["survey", "add-income", "--session", "home", "--type", "Rental", "--amount", "900"]
        )

        assert "income_stream_2" in result.output

    def test_add_income_rejects_negative_amount(self):
        result = self.runner.invoke(
            main, ["survey", "add-income", "--session", "home", "--type", "W2", "--amount", "-5"]
        )

        assert result.exit_code == 1
        assert stored("home", FlowVariant.INCOME) == {}

    def test_set_tax(self):
        result = self.runner.invoke(main, ["survey", "set-tax", "--session", "home", "--rate", "22.5"])

        assert result.exit_code == 0, result.output
        assert "Tax rate set to 22.5%" in result.output
        answers = stored("home", FlowVariant.INCOME)
        assert answers["income.tax_applicable"].value is True
        assert answers["income.tax_rate"].value == 22.5

    def test_set_tax_not_applicable(self):
        result = self.runner.invoke(main, ["survey", "set-tax", "--session", "home", "--no-tax"])

        assert result.exit_code == 0, result.output
        assert stored("home", FlowVariant.INCOME)["income.tax_rate"].value == 0

    def test_set_tax_requires_exactly_one_option(self):
        result = self.runner.invoke(main, ["survey", "set-tax", "--session", "home"])

        assert result.exit_code == 2
        assert "exactly one of --rate or --no-tax" in result.output

    def test_set_tax_rejects_out_of_range_rate(self):
        result = self.runner.invoke(main, ["survey", "set-tax", "--session", "home", "--rate", "80"])

        assert result.exit_code == 1

    def test_status_and_sessions(self):
        self.runner.invoke(main, ["survey", "take", "income", "--session", "home"], input="y\nquit\n")

        status = self.runner.invoke(main, ["survey", "status", "--session", "home"])
        sessions = self.runner.invoke(main, ["survey", "sessions"])

        assert status.exit_code == 0, status.output
        assert "Session home: 1 income answers" in status.output
        assert "next: income.tax_applicable" in status.output
        assert "next: housing.status" in status.output
        assert "Last updated:" in status.output
        assert sessions.output.strip() == "home"

    def test_sessions_when_empty(self):
        result = self.runner.invoke(main, ["survey", "sessions"])

        assert result.exit_code == 0
        assert "No sessions found." in result.output

    def test_review(self):
        self.runner.invoke(main, ["survey", "add-income", "--session", "home", "--type", "W2", "--amount", "6000"])
        self.runner.invoke(main, ["survey", "take", "expense", "--session", "home"], input=EXPENSE_INPUT)

        result = self.runner.invoke(main, ["survey", "review", "--session", "home"])

        assert result.exit_code == 0, result.output
        assert "income_stream_1: W2 $6,000.00 monthly ($6,000.00/mo)" in result.output
        assert "How much is your monthly rent?" in result.output
        assert "Electric: $90.00; Water: $40.00" in result.output

    def test_review_single_variant(self):
        result = self.runner.invoke(main, ["survey", "review", "--session", "home", "--variant", "expense"])

        assert result.exit_code == 0
        assert "Expense answers" in result.output
        assert "Income answers" not in result.output
        assert "(none)" in result.output


@pytest.mark.integration
@pytest.mark.survey
class TestValidateFlow:
    def setup_method(self):
        self.runner = CliRunner()

    @pytest.mark.parametrize("variant", ["income", "expense"])
    def test_bundled_flows_are_valid(self, variant):
        result = self.runner.invoke(main, ["survey", "validate-flow", variant])

        assert result.exit_code == 0, result.output
        assert "✅ Flow definition is valid" in result.output

    def test_dangling_reference(self, temp_dir):
        flow_file = temp_dir / "broken.yaml"
        flow_file.write_text(
            "variant: expense\n"
            "start: a\n"
            "questions:\n"
            "  a:\n"
            "    type: currency\n"
            "    prompt: A?\n"
            "    next: missing\n"
        )

        result = self.runner.invoke(main, ["survey", "validate-flow", "expense", "--flow-file", str(flow_file)])

        assert result.exit_code == 1
        assert "problem(s) found" in result.output

    def test_missing_flow_file(self, temp_dir):
        result = self.runner.invoke(
            main, ["survey", "validate-flow", "expense", "--flow-file", str(temp_dir / "nope.yaml")]
        )

        assert result.exit_code == 1
        assert "Flow definition not found" in result.output
