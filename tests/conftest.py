"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

import tempfile
from pathlib import Path
from typing import Any

import pytest

from budgetflow.core.config import reload_config
from budgetflow.core.models import Answer, FlowVariant
from budgetflow.survey.datastore import InMemoryAnswerStore
from budgetflow.survey.definition import FlowDefinition, load_builtin_flow
from tests.fixtures.answers import income_stream, make_answer, tax_rate


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch, tmp_path):
    """Set up test environment variables."""
    # Ensure tests don't use real answer data
    monkeypatch.setenv("BUDGETFLOW_ENV", "test")
    monkeypatch.setenv("BUDGETFLOW_DATA_DIR", str(tmp_path / "budgetflow_data"))
    monkeypatch.delenv("BUDGETFLOW_FLOWS_DIR", raising=False)
    monkeypatch.delenv("COFFEE_GROWTH_RATE", raising=False)
    monkeypatch.delenv("INVESTMENT_ITEMS", raising=False)
    reload_config()


@pytest.fixture
def memory_store() -> InMemoryAnswerStore:
    """Empty in-memory answer store."""
    return InMemoryAnswerStore()


@pytest.fixture
def expense_flow() -> FlowDefinition:
    """The bundled expense flow."""
    return load_builtin_flow(FlowVariant.EXPENSE)


@pytest.fixture
def income_flow() -> FlowDefinition:
    """The bundled income flow."""
    return load_builtin_flow(FlowVariant.INCOME)


@pytest.fixture
def chain_flow_data() -> dict[str, Any]:
    """Flow with a multi-select whose options each open a follow-up question."""
    return {
        "variant": "expense",
        "start": "pick",
        "questions": {
            "pick": {
                "type": "multi_select",
                "prompt": "Pick some",
                "options": ["A", "B", "C", "None"],
                "multi_branch": {"A": "qA", "B": "qB", "C": "qC", "None": None},
                "next": "after",
            },
            "qA": {"type": "currency", "prompt": "A?", "next": "after"},
            "qB": {"type": "currency", "prompt": "B?", "next": "after"},
            "qC": {"type": "currency", "prompt": "C?", "next": "after"},
            "after": {"type": "yes_no", "prompt": "After?", "next": "done"},
            "done": {"type": "summary", "prompt": "Done"},
        },
    }


@pytest.fixture
def chain_flow(chain_flow_data) -> FlowDefinition:
    return FlowDefinition.from_dict(chain_flow_data)


@pytest.fixture
def household_answers() -> list[Answer]:
    """
    Answers for a household with one W2 income stream of $6,000/month, a 25%
    tax rate, rent of $1,000, dining of $200 and $500/month of retirement
    contributions.
    """
    return [
        income_stream(1, 6000),
        make_answer("income.tax_applicable", True, variant=FlowVariant.INCOME),
        tax_rate(25),
        make_answer("housing.rent", 1000, normalized=1000, category="A. Housing & Living > Rent"),
        make_answer(
            "savings.allocations",
            {"Emergency fund": 0, "Retirement (401k/IRA/Solo 401k)": 500},
            normalized=500,
            category="F. Savings & Investments > Allocations",
        ),
        make_answer("food.dining", 200, normalized=200, category="C. Food > Dining out"),
    ]


# Test markers for categorizing tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for complete workflows")
    config.addinivalue_line("markers", "currency: Tests for currency handling and precision")
    config.addinivalue_line("markers", "survey: Tests for the question flow engine")
    config.addinivalue_line("markers", "cashflow: Tests for cashflow aggregation and scenarios")
