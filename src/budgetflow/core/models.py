#!/usr/bin/env python3
"""
Core Data Models for Budgetflow

Common data structures shared by the questionnaire engine, the answer stores
and the cashflow aggregation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .currency import Frequency, normalize_to_monthly


class FlowVariant(Enum):
    """Independent questionnaire tracks sharing the engine."""

    INCOME = "income"
    EXPENSE = "expense"


class IncomeType(Enum):
    """Kinds of income stream a user can report."""

    W2 = "W2"
    CONTRACT_1099 = "1099"
    BUSINESS = "Business"
    RENTAL = "Rental"
    INVESTMENT = "Investment"
    PARTNER = "Partner"
    OTHER = "Other"


@dataclass(frozen=True)
class Answer:
    """
    One persisted answer.

    Answers are unique per (session, flow variant, question id); the session
    is implied by whichever store or collection holds the answer.

    The shape of ``value`` depends on the question type: bool for yes/no,
    str for single select, list of str for multi select, a number for
    currency/number questions and a mapping of row label to number for tables.
    """

    question_id: str
    flow_variant: FlowVariant
    value: Any
    category: str | None = None
    normalized_monthly_value: float | None = None

    @property
    def has_value(self) -> bool:
        """True when the answer carries a usable value (not None or empty text)."""
        return self.value is not None and self.value != ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "question_id": self.question_id,
            "flow_variant": self.flow_variant.value,
            "category": self.category,
            "raw_value": self.value,
            "normalized_monthly_value": self.normalized_monthly_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Answer":
        """Create Answer from a stored record."""
        return cls(
            question_id=data["question_id"],
            flow_variant=FlowVariant(data["flow_variant"]),
            value=data.get("raw_value"),
            category=data.get("category"),
            normalized_monthly_value=data.get("normalized_monthly_value"),
        )


@dataclass(frozen=True)
class IncomeStream:
    """A single source of income as entered by the user."""

    type: IncomeType
    amount: float
    frequency: Frequency

    @property
    def monthly_amount(self) -> float:
        """Amount normalized to a monthly figure."""
        return normalize_to_monthly(self.amount, self.frequency)

    @property
    def category(self) -> str:
        """Category label stored alongside the stream's answer."""
        return f"Income: {self.type.value}"

    def to_dict(self) -> dict[str, Any]:
        """Raw value persisted for an income stream answer."""
        return {
            "type": self.type.value,
            "amount": self.amount,
            "frequency": self.frequency.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IncomeStream":
        """Create IncomeStream from a stored raw value."""
        return cls(
            type=IncomeType(data["type"]),
            amount=data["amount"],
            frequency=Frequency(data["frequency"]),
        )
