#!/usr/bin/env python3
"""
Budgetflow Exceptions

Domain error taxonomy shared by the questionnaire engine, answer stores and
the CLI. Flow completion is a normal state and has no exception.
"""


class BudgetflowError(Exception):
    """Base class for all budgetflow errors."""

    pass


class BrokenFlowReference(BudgetflowError):
    """
    Raised when a question id is not present in the flow definition.

    Happens when a flow was edited after answers referencing a removed node
    were recorded. Carries the offending id and the question a caller can
    fall back to.
    """

    def __init__(self, question_id: str, recovery_question_id: str | None = None):
        self.question_id = question_id
        self.recovery_question_id = recovery_question_id
        super().__init__(f"Question '{question_id}' no longer exists in this flow")


class InvalidAnswerShape(BudgetflowError):
    """Raised when a submitted value does not fit its question type."""

    def __init__(self, question_id: str, reason: str):
        self.question_id = question_id
        self.reason = reason
        super().__init__(f"Invalid answer for '{question_id}': {reason}")


class StoreFailure(BudgetflowError):
    """Raised when an answer store read or write fails."""

    pass


class FlowDefinitionError(BudgetflowError):
    """Raised when a flow definition file cannot be parsed into nodes."""

    pass
