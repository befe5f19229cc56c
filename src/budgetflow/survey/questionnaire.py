#!/usr/bin/env python3
"""
Questionnaire Controller

Binds a flow definition, an answer store and one session together. Holds
the current ``FlowSession`` and replaces it only after the store accepted a
write, so a failed save leaves the questionnaire exactly where it was.
"""

import logging
from typing import Any

from ..core.errors import BrokenFlowReference
from ..core.models import Answer
from . import engine
from .datastore import AnswerStore
from .definition import FlowDefinition
from .engine import FlowSession
from .nodes import QuestionNode, TableNode

logger = logging.getLogger(__name__)


class Questionnaire:
    """
    One open questionnaire for a (session, flow variant).

    Single writer: the instance exclusively owns its ``FlowSession``. Each
    operation runs to completion, including the store write, before the next
    one can start.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        store: AnswerStore,
        session_id: str,
        question_id: str | None = None,
    ):
        """
        Open a questionnaire, loading existing answers and resuming.

        Args:
            flow: Flow definition to walk
            store: Answer store used for loading and saving
            session_id: Session whose answers are read and written
            question_id: Explicit question to open on (edit mode); defaults
                to the resume point

        Raises:
            StoreFailure: If existing answers cannot be loaded
            BrokenFlowReference: If ``question_id`` is not in the flow
        """
        self.flow = flow
        self.store = store
        self.session_id = session_id
        self._session = self._open(session_id, question_id)

    def _open(self, session_id: str, question_id: str | None) -> FlowSession:
        answers = self.store.load_answers(session_id, self.flow.variant)
        return engine.start_session(self.flow, answers, question_id)

    @property
    def session(self) -> FlowSession:
        """Current immutable session snapshot."""
        return self._session

    @property
    def current_question_id(self) -> str:
        return self._session.current_question_id

    @property
    def current_question(self) -> QuestionNode:
        """
        Node for the current question.

        Raises:
            BrokenFlowReference: If the question has been removed from the flow
        """
        return engine.current_node(self._session, self.flow)

    @property
    def is_complete(self) -> bool:
        """True once the flow ran out of questions or reached its summary."""
        return self._session.completed or engine.is_at_summary(self._session, self.flow)

    @property
    def progress(self) -> int:
        return engine.progress_percent(self.flow, self._session.answers)

    @property
    def recovery_question_id(self) -> str:
        """Known-good question to return to after a broken reference."""
        return self.flow.start_id

    def current_value(self) -> Any:
        """Previously recorded value for the current question, if any."""
        answer = self._session.answer_for(self.current_question_id)
        return answer.value if answer else None

    def table_rows(self) -> list[str]:
        """Rows for the current question when it is a table."""
        node = self.current_question
        if not isinstance(node, TableNode):
            return []
        return engine.table_rows(node, self._session.answers)

    def submit_answer(self, question_id: str, value: Any, normalized_value: float | None = None) -> FlowSession:
        """
        Validate, persist and record an answer, then advance.

        Args:
            question_id: Question being answered; must be the current one
            value: Raw answer value
            normalized_value: Monthly dollar figure; derived from the value for
                currency and table questions when omitted

        Returns:
            The new session state

        Raises:
            BrokenFlowReference: If the current question is not in the flow
            InvalidAnswerShape: If the value does not fit the question type
            StoreFailure: If the store rejects the write (state is unchanged)
            ValueError: If ``question_id`` is not the current question
        """
        if question_id != self.current_question_id:
            raise ValueError(f"Cannot answer '{question_id}' while '{self.current_question_id}' is current")

        node = self.current_question
        node.validate_value(value)
        if normalized_value is None:
            normalized_value = node.default_normalized_value(value)

        self.store.upsert_answer(
            self.session_id,
            self.flow.variant,
            question_id,
            node.maps_to_category,
            value,
            normalized_value,
        )

        answer = Answer(
            question_id=question_id,
            flow_variant=self.flow.variant,
            value=value,
            category=node.maps_to_category,
            normalized_monthly_value=normalized_value,
        )
        self._session = engine.apply_answer(self._session, self.flow, answer)
        logger.info(f"Answered {question_id}; now at {self.current_question_id}")
        return self._session

    def go_back(self) -> FlowSession:
        """Return to the previously answered question (no-op at the start)."""
        self._session = engine.go_back(self._session)
        return self._session

    def jump_to(self, question_id: str) -> FlowSession:
        """
        Open a specific question for editing.

        Raises:
            BrokenFlowReference: If the question is not in the flow
        """
        self._session = engine.jump_to(self._session, self.flow, question_id)
        return self._session

    def recover(self) -> FlowSession:
        """Move back to the start question after a broken reference."""
        logger.warning(f"Recovering from missing question {self.current_question_id}")
        return self.jump_to(self.recovery_question_id)

    def switch_session(self, session_id: str) -> FlowSession:
        """
        Point the questionnaire at another session, discarding all state.

        Raises:
            StoreFailure: If the new session's answers cannot be loaded
        """
        self._session = self._open(session_id, None)
        self.session_id = session_id
        return self._session

    def check_current(self) -> BrokenFlowReference | None:
        """Return the broken reference for the current question, if any."""
        try:
            self.current_question
        except BrokenFlowReference as e:
            return e
        return None
