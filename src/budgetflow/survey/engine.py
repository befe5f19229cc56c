#!/usr/bin/env python3
"""
Question Flow Engine

Pure state transitions over a flow definition. A ``FlowSession`` is an
immutable snapshot of one questionnaire in progress; every transition
returns a new snapshot and leaves the old one untouched, so callers can
keep the previous state around when persistence fails.

Multi-select chains:
    A multi-select with ``multi_branch`` turns the selected options into a
    list of follow-up questions. The first one is shown immediately, the
    rest wait in ``pending``. ``chain_cursor`` names the follow-up currently
    shown from the chain; answering it moves straight to the next pending
    follow-up, and answering the last one continues at its ``next``.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from ..core.models import Answer
from .definition import FlowDefinition
from .nodes import EXCLUDED_TABLE_ROWS, MultiSelectNode, QuestionNode, SummaryNode, TableNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowSession:
    """
    Immutable state of one active questionnaire.

    Attributes:
        current_question_id: Question currently presented
        answers: Answers recorded so far, keyed by question id
        history: Answered question ids in order, for back navigation
        pending: Follow-up questions still to be asked from a multi-select
        chain_cursor: Follow-up currently shown from a multi-select chain
        completed: True once the flow has no further questions
    """

    current_question_id: str
    answers: Mapping[str, Answer] = field(default_factory=dict)
    history: tuple[str, ...] = ()
    pending: tuple[str, ...] = ()
    chain_cursor: str | None = None
    completed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "answers", MappingProxyType(dict(self.answers)))
        object.__setattr__(self, "history", tuple(self.history))
        object.__setattr__(self, "pending", tuple(self.pending))

    @property
    def can_go_back(self) -> bool:
        """True when there is an answered question to return to."""
        return bool(self.history)

    def answer_for(self, question_id: str) -> Answer | None:
        """Recorded answer for a question, if any."""
        return self.answers.get(question_id)


def _advance(session: FlowSession, question_id: str, **changes: Any) -> FlowSession:
    return replace(session, current_question_id=question_id, completed=False, **changes)


def start_session(
    flow: FlowDefinition,
    answers: Iterable[Answer] = (),
    question_id: str | None = None,
) -> FlowSession:
    """
    Create the session for a questionnaire that is being opened.

    With no explicit ``question_id`` the session starts at the resume point
    computed from ``answers``; an explicit id (editing a specific answer) is
    used as-is.

    Raises:
        BrokenFlowReference: If the starting question is not in the flow
    """
    answer_map = {answer.question_id: answer for answer in answers}

    if question_id is None:
        question_id = flow.start_id
        if answer_map:
            question_id = find_resume_point(flow, flow.start_id, answer_map)

    flow.get_node(question_id)
    logger.debug(f"Starting {flow.variant.value} session at {question_id} with {len(answer_map)} answers")
    return FlowSession(current_question_id=question_id, answers=answer_map)


def current_node(session: FlowSession, flow: FlowDefinition) -> QuestionNode:
    """
    Node for the session's current question.

    Raises:
        BrokenFlowReference: If the current question was removed from the flow
    """
    return flow.get_node(session.current_question_id)


def resolve_next(node: QuestionNode, value: Any) -> str | None:
    """Id of the question that follows ``node`` when answered with ``value``."""
    return node.resolve_next(value)


def apply_answer(session: FlowSession, flow: FlowDefinition, answer: Answer) -> FlowSession:
    """
    Record an answer for the current question and move to the next one.

    The caller is responsible for validating and persisting the answer first.

    Raises:
        BrokenFlowReference: If the current question is not in the flow
    """
    question_id = session.current_question_id
    node = flow.get_node(question_id)

    answers = {**session.answers, question_id: answer}
    history = (*session.history, question_id)
    state = replace(session, answers=answers, history=history)

    if isinstance(node, MultiSelectNode) and node.multi_branch:
        follow_ups = node.follow_ups(answer.value)
        if follow_ups:
            logger.debug(f"{question_id} opened follow-ups: {follow_ups}")
            return _advance(state, follow_ups[0], pending=tuple(follow_ups[1:]), chain_cursor=follow_ups[0])
        state = replace(state, pending=(), chain_cursor=None)

    if state.chain_cursor == question_id:
        if state.pending:
            head, *rest = state.pending
            return _advance(state, head, pending=tuple(rest), chain_cursor=head)
        state = replace(state, chain_cursor=None)
        if node.next:
            return _advance(state, node.next)

    next_id = node.resolve_next(answer.value)
    if next_id is not None:
        return _advance(state, next_id)

    if state.pending:
        head, *rest = state.pending
        return _advance(state, head, pending=tuple(rest), chain_cursor=head)

    if node.next:
        return _advance(state, node.next)

    logger.debug(f"Flow {flow.variant.value} complete after {question_id}")
    return replace(state, completed=True)


def go_back(session: FlowSession) -> FlowSession:
    """
    Return to the most recently answered question.

    Clears any pending follow-ups; the multi-select must be answered again
    to rebuild the chain. No-op when there is no history.
    """
    if not session.history:
        return session

    *rest, previous = session.history
    return replace(
        session,
        current_question_id=previous,
        history=tuple(rest),
        pending=(),
        chain_cursor=None,
        completed=False,
    )


def jump_to(session: FlowSession, flow: FlowDefinition, question_id: str) -> FlowSession:
    """
    Move directly to a question, e.g. to edit an earlier answer.

    Raises:
        BrokenFlowReference: If the question is not in the flow
    """
    flow.get_node(question_id)
    return replace(session, current_question_id=question_id, pending=(), chain_cursor=None, completed=False)


def is_at_summary(session: FlowSession, flow: FlowDefinition) -> bool:
    """True when the current question is the flow's summary node."""
    return isinstance(flow.get(session.current_question_id), SummaryNode)


def _is_answered(answers: Mapping[str, Answer], question_id: str) -> bool:
    answer = answers.get(question_id)
    return answer is not None and answer.has_value


def find_resume_point(flow: FlowDefinition, start_id: str, answers: Mapping[str, Answer]) -> str:
    """
    Find the question a returning user should land on.

    First walks from ``start_id`` along the path chosen by recorded answers
    to find the furthest answered question, then walks on from there to the
    first question without an answer. Returns the furthest answered question
    when everything reachable has been answered. Each question is visited at
    most once per pass, so cyclic graphs terminate.

    Multi-select questions follow their first follow-up in selection order.
    """
    furthest = start_id
    visited: set[str] = set()
    question_id: str | None = start_id

    while question_id is not None and question_id not in visited and question_id in flow:
        visited.add(question_id)
        if not _is_answered(answers, question_id):
            break
        furthest = question_id
        question_id = flow[question_id].resolve_next(answers[question_id].value)

    visited = set()
    question_id = furthest

    while question_id is not None and question_id not in visited and question_id in flow:
        visited.add(question_id)
        if not _is_answered(answers, question_id):
            return question_id
        question_id = flow[question_id].resolve_next(answers[question_id].value)

    return furthest


def progress_percent(flow: FlowDefinition, answers: Mapping[str, Answer]) -> int:
    """
    Rough completion estimate: answered questions over all questions.

    Not monotonic for branchy flows, since questions on unchosen branches
    still count towards the total.
    """
    if not len(flow):
        return 0
    answered = sum(1 for question_id in answers if question_id in flow)
    return math.floor(100 * answered / len(flow) + 0.5)


def table_rows(node: TableNode, answers: Mapping[str, Answer]) -> list[str]:
    """
    Rows to ask about for a table question.

    Static rows win; otherwise the rows come from the ``rows_from``
    question's selections, and finally from the table's own earlier answer.
    """
    if node.rows is not None:
        return list(node.rows)

    source = answers.get(node.rows_from) if node.rows_from else None
    if source is not None and isinstance(source.value, (list, tuple)) and source.value:
        return [row for row in source.value if row not in EXCLUDED_TABLE_ROWS]

    own = answers.get(node.id)
    if own is not None and isinstance(own.value, Mapping):
        return list(own.value)

    return []
