#!/usr/bin/env python3
"""
Income Capture

Income streams and tax settings are collected outside the question graph:
each stream is stored as its own ``income_stream_<n>`` answer carrying the
monthly-normalized amount, and the tax settings are stored under the fixed
``income.tax_applicable`` / ``income.tax_rate`` question ids. Aggregation
only treats ``income_stream_`` answers as income.
"""

import logging
import re
from collections.abc import Iterable

from ..core.errors import InvalidAnswerShape
from ..core.models import Answer, FlowVariant, IncomeStream
from .datastore import AnswerStore

logger = logging.getLogger(__name__)

INCOME_STREAM_PREFIX = "income_stream_"
TAX_APPLICABLE_QUESTION_ID = "income.tax_applicable"
TAX_RATE_QUESTION_ID = "income.tax_rate"

# Common effective tax rates offered as presets
TAX_RATE_PRESETS = (20, 25, 30, 35)
MAX_TAX_RATE = 60

_STREAM_ID = re.compile(rf"^{INCOME_STREAM_PREFIX}(\d+)$")


def is_income_stream(question_id: str) -> bool:
    """True for question ids that hold an income stream."""
    return question_id.startswith(INCOME_STREAM_PREFIX)


def next_stream_id(answers: Iterable[Answer]) -> str:
    """Question id for a newly added stream, one past the highest in use."""
    indexes = [int(match.group(1)) for answer in answers if (match := _STREAM_ID.match(answer.question_id))]
    return f"{INCOME_STREAM_PREFIX}{max(indexes, default=0) + 1}"


def save_income_stream(
    store: AnswerStore,
    session_id: str,
    stream: IncomeStream,
    question_id: str | None = None,
) -> str:
    """
    Persist an income stream, normalizing its amount to monthly.

    Args:
        store: Answer store to write to
        session_id: Session the stream belongs to
        stream: Income stream to save
        question_id: Existing stream id to overwrite; a new id is allocated
            when omitted

    Returns:
        Question id the stream was stored under

    Raises:
        InvalidAnswerShape: If the amount is negative or the id is not a
            stream id
        StoreFailure: If the store rejects the write
    """
    if stream.amount < 0:
        raise InvalidAnswerShape(question_id or INCOME_STREAM_PREFIX, "income amount cannot be negative")

    if question_id is None:
        question_id = next_stream_id(store.load_answers(session_id, FlowVariant.INCOME))
    elif not is_income_stream(question_id):
        raise InvalidAnswerShape(question_id, f"income streams must use the '{INCOME_STREAM_PREFIX}' prefix")

    store.upsert_answer(
        session_id,
        FlowVariant.INCOME,
        question_id,
        stream.category,
        stream.to_dict(),
        stream.monthly_amount,
    )
    logger.info(f"Saved {question_id}: {stream.type.value} {stream.amount} {stream.frequency.value}")
    return question_id


def save_tax_settings(store: AnswerStore, session_id: str, applicable: bool, rate_percent: float = 0) -> None:
    """
    Persist whether taxes apply and the effective tax rate.

    The stored rate is 0 whenever taxes do not apply. The two answers are
    separate writes: the rate goes first, so if the second write fails the
    effective rate is still either the old one or the new one (a stored
    "no" zeroes any rate).

    Raises:
        InvalidAnswerShape: If the rate is outside 0-60%
        StoreFailure: If the store rejects a write
    """
    if applicable and not 0 <= rate_percent <= MAX_TAX_RATE:
        raise InvalidAnswerShape(TAX_RATE_QUESTION_ID, f"tax rate must be between 0 and {MAX_TAX_RATE}")

    rate = rate_percent if applicable else 0
    store.upsert_answer(session_id, FlowVariant.INCOME, TAX_RATE_QUESTION_ID, None, rate, None)
    store.upsert_answer(session_id, FlowVariant.INCOME, TAX_APPLICABLE_QUESTION_ID, None, applicable, None)


def load_income_streams(answers: Iterable[Answer]) -> list[tuple[str, IncomeStream]]:
    """Income streams among ``answers`` as (question id, stream) pairs, ordered by id."""
    streams = []
    for answer in answers:
        if answer.flow_variant != FlowVariant.INCOME or not is_income_stream(answer.question_id):
            continue
        if not isinstance(answer.value, dict):
            logger.warning(f"Skipping {answer.question_id}: stored value is not an income stream")
            continue
        try:
            streams.append((answer.question_id, IncomeStream.from_dict(answer.value)))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping {answer.question_id}: {e}")

    return sorted(streams, key=lambda item: _stream_sort_key(item[0]))


def _stream_sort_key(question_id: str) -> tuple[int, str]:
    match = _STREAM_ID.match(question_id)
    return (int(match.group(1)) if match else 0, question_id)
