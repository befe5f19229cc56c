#!/usr/bin/env python3
"""
Answer Stores

Persistence for questionnaire answers. Answers are unique per
(session, flow variant, question id); writing the same key again replaces
the previous answer. Any read or write problem surfaces as ``StoreFailure``.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from ..core.errors import StoreFailure
from ..core.models import Answer, FlowVariant

logger = logging.getLogger(__name__)


class AnswerStore(Protocol):
    """
    Protocol for answer persistence.

    Implementations must return an empty list (not raise) for a session or
    variant with no answers, and must treat ``upsert_answer`` as idempotent
    for identical arguments.
    """

    def load_answers(self, session_id: str, flow_variant: FlowVariant) -> list[Answer]:
        """
        Load all answers for one session and flow variant.

        Raises:
            StoreFailure: If the store cannot be read
        """
        ...

    def upsert_answer(
        self,
        session_id: str,
        flow_variant: FlowVariant,
        question_id: str,
        category: str | None,
        raw_value: Any,
        normalized_monthly_value: float | None,
    ) -> None:
        """
        Insert or replace the answer for (session, variant, question).

        Raises:
            StoreFailure: If the answer cannot be written
        """
        ...


def load_all_answers(store: AnswerStore, session_id: str) -> list[Answer]:
    """Load answers for every flow variant of a session."""
    answers: list[Answer] = []
    for variant in FlowVariant:
        answers.extend(store.load_answers(session_id, variant))
    return answers


class InMemoryAnswerStore:
    """Answer store backed by a dictionary. Used for tests and dry runs."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, FlowVariant, str], Answer] = {}

    def load_answers(self, session_id: str, flow_variant: FlowVariant) -> list[Answer]:
        return [
            answer
            for (session, variant, _), answer in self._records.items()
            if session == session_id and variant == flow_variant
        ]

    def upsert_answer(
        self,
        session_id: str,
        flow_variant: FlowVariant,
        question_id: str,
        category: str | None,
        raw_value: Any,
        normalized_monthly_value: float | None,
    ) -> None:
        self._records[(session_id, flow_variant, question_id)] = Answer(
            question_id=question_id,
            flow_variant=flow_variant,
            value=raw_value,
            category=category,
            normalized_monthly_value=normalized_monthly_value,
        )

    def __len__(self) -> int:
        return len(self._records)


class JsonAnswerStore:
    """
    Answer store keeping one pretty-printed JSON file per session.

    Records keep insertion order; an upsert replaces the matching record in
    place so a re-answered question keeps its original position.
    """

    def __init__(self, answers_dir: Path):
        """
        Initialize JSON answer store.

        Args:
            answers_dir: Directory holding ``<session_id>.json`` files
        """
        self.answers_dir = answers_dir

    def session_file(self, session_id: str) -> Path:
        """Path of the file holding a session's answers."""
        if not session_id or "/" in session_id or session_id.startswith("."):
            raise StoreFailure(f"Invalid session id: {session_id!r}")
        return self.answers_dir / f"{session_id}.json"

    def _read_records(self, session_id: str) -> list[dict[str, Any]]:
        path = self.session_file(session_id)
        if not path.exists():
            return []
        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreFailure(f"Could not read answers for session {session_id}: {e}") from e
        if not isinstance(records, list):
            raise StoreFailure(f"Answer file for session {session_id} is not a list")
        return records

    def _write_records(self, session_id: str, records: list[dict[str, Any]]) -> None:
        path = self.session_file(session_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StoreFailure(f"Could not save answers for session {session_id}: {e}") from e

    def load_answers(self, session_id: str, flow_variant: FlowVariant) -> list[Answer]:
        try:
            return [
                Answer.from_dict(record)
                for record in self._read_records(session_id)
                if record.get("flow_variant") == flow_variant.value
            ]
        except (KeyError, ValueError) as e:
            raise StoreFailure(f"Malformed answer record for session {session_id}: {e}") from e

    def upsert_answer(
        self,
        session_id: str,
        flow_variant: FlowVariant,
        question_id: str,
        category: str | None,
        raw_value: Any,
        normalized_monthly_value: float | None,
    ) -> None:
        records = self._read_records(session_id)
        record = Answer(
            question_id=question_id,
            flow_variant=flow_variant,
            value=raw_value,
            category=category,
            normalized_monthly_value=normalized_monthly_value,
        ).to_dict()
        record["updated_at"] = datetime.now().isoformat(timespec="seconds")

        for index, existing in enumerate(records):
            if existing.get("flow_variant") == flow_variant.value and existing.get("question_id") == question_id:
                records[index] = record
                break
        else:
            records.append(record)

        self._write_records(session_id, records)
        logger.debug(f"Saved {flow_variant.value}/{question_id} for session {session_id}")

    def list_sessions(self) -> list[str]:
        """Ids of all sessions with stored answers."""
        if not self.answers_dir.exists():
            return []
        return sorted(path.stem for path in self.answers_dir.glob("*.json"))

    def last_modified(self, session_id: str) -> datetime | None:
        """Modification time of a session's answer file."""
        path = self.session_file(session_id)
        if not path.exists():
            return None
        return datetime.fromtimestamp(path.stat().st_mtime)

    def summary_text(self, session_id: str) -> str:
        """Human-readable summary of a session's stored answers."""
        records = self._read_records(session_id)
        if not records:
            return f"No answers stored for session {session_id}"
        counts = {variant.value: 0 for variant in FlowVariant}
        for record in records:
            counts[record.get("flow_variant", "")] = counts.get(record.get("flow_variant", ""), 0) + 1
        parts = ", ".join(f"{count} {variant}" for variant, count in counts.items() if count)
        return f"Session {session_id}: {parts} answers"
