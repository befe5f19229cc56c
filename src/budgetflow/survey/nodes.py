#!/usr/bin/env python3
"""
Question Node Types

One class per question type. Each node knows how to check the shape of a
submitted value and how to pick its successor, so branch resolution is a
method call on the node rather than a switch over a type tag.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from ..core.currency import is_number
from ..core.errors import FlowDefinitionError, InvalidAnswerShape

# Rows a dependent table never asks about
EXCLUDED_TABLE_ROWS = ("None", "Neither")


@dataclass(frozen=True)
class QuestionNode(ABC):
    """
    Abstract base class for question nodes.

    Presentation fields (prompt, category_label, display_number, help_text)
    never affect behavior. ``next`` is the default successor used whenever
    a type-specific branch does not apply.
    """

    id: str
    prompt: str
    next: str | None = None
    category_label: str | None = None
    display_number: str | None = None
    help_text: str | None = None
    maps_to_category: str | None = None

    type: ClassVar[str] = ""

    @abstractmethod
    def resolve_next(self, value: Any) -> str | None:
        """
        Return the id of the question that follows this one for ``value``.

        Returns None when the node has no successor for that value.
        """
        pass

    @abstractmethod
    def check_value(self, value: Any) -> str | None:
        """Return a reason string if ``value`` does not fit this node, else None."""
        pass

    def validate_value(self, value: Any) -> None:
        """
        Raise InvalidAnswerShape if ``value`` is not acceptable for this node.
        """
        reason = self.check_value(value)
        if reason:
            raise InvalidAnswerShape(self.id, reason)

    def default_normalized_value(self, value: Any) -> float | None:
        """Monthly dollar figure implied by ``value``, if the type has one."""
        return None

    def branch_targets(self) -> list[str]:
        """All question ids this node can lead to."""
        return [self.next] if self.next else []

    @property
    def is_terminal(self) -> bool:
        """True when the node has no outgoing edges at all."""
        return not self.branch_targets()

    def get_display_title(self) -> str:
        """Prompt prefixed with category label and question number when present."""
        if not self.display_number:
            return self.prompt
        label = f"{self.category_label} - " if self.category_label else ""
        return f"{label}Question #{self.display_number}: {self.prompt}"


def _check_bounds(value: float, minimum: float | None, maximum: float | None) -> str | None:
    if isinstance(value, float) and math.isnan(value):
        return "value is not a number"
    if minimum is not None and value < minimum:
        return f"value must be at least {minimum}"
    if maximum is not None and value > maximum:
        return f"value must be at most {maximum}"
    return None


@dataclass(frozen=True)
class YesNoNode(QuestionNode):
    """Boolean question branching through ``if_yes`` / ``if_no``."""

    if_yes: str | None = None
    if_no: str | None = None

    type: ClassVar[str] = "yes_no"

    def resolve_next(self, value: Any) -> str | None:
        branch = self.if_yes if value else self.if_no
        return branch or self.next or None

    def check_value(self, value: Any) -> str | None:
        if not isinstance(value, bool):
            return f"expected true or false, got {type(value).__name__}"
        return None

    def branch_targets(self) -> list[str]:
        return [t for t in (self.if_yes, self.if_no, self.next) if t]


@dataclass(frozen=True)
class SingleSelectNode(QuestionNode):
    """
    Pick exactly one option.

    ``branches`` maps an option value to the question it leads to; options
    without an entry continue to ``next``.
    """

    options: tuple[str, ...] = ()
    branches: Mapping[str, str] = field(default_factory=dict)

    type: ClassVar[str] = "single_select"

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "branches", MappingProxyType(dict(self.branches)))

    def resolve_next(self, value: Any) -> str | None:
        branch = self.branches.get(value) if isinstance(value, str) else None
        return branch or self.next or None

    def check_value(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return f"expected an option string, got {type(value).__name__}"
        if self.options and value not in self.options:
            return f"'{value}' is not one of the options"
        return None

    def branch_targets(self) -> list[str]:
        return [t for t in (*self.branches.values(), self.next) if t]


@dataclass(frozen=True)
class MultiSelectNode(QuestionNode):
    """
    Pick one or more options.

    With ``multi_branch`` each selected option may open a follow-up question;
    the follow-ups are asked one after another in selection order.
    """

    options: tuple[str, ...] = ()
    multi_branch: Mapping[str, str | None] | None = None

    type: ClassVar[str] = "multi_select"

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        if self.multi_branch is not None:
            object.__setattr__(self, "multi_branch", MappingProxyType(dict(self.multi_branch)))

    def follow_ups(self, value: Any) -> list[str]:
        """Follow-up question ids for the selected options, in selection order."""
        if not self.multi_branch or not isinstance(value, (list, tuple)):
            return []
        return [
            self.multi_branch[option]
            for option in value
            if isinstance(option, str) and self.multi_branch.get(option)
        ]

    def resolve_next(self, value: Any) -> str | None:
        follow_ups = self.follow_ups(value)
        if follow_ups:
            return follow_ups[0]
        return self.next or None

    def check_value(self, value: Any) -> str | None:
        if not isinstance(value, (list, tuple)):
            return f"expected a list of options, got {type(value).__name__}"
        if not value:
            return "at least one option must be selected"
        if not all(isinstance(option, str) for option in value):
            return "every selection must be an option string"
        if len(set(value)) != len(value):
            return "options may only be selected once"
        if self.options:
            unknown = [option for option in value if option not in self.options]
            if unknown:
                return f"unknown options: {', '.join(unknown)}"
        return None

    def branch_targets(self) -> list[str]:
        targets = [t for t in (self.multi_branch or {}).values() if t]
        if self.next:
            targets.append(self.next)
        return targets


@dataclass(frozen=True)
class CurrencyNode(QuestionNode):
    """Dollar amount, already monthly."""

    min: float | None = None
    max: float | None = None

    type: ClassVar[str] = "currency"

    def resolve_next(self, value: Any) -> str | None:
        return self.next or None

    def check_value(self, value: Any) -> str | None:
        if not is_number(value):
            return f"expected an amount, got {type(value).__name__}"
        if value < 0:
            return "amount cannot be negative"
        return _check_bounds(value, self.min, self.max)

    def default_normalized_value(self, value: Any) -> float | None:
        return float(value)


@dataclass(frozen=True)
class NumberNode(QuestionNode):
    """Plain number such as a count or a percentage."""

    min: float | None = None
    max: float | None = None

    type: ClassVar[str] = "number"

    def resolve_next(self, value: Any) -> str | None:
        return self.next or None

    def check_value(self, value: Any) -> str | None:
        if not is_number(value):
            return f"expected a number, got {type(value).__name__}"
        return _check_bounds(value, self.min, self.max)


@dataclass(frozen=True)
class TableNode(QuestionNode):
    """
    Amount per row.

    Rows are either listed statically in ``rows`` or taken from the
    multi-select answer of the question named by ``rows_from``.
    """

    rows: tuple[str, ...] | None = None
    columns: tuple[str, ...] = ()
    rows_from: str | None = None

    type: ClassVar[str] = "table"

    def __post_init__(self) -> None:
        if self.rows is not None:
            object.__setattr__(self, "rows", tuple(self.rows))
        object.__setattr__(self, "columns", tuple(self.columns))

    def resolve_next(self, value: Any) -> str | None:
        return self.next or None

    def check_value(self, value: Any) -> str | None:
        if not isinstance(value, Mapping):
            return f"expected a mapping of row to amount, got {type(value).__name__}"
        for row, amount in value.items():
            if not isinstance(row, str):
                return "row labels must be strings"
            if not is_number(amount):
                return f"amount for '{row}' must be a number"
            if amount < 0:
                return f"amount for '{row}' cannot be negative"
        if self.rows is not None:
            unknown = [row for row in value if row not in self.rows]
            if unknown:
                return f"unknown rows: {', '.join(unknown)}"
        return None

    def default_normalized_value(self, value: Any) -> float | None:
        return float(sum(amount or 0 for amount in value.values()))


@dataclass(frozen=True)
class SummaryNode(QuestionNode):
    """End of a flow. Has no successor and accepts no answer."""

    type: ClassVar[str] = "summary"

    def resolve_next(self, value: Any) -> str | None:
        return None

    def check_value(self, value: Any) -> str | None:
        return "summary questions do not take an answer"

    def branch_targets(self) -> list[str]:
        return []


NODE_TYPES: dict[str, type[QuestionNode]] = {
    cls.type: cls
    for cls in (
        YesNoNode,
        SingleSelectNode,
        MultiSelectNode,
        CurrencyNode,
        NumberNode,
        TableNode,
        SummaryNode,
    )
}


def node_from_dict(question_id: str, data: Mapping[str, Any]) -> QuestionNode:
    """
    Build a question node from a flow definition entry.

    Accepts ``question`` or ``prompt`` for the text, camelCase presentation
    keys (``questionNumber``, ``categoryLabel``) and dynamic ``if_<option>``
    keys on single-select questions, which are folded into ``branches``.

    Raises:
        FlowDefinitionError: If the entry has an unknown type or no prompt
    """
    node_type = data.get("type")
    cls = NODE_TYPES.get(node_type)
    if cls is None:
        raise FlowDefinitionError(f"Question '{question_id}' has unknown type: {node_type!r}")

    prompt = data.get("prompt", data.get("question"))
    if not prompt:
        raise FlowDefinitionError(f"Question '{question_id}' has no prompt")

    declared_id = data.get("id", question_id)
    if declared_id != question_id:
        raise FlowDefinitionError(f"Question key '{question_id}' does not match its id '{declared_id}'")

    kwargs: dict[str, Any] = {
        "id": question_id,
        "prompt": prompt,
        "next": data.get("next"),
        "category_label": data.get("category_label", data.get("categoryLabel")),
        "display_number": _optional_str(data.get("display_number", data.get("questionNumber"))),
        "help_text": data.get("help_text"),
        "maps_to_category": data.get("maps_to_category"),
    }

    if cls is YesNoNode:
        kwargs.update(if_yes=data.get("if_yes"), if_no=data.get("if_no"))
    elif cls is SingleSelectNode:
        branches = dict(data.get("branches") or {})
        for key, target in data.items():
            if key.startswith("if_") and key not in ("if_yes", "if_no") and target:
                branches.setdefault(key[3:], target)
        kwargs.update(options=data.get("options") or (), branches=branches)
    elif cls is MultiSelectNode:
        kwargs.update(options=data.get("options") or (), multi_branch=data.get("multi_branch"))
    elif cls in (CurrencyNode, NumberNode):
        kwargs.update(min=data.get("min"), max=data.get("max"))
    elif cls is TableNode:
        kwargs.update(
            rows=data.get("rows"),
            columns=data.get("columns") or (),
            rows_from=data.get("rows_from"),
        )

    return cls(**kwargs)


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)
