#!/usr/bin/env python3
"""
Flow Definitions

Immutable question graphs, one per flow variant, loaded from YAML or JSON.
Definitions are authored externally and never edited at runtime.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from ..core.errors import BrokenFlowReference, FlowDefinitionError
from ..core.models import FlowVariant
from .nodes import MultiSelectNode, QuestionNode, SingleSelectNode, SummaryNode, TableNode, YesNoNode, node_from_dict

logger = logging.getLogger(__name__)


class FlowDefinition(Mapping[str, QuestionNode]):
    """
    Read-only mapping of question id to question node.

    Also records the flow variant and the question a fresh questionnaire
    starts on.
    """

    def __init__(self, variant: FlowVariant, start_id: str, nodes: Mapping[str, QuestionNode]):
        """
        Initialize flow definition.

        Args:
            variant: Flow variant the definition belongs to
            start_id: Id of the first question
            nodes: Question nodes keyed by id
        """
        self.variant = variant
        self.start_id = start_id
        self._nodes: Mapping[str, QuestionNode] = MappingProxyType(dict(nodes))

    def __getitem__(self, question_id: str) -> QuestionNode:
        return self._nodes[question_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"FlowDefinition(variant={self.variant.value!r}, start_id={self.start_id!r}, nodes={len(self)})"

    def get_node(self, question_id: str) -> QuestionNode:
        """
        Get a node by id.

        Raises:
            BrokenFlowReference: If the id is not part of this flow
        """
        node = self._nodes.get(question_id)
        if node is None:
            raise BrokenFlowReference(question_id, recovery_question_id=self.start_id)
        return node

    def validate(self) -> list[str]:
        """
        Check the graph for authoring mistakes.

        Returns:
            List of validation error messages
        """
        errors = []

        if self.start_id not in self._nodes:
            errors.append(f"Start question '{self.start_id}' is not defined")

        for question_id, node in self._nodes.items():
            errors.extend(
                f"Question '{question_id}' leads to unknown question '{target}'"
                for target in node.branch_targets()
                if target not in self._nodes
            )

            if node.is_terminal and not isinstance(node, SummaryNode):
                errors.append(f"Question '{question_id}' has no successor and is not a summary")
            elif isinstance(node, YesNoNode) and not node.next and not (node.if_yes and node.if_no):
                errors.append(f"Question '{question_id}' does not handle both yes and no")
            elif isinstance(node, SingleSelectNode) and not node.next:
                missing = [option for option in node.options if option not in node.branches]
                if missing:
                    errors.append(f"Question '{question_id}' has no branch for: {', '.join(missing)}")

            if isinstance(node, TableNode) and node.rows is None:
                source = self._nodes.get(node.rows_from) if node.rows_from else None
                if not isinstance(source, MultiSelectNode):
                    errors.append(f"Table '{question_id}' has no rows and no multi-select rows_from source")

        return errors

    def detect_cycles(self) -> list[list[str]]:
        """
        Detect cycles in the question graph.

        Cycles are allowed (resumption guards against them) but are usually
        an authoring mistake worth reporting.

        Returns:
            List of cycles found, each cycle is a list of question ids
        """

        def visit(question_id: str, path: list[str], visited: set[str], cycles: list[list[str]]) -> None:
            if question_id in path:
                cycle_start = path.index(question_id)
                cycles.append([*path[cycle_start:], question_id])
                return

            if question_id in visited:
                return

            visited.add(question_id)
            path.append(question_id)

            node = self._nodes.get(question_id)
            if node:
                for target in node.branch_targets():
                    visit(target, path, visited, cycles)

            path.pop()

        cycles: list[list[str]] = []
        visited: set[str] = set()

        for question_id in self._nodes:
            if question_id not in visited:
                visit(question_id, [], visited, cycles)

        return cycles

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlowDefinition":
        """
        Build a definition from parsed YAML/JSON.

        Expected layout::

            variant: expense
            start: housing.start
            questions:
              housing.start:
                type: yes_no
                prompt: Do you rent or own?
                ...

        Raises:
            FlowDefinitionError: If the structure is malformed
        """
        try:
            variant = FlowVariant(data["variant"])
            start_id = data["start"]
            questions = data["questions"]
        except KeyError as e:
            raise FlowDefinitionError(f"Flow definition is missing '{e.args[0]}'") from e
        except ValueError as e:
            raise FlowDefinitionError(f"Unknown flow variant: {data.get('variant')!r}") from e

        if not isinstance(questions, Mapping) or not questions:
            raise FlowDefinitionError("Flow definition has no questions")

        nodes = {
            question_id: node_from_dict(question_id, question)
            for question_id, question in questions.items()
        }
        return cls(variant, start_id, nodes)


def load_flow(path: str | Path) -> FlowDefinition:
    """
    Load a flow definition from a ``.yaml``/``.yml`` or ``.json`` file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        FlowDefinitionError: If the file cannot be parsed into a flow
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flow definition not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise FlowDefinitionError(f"Could not parse {path}: {e}") from e

    definition = FlowDefinition.from_dict(data)
    for error in definition.validate():
        logger.warning(f"{path.name}: {error}")
    logger.debug(f"Loaded {definition!r} from {path}")
    return definition


def load_builtin_flow(variant: FlowVariant | str, flows_dir: Path | None = None) -> FlowDefinition:
    """
    Load the flow definition for a variant.

    Looks in ``flows_dir`` first when given, then falls back to the
    definitions bundled with the package.
    """
    variant = FlowVariant(variant)
    if flows_dir is not None:
        for suffix in (".yaml", ".yml", ".json"):
            candidate = flows_dir / f"{variant.value}{suffix}"
            if candidate.exists():
                return load_flow(candidate)

    bundled = resources.files("budgetflow") / "flows" / f"{variant.value}.yaml"
    with resources.as_file(bundled) as path:
        return load_flow(path)
