"""
Survey Package

Question flow engine for the income and expense questionnaires.

This package provides:
- Question node types with per-type branch resolution
- Flow definitions loaded from YAML/JSON
- Immutable session state and pure flow transitions
- Answer stores (in-memory and JSON files)
- The questionnaire controller tying flow, store and session together
- Income stream and tax settings capture
"""

from .datastore import AnswerStore, InMemoryAnswerStore, JsonAnswerStore, load_all_answers
from .definition import FlowDefinition, load_builtin_flow, load_flow
from .engine import (
    FlowSession,
    apply_answer,
    find_resume_point,
    go_back,
    jump_to,
    progress_percent,
    resolve_next,
    start_session,
    table_rows,
)
from .income import load_income_streams, save_income_stream, save_tax_settings
from .nodes import (
    CurrencyNode,
    MultiSelectNode,
    NumberNode,
    QuestionNode,
    SingleSelectNode,
    SummaryNode,
    TableNode,
    YesNoNode,
    node_from_dict,
)
from .questionnaire import Questionnaire

__all__ = [
    # Stores
    "AnswerStore",
    "CurrencyNode",
    # Definitions
    "FlowDefinition",
    # Engine
    "FlowSession",
    "InMemoryAnswerStore",
    "JsonAnswerStore",
    "MultiSelectNode",
    "NumberNode",
    # Nodes
    "QuestionNode",
    "Questionnaire",
    "SingleSelectNode",
    "SummaryNode",
    "TableNode",
    "YesNoNode",
    "apply_answer",
    "find_resume_point",
    "go_back",
    "jump_to",
    "load_all_answers",
    "load_builtin_flow",
    "load_flow",
    "load_income_streams",
    "node_from_dict",
    "progress_percent",
    "resolve_next",
    "save_income_stream",
    "save_tax_settings",
    "start_session",
    "table_rows",
]
