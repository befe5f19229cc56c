"""
Core Utilities Package

Shared models, configuration and utilities used by the questionnaire engine
and the cashflow analysis.

This package provides:
- Configuration management for environment-specific settings
- Currency formatting and pay-frequency normalization
- Answer and income stream data models
- The budgetflow exception hierarchy
"""

from .config import (
    Config,
    Environment,
    get_config,
    reload_config,
)
from .currency import (
    Frequency,
    format_currency,
    normalize_to_monthly,
    parse_amount,
)
from .errors import (
    BrokenFlowReference,
    BudgetflowError,
    FlowDefinitionError,
    InvalidAnswerShape,
    StoreFailure,
)
from .models import Answer, FlowVariant, IncomeStream, IncomeType

__all__ = [
    "Answer",
    "BrokenFlowReference",
    "BudgetflowError",
    # Configuration
    "Config",
    "Environment",
    "FlowDefinitionError",
    "FlowVariant",
    "Frequency",
    "IncomeStream",
    "IncomeType",
    "InvalidAnswerShape",
    "StoreFailure",
    "format_currency",
    "get_config",
    "normalize_to_monthly",
    "parse_amount",
    "reload_config",
]
