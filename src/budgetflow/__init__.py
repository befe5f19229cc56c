"""
Budgetflow - Household Cashflow Questionnaire

Collects income and expense data through branching questionnaires, stores
every answer, and derives a monthly cashflow summary with optional
"what-if" scenario adjustments.

Domain Packages:
- core: Configuration, currency helpers, data models, exceptions
- survey: Question flow engine, flow definitions, answer stores
- analysis: Cashflow aggregation, scenarios and reports
- cli: Command-line interface

Example Usage:
    from budgetflow.survey import InMemoryAnswerStore, Questionnaire, load_builtin_flow
    from budgetflow.analysis import ScenarioConfig, compute_summary
"""

__version__ = "0.1.0"
__author__ = "Budgetflow Developers"

from .core.config import Environment, get_config
from .core.models import Answer, FlowVariant, IncomeStream

__all__ = [
    # Core models
    "Answer",
    # Configuration
    "Environment",
    "FlowVariant",
    "IncomeStream",
    "get_config",
]
