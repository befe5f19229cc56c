"""
Analysis Package

Cashflow aggregation, scenario overlays and reporting.
"""

from .cash_flow import (
    CategoryRow,
    ExpenseLine,
    SummaryResult,
    compute_breakdown,
    compute_summary,
    top_level_category,
)
from .scenarios import AmountToggle, PercentToggle, ScenarioConfig, load_scenarios

__all__ = [
    "AmountToggle",
    "CategoryRow",
    "ExpenseLine",
    "PercentToggle",
    "ScenarioConfig",
    "SummaryResult",
    "compute_breakdown",
    "compute_summary",
    "load_scenarios",
    "top_level_category",
]
