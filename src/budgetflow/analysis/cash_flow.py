#!/usr/bin/env python3
"""
Cashflow Aggregation

Reduces a session's persisted answers plus a set of scenario toggles into
monthly income, expense, tax and net figures, and into a categorized expense
breakdown for reporting.

Both entry points are pure functions of their arguments: no I/O, no global
state, and the same inputs always produce bit-identical results.

Key Principles:
- Only ``income_stream_`` answers count as income
- An expense answer is worth its normalized monthly value, else its raw
  value when numeric, else nothing
- Scenario deltas are computed against base figures and simply summed
- The breakdown applies the same matching rules as the summary so both agree
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.config import ScenarioDefaults
from ..core.currency import format_currency, is_number
from ..core.models import Answer, FlowVariant
from ..survey.income import TAX_APPLICABLE_QUESTION_ID, TAX_RATE_QUESTION_ID, is_income_stream
from .scenarios import ScenarioConfig

# Leading "A. " style ordering prefix on category labels
_CATEGORY_PREFIX = re.compile(r"^[A-Z]\.\s*")

UNCATEGORIZED = "Other"


@dataclass(frozen=True)
class SummaryResult:
    """
    Monthly cashflow figures for one session.

    ``base_*`` tax and net figures ignore scenarios; the unprefixed ones are
    what gets displayed, with every active scenario applied.
    """

    include_investments: bool

    base_income: float
    income_delta: float
    total_income: float

    investment_amount: float
    base_expenses_with_investments: float
    base_expenses_without_investments: float
    base_expenses: float
    expense_delta: float
    total_expenses: float

    tax_rate_percent: float
    estimated_taxes: float
    after_tax_income: float
    net_monthly: float

    base_estimated_taxes: float
    base_after_tax_income: float
    base_net_monthly: float

    income_adjustments: tuple[str, ...] = ()
    expense_adjustments: tuple[str, ...] = ()

    @property
    def has_adjustments(self) -> bool:
        return bool(self.income_adjustments or self.expense_adjustments)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "include_investments": self.include_investments,
            "base_income": self.base_income,
            "income_delta": self.income_delta,
            "total_income": self.total_income,
            "investment_amount": self.investment_amount,
            "base_expenses_with_investments": self.base_expenses_with_investments,
            "base_expenses_without_investments": self.base_expenses_without_investments,
            "base_expenses": self.base_expenses,
            "expense_delta": self.expense_delta,
            "total_expenses": self.total_expenses,
            "tax_rate_percent": self.tax_rate_percent,
            "estimated_taxes": self.estimated_taxes,
            "after_tax_income": self.after_tax_income,
            "net_monthly": self.net_monthly,
            "base_estimated_taxes": self.base_estimated_taxes,
            "base_after_tax_income": self.base_after_tax_income,
            "base_net_monthly": self.base_net_monthly,
            "income_adjustments": list(self.income_adjustments),
            "expense_adjustments": list(self.expense_adjustments),
        }


@dataclass(frozen=True)
class ExpenseLine:
    """One line item inside a breakdown category."""

    name: str
    value: float
    base_value: float
    question_id: str
    category: str


@dataclass(frozen=True)
class CategoryRow:
    """A top-level expense category with its line items, largest first."""

    name: str
    value: float
    items: tuple[ExpenseLine, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Answer helpers
# ---------------------------------------------------------------------------


def effective_value(answer: Answer) -> float:
    """Monetary value of an expense answer."""
    if is_number(answer.normalized_monthly_value):
        return float(answer.normalized_monthly_value)
    if is_number(answer.value):
        return float(answer.value)
    return 0.0


def investment_amount_of(answer: Answer, investment_items: Iterable[str]) -> float:
    """Sum of the investment-designated rows of a table answer."""
    if not isinstance(answer.value, Mapping):
        return 0.0
    items = set(investment_items)
    return float(
        sum(amount for row, amount in answer.value.items() if row in items and is_number(amount) and amount > 0)
    )


def top_level_category(category: str | None) -> str:
    """
    Top-level group of a category label.

    Example:
        top_level_category("C. Food > Dining out") -> "Food"
    """
    main = (category or UNCATEGORIZED).split(" > ")[0]
    return _CATEGORY_PREFIX.sub("", main).strip() or UNCATEGORIZED


def line_label(prompt: str) -> str:
    """Short label for a question prompt: drops parentheticals and the trailing '?'."""
    label = prompt.split("(")[0] if "(" in prompt else prompt
    label = label.strip()
    if label.endswith("?"):
        label = label[:-1]
    return label.strip()


def tax_rate_percent(answers: Iterable[Answer]) -> float:
    """
    Numeric value of the income tax-rate answer, or 0.

    A "no" to the tax-applicable question overrides any rate left over from
    an earlier answer.
    """
    income_answers = {a.question_id: a for a in answers if a.flow_variant == FlowVariant.INCOME}

    applicable = income_answers.get(TAX_APPLICABLE_QUESTION_ID)
    if applicable is not None and applicable.value is False:
        return 0.0

    rate = income_answers.get(TAX_RATE_QUESTION_ID)
    if rate is None or not is_number(rate.value):
        return 0.0
    return float(rate.value)


def _is_dining(answer: Answer, defaults: ScenarioDefaults) -> bool:
    return bool(answer.category) and defaults.dining_label in answer.category


def _is_subscription(answer: Answer, defaults: ScenarioDefaults) -> bool:
    label = defaults.subscription_label
    if answer.category and label in answer.category:
        return True
    return answer.value is not None and label.lower() in str(answer.value).lower()


def _is_housing(answer: Answer, defaults: ScenarioDefaults) -> bool:
    category = answer.category or ""
    return defaults.housing_label in category and any(keyword in category for keyword in defaults.housing_keywords)


def _percent(value: float) -> str:
    return f"{value:g}%"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def _income_deltas(base_income: float, scenarios: ScenarioConfig, defaults: ScenarioDefaults) -> tuple[float, list[str]]:
    delta = 0.0
    adjustments = []

    if scenarios.add_partner_income.active:
        amount = scenarios.add_partner_income.amount
        delta += amount
        adjustments.append(f"+{format_currency(amount)} partner income")

    if scenarios.income_raise.active:
        raise_amount = base_income * scenarios.income_raise.fraction
        delta += raise_amount
        adjustments.append(f"+{_percent(scenarios.income_raise.percent)} raise ({format_currency(raise_amount)})")

    if scenarios.side_hustle.active:
        amount = scenarios.side_hustle.amount
        delta += amount
        adjustments.append(f"+{format_currency(amount)} side hustle")

    if scenarios.coffee_savings.active:
        annual_with_growth = coffee_annual_return(scenarios.coffee_savings.amount, defaults)
        monthly_income = annual_with_growth / 12
        delta += monthly_income
        adjustments.append(
            f"+{format_currency(monthly_income)} coffee savings investment "
            f"({format_currency(annual_with_growth)}/yr)"
        )

    return delta, adjustments


def coffee_annual_return(monthly_amount: float, defaults: ScenarioDefaults) -> float:
    """A year of redirected coffee money grown at the configured annual rate."""
    return monthly_amount * 12 * (1 + defaults.coffee_growth_rate)


def _expense_deltas(
    expense_answers: list[Answer],
    base_income: float,
    base_expenses: float,
    scenarios: ScenarioConfig,
    defaults: ScenarioDefaults,
) -> tuple[float, list[str]]:
    delta = 0.0
    adjustments = []

    if scenarios.partner_covers_expenses.active:
        reduction = base_expenses * scenarios.partner_covers_expenses.fraction
        delta -= reduction
        adjustments.append(
            f"-{_percent(scenarios.partner_covers_expenses.percent)} partner covers expenses "
            f"({format_currency(reduction)})"
        )

    dining_total = sum(effective_value(a) for a in expense_answers if _is_dining(a, defaults))
    if scenarios.reduce_dining.active and dining_total > 0:
        reduction = dining_total * scenarios.reduce_dining.fraction
        delta -= reduction
        adjustments.append(
            f"-{_percent(scenarios.reduce_dining.percent)} dining out reduction ({format_currency(reduction)})"
        )

    if scenarios.coffee_savings.active:
        amount = scenarios.coffee_savings.amount
        delta -= amount
        adjustments.append(
            f"-{format_currency(amount)} coffee expenses -> "
            f"{format_currency(coffee_annual_return(amount, defaults))}/yr investment return"
        )

    subscription_total = sum(effective_value(a) for a in expense_answers if _is_subscription(a, defaults))
    if scenarios.reduce_subscriptions.active and subscription_total > 0:
        reduction = subscription_total * scenarios.reduce_subscriptions.fraction
        delta -= reduction
        adjustments.append(
            f"-{_percent(scenarios.reduce_subscriptions.percent)} subscriptions reduction "
            f"({format_currency(reduction)})"
        )

    housing_total = sum(effective_value(a) for a in expense_answers if _is_housing(a, defaults))
    if scenarios.cheaper_housing.active and housing_total > 0:
        reduction = min(scenarios.cheaper_housing.amount, housing_total)
        delta -= reduction
        adjustments.append(f"-{format_currency(reduction)} cheaper housing")

    if scenarios.increase_savings.active:
        additional = base_income * scenarios.increase_savings.fraction
        delta += additional
        adjustments.append(
            f"+{_percent(scenarios.increase_savings.percent)} additional savings ({format_currency(additional)})"
        )

    return delta, adjustments


def compute_summary(
    answers: Iterable[Answer],
    scenarios: ScenarioConfig | None = None,
    include_investments: bool = True,
    defaults: ScenarioDefaults | None = None,
) -> SummaryResult:
    """
    Compute base and scenario-adjusted monthly cashflow.

    Args:
        answers: All answers of a session, both flow variants
        scenarios: Scenario toggles; no scenarios when omitted
        include_investments: Whether investment allocations count as expenses
        defaults: Scenario constants (growth rate, category labels,
            investment row names)

    Returns:
        SummaryResult with base and adjusted figures

    Example:
        One W2 stream of 6000/month, a 25% tax rate and expenses of
        1000, 500 and 200 where 500 is investments gives, with
        investments excluded: taxes 1500, after-tax 4500, expenses 1200,
        net 3300.
    """
    scenarios = scenarios or ScenarioConfig()
    defaults = defaults or ScenarioDefaults()
    answers = list(answers)

    income_answers = [
        a for a in answers if a.flow_variant == FlowVariant.INCOME and is_income_stream(a.question_id)
    ]
    expense_answers = [a for a in answers if a.flow_variant == FlowVariant.EXPENSE]

    base_income = float(
        sum(a.normalized_monthly_value for a in income_answers if is_number(a.normalized_monthly_value))
    )
    investment_amount = sum(investment_amount_of(a, defaults.investment_items) for a in expense_answers)
    with_investments = sum(effective_value(a) for a in expense_answers)
    without_investments = with_investments - investment_amount
    base_expenses = with_investments if include_investments else without_investments

    income_delta, income_adjustments = _income_deltas(base_income, scenarios, defaults)
    expense_delta, expense_adjustments = _expense_deltas(
        expense_answers, base_income, base_expenses, scenarios, defaults
    )

    total_income = base_income + income_delta
    total_expenses = max(0.0, base_expenses + expense_delta)

    rate_percent = tax_rate_percent(answers)
    rate = rate_percent / 100

    base_taxes = base_income * rate
    base_after_tax = base_income - base_taxes
    taxes = total_income * rate
    after_tax = total_income - taxes

    return SummaryResult(
        include_investments=include_investments,
        base_income=base_income,
        income_delta=income_delta,
        total_income=total_income,
        investment_amount=investment_amount,
        base_expenses_with_investments=with_investments,
        base_expenses_without_investments=without_investments,
        base_expenses=base_expenses,
        expense_delta=expense_delta,
        total_expenses=total_expenses,
        tax_rate_percent=rate_percent,
        estimated_taxes=taxes,
        after_tax_income=after_tax,
        net_monthly=after_tax - total_expenses,
        base_estimated_taxes=base_taxes,
        base_after_tax_income=base_after_tax,
        base_net_monthly=base_after_tax - base_expenses,
        income_adjustments=tuple(income_adjustments),
        expense_adjustments=tuple(expense_adjustments),
    )


# ---------------------------------------------------------------------------
# Breakdown
# ---------------------------------------------------------------------------


@dataclass
class _WorkingLine:
    name: str
    question_id: str
    category: str
    base: float
    dining: bool
    subscription: bool
    housing: bool
    value: float = field(init=False)

    def __post_init__(self) -> None:
        self.value = self.base

    def reduce(self, amount: float) -> float:
        """Take up to ``amount`` off the line; returns the part it could not absorb."""
        cut = min(amount, self.value)
        self.value -= cut
        return amount - cut


def _expand_answer(
    answer: Answer,
    include_investments: bool,
    defaults: ScenarioDefaults,
    labels: Mapping[str, str],
) -> list[_WorkingLine]:
    category = answer.category or UNCATEGORIZED
    flags = {
        "dining": _is_dining(answer, defaults),
        "subscription": _is_subscription(answer, defaults),
        "housing": _is_housing(answer, defaults),
    }

    if isinstance(answer.value, Mapping):
        return [
            _WorkingLine(name=row, question_id=answer.question_id, category=category, base=float(amount), **flags)
            for row, amount in answer.value.items()
            if is_number(amount)
            and amount > 0
            and (include_investments or row not in defaults.investment_items)
        ]

    value = effective_value(answer)
    if value <= 0:
        return []

    name = labels.get(answer.question_id)
    if not name:
        name = category.split(">")[-1].strip() if answer.category else answer.question_id
    return [_WorkingLine(name=name, question_id=answer.question_id, category=category, base=value, **flags)]


class _Reductions:
    """
    Applies reductions line by line, never below zero.

    Whatever a line cannot absorb is remembered per top-level category and
    later spread over the remaining lines, so the breakdown always adds up
    to the summary's expense total.
    """

    def __init__(self, lines: list[_WorkingLine]):
        self.lines = lines
        self.shortfalls: dict[str | None, float] = {}

    def _record(self, category: str | None, amount: float) -> None:
        if amount > 0:
            self.shortfalls[category] = self.shortfalls.get(category, 0.0) + amount

    def scale(self, lines: list[_WorkingLine], fraction: float) -> None:
        """Cut each line by ``fraction`` of its base value."""
        for line in lines:
            self._record(top_level_category(line.category), line.reduce(line.base * fraction))

    def allocate(self, lines: list[_WorkingLine], amount: float) -> None:
        """Spread a flat reduction over ``lines`` in order."""
        remaining = amount
        for line in lines:
            if remaining <= 0:
                break
            remaining = line.reduce(remaining)
        self._record(top_level_category(lines[0].category) if lines else None, remaining)

    def spill(self) -> None:
        """Take unabsorbed reductions from the same category first, then from the largest lines."""
        for category, amount in self.shortfalls.items():
            same_category = [line for line in self.lines if top_level_category(line.category) == category]
            for pool in (same_category, self.lines):
                for line in sorted(pool, key=lambda line: -line.value):
                    if amount <= 0:
                        break
                    amount = line.reduce(amount)
        self.shortfalls = {}


def compute_breakdown(
    answers: Iterable[Answer],
    scenarios: ScenarioConfig | None = None,
    include_investments: bool = True,
    defaults: ScenarioDefaults | None = None,
    labels: Mapping[str, str] | None = None,
) -> list[CategoryRow]:
    """
    Group expense answers into top-level categories with scenarios applied.

    Table answers expand into one line per row; investment rows are left out
    when ``include_investments`` is false. Every scenario is applied to the
    lines it matches in the summary, against what is left on each line. A
    reduction larger than its lines is taken from the rest of the category,
    then from the largest remaining lines, so the category totals add up to
    ``compute_summary``'s ``total_expenses``. Categories without a positive
    total are omitted.

    Args:
        answers: All answers of a session
        scenarios: Scenario toggles; no scenarios when omitted
        include_investments: Whether investment rows are included
        defaults: Scenario constants
        labels: Optional display names keyed by question id

    Returns:
        Category rows sorted by value, largest first
    """
    scenarios = scenarios or ScenarioConfig()
    defaults = defaults or ScenarioDefaults()
    labels = labels or {}
    answers = list(answers)

    lines: list[_WorkingLine] = []
    for answer in answers:
        if answer.flow_variant == FlowVariant.EXPENSE:
            lines.extend(_expand_answer(answer, include_investments, defaults, labels))

    reductions = _Reductions(lines)
    dining_lines = [line for line in lines if line.dining]

    if scenarios.partner_covers_expenses.active:
        reductions.scale(lines, scenarios.partner_covers_expenses.fraction)

    if scenarios.reduce_dining.active:
        reductions.scale(dining_lines, scenarios.reduce_dining.fraction)

    if scenarios.coffee_savings.active:
        reductions.allocate(dining_lines, scenarios.coffee_savings.amount)

    if scenarios.reduce_subscriptions.active:
        reductions.scale([line for line in lines if line.subscription], scenarios.reduce_subscriptions.fraction)

    if scenarios.cheaper_housing.active:
        housing_lines = [line for line in lines if line.housing]
        housing_total = sum(line.base for line in housing_lines)
        reductions.allocate(housing_lines, min(scenarios.cheaper_housing.amount, housing_total))

    if scenarios.increase_savings.active:
        base_income = sum(
            a.normalized_monthly_value
            for a in answers
            if a.flow_variant == FlowVariant.INCOME
            and is_income_stream(a.question_id)
            and is_number(a.normalized_monthly_value)
        )
        lines.append(
            _WorkingLine(
                name=f"Additional savings ({_percent(scenarios.increase_savings.percent)})",
                question_id="scenario.increase_savings",
                category=defaults.savings_category,
                base=base_income * scenarios.increase_savings.fraction,
                dining=False,
                subscription=False,
                housing=False,
            )
        )

    reductions.spill()

    grouped: dict[str, list[ExpenseLine]] = {}
    for line in lines:
        grouped.setdefault(top_level_category(line.category), []).append(
            ExpenseLine(
                name=line.name,
                value=line.value,
                base_value=line.base,
                question_id=line.question_id,
                category=line.category,
            )
        )

    rows = []
    for name, items in grouped.items():
        total = sum(item.value for item in items)
        if total > 0:
            kept = sorted((item for item in items if item.value > 0), key=lambda item: -item.value)
            rows.append(CategoryRow(name=name, value=total, items=tuple(kept)))

    return sorted(rows, key=lambda row: (-row.value, row.name))
