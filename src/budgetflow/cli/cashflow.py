#!/usr/bin/env python3
"""
Cash Flow CLI - Summary and Breakdown Commands

Monthly cashflow summary and categorized expense breakdown for a session,
with optional what-if scenarios given as options or a YAML file.
"""

import json
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

import click

from ..analysis.cash_flow import compute_breakdown, compute_summary, line_label
from ..analysis.report import export_breakdown, generate_breakdown_chart, summary_lines
from ..analysis.scenarios import AmountToggle, PercentToggle, ScenarioConfig, load_scenarios
from ..core.config import get_config
from ..core.currency import format_currency
from ..core.errors import FlowDefinitionError, StoreFailure
from ..core.models import Answer, FlowVariant
from ..survey.datastore import JsonAnswerStore, load_all_answers
from ..survey.definition import load_builtin_flow

# Scenario option name -> (toggle field, parameter kind)
SCENARIO_OPTIONS = {
    "partner_income": ("add_partner_income", "amount"),
    "income_raise": ("income_raise", "percent"),
    "side_hustle": ("side_hustle", "amount"),
    "partner_covers": ("partner_covers_expenses", "percent"),
    "reduce_dining": ("reduce_dining", "percent"),
    "reduce_subscriptions": ("reduce_subscriptions", "percent"),
    "cheaper_housing": ("cheaper_housing", "amount"),
    "increase_savings": ("increase_savings", "percent"),
    "coffee_savings": ("coffee_savings", "amount"),
}


def scenario_options(func: Callable) -> Callable:
    """Add the shared scenario options to a command."""
    options = [
        click.option("--scenarios", "scenarios_file", type=click.Path(dir_okay=False), help="Scenario YAML file"),
        click.option("--partner-income", type=float, help="Add partner income ($/month)"),
        click.option("--income-raise", type=float, help="Raise on current income (%)"),
        click.option("--side-hustle", type=float, help="Add side income ($/month)"),
        click.option("--partner-covers", type=float, help="Share of expenses a partner covers (%)"),
        click.option("--reduce-dining", type=float, help="Cut dining out (%)"),
        click.option("--reduce-subscriptions", type=float, help="Cut streaming subscriptions (%)"),
        click.option("--cheaper-housing", type=float, help="Lower housing cost ($/month)"),
        click.option("--increase-savings", type=float, help="Save more of your income (%)"),
        click.option("--coffee-savings", type=float, help="Invest coffee money instead ($/month)"),
        click.option(
            "--exclude-investments", is_flag=True, help="Leave investment allocations out of expenses"
        ),
        click.option("--session", "session_id", required=True, help="Session id"),
    ]
    for option in options:
        func = option(func)
    return func


def build_scenarios(scenarios_file: str | None, overrides: dict[str, float | None]) -> ScenarioConfig:
    """
    Combine a scenario file with command-line overrides.

    Options given on the command line replace the file's toggle of the same
    name; a value of 0 disables that toggle.

    Raises:
        click.ClickException: If the scenario file cannot be loaded
    """
    scenarios = ScenarioConfig()
    if scenarios_file:
        try:
            scenarios = load_scenarios(Path(scenarios_file))
        except (FileNotFoundError, ValueError) as e:
            raise click.ClickException(str(e)) from e

    changes: dict[str, Any] = {}
    for option_name, value in overrides.items():
        if value is None:
            continue
        if value < 0:
            raise click.BadParameter(f"must not be negative: {value}", param_hint=f"--{option_name.replace('_', '-')}")
        field_name, kind = SCENARIO_OPTIONS[option_name]
        if kind == "amount":
            changes[field_name] = AmountToggle(enabled=value > 0, amount=value)
        else:
            changes[field_name] = PercentToggle(enabled=value > 0, percent=value)

    return replace(scenarios, **changes)


def _load_answers(session_id: str) -> list[Answer]:
    store = JsonAnswerStore(get_config().survey.answers_dir)
    try:
        answers = load_all_answers(store, session_id)
    except StoreFailure as e:
        click.echo(f"❌ Could not load answers: {e}", err=True)
        raise click.ClickException("Answers are unavailable right now, please try again") from e

    if not answers:
        raise click.ClickException(f"No answers found for session {session_id}")
    return answers


def _expense_labels() -> dict[str, str]:
    try:
        flow = load_builtin_flow(FlowVariant.EXPENSE, get_config().survey.flows_dir)
    except (FileNotFoundError, FlowDefinitionError):
        return {}
    return {question_id: line_label(node.prompt) for question_id, node in flow.items()}


@click.group()
def cashflow() -> None:
    """Monthly cashflow summary and breakdown commands."""
    pass


@cashflow.command()
@scenario_options
@click.option(
    "--format", type=click.Choice(["text", "json"]), default="text", help="Output format (default: text)"
)
@click.pass_context
def summary(
    ctx: click.Context,
    session_id: str,
    exclude_investments: bool,
    scenarios_file: str | None,
    format: str,
    **overrides: float | None,
) -> None:
    """
    Show monthly income, taxes, expenses and net cashflow.

    Examples:
      budgetflow cashflow summary --session household
      budgetflow cashflow summary --session household --income-raise 10 --reduce-dining 50
      budgetflow cashflow summary --session household --scenarios what_if.yaml --format json
    """
    config = get_config()
    scenarios = build_scenarios(scenarios_file, overrides)
    answers = _load_answers(session_id)

    result = compute_summary(answers, scenarios, not exclude_investments, config.scenarios)

    if format == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if ctx.obj.get("verbose", False):
        click.echo(f"Session: {session_id} ({len(answers)} answers)")
        click.echo(f"Active scenarios: {', '.join(scenarios.active_names()) or 'none'}")
        click.echo()

    click.echo("Monthly Cashflow")
    click.echo("=" * 40)
    for line in summary_lines(result):
        click.echo(line)


@cashflow.command()
@scenario_options
@click.option(
    "--format",
    type=click.Choice(["text", "csv", "json"]),
    default="text",
    help="Output format (default: text)",
)
@click.option("--chart", is_flag=True, help="Also render a bar chart")
@click.option("--output-dir", help="Override output directory")
@click.pass_context
def breakdown(
    ctx: click.Context,
    session_id: str,
    exclude_investments: bool,
    scenarios_file: str | None,
    format: str,
    chart: bool,
    output_dir: str | None,
    **overrides: float | None,
) -> None:
    """
    Show expenses grouped by category, largest first.

    Examples:
      budgetflow cashflow breakdown --session household
      budgetflow cashflow breakdown --session household --cheaper-housing 300 --chart
      budgetflow cashflow breakdown --session household --format csv --output-dir ./reports
    """
    config = get_config()
    scenarios = build_scenarios(scenarios_file, overrides)
    answers = _load_answers(session_id)
    include_investments = not exclude_investments

    result = compute_summary(answers, scenarios, include_investments, config.scenarios)
    rows = compute_breakdown(answers, scenarios, include_investments, config.scenarios, _expense_labels())

    output_path = Path(output_dir) if output_dir else config.report.output_dir

    if format == "text":
        if not rows:
            click.echo("No expenses recorded.")
        for row in rows:
            click.echo(f"{row.name:<30} {format_currency(row.value):>12}")
            if ctx.obj.get("verbose", False):
                for item in row.items:
                    click.echo(f"    {item.name:<26} {format_currency(item.value):>12}")
    else:
        try:
            output_file = export_breakdown(result, rows, output_path, format)
        except OSError as e:
            raise click.ClickException(f"Could not write breakdown: {e}") from e
        click.echo(f"✅ Breakdown saved to: {output_file}")

    if chart:
        if not rows:
            raise click.ClickException("No expense categories to chart")
        try:
            chart_file = generate_breakdown_chart(rows, result, output_path, config.report)
        except OSError as e:
            raise click.ClickException(f"Could not write chart: {e}") from e
        click.echo(f"✅ Chart saved to: {chart_file}")
