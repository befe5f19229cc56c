#!/usr/bin/env python3
"""
Survey CLI - Questionnaire Commands

Interactive income and expense questionnaires plus commands for reviewing
stored answers, capturing income streams and checking flow definitions.
"""

from pathlib import Path
from typing import Any

import click

from ..core.config import get_config
from ..core.currency import Frequency, format_currency, parse_amount
from ..core.errors import BrokenFlowReference, FlowDefinitionError, InvalidAnswerShape, StoreFailure
from ..core.models import FlowVariant, IncomeStream, IncomeType
from ..survey.datastore import JsonAnswerStore
from ..survey.definition import FlowDefinition, load_builtin_flow, load_flow
from ..survey.income import TAX_RATE_PRESETS, load_income_streams, save_income_stream, save_tax_settings
from ..survey.nodes import (
    CurrencyNode,
    MultiSelectNode,
    NumberNode,
    QuestionNode,
    SingleSelectNode,
    TableNode,
    YesNoNode,
)
from ..survey.questionnaire import Questionnaire

BACK_WORDS = ("back", "b")
QUIT_WORDS = ("quit", "q")
YES_WORDS = ("y", "yes", "true")
NO_WORDS = ("n", "no", "false")

VARIANTS = click.Choice([variant.value for variant in FlowVariant])


class _Navigation(Exception):
    """Raised from a prompt when the user asks to go back or quit."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(action)


def _open_store() -> JsonAnswerStore:
    return JsonAnswerStore(get_config().survey.answers_dir)


def _open_flow(variant: str, flow_file: str | None) -> FlowDefinition:
    try:
        if flow_file:
            flow = load_flow(Path(flow_file))
            if flow.variant.value != variant:
                raise click.ClickException(f"{flow_file} defines the {flow.variant.value} flow, not {variant}")
            return flow
        return load_builtin_flow(variant, get_config().survey.flows_dir)
    except (FileNotFoundError, FlowDefinitionError) as e:
        raise click.ClickException(str(e)) from e


def parse_response(node: QuestionNode, text: str) -> Any:
    """
    Convert typed input into an answer value for ``node``.

    Select questions accept option numbers or option text; multi-select
    answers are comma separated.

    Raises:
        ValueError: If the text cannot be read as an answer for the node
    """
    text = text.strip()

    if isinstance(node, YesNoNode):
        if text.lower() in YES_WORDS:
            return True
        if text.lower() in NO_WORDS:
            return False
        raise ValueError("Please answer y or n")

    if isinstance(node, SingleSelectNode):
        return _pick_option(node.options, text)

    if isinstance(node, MultiSelectNode):
        picks = [part for part in (p.strip() for p in text.split(",")) if part]
        if not picks:
            raise ValueError("Select at least one option")
        return [_pick_option(node.options, pick) for pick in picks]

    if isinstance(node, (CurrencyNode, NumberNode)):
        amount = parse_amount(text)
        if amount is None:
            raise ValueError(f"'{text}' is not a number")
        return amount

    raise ValueError(f"Cannot answer {node.type} questions from a single line")


def _pick_option(options: tuple[str, ...], text: str) -> str:
    if text.isdigit() and 1 <= int(text) <= len(options):
        return options[int(text) - 1]
    for option in options:
        if option.lower() == text.lower():
            return option
    raise ValueError(f"'{text}' is not one of the options")


def format_value(node: QuestionNode | None, value: Any) -> str:
    """Display text for a stored answer value."""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{row}: {format_currency(amount)}" for row, amount in value.items())
    if isinstance(node, CurrencyNode):
        return format_currency(value)
    return str(value)


def _prompt(text: str, **kwargs: Any) -> str:
    response = click.prompt(text, **kwargs)
    if response.strip().lower() in BACK_WORDS:
        raise _Navigation("back")
    if response.strip().lower() in QUIT_WORDS:
        raise _Navigation("quit")
    return response


def _ask(questionnaire: Questionnaire, node: QuestionNode) -> Any:
    """Prompt until the user enters something that parses for ``node``."""
    current = questionnaire.current_value()
    if current is not None:
        click.echo(f"  Current answer: {format_value(node, current)}")

    if isinstance(node, (SingleSelectNode, MultiSelectNode)):
        for index, option in enumerate(node.options, start=1):
            click.echo(f"  {index}. {option}")

    if isinstance(node, TableNode):
        rows = questionnaire.table_rows()
        if not rows:
            click.echo("  Nothing to enter here.")
            return {}
        previous = current if isinstance(current, dict) else {}
        values = {}
        for row in rows:
            while True:
                text = _prompt(f"  {row}", default=str(previous.get(row, 0)))
                amount = parse_amount(text)
                if amount is not None:
                    values[row] = amount
                    break
                click.echo(f"  '{text}' is not an amount", err=True)
        return values

    hint = {
        YesNoNode: "Answer (y/n)",
        SingleSelectNode: "Choose one",
        MultiSelectNode: "Choose one or more (comma separated)",
        CurrencyNode: "Monthly amount ($)",
    }.get(type(node), "Answer")

    while True:
        text = _prompt(hint)
        try:
            return parse_response(node, text)
        except ValueError as e:
            click.echo(f"  {e}", err=True)


def run_questionnaire(questionnaire: Questionnaire) -> bool:
    """
    Walk the user through the questionnaire until it completes or they quit.

    Returns:
        True when the flow was completed
    """
    click.echo("Type 'back' to return to the previous question or 'quit' to stop.")

    while not questionnaire.is_complete:
        try:
            node = questionnaire.current_question
        except BrokenFlowReference as e:
            click.echo(f"\n⚠️  {e}", err=True)
            if not click.confirm("Return to the first question?", default=True):
                return False
            questionnaire.recover()
            continue

        click.echo(f"\n[{questionnaire.progress}%] {node.get_display_title()}")
        if node.help_text:
            click.echo(f"  {node.help_text}")

        try:
            value = _ask(questionnaire, node)
        except _Navigation as nav:
            if nav.action == "quit":
                click.echo("Progress saved. Run the same command to resume.")
                return False
            if not questionnaire.session.can_go_back:
                click.echo("  Already at the first question.")
            questionnaire.go_back()
            continue

        try:
            questionnaire.submit_answer(node.id, value)
        except InvalidAnswerShape as e:
            click.echo(f"  ❌ {e.reason}", err=True)
        except StoreFailure as e:
            click.echo(f"  ❌ Could not save your answer ({e}). Please try again.", err=True)

    return True


@click.group()
def survey() -> None:
    """Income and expense questionnaire commands."""
    pass


@survey.command()
@click.argument("variant", type=VARIANTS)
@click.option("--session", "session_id", required=True, help="Session id to answer for")
@click.option("--question", "question_id", help="Open a specific question to edit its answer")
@click.option("--flow-file", type=click.Path(dir_okay=False), help="Use a flow definition file")
@click.pass_context
def take(ctx: click.Context, variant: str, session_id: str, question_id: str | None, flow_file: str | None) -> None:
    """
    Answer a questionnaire, resuming where you left off.

    Examples:
      budgetflow survey take expense --session household
      budgetflow survey take expense --session household --question food.dining
    """
    flow = _open_flow(variant, flow_file)
    store = _open_store()

    try:
        try:
            questionnaire = Questionnaire(flow, store, session_id, question_id)
        except BrokenFlowReference as e:
            click.echo(f"⚠️  {e}", err=True)
            if not click.confirm("Start from the first question instead?", default=True):
                return
            questionnaire = Questionnaire(flow, store, session_id, e.recovery_question_id or flow.start_id)
    except StoreFailure as e:
        click.echo(f"❌ Could not load answers: {e}", err=True)
        raise click.ClickException("Answers are unavailable right now, please try again") from e

    if ctx.obj.get("verbose", False):
        click.echo(f"Session: {session_id}")
        click.echo(f"Flow: {flow!r}")
        click.echo(f"Starting at: {questionnaire.current_question_id}")

    if run_questionnaire(questionnaire):
        click.echo(f"\n✅ {variant.capitalize()} questionnaire complete ({questionnaire.progress}% answered)")
        click.echo(f"See your results with: budgetflow cashflow summary --session {session_id}")


@survey.command()
@click.option("--session", "session_id", required=True, help="Session id")
def status(session_id: str) -> None:
    """Show progress and resume point for each questionnaire."""
    store = _open_store()

    try:
        click.echo(store.summary_text(session_id))
        for variant in FlowVariant:
            flow = _open_flow(variant.value, None)
            questionnaire = Questionnaire(flow, store, session_id)
            state = "complete" if questionnaire.is_complete else f"next: {questionnaire.current_question_id}"
            click.echo(f"  {variant.value:<8} {questionnaire.progress:>3}% ({state})")
    except (StoreFailure, BrokenFlowReference) as e:
        raise click.ClickException(str(e)) from e

    modified = store.last_modified(session_id)
    if modified:
        click.echo(f"Last updated: {modified:%Y-%m-%d %H:%M}")


@survey.command()
def sessions() -> None:
    """List sessions with stored answers."""
    store = _open_store()
    session_ids = store.list_sessions()

    if not session_ids:
        click.echo("No sessions found.")
        return

    for session_id in session_ids:
        click.echo(session_id)


@survey.command()
@click.option("--session", "session_id", required=True, help="Session id")
@click.option("--variant", type=VARIANTS, help="Only show one questionnaire")
def review(session_id: str, variant: str | None) -> None:
    """
    List every stored answer with its question.

    Example:
      budgetflow survey review --session household --variant expense
    """
    store = _open_store()
    variants = [FlowVariant(variant)] if variant else list(FlowVariant)

    for flow_variant in variants:
        flow = _open_flow(flow_variant.value, None)
        try:
            answers = store.load_answers(session_id, flow_variant)
        except StoreFailure as e:
            raise click.ClickException(str(e)) from e

        click.echo(f"\n{flow_variant.value.capitalize()} answers")
        click.echo("=" * 60)

        if not answers:
            click.echo("  (none)")
            continue

        if flow_variant == FlowVariant.INCOME:
            for stream_id, stream in load_income_streams(answers):
                click.echo(
                    f"  {stream_id}: {stream.type.value} {format_currency(stream.amount)} "
                    f"{stream.frequency.value} ({format_currency(stream.monthly_amount)}/mo)"
                )

        for answer in answers:
            node = flow.get(answer.question_id)
            if node is None:
                if not answer.question_id.startswith("income_stream_"):
                    click.echo(f"  {answer.question_id}: {format_value(None, answer.value)} (question removed)")
                continue
            click.echo(f"  {node.prompt}")
            click.echo(f"    {format_value(node, answer.value)}")


@survey.command("add-income")
@click.option("--session", "session_id", required=True, help="Session id")
@click.option(
    "--type",
    "income_type",
    type=click.Choice([t.value for t in IncomeType]),
    required=True,
    help="Kind of income",
)
@click.option("--amount", type=float, required=True, help="Amount per pay period")
@click.option(
    "--frequency",
    type=click.Choice([f.value for f in Frequency]),
    default="monthly",
    help="Pay frequency (default: monthly)",
)
@click.option("--stream-id", help="Existing income_stream_<n> id to replace")
def add_income(session_id: str, income_type: str, amount: float, frequency: str, stream_id: str | None) -> None:
    """
    Record an income stream.

    Examples:
      budgetflow survey add-income --session household --type W2 --amount 6000
      budgetflow survey add-income --session household --type 1099 --amount 1200 --frequency weekly
    """
    stream = IncomeStream(type=IncomeType(income_type), amount=amount, frequency=Frequency(frequency))

    try:
        question_id = save_income_stream(_open_store(), session_id, stream, stream_id)
    except (InvalidAnswerShape, StoreFailure) as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"✅ Saved {question_id}: {format_currency(stream.monthly_amount)}/month")


@survey.command("set-tax")
@click.option("--session", "session_id", required=True, help="Session id")
@click.option("--rate", type=float, help=f"Effective tax rate in percent (common: {', '.join(map(str, TAX_RATE_PRESETS))})")
@click.option("--no-tax", is_flag=True, help="Income is already after tax")
def set_tax(session_id: str, rate: float | None, no_tax: bool) -> None:
    """
    Record the effective tax rate applied to income.

    Examples:
      budgetflow survey set-tax --session household --rate 25
      budgetflow survey set-tax --session household --no-tax
    """
    if no_tax == (rate is not None):
        raise click.UsageError("Give exactly one of --rate or --no-tax")

    try:
        save_tax_settings(_open_store(), session_id, applicable=not no_tax, rate_percent=rate or 0)
    except (InvalidAnswerShape, StoreFailure) as e:
        raise click.ClickException(str(e)) from e

    if no_tax:
        click.echo("✅ Taxes will not be estimated")
    else:
        click.echo(f"✅ Tax rate set to {rate:g}%")


@survey.command("validate-flow")
@click.argument("variant", type=VARIANTS)
@click.option("--flow-file", type=click.Path(dir_okay=False), help="Validate a flow definition file")
def validate_flow(variant: str, flow_file: str | None) -> None:
    """
    Check a flow definition for dangling references and dead ends.

    Examples:
      budgetflow survey validate-flow expense
      budgetflow survey validate-flow expense --flow-file my_expense_flow.yaml
    """
    flow = _open_flow(variant, flow_file)
    errors = flow.validate()
    cycles = flow.detect_cycles()

    click.echo(f"{flow!r}")
    for cycle in cycles:
        click.echo(f"  ⚠️  Cycle: {' -> '.join(cycle)}")

    if errors:
        for error in errors:
            click.echo(f"  ❌ {error}", err=True)
        raise click.ClickException(f"{len(errors)} problem(s) found")

    click.echo("✅ Flow definition is valid")
