#!/usr/bin/env python3
"""
Budgetflow Command Line

Top-level ``budgetflow`` command. Global options select the environment and
output detail; the ``survey`` group collects answers and the ``cashflow``
group reports on them.
"""

import logging
import os

import click

from ..core.config import Config, get_config, reload_config


def _enable_debug_logging() -> None:
    os.environ["LOG_LEVEL"] = "DEBUG"
    logging.getLogger().setLevel(logging.DEBUG)
    logging.getLogger("budgetflow").setLevel(logging.DEBUG)


def _config_rows(config_obj: Config) -> list[tuple[str, object]]:
    """Label/value pairs shown by ``budgetflow config``."""
    return [
        ("Environment", config_obj.environment.value),
        ("Data Directory", config_obj.data_dir),
        ("Answers Directory", config_obj.survey.answers_dir),
        ("Flows Directory", config_obj.survey.flows_dir or "(bundled)"),
        ("Output Directory", config_obj.output_dir),
        ("Coffee Growth Rate", f"{config_obj.scenarios.coffee_growth_rate:.1%}"),
        ("Investment Items", ", ".join(config_obj.scenarios.investment_items)),
        ("Debug Mode", config_obj.debug),
        ("Log Level", config_obj.log_level),
    ]


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Run against another environment's settings",
)
@click.option("--verbose", "-v", is_flag=True, help="Print session and environment details")
@click.option("--debug", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    Budgetflow - Household Cashflow Questionnaire

    Answer the income and expense questionnaires once, then see where the
    money goes each month and how what-if changes would move it.
    """
    ctx.ensure_object(dict)

    # The environment must be set before the configuration is built
    if config_env:
        os.environ["BUDGETFLOW_ENV"] = config_env
    if debug:
        _enable_debug_logging()

    config_obj = reload_config() if config_env else get_config()
    ctx.obj.update(verbose=verbose, debug=debug, config=config_obj)

    if verbose:
        click.echo(f"Environment: {config_obj.environment.value}")
        click.echo(f"Data directory: {config_obj.data_dir}")
    if debug:
        click.echo("Debug logging enabled")


@main.command()
def version() -> None:
    """Print the installed budgetflow version."""
    from budgetflow import __author__, __version__

    click.echo(f"Budgetflow v{__version__}")
    click.echo(f"Author: {__author__}")


@main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """List the directories and scenario settings in effect."""
    click.echo("Current Configuration:")
    for label, value in _config_rows(ctx.obj["config"]):
        click.echo(f"  {label}: {value}")


# Command groups
from .cashflow import cashflow  # noqa: E402
from .survey import survey  # noqa: E402

main.add_command(survey)
main.add_command(cashflow)


if __name__ == "__main__":
    main()
