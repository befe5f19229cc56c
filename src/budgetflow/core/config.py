#!/usr/bin/env python3
"""
Configuration Management for Budgetflow

Handles environment-based configuration with sensible defaults and validation.
Supports multiple environments (development, test, production); scenario
constants that have no authoritative source (growth rate, investment row
names) are exposed here so they can be tuned without code changes.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


DEFAULT_INVESTMENT_ITEMS = [
    "Retirement (401k/IRA/Solo 401k)",
    "Brokerage/Taxable",
    "College fund (if applicable)",
]


@dataclass
class SurveyConfig:
    """Answer storage and questionnaire settings."""

    answers_dir: Path
    flows_dir: Path | None = None


@dataclass
class ScenarioDefaults:
    """Domain constants used by the scenario overlay."""

    coffee_growth_rate: float = 0.036
    investment_items: list = field(default_factory=lambda: list(DEFAULT_INVESTMENT_ITEMS))
    dining_label: str = "Dining out"
    subscription_label: str = "Streaming"
    housing_label: str = "Housing"
    housing_keywords: list = field(default_factory=lambda: ["Rent", "Mortgage"])
    savings_category: str = "Savings & Investments"


@dataclass
class ReportConfig:
    """Report and chart output configuration."""

    output_dir: Path
    chart_width: int = 12
    chart_height: int = 8
    dpi: int = 150


@dataclass
class Config:
    """
    Main configuration class for the budgetflow application.

    Loads configuration from environment variables with defaults
    and validation for each environment type.
    """

    environment: Environment

    # Core directories
    data_dir: Path
    output_dir: Path

    # Component configurations
    survey: SurveyConfig
    scenarios: ScenarioDefaults
    report: ReportConfig

    # Application settings
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        env = Environment(os.getenv("BUDGETFLOW_ENV", "development"))

        if env == Environment.TEST:
            default_test_dir = Path(tempfile.gettempdir()) / "test_budgetflow"
            base_dir = Path(os.getenv("BUDGETFLOW_DATA_DIR", str(default_test_dir)))
        else:
            base_dir = Path(os.getenv("BUDGETFLOW_DATA_DIR", "./data")).expanduser().resolve()

        data_dir = base_dir
        output_dir = data_dir / "reports"

        for directory in [data_dir, output_dir]:
            directory.mkdir(parents=True, exist_ok=True)

        flows_dir = os.getenv("BUDGETFLOW_FLOWS_DIR")
        survey = SurveyConfig(
            answers_dir=data_dir / "answers",
            flows_dir=Path(flows_dir).expanduser() if flows_dir else None,
        )

        scenarios = ScenarioDefaults(
            coffee_growth_rate=float(os.getenv("COFFEE_GROWTH_RATE", "0.036")),
            investment_items=_parse_list(
                os.getenv("INVESTMENT_ITEMS", ""), delimiter=";"
            )
            or list(DEFAULT_INVESTMENT_ITEMS),
        )

        report = ReportConfig(
            output_dir=output_dir,
            chart_width=int(os.getenv("CHART_WIDTH", "12")),
            chart_height=int(os.getenv("CHART_HEIGHT", "8")),
        )

        return cls(
            environment=env,
            data_dir=data_dir,
            output_dir=output_dir,
            survey=survey,
            scenarios=scenarios,
            report=report,
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> list:
        """Validate configuration and return list of errors."""
        errors = []

        for name, path in [
            ("data_dir", self.data_dir),
            ("output_dir", self.output_dir),
        ]:
            if not path.exists():
                errors.append(f"{name} does not exist: {path}")

        if self.survey.flows_dir is not None and not self.survey.flows_dir.is_dir():
            errors.append(f"flows_dir does not exist: {self.survey.flows_dir}")

        if self.scenarios.coffee_growth_rate < 0:
            errors.append("Coffee growth rate must be non-negative")
        if self.report.chart_width <= 0 or self.report.chart_height <= 0:
            errors.append("Chart dimensions must be positive")

        return errors

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # matplotlib is chatty at DEBUG
        logging.getLogger("matplotlib").setLevel(logging.WARNING)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a JSON-friendly dictionary."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if hasattr(field_value, "__dict__") and not isinstance(field_value, Enum):
                result[field_name] = {
                    nested_name: _plain(nested_value)
                    for nested_name, nested_value in field_value.__dict__.items()
                }
            else:
                result[field_name] = _plain(field_value)

        return result


def _plain(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_list(value: str, delimiter: str = ",") -> list:
    """Parse delimited string into list, handling empty values."""
    if not value:
        return []
    return [item.strip() for item in value.split(delimiter) if item.strip()]


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_environment()

        errors = _config.validate()
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        _config.setup_logging()

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()

