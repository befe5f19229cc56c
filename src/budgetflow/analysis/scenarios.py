#!/usr/bin/env python3
"""
Scenario Configuration

"What-if" toggles layered over the persisted answers at display time.
Scenarios are never stored as answers. A toggle only has an effect when it
is enabled and its parameter is positive.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class AmountToggle:
    """Toggle with a flat monthly dollar amount."""

    enabled: bool = False
    amount: float = 0.0

    @property
    def active(self) -> bool:
        return self.enabled and self.amount > 0


@dataclass(frozen=True)
class PercentToggle:
    """Toggle with a percentage parameter (10 means 10%)."""

    enabled: bool = False
    percent: float = 0.0

    @property
    def active(self) -> bool:
        return self.enabled and self.percent > 0

    @property
    def fraction(self) -> float:
        return self.percent / 100


@dataclass(frozen=True)
class ScenarioConfig:
    """
    The full set of scenario toggles.

    Income toggles: add_partner_income, income_raise, side_hustle,
    coffee_savings (the invested coffee money). Expense toggles:
    partner_covers_expenses, reduce_dining, reduce_subscriptions,
    cheaper_housing, coffee_savings, increase_savings.
    """

    add_partner_income: AmountToggle = field(default_factory=AmountToggle)
    income_raise: PercentToggle = field(default_factory=PercentToggle)
    side_hustle: AmountToggle = field(default_factory=AmountToggle)
    partner_covers_expenses: PercentToggle = field(default_factory=PercentToggle)
    reduce_dining: PercentToggle = field(default_factory=PercentToggle)
    reduce_subscriptions: PercentToggle = field(default_factory=PercentToggle)
    cheaper_housing: AmountToggle = field(default_factory=AmountToggle)
    increase_savings: PercentToggle = field(default_factory=PercentToggle)
    coffee_savings: AmountToggle = field(default_factory=AmountToggle)

    @property
    def any_active(self) -> bool:
        """True when at least one toggle has an effect."""
        return bool(self.active_names())

    def active_names(self) -> list[str]:
        """Names of the toggles that have an effect, in declaration order."""
        return [f.name for f in fields(self) if getattr(self, f.name).active]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON/YAML serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ScenarioConfig":
        """
        Build a configuration from a mapping of toggle name to settings.

        Each toggle may be given as a mapping (``{enabled: true, percent: 10}``)
        or as a bare number, which enables the toggle with that parameter.
        A mapping that sets the parameter without ``enabled`` is enabled when
        the parameter is positive.

        Raises:
            ValueError: If a toggle name is unknown or a parameter is not numeric
        """
        data = data or {}
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown scenario toggles: {', '.join(unknown)}")

        kwargs = {}
        for name, value in data.items():
            toggle_cls = known[name].default_factory
            kwargs[name] = _build_toggle(toggle_cls, name, value)
        return cls(**kwargs)


def _build_toggle(toggle_cls: type, name: str, value: Any) -> AmountToggle | PercentToggle:
    param = "amount" if toggle_cls is AmountToggle else "percent"

    if value is None or value is False:
        return toggle_cls()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return toggle_cls(enabled=value > 0, **{param: float(value)})
    if not isinstance(value, dict):
        raise ValueError(f"Scenario '{name}' must be a number or a mapping")

    # coffee savings is commonly written with a monthly_amount key
    raw = value.get(param, value.get("monthly_amount", 0)) or 0
    try:
        amount = float(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Scenario '{name}' has a non-numeric {param}: {raw!r}") from e

    enabled = bool(value.get("enabled", amount > 0))
    return toggle_cls(enabled=enabled, **{param: amount})


def load_scenarios(path: Path) -> ScenarioConfig:
    """
    Load scenario toggles from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file cannot be parsed into scenario toggles
    """
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Could not parse {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Scenario file {path} must contain a mapping of toggles")
    return ScenarioConfig.from_dict(data)
