#!/usr/bin/env python3
"""
Currency Formatting and Frequency Normalization

Survey answers are entered as plain dollar amounts; everything downstream
works in monthly dollars. This module converts between pay frequencies and
formats amounts for display.

Key Principles:
- Monthly is the canonical period for every persisted normalized value
- Display formatting goes through integer cents so rounding is explicit
- Frequency factors are module constants, not buried in arithmetic
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union


class Frequency(Enum):
    """How often an income stream pays out."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


# Payments per year for each frequency
PERIODS_PER_YEAR = {
    Frequency.WEEKLY: 52,
    Frequency.BIWEEKLY: 26,
    Frequency.MONTHLY: 12,
    Frequency.ANNUAL: 1,
}


def normalize_to_monthly(amount: float, frequency: Union[Frequency, str]) -> float:
    """
    Convert an amount paid at the given frequency to a monthly amount.

    Args:
        amount: Amount per pay period
        frequency: Frequency enum or its string value

    Returns:
        Equivalent monthly amount

    Examples:
        normalize_to_monthly(1200, "weekly") -> 5200.0
        normalize_to_monthly(6000, "monthly") -> 6000
        normalize_to_monthly(60000, "annual") -> 5000.0
    """
    freq = Frequency(frequency) if isinstance(frequency, str) else frequency
    if freq == Frequency.MONTHLY:
        return amount
    if freq == Frequency.ANNUAL:
        return amount / 12
    return (amount * PERIODS_PER_YEAR[freq]) / 12


def dollars_to_cents(dollars: Union[float, int]) -> int:
    """
    Convert a dollar amount to integer cents, rounding half up.

    Args:
        dollars: Dollar amount

    Returns:
        Amount in cents
    """
    return int(Decimal(str(dollars)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) * 100)


def cents_to_dollars_str(cents: int) -> str:
    """
    Convert cents to a dollar string with thousands separators.

    Example:
        cents_to_dollars_str(123456) -> "1,234.56"
    """
    is_negative = cents < 0
    abs_cents = abs(int(cents))

    dollars = abs_cents // 100
    remainder = abs_cents % 100

    if is_negative:
        return f"-{dollars:,}.{remainder:02d}"
    return f"{dollars:,}.{remainder:02d}"


def format_currency(amount: Union[float, int, None]) -> str:
    """
    Format a dollar amount for display.

    Examples:
        format_currency(1234.5) -> "$1,234.50"
        format_currency(-45.99) -> "-$45.99"
        format_currency(None) -> "$0.00"
    """
    if amount is None:
        return "$0.00"
    cents = dollars_to_cents(amount)
    text = cents_to_dollars_str(abs(cents))
    return f"-${text}" if cents < 0 else f"${text}"


def parse_amount(value: Any) -> float | None:
    """
    Parse user-entered currency text into a float.

    Accepts "$1,234.56", "1234.56" and plain numbers. Returns None for text
    that is not a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    clean = str(value).replace("$", "").replace(",", "").strip()
    if not clean:
        return None
    try:
        return float(Decimal(clean))
    except (InvalidOperation, ValueError):
        return None


def is_number(value: Any) -> bool:
    """True for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)
