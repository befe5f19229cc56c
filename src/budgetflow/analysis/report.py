#!/usr/bin/env python3
"""
Cashflow Reports

Turns a summary and breakdown into tables, files and a chart: pandas
DataFrames for the CSV/JSON exports and a matplotlib figure for the
categorized expense breakdown.
"""

import json
import logging

import matplotlib
import pandas as pd

matplotlib.use("Agg")  # Use non-interactive backend
from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from ..core.config import ReportConfig, get_config
from ..core.currency import format_currency
from .cash_flow import CategoryRow, SummaryResult

logger = logging.getLogger(__name__)

COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899", "#06b6d4", "#84cc16", "#f97316", "#6366f1"]


def breakdown_to_dataframe(rows: list[CategoryRow]) -> pd.DataFrame:
    """
    Flatten a breakdown into one DataFrame row per line item.

    Columns: Category, Item, Question, Base, Value, Category_Total.
    """
    records = [
        {
            "Category": row.name,
            "Item": item.name,
            "Question": item.question_id,
            "Base": item.base_value,
            "Value": item.value,
            "Category_Total": row.value,
        }
        for row in rows
        for item in row.items
    ]
    return pd.DataFrame(records, columns=["Category", "Item", "Question", "Base", "Value", "Category_Total"])


def category_totals(rows: list[CategoryRow]) -> pd.DataFrame:
    """Category totals with each category's share of total expenses."""
    df = pd.DataFrame({"Category": [row.name for row in rows], "Value": [row.value for row in rows]})
    total = df["Value"].sum()
    df["Share"] = df["Value"] / total if total > 0 else 0.0
    return df


def summary_lines(summary: SummaryResult) -> list[str]:
    """Human-readable summary, one figure per line."""
    lines = [
        f"Income:          {format_currency(summary.total_income)}",
        f"Taxes ({summary.tax_rate_percent:g}%):    {format_currency(summary.estimated_taxes)}",
        f"After-tax:       {format_currency(summary.after_tax_income)}",
        f"Expenses:        {format_currency(summary.total_expenses)}",
        f"Net monthly:     {format_currency(summary.net_monthly)}",
    ]
    if summary.investment_amount:
        state = "included" if summary.include_investments else "excluded"
        lines.append(f"Investments:     {format_currency(summary.investment_amount)} ({state})")

    if summary.has_adjustments:
        lines.append("")
        lines.append(f"Without scenarios: net {format_currency(summary.base_net_monthly)}")
        lines.extend(f"  {adjustment}" for adjustment in summary.income_adjustments)
        lines.extend(f"  {adjustment}" for adjustment in summary.expense_adjustments)

    return lines


def export_breakdown(
    summary: SummaryResult,
    rows: list[CategoryRow],
    output_dir: Path,
    output_format: str = "csv",
) -> Path:
    """
    Write the breakdown (csv) or summary plus breakdown (json) to a file.

    Returns:
        Path to the written file
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    df = breakdown_to_dataframe(rows)

    if output_format == "csv":
        output_file = output_dir / f"{timestamp}_cashflow_breakdown.csv"
        df.to_csv(output_file, index=False)
    elif output_format == "json":
        output_file = output_dir / f"{timestamp}_cashflow_breakdown.json"
        payload = {
            "summary": summary.to_dict(),
            "breakdown": json.loads(df.to_json(orient="records")),
        }
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    else:
        raise ValueError(f"Unsupported export format: {output_format}")

    logger.info(f"Wrote breakdown to {output_file}")
    return output_file


def generate_breakdown_chart(
    rows: list[CategoryRow],
    summary: SummaryResult,
    output_dir: Path | None = None,
    report_config: ReportConfig | None = None,
) -> Path:
    """
    Render the expense breakdown as a horizontal bar chart.

    Returns:
        Path to generated chart image.
    """
    if not rows:
        raise ValueError("No expense categories to chart")

    report_config = report_config or get_config().report
    if output_dir is None:
        output_dir = report_config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    df = category_totals(rows).iloc[::-1]
    positions = np.arange(len(df))

    fig, (ax_bars, ax_text) = plt.subplots(
        1,
        2,
        figsize=(report_config.chart_width, report_config.chart_height),
        gridspec_kw={"width_ratios": [3, 1]},
    )

    colors = [COLORS[i % len(COLORS)] for i in range(len(df))][::-1]
    ax_bars.barh(positions, df["Value"], color=colors, alpha=0.85)
    ax_bars.set_yticks(positions)
    ax_bars.set_yticklabels(df["Category"], fontsize=9)
    for y, value, share in zip(positions, df["Value"], df["Share"]):
        ax_bars.text(value, y, f" {format_currency(value)} ({share:.0%})", va="center", fontsize=8)

    ax_bars.set_title("Monthly Expenses by Category", fontsize=12, fontweight="bold")
    ax_bars.set_xlabel("Monthly amount ($)", fontsize=10)
    ax_bars.grid(True, alpha=0.3, axis="x")
    ax_bars.xaxis.set_major_formatter(plt.FuncFormatter(lambda x, p: f"${x:,.0f}"))

    ax_text.axis("off")
    ax_text.text(
        0.0,
        0.95,
        "\n".join(summary_lines(summary)),
        transform=ax_text.transAxes,
        fontsize=8,
        fontfamily="monospace",
        verticalalignment="top",
        bbox={"boxstyle": "round,pad=1", "facecolor": "lightgray", "alpha": 0.8},
    )

    plt.suptitle("Monthly Cashflow", fontsize=14, fontweight="bold", y=0.98)
    plt.tight_layout()

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    output_file = output_dir / f"{timestamp}_cashflow_breakdown.png"

    plt.savefig(output_file, dpi=report_config.dpi, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Wrote breakdown chart to {output_file}")
    return output_file
