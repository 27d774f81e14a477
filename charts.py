"""Chart-ready series: category pie/bar and 30-day income/expense columns."""

from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from insights import current_time
from transactions import dated_frame

CHART_PALETTE = [
    "#FF6384",
    "#36A2EB",
    "#FFCE56",
    "#4BC0C0",
    "#9966FF",
    "#FF9F40",
    "#C9CBCF",
    "#8BC34A",
    "#E91E63",
    "#00BCD4",
]

CHART_TYPES = ("pie", "bar")
STOCK_WINDOW_DAYS = 30


def palette_colors(count: int) -> list[str]:
    """Colors by position, cycling through the palette."""
    return [CHART_PALETTE[idx % len(CHART_PALETTE)] for idx in range(int(count))]


def _category_series(rows: pd.DataFrame) -> dict[str, Any]:
    categorized = rows[rows["CategoryName"].notna()]
    totals = categorized.groupby("CategoryName", sort=False)["Amount"].sum()
    labels = [str(name) for name in totals.index]
    return {
        "labels": labels,
        "data": [float(value) for value in totals.values],
        "colors": palette_colors(len(labels)),
        "total": float(rows["Amount"].sum()),
    }


def prepare_chart_data(
    transactions: Iterable[dict[str, Any]] | None,
    now: pd.Timestamp | None = None,
    wallet_id: str | None = None,
    chart_type: str = "pie",
    tz: str | None = None,
) -> dict[str, Any]:
    """Current-month expense and income totals per category, optionally for one wallet."""
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unsupported chart_type: {chart_type}")

    anchor = current_time(now, tz)
    work = dated_frame(transactions, tz)
    work = work[work["Date"].dt.to_period("M") == anchor.to_period("M")]
    if wallet_id:
        work = work[work["WalletId"] == str(wallet_id)]

    return {
        "chartType": chart_type,
        "month": str(anchor.to_period("M")),
        "expense": _category_series(work[work["Type"] == "expense"]),
        "income": _category_series(work[work["Type"] == "income"]),
    }


def prepare_stock_chart_data(
    transactions: Iterable[dict[str, Any]] | None,
    now: pd.Timestamp | None = None,
    tz: str | None = None,
) -> dict[str, Any]:
    """Daily income (positive) and expense (negative) columns over today-30 .. today."""
    today = current_time(now, tz).normalize()
    axis = pd.date_range(end=today, periods=STOCK_WINDOW_DAYS + 1, freq="D")
    day_keys = [day.strftime("%Y-%m-%d") for day in axis]

    work = dated_frame(transactions, tz)
    work["Day"] = work["Date"].dt.strftime("%Y-%m-%d")
    work = work[work["Day"].isin(day_keys)]

    income = work[work["Type"] == "income"].groupby("Day")["Amount"].sum().reindex(day_keys, fill_value=0.0)
    expense = work[work["Type"] == "expense"].groupby("Day")["Amount"].sum().reindex(day_keys, fill_value=0.0)

    total_income = float(income.sum())
    total_expense = float(expense.sum())
    percent_change = (total_income - total_expense) / total_income * 100.0 if total_income else 0.0

    return {
        "labels": [day.strftime("%d/%m") for day in axis],
        "dates": day_keys,
        "income": [float(value) for value in income.values],
        "expense": [-float(value) if value else 0.0 for value in expense.values],
        "totalIncome": total_income,
        "totalExpense": total_expense,
        "percentChange": round(percent_change, 2),
    }
