"""Spending timeline: partition transactions into day, ISO-week or month buckets."""

from __future__ import annotations

import datetime
import logging
from typing import Any, Iterable

import pandas as pd

from transactions import dated_frame

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week", "month")


def week_key(ts: pd.Timestamp) -> str:
    """ISO-8601 week key; the year is the ISO year of the week's Thursday."""
    iso_year, iso_week, _ = ts.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def bucket_key(ts: pd.Timestamp, granularity: str) -> str:
    if granularity == "day":
        return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
    if granularity == "week":
        return week_key(ts)
    if granularity == "month":
        return f"{ts.year:04d}-{ts.month:02d}"
    raise ValueError(f"Unsupported granularity: {granularity}")


def bucket_start(key: str, granularity: str) -> datetime.date:
    """Calendar start of a bucket key: the day itself, the ISO Monday or day 1."""
    if granularity == "day":
        year, month, day = (int(part) for part in key.split("-"))
        return datetime.date(year, month, day)
    if granularity == "week":
        year, week = (int(part) for part in key.split("-W"))
        return datetime.date.fromisocalendar(year, week, 1)
    if granularity == "month":
        year, month = (int(part) for part in key.split("-"))
        return datetime.date(year, month, 1)
    raise ValueError(f"Unsupported granularity: {granularity}")


def bucket_label(key: str, granularity: str) -> str:
    if granularity == "day":
        start = bucket_start(key, granularity)
        return start.strftime("%d/%m")
    if granularity == "week":
        return key.replace("-W", " Tuần ")
    return key


def _highlight(group: pd.DataFrame, expenses: pd.DataFrame, incomes: pd.DataFrame) -> list[dict[str, Any]]:
    highlight: list[dict[str, Any]] = []
    if not expenses.empty:
        highlight.append({**expenses.iloc[0]["Record"], "highlightType": "expense-max"})
    if not incomes.empty:
        highlight.append({**incomes.iloc[0]["Record"], "highlightType": "income-max"})
    if not highlight:
        highlight.append({**group.iloc[0]["Record"], "highlightType": "single"})
    return highlight


def _build_bucket(key: str, group: pd.DataFrame, granularity: str) -> dict[str, Any]:
    # Stable sorts keep input order for equal amounts/dates.
    expenses = group[group["Type"] == "expense"].sort_values("Amount", ascending=False, kind="mergesort")
    incomes = group[group["Type"] == "income"].sort_values("Amount", ascending=False, kind="mergesort")
    total_expense = float(expenses["Amount"].sum())
    total_income = float(incomes["Amount"].sum())
    newest_first = group.sort_values("Date", ascending=False, kind="mergesort")
    return {
        "key": key,
        "start": bucket_start(key, granularity).isoformat(),
        "totalExpense": total_expense,
        "totalIncome": total_income,
        "net": total_income - total_expense,
        "count": int(len(group)),
        "highlight": _highlight(group, expenses, incomes),
        "all": [dict(record) for record in newest_first["Record"]],
    }


def bucket_transactions(
    transactions: Iterable[dict[str, Any]] | None,
    granularity: str = "day",
    tz: str | None = None,
) -> list[dict[str, Any]]:
    """Group dated transactions into buckets, most recent bucket first."""
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity: {granularity}")

    work = dated_frame(transactions, tz)
    if work.empty:
        return []

    work["BucketKey"] = work["Date"].apply(lambda ts: bucket_key(ts, granularity))
    buckets = [
        _build_bucket(str(key), group, granularity)
        for key, group in work.groupby("BucketKey", sort=False)
    ]
    buckets.sort(key=lambda bucket: bucket["start"], reverse=True)
    logger.debug("Built %d %s buckets from %d dated transactions", len(buckets), granularity, len(work))
    return buckets


def filter_buckets(buckets: list[dict[str, Any]], min_amount: float = 0.0) -> list[dict[str, Any]]:
    """Keep buckets whose combined expense and income reach ``min_amount``."""
    threshold = float(min_amount or 0.0)
    return [
        bucket
        for bucket in buckets
        if abs(bucket["totalExpense"]) + abs(bucket["totalIncome"]) >= threshold
    ]
