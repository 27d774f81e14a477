"""Monthly spending windows and rule-based natural-language insights.

Everything here is recomputed from the raw transaction list on each refresh.
``now`` anchors the current month; pass it explicitly for deterministic output.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import pandas as pd

from formatting import format_money, format_pct, round_half_up
from transactions import DEFAULT_TIMEZONE, OTHER_WALLET, dated_frame

logger = logging.getLogger(__name__)

INSIGHT_TYPES = ("trend", "forecast", "alert", "focus", "action", "basic")

WINDOW_MONTHS = 3
NIGHT_START_HOUR = 21
NIGHT_END_HOUR = 6

TOP_CATEGORY_ACTION_SHARE = 30
SAVINGS_POTENTIAL_SHARE = 35
SAVINGS_POTENTIAL_RATE = 0.05
NIGHT_CHANGE_INFO_PCT = 20
NIGHT_CHANGE_ALERT_PCT = 40
CATEGORY_GROWTH_ALERT_PCT = 30
GENERAL_SAVINGS_RATE = 0.08


def current_time(now: pd.Timestamp | None = None, tz: str | None = None) -> pd.Timestamp:
    """Naive local "now"; an explicit value wins over the wall clock."""
    if now is None:
        return pd.Timestamp.now(tz=tz or DEFAULT_TIMEZONE).tz_localize(None)
    ts = pd.Timestamp(now)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz or DEFAULT_TIMEZONE).tz_localize(None)
    return ts


def safe_pct_change(current: float, previous: float) -> int:
    if previous > 0:
        return round_half_up((current - previous) / previous * 100.0)
    return 0


def _window(expenses: pd.DataFrame, period: pd.Period) -> dict[str, Any]:
    rows = expenses[expenses["Month"] == period]
    categorized = rows[rows["CategoryName"].notna()]
    cat_map = categorized.groupby("CategoryName", sort=False)["Amount"].sum()
    hours = rows["Date"].dt.hour
    night = rows[(hours < NIGHT_END_HOUR) | (hours >= NIGHT_START_HOUR)]
    return {
        "month": str(period),
        "label": f"T{period.month}/{period.year}",
        "start": period.start_time.date().isoformat(),
        "days": int(period.days_in_month),
        "count": int(len(rows)),
        "total": float(rows["Amount"].sum()),
        "catMap": {str(name): float(amount) for name, amount in cat_map.items()},
        "nightExpense": float(night["Amount"].sum()),
    }


def _expense_rows(transactions: Iterable[dict[str, Any]] | None, tz: str | None) -> pd.DataFrame:
    work = dated_frame(transactions, tz)
    work = work[work["Type"] == "expense"].copy()
    work["Month"] = work["Date"].dt.to_period("M")
    return work


def month_windows(
    transactions: Iterable[dict[str, Any]] | None,
    now: pd.Timestamp | None = None,
    tz: str | None = None,
) -> list[dict[str, Any]]:
    """The three calendar months ending at ``now``'s month, oldest first."""
    anchor = current_time(now, tz).to_period("M")
    expenses = _expense_rows(transactions, tz)
    periods = [anchor - offset for offset in range(WINDOW_MONTHS - 1, -1, -1)]
    windows = [_window(expenses, period) for period in periods]
    logger.debug("Month windows %s from %d expense rows", [w["month"] for w in windows], len(expenses))
    return windows


def trend_line(raw_data: list[dict[str, Any]]) -> dict[str, list]:
    """One point per month window: total expense."""
    return {
        "labels": [window["label"] for window in raw_data],
        "data": [float(window["total"]) for window in raw_data],
    }


def run_rate_forecast(spent_so_far: float, days_elapsed: int, days_in_month: int) -> dict[str, float]:
    """Linear projection of month-to-date spend over the whole month."""
    days = max(int(days_elapsed), 1)
    avg_per_day = float(spent_so_far) / days
    return {
        "avgPerDay": avg_per_day,
        "forecast": round_half_up(avg_per_day * int(days_in_month)),
    }


def _ranked_categories(cat_map: dict[str, float]) -> list[tuple[str, float]]:
    # sorted() is stable, so ties keep first-seen order.
    return sorted(cat_map.items(), key=lambda item: item[1], reverse=True)


def _share(amount: float, total: float) -> int:
    return round_half_up(amount / total * 100.0) if total > 0 else 0


def _direction(delta: float, up: str = "tăng", down: str = "giảm") -> str:
    return up if delta > 0 else down


def _forecast_for(current: dict[str, Any], previous: dict[str, Any], now: pd.Timestamp) -> dict[str, Any]:
    projection = run_rate_forecast(current["total"], now.day, current["days"])
    prev_avg = previous["total"] / previous["days"] if previous["days"] else 0.0
    avg_diff_pct = safe_pct_change(projection["avgPerDay"], prev_avg)
    return {**projection, "avgDiffPct": avg_diff_pct, "daysElapsed": int(now.day)}


def _top_category_insights(
    current: dict[str, Any], previous: dict[str, Any], currency: str = "VND"
) -> list[dict[str, str]]:
    ranked = _ranked_categories(current["catMap"])
    if not ranked or current["total"] <= 0:
        return []
    name, amount = ranked[0]
    share = _share(amount, current["total"])
    text = (
        f"Danh mục chi nhiều nhất tháng này là {name}: {format_money(amount, currency)} "
        f"({share}% tổng chi tiêu)"
    )
    if previous["total"] > 0:
        prev_share = _share(previous["catMap"].get(name, 0.0), previous["total"])
        delta = share - prev_share
        if delta == 0:
            text += ", không đổi so với tháng trước"
        else:
            text += f", {_direction(delta)} {format_pct(delta)} so với tháng trước"
    out = [{"type": "basic", "text": text + "."}]
    if share >= TOP_CATEGORY_ACTION_SHARE:
        out.append({"type": "action", "text": f"Hãy đặt mục tiêu giảm 5-10% chi tiêu cho {name} trong tháng tới."})
    return out


def _night_change(current: dict[str, Any], previous: dict[str, Any]) -> int | None:
    if previous["nightExpense"] <= 0:
        return None
    return safe_pct_change(current["nightExpense"], previous["nightExpense"])


def _night_insight(current: dict[str, Any], previous: dict[str, Any], currency: str = "VND") -> list[dict[str, str]]:
    change = _night_change(current, previous)
    if change is None or abs(change) < NIGHT_CHANGE_INFO_PCT:
        return []
    text = (
        f"Chi tiêu ban đêm (21h-6h) {_direction(change)} {format_pct(change)} so với tháng trước, "
        f"hiện là {format_money(current['nightExpense'], currency)}."
    )
    return [{"type": "basic", "text": text}]


def _forecast_insight(forecast: dict[str, Any], currency: str = "VND") -> str:
    diff = forecast["avgDiffPct"]
    if diff == 0:
        comparison = "tương đương tháng trước"
    else:
        comparison = f"{_direction(diff, 'cao hơn', 'thấp hơn')} {format_pct(diff)} so với tháng trước"
    return (
        f"Dự báo chi tiêu cả tháng: {format_money(forecast['forecast'], currency)} "
        f"(trung bình {format_money(round_half_up(forecast['avgPerDay']), currency)}/ngày, {comparison})."
    )


def compute_insights(
    transactions: Iterable[dict[str, Any]] | None,
    now: pd.Timestamp | None = None,
    tz: str | None = None,
    currency: str = "VND",
) -> dict[str, Any]:
    """Headline insights plus the monthly series used by the trend chart.

    ``insights`` holds the plain texts; ``items`` carries the same texts with
    their insight type, so the savings-cut suggestion is tagged ``action``.
    """
    anchor = current_time(now, tz)
    raw_data = month_windows(transactions, anchor, tz)
    previous, current = raw_data[-2], raw_data[-1]

    items: list[dict[str, str]] = []
    if current["total"] <= 0:
        items.append({"type": "basic", "text": "Chưa có khoản chi tiêu nào trong tháng này."})
    else:
        items.extend(_top_category_insights(current, previous, currency))
        items.extend(_night_insight(current, previous, currency))
        forecast = _forecast_for(current, previous, anchor)
        items.append({"type": "basic", "text": _forecast_insight(forecast, currency)})

    return {
        "insights": [item["text"] for item in items],
        "items": items,
        "lineData": trend_line(raw_data),
        "rawData": raw_data,
    }


def _current_wallet_spend(
    transactions: Iterable[dict[str, Any]] | None, anchor: pd.Timestamp, tz: str | None
) -> pd.Series:
    expenses = _expense_rows(transactions, tz)
    rows = expenses[expenses["Month"] == anchor.to_period("M")]
    if rows.empty:
        return pd.Series(dtype=float)
    spend = rows.groupby("WalletName", sort=False)["Amount"].sum()
    return spend.sort_values(ascending=False, kind="mergesort")


def _category_growth(current: dict[str, Any], previous: dict[str, Any]) -> list[dict[str, Any]]:
    rows = []
    for name, amount in current["catMap"].items():
        prev_amount = previous["catMap"].get(name, 0.0)
        if prev_amount > 0:
            pct = round_half_up((amount - prev_amount) / prev_amount * 100.0)
        else:
            pct = 100 if amount > 0 else 0
        rows.append({"category": name, "amount": amount, "previous": prev_amount, "pct": pct})
    return sorted(rows, key=lambda row: row["pct"], reverse=True)


def generate_detailed_suggestions(
    transactions: Iterable[dict[str, Any]] | None,
    raw_data: list[dict[str, Any]] | None = None,
    now: pd.Timestamp | None = None,
    tz: str | None = None,
    currency: str = "VND",
) -> list[dict[str, str]]:
    """Typed insights: trend, forecast, alerts, wallet focus and savings actions."""
    records = list(transactions or [])
    anchor = current_time(now, tz)
    if not raw_data:
        raw_data = month_windows(records, anchor, tz)
    previous, current = raw_data[-2], raw_data[-1]
    items: list[dict[str, str]] = []

    if previous["total"] > 0:
        change = safe_pct_change(current["total"], previous["total"])
        if change == 0:
            phrase = "không đổi so với tháng trước"
        else:
            phrase = f"{_direction(change)} {format_pct(change)} so với tháng trước"
        items.append(
            {
                "type": "trend",
                "text": f"Tổng chi tiêu tháng này là {format_money(current['total'], currency)}, {phrase} "
                f"({format_money(previous['total'], currency)}).",
            }
        )
    elif current["total"] > 0:
        items.append(
            {"type": "trend", "text": f"Tổng chi tiêu tháng này là {format_money(current['total'], currency)}."}
        )

    forecast = _forecast_for(current, previous, anchor)
    if forecast["forecast"] > 0:
        items.append(
            {
                "type": "forecast",
                "text": f"Với tốc độ hiện tại, bạn sẽ chi khoảng {format_money(forecast['forecast'], currency)} "
                f"trong tháng này.",
            }
        )

    growth = _category_growth(current, previous)
    if growth and growth[0]["pct"] >= CATEGORY_GROWTH_ALERT_PCT:
        top = growth[0]
        items.append(
            {
                "type": "alert",
                "text": f"Chi tiêu cho {top['category']} tăng {format_pct(top['pct'])} so với tháng trước, "
                f"hiện là {format_money(top['amount'], currency)}.",
            }
        )

    night_change = _night_change(current, previous)
    if night_change is not None and abs(night_change) >= NIGHT_CHANGE_ALERT_PCT and current["nightExpense"] > 0:
        items.append(
            {
                "type": "alert",
                "text": f"Chi tiêu ban đêm {_direction(night_change)} mạnh {format_pct(night_change)} "
                f"so với tháng trước ({format_money(current['nightExpense'], currency)}).",
            }
        )

    wallet_spend = _current_wallet_spend(records, anchor, tz)
    if not wallet_spend.empty:
        wallet_name = str(wallet_spend.index[0] or OTHER_WALLET)
        wallet_amount = float(wallet_spend.iloc[0])
        items.append(
            {
                "type": "focus",
                "text": f"{wallet_name} là ví chi nhiều nhất tháng này: {format_money(wallet_amount, currency)} "
                f"({_share(wallet_amount, current['total'])}% tổng chi tiêu).",
            }
        )

    ranked = _ranked_categories(current["catMap"])
    if ranked and current["total"] > 0:
        name, amount = ranked[0]
        if _share(amount, current["total"]) >= SAVINGS_POTENTIAL_SHARE:
            save_target = round_half_up(amount * SAVINGS_POTENTIAL_RATE)
            items.append(
                {
                    "type": "action",
                    "text": f"Cắt giảm 5% chi tiêu cho {name} có thể giúp bạn tiết kiệm "
                    f"{format_money(save_target, currency)} mỗi tháng.",
                }
            )

    if forecast["forecast"] > 0 and previous["total"] > 0:
        potential_cut = round_half_up(forecast["forecast"] * GENERAL_SAVINGS_RATE)
        items.append(
            {
                "type": "action",
                "text": f"Đặt mục tiêu giảm 8% so với dự báo, tương đương tiết kiệm "
                f"{format_money(potential_cut, currency)} trong tháng này.",
            }
        )

    if not items:
        items.append({"type": "basic", "text": "Chưa đủ dữ liệu để đưa ra gợi ý chi tiết."})
    return items


def normalize_insight_type(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in INSIGHT_TYPES else "basic"


def _server_items(server_payload: dict[str, Any] | None) -> list[dict[str, str]]:
    if not isinstance(server_payload, dict):
        return []
    raw_items = server_payload.get("aiItems")
    if not isinstance(raw_items, list):
        return []
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        text = str(raw.get("text") or "")
        if not text.strip():
            continue
        items.append({"type": normalize_insight_type(raw.get("type")), "text": text})
    return items


def resolve_insights(
    server_payload: dict[str, Any] | None,
    local_result: dict[str, Any],
    detailed: list[dict[str, str]],
) -> dict[str, Any]:
    """Server items win when present; otherwise local headline + detailed, deduplicated by text."""
    server_items = _server_items(server_payload)
    if server_items:
        return {"source": "server", "items": server_items}

    merged: list[dict[str, str]] = []
    seen: set[str] = set()
    candidates = local_result.get("items") or [
        {"type": "basic", "text": text} for text in local_result.get("insights", [])
    ]
    for item in list(candidates) + list(detailed):
        if item["text"] in seen:
            continue
        seen.add(item["text"])
        merged.append(item)
    return {"source": "local", "items": merged}


def build_insight_report(
    transactions: Iterable[dict[str, Any]] | None,
    now: pd.Timestamp | None = None,
    server_payload: dict[str, Any] | None = None,
    tz: str | None = None,
    currency: str = "VND",
) -> dict[str, Any]:
    """Insights for display plus the locally computed chart series, which are always used."""
    records = list(transactions or [])
    anchor = current_time(now, tz)
    local = compute_insights(records, anchor, tz, currency)
    detailed = generate_detailed_suggestions(records, local["rawData"], anchor, tz, currency)
    resolved = resolve_insights(server_payload, local, detailed)
    return {**resolved, "lineData": local["lineData"], "rawData": local["rawData"]}
