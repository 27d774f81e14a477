"""SpendLens Streamlit entrypoint with modular page navigation."""

from __future__ import annotations

import json
import logging

import streamlit as st

from charts import CHART_TYPES, prepare_chart_data, prepare_stock_chart_data
from dashboard_views import (
    render_category_charts,
    render_insight_guide,
    render_insights,
    render_overview,
    render_stock_chart,
    render_timeline,
)
from insights import build_insight_report, current_time
from logging_setup import setup_logging
from server_insights import LatestRequestGate, refresh_server_insights, session_gate
from settings import get_settings
from timeline import GRANULARITIES, bucket_transactions, filter_buckets
from transactions import load_records_json, records_from_payload
from wallets import format_wallet_totals, wallet_totals_by_currency

st.set_page_config(page_title="SpendLens", page_icon="\U0001f4ca", layout="wide")

logger = logging.getLogger(__name__)


def _request_gate() -> LatestRequestGate:
    return session_gate(st.session_state)


def _load_records(uploaded, fallback_path: str) -> list[dict]:
    if uploaded is None:
        return load_records_json(fallback_path)
    try:
        payload = json.loads(uploaded.getvalue().decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        st.error(f"Không đọc được tệp: {exc}")
        return []
    return records_from_payload(payload)


def _wallet_options(records: list[dict]) -> dict[str, str]:
    options: dict[str, str] = {}
    for record in records:
        wallet = record.get("wallet")
        if isinstance(wallet, dict) and wallet.get("_id", wallet.get("id")) is not None:
            options[str(wallet.get("_id", wallet.get("id")))] = str(wallet.get("name") or "Ví khác")
    return options


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    st.title("SpendLens")

    view = st.sidebar.radio(
        "Điều hướng",
        ["Tổng quan", "Dòng thời gian", "Phân tích", "Danh mục", "Giải thích"],
    )

    uploaded = st.sidebar.file_uploader("Giao dịch (JSON)", type=["json"])
    records = _load_records(uploaded, settings.transactions_path)
    if not records:
        st.info("Tải lên tệp giao dịch JSON từ thanh bên để bắt đầu.")
        return

    now = current_time(tz=settings.timezone)
    logger.info("Loaded %d transactions", len(records))

    if view != "Phân tích":
        # A fetch still running from the insights view must not land on this page.
        _request_gate().cancel()

    if view == "Tổng quan":
        wallets = load_records_json(settings.wallets_path, key="wallets")
        stock = prepare_stock_chart_data(records, now, tz=settings.timezone)
        render_overview(format_wallet_totals(wallet_totals_by_currency(wallets)), stock, settings.currency)
        render_stock_chart(stock)
    elif view == "Dòng thời gian":
        granularity = st.sidebar.selectbox("Nhóm theo", GRANULARITIES)
        min_amount = st.sidebar.number_input("Số tiền tối thiểu", min_value=0.0, value=0.0, step=10000.0)
        buckets = bucket_transactions(records, granularity, tz=settings.timezone)
        render_timeline(filter_buckets(buckets, min_amount), granularity, settings.currency)
    elif view == "Phân tích":
        server_payload = None
        if settings.insights_url:
            server_payload = refresh_server_insights(
                _request_gate(),
                settings.insights_url,
                token=settings.api_token,
                timeout=settings.request_timeout,
            )
        report = build_insight_report(records, now, server_payload, tz=settings.timezone, currency=settings.currency)
        render_insights(report)
    elif view == "Danh mục":
        wallets = _wallet_options(records)
        wallet_id = st.sidebar.selectbox(
            "Ví",
            [""] + list(wallets),
            format_func=lambda key: wallets.get(key, "Tất cả ví"),
        )
        chart_type = st.sidebar.radio(
            "Kiểu biểu đồ",
            CHART_TYPES,
            format_func=lambda key: {"pie": "Tròn", "bar": "Cột"}[key],
            horizontal=True,
        )
        chart = prepare_chart_data(
            records, now, wallet_id=wallet_id or None, chart_type=chart_type, tz=settings.timezone
        )
        render_category_charts(chart)
    elif view == "Giải thích":
        render_insight_guide()


if __name__ == "__main__":
    main()
