"""Modular Streamlit page renderers."""

from __future__ import annotations

from typing import Any

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from formatting import format_money
from insight_guide import INSIGHT_GUIDE
from timeline import bucket_label

INSIGHT_ICONS = {
    "trend": "\U0001f4c8",
    "forecast": "\U0001f52e",
    "alert": "⚠️",
    "focus": "\U0001f3af",
    "action": "✅",
    "basic": "\U0001f4a1",
}


def render_overview(wallet_total: str, stock: dict[str, Any], currency: str = "VND") -> None:
    st.subheader("Tổng quan")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Tổng số dư", wallet_total)
    c2.metric("Thu 30 ngày", format_money(stock["totalIncome"], currency))
    c3.metric("Chi 30 ngày", format_money(stock["totalExpense"], currency))
    c4.metric("Tỷ lệ giữ lại", f"{stock['percentChange']:.1f}%")


def render_timeline(buckets: list[dict[str, Any]], granularity: str, currency: str = "VND") -> None:
    st.header("Dòng thời gian chi tiêu")
    if not buckets:
        st.info("Không có giao dịch nào phù hợp.")
        return

    table = pd.DataFrame(
        [
            {
                "Kỳ": bucket_label(bucket["key"], granularity),
                "Chi": bucket["totalExpense"],
                "Thu": bucket["totalIncome"],
                "Ròng": bucket["net"],
                "Số GD": bucket["count"],
            }
            for bucket in buckets
        ]
    )
    st.bar_chart(table.set_index("Kỳ")[["Chi", "Thu"]].iloc[::-1])

    labels = [bucket_label(bucket["key"], granularity) for bucket in buckets]
    selected = st.selectbox("Chọn kỳ", range(len(buckets)), format_func=lambda idx: labels[idx])
    active = buckets[int(selected)]

    st.markdown("### Nổi bật")
    for item in active["highlight"]:
        category = item.get("category") if isinstance(item.get("category"), dict) else {}
        st.write(
            f"{item['highlightType']}: {category.get('name', 'Khác')} "
            f"{format_money(abs(float(item.get('amount') or 0)), currency)}"
        )

    st.markdown("### Tất cả giao dịch")
    st.dataframe(pd.DataFrame(active["all"]), use_container_width=True, hide_index=True)


def render_insights(report: dict[str, Any]) -> None:
    st.header("Phân tích & gợi ý")
    source = "máy chủ" if report["source"] == "server" else "phân tích cục bộ"
    st.caption(f"Nguồn: {source}")
    for item in report["items"]:
        st.markdown(f"{INSIGHT_ICONS.get(item['type'], '')} {item['text']}")

    st.markdown("### Xu hướng 3 tháng")
    line = report["lineData"]
    st.line_chart(pd.DataFrame({"Chi tiêu": line["data"]}, index=line["labels"]))


def category_figure(series: dict[str, Any], chart_type: str = "pie") -> go.Figure:
    """Pie or bar figure for one category series, colored from its palette."""
    if chart_type == "pie":
        trace = go.Pie(labels=series["labels"], values=series["data"], marker={"colors": series["colors"]}, hole=0.4)
    elif chart_type == "bar":
        trace = go.Bar(x=series["labels"], y=series["data"], marker_color=series["colors"])
    else:
        raise ValueError(f"Unsupported chart_type: {chart_type}")
    fig = go.Figure(trace)
    fig.update_layout(height=360, margin={"t": 20, "b": 20}, showlegend=chart_type == "pie")
    return fig


def render_category_charts(chart: dict[str, Any]) -> None:
    st.header(f"Danh mục tháng {chart['month']}")
    left, right = st.columns(2)
    with left:
        st.markdown("### Chi tiêu")
        if chart["expense"]["labels"]:
            st.plotly_chart(category_figure(chart["expense"], chart["chartType"]), use_container_width=True)
        else:
            st.info("Chưa có chi tiêu trong tháng này.")
    with right:
        st.markdown("### Thu nhập")
        if chart["income"]["labels"]:
            st.plotly_chart(category_figure(chart["income"], chart["chartType"]), use_container_width=True)
        else:
            st.info("Chưa có thu nhập trong tháng này.")


def render_stock_chart(stock: dict[str, Any]) -> None:
    st.header("Thu chi 30 ngày")
    frame = pd.DataFrame({"Thu": stock["income"], "Chi": stock["expense"]}, index=stock["dates"])
    st.bar_chart(frame)


def render_insight_guide() -> None:
    st.header("Giải thích phân tích")
    st.caption("Quy tắc và công thức đằng sau mỗi gợi ý.")
    st.dataframe(pd.DataFrame(INSIGHT_GUIDE), use_container_width=True, hide_index=True)
