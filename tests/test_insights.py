import re

import pandas as pd

from insights import (
    build_insight_report,
    compute_insights,
    current_time,
    generate_detailed_suggestions,
    month_windows,
    normalize_insight_type,
    resolve_insights,
    run_rate_forecast,
)

NOW = pd.Timestamp("2024-03-10 12:00:00")


def _tx(tx_id: str, tx_type: str, amount: float, date: str, category: str | None = None, wallet: str | None = None) -> dict:
    record = {"_id": tx_id, "type": tx_type, "amount": amount, "date": date}
    if category:
        record["category"] = {"_id": f"c-{category}", "name": category}
    if wallet:
        record["wallet"] = {"_id": f"w-{wallet}", "name": wallet, "currency": "VND"}
    return record


def _sample_transactions() -> list[dict]:
    return [
        _tx("f1", "expense", 200000, "2024-02-10T12:00:00", "Food", "Cash"),
        _tx("f2", "expense", 100000, "2024-02-12T22:30:00", "Transport", "Card"),
        _tx("m1", "expense", 300000, "2024-03-02T12:00:00", "Food", "Cash"),
        _tx("m2", "expense", 60000, "2024-03-05T23:00:00", "Transport", "Card"),
        _tx("m3", "expense", 140000, "2024-03-08T10:00:00", "Shopping", "Card"),
        _tx("m4", "income", 1000000, "2024-03-01T08:00:00", "Salary", "Card"),
    ]


def test_month_windows_cover_three_months_ending_now() -> None:
    windows = month_windows(_sample_transactions(), NOW)

    assert [w["month"] for w in windows] == ["2024-01", "2024-02", "2024-03"]
    assert [w["label"] for w in windows] == ["T1/2024", "T2/2024", "T3/2024"]
    assert [w["total"] for w in windows] == [0.0, 300000.0, 500000.0]
    assert windows[1]["days"] == 29
    assert windows[2]["catMap"] == {"Food": 300000.0, "Transport": 60000.0, "Shopping": 140000.0}
    assert windows[1]["nightExpense"] == 100000.0
    assert windows[2]["nightExpense"] == 60000.0


def test_month_windows_exclude_income_and_uncategorized_from_cat_map() -> None:
    txs = [
        _tx("a", "expense", 10, "2024-03-02T12:00:00"),
        {"_id": "b", "type": "expense", "amount": 5, "date": "2024-03-02T12:00:00", "category": {"_id": "c"}},
        _tx("c", "income", 99, "2024-03-02T12:00:00", "Salary"),
    ]
    current = month_windows(txs, NOW)[-1]

    assert current["total"] == 15.0
    assert current["catMap"] == {"Khác": 5.0}


def test_night_window_boundaries() -> None:
    txs = [
        _tx("a", "expense", 1, "2024-03-02T05:59:00"),
        _tx("b", "expense", 10, "2024-03-02T06:00:00"),
        _tx("c", "expense", 100, "2024-03-02T20:59:00"),
        _tx("d", "expense", 1000, "2024-03-02T21:00:00"),
    ]
    assert month_windows(txs, NOW)[-1]["nightExpense"] == 1001.0


def test_compute_insights_headlines() -> None:
    result = compute_insights(_sample_transactions(), NOW)
    insights = result["insights"]

    assert len(insights) == 4
    assert insights[0] == (
        "Danh mục chi nhiều nhất tháng này là Food: 300.000 ₫ (60% tổng chi tiêu), "
        "giảm 7% so với tháng trước."
    )
    assert "giảm 5-10%" in insights[1] and "Food" in insights[1]
    assert insights[2] == "Chi tiêu ban đêm (21h-6h) giảm 40% so với tháng trước, hiện là 60.000 ₫."
    assert insights[3] == (
        "Dự báo chi tiêu cả tháng: 1.550.000 ₫ "
        "(trung bình 50.000 ₫/ngày, cao hơn 383% so với tháng trước)."
    )
    assert result["lineData"] == {"labels": ["T1/2024", "T2/2024", "T3/2024"], "data": [0.0, 300000.0, 500000.0]}
    assert len(result["rawData"]) == 3


def test_detailed_suggestions_types_and_values() -> None:
    txs = _sample_transactions()
    raw = compute_insights(txs, NOW)["rawData"]
    items = generate_detailed_suggestions(txs, raw, NOW)

    assert [item["type"] for item in items] == ["trend", "forecast", "alert", "alert", "focus", "action", "action"]
    texts = [item["text"] for item in items]
    assert "tăng 67%" in texts[0]
    assert "1.550.000 ₫" in texts[1]
    assert "Shopping" in texts[2] and "100%" in texts[2] and "140.000 ₫" in texts[2]
    assert "ban đêm" in texts[3] and "40%" in texts[3]
    assert texts[4] == "Cash là ví chi nhiều nhất tháng này: 300.000 ₫ (60% tổng chi tiêu)."
    assert "15.000 ₫" in texts[5]
    assert "124.000 ₫" in texts[6]


def test_detailed_suggestions_compute_windows_when_missing() -> None:
    txs = _sample_transactions()
    assert generate_detailed_suggestions(txs, None, NOW) == generate_detailed_suggestions(
        txs, month_windows(txs, NOW), NOW
    )


def test_first_month_omits_deltas_without_nan() -> None:
    txs = [_tx("a", "expense", 100000, "2024-03-02T12:00:00", "Food")]
    result = compute_insights(txs, NOW)
    items = generate_detailed_suggestions(txs, result["rawData"], NOW)

    assert "so với tháng trước" not in result["insights"][0]
    assert "tương đương tháng trước" in result["insights"][-1]
    assert all(item["type"] != "trend" or "so với" not in item["text"] for item in items)
    assert next(item["text"] for item in items if item["type"] == "focus").startswith("Ví khác là ví")
    for text in result["insights"] + [item["text"] for item in items]:
        assert not re.search(r"\bnan\b|\binf\b", text.lower())


def test_empty_input_is_well_defined() -> None:
    result = compute_insights([], NOW)

    assert result["insights"] == ["Chưa có khoản chi tiêu nào trong tháng này."]
    assert result["lineData"]["data"] == [0.0, 0.0, 0.0]
    assert generate_detailed_suggestions([], result["rawData"], NOW) == [
        {"type": "basic", "text": "Chưa đủ dữ liệu để đưa ra gợi ý chi tiết."}
    ]


def test_run_rate_forecast_is_monotonic_in_spend() -> None:
    low = run_rate_forecast(100000, 10, 31)
    high = run_rate_forecast(120000, 10, 31)

    assert low == {"avgPerDay": 10000.0, "forecast": 310000}
    assert high["forecast"] > low["forecast"]
    assert run_rate_forecast(0, 0, 30)["forecast"] == 0


def test_current_time_converts_aware_now_to_local() -> None:
    local = current_time(pd.Timestamp("2024-03-31T20:00:00Z"), "Asia/Ho_Chi_Minh")
    assert local == pd.Timestamp("2024-04-01 03:00:00")
    assert month_windows([], local)[-1]["month"] == "2024-04"


def test_resolve_insights_prefers_server_items() -> None:
    payload = {
        "aiItems": [
            {"text": "Server says hi", "type": "ALERT"},
            {"text": "Odd type", "type": "weird"},
            {"text": "   ", "type": "trend"},
        ]
    }
    resolved = resolve_insights(payload, {"insights": ["local"]}, [])

    assert resolved == {
        "source": "server",
        "items": [
            {"type": "alert", "text": "Server says hi"},
            {"type": "basic", "text": "Odd type"},
        ],
    }
    assert normalize_insight_type(" Focus ") == "focus"


def test_resolve_insights_merges_local_without_duplicates() -> None:
    local = {"insights": ["A", "B"]}
    detailed = [{"type": "trend", "text": "A"}, {"type": "alert", "text": "C"}]

    for payload in (None, {}, {"aiItems": []}, {"suggestions": ["x"]}):
        resolved = resolve_insights(payload, local, detailed)
        assert resolved == {
            "source": "local",
            "items": [
                {"type": "basic", "text": "A"},
                {"type": "basic", "text": "B"},
                {"type": "alert", "text": "C"},
            ],
        }


def test_build_insight_report_keeps_local_chart_series_with_server_items() -> None:
    txs = _sample_transactions()
    report = build_insight_report(txs, NOW, {"aiItems": [{"text": "Server", "type": "focus"}]})

    assert report["source"] == "server"
    assert report["items"] == [{"type": "focus", "text": "Server"}]
    assert report["lineData"]["data"] == [0.0, 300000.0, 500000.0]


def test_build_insight_report_is_idempotent() -> None:
    txs = _sample_transactions()
    first = build_insight_report(txs, NOW)
    second = build_insight_report(txs, NOW)

    assert first == second
    assert first["source"] == "local"
    texts = [item["text"] for item in first["items"]]
    assert len(texts) == len(set(texts))


def _two_month_night(current_night: float) -> list[dict]:
    return [
        _tx("p", "expense", 100000, "2024-02-10T22:00:00", "Food"),
        _tx("c", "expense", current_night, "2024-03-05T22:00:00", "Food"),
    ]


def test_night_headline_starts_at_twenty_percent() -> None:
    below = compute_insights(_two_month_night(119000), NOW)["insights"]
    at = compute_insights(_two_month_night(120000), NOW)["insights"]

    assert not any("ban đêm" in text for text in below)
    assert "Chi tiêu ban đêm (21h-6h) tăng 20% so với tháng trước, hiện là 120.000 ₫." in at


def test_night_alert_needs_current_night_spend() -> None:
    txs = [
        _tx("p", "expense", 100000, "2024-02-10T22:00:00", "Food"),
        _tx("c", "expense", 50000, "2024-03-05T12:00:00", "Food"),
    ]
    result = compute_insights(txs, NOW)
    items = generate_detailed_suggestions(txs, result["rawData"], NOW)

    assert "Chi tiêu ban đêm (21h-6h) giảm 100% so với tháng trước, hiện là 0 ₫." in result["insights"]
    assert not any(item["type"] == "alert" for item in items)


def _current_month_shares(amounts: dict[str, float]) -> list[dict]:
    return [
        _tx(f"m{idx}", "expense", amount, f"2024-03-0{idx + 1}T12:00:00", name)
        for idx, (name, amount) in enumerate(amounts.items())
    ]


def test_top_share_between_cut_and_savings_thresholds() -> None:
    txs = _current_month_shares({"Food": 32000, "Transport": 30000, "Shopping": 20000, "Bills": 18000})
    result = compute_insights(txs, NOW)
    items = generate_detailed_suggestions(txs, result["rawData"], NOW)

    assert "Hãy đặt mục tiêu giảm 5-10% chi tiêu cho Food trong tháng tới." in result["insights"]
    assert not any(item["text"].startswith("Cắt giảm 5%") for item in items)


def test_top_share_at_savings_threshold_adds_action() -> None:
    txs = _current_month_shares({"Food": 35000, "Transport": 30000, "Shopping": 20000, "Bills": 15000})
    items = generate_detailed_suggestions(txs, None, NOW)

    assert {
        "type": "action",
        "text": "Cắt giảm 5% chi tiêu cho Food có thể giúp bạn tiết kiệm 1.750 ₫ mỗi tháng.",
    } in items


def _food_growth(current: float) -> list[dict]:
    return [
        _tx("p", "expense", 100000, "2024-02-10T12:00:00", "Food"),
        _tx("c", "expense", current, "2024-03-05T12:00:00", "Food"),
    ]


def test_category_growth_alert_starts_at_thirty_percent() -> None:
    below = generate_detailed_suggestions(_food_growth(129000), None, NOW)
    at = generate_detailed_suggestions(_food_growth(130000), None, NOW)

    assert not any(item["type"] == "alert" for item in below)
    assert [item["text"] for item in at if item["type"] == "alert"] == [
        "Chi tiêu cho Food tăng 30% so với tháng trước, hiện là 130.000 ₫."
    ]


def test_general_savings_target_needs_previous_month() -> None:
    txs = [_tx("a", "expense", 100000, "2024-03-02T12:00:00", "Food")]
    items = generate_detailed_suggestions(txs, None, NOW)

    assert any(item["type"] == "forecast" for item in items)
    assert not any("giảm 8%" in item["text"] for item in items)


def test_local_headlines_carry_types_into_merge() -> None:
    result = compute_insights(_sample_transactions(), NOW)
    assert [item["type"] for item in result["items"]] == ["basic", "action", "basic", "basic"]

    report = build_insight_report(_sample_transactions(), NOW)
    assert {"type": "action", "text": "Hãy đặt mục tiêu giảm 5-10% chi tiêu cho Food trong tháng tới."} in report[
        "items"
    ]
    assert report["items"][0]["type"] == "basic"


def test_build_insight_report_formats_configured_currency() -> None:
    report = build_insight_report(_sample_transactions(), NOW, currency="USD")
    texts = [item["text"] for item in report["items"]]

    assert texts[0].startswith("Danh mục chi nhiều nhất tháng này là Food: 300.000,00 US$")
    assert not any("₫" in text for text in texts)
