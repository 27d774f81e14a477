"""Transaction loading and normalization helpers."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
OTHER_CATEGORY = "Khác"
OTHER_WALLET = "Ví khác"

FRAME_COLUMNS = [
    "Position",
    "Id",
    "Type",
    "Amount",
    "Date",
    "CategoryId",
    "CategoryName",
    "WalletId",
    "WalletName",
    "Currency",
    "Record",
]


def coerce_amount(value: Any) -> float:
    """Numeric amount or 0.0 for anything that does not parse to a finite number."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_local_timestamp(value: Any, tz: str | None = None) -> pd.Timestamp:
    """Parse a date into a naive timestamp expressed in local wall-clock time.

    Aware values are converted into ``tz`` before the zone is dropped, so a
    ``2024-01-01T16:30:00Z`` record in Asia/Ho_Chi_Minh reads as 23:30 on
    2024-01-01. Naive values are taken as already local. Numbers are epoch
    milliseconds (UTC), as exported by JavaScript clients.
    """
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        return pd.NaT
    try:
        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                return pd.NaT
            ts = pd.Timestamp(value, unit="ms", tz="UTC")
        else:
            ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz or DEFAULT_TIMEZONE).tz_localize(None)
    return ts


def _ref_id(ref: Any) -> str | None:
    if ref is None:
        return None
    if isinstance(ref, dict):
        raw = ref.get("_id", ref.get("id"))
        return str(raw) if raw is not None else None
    text = str(ref).strip()
    return text or None


def _ref_name(ref: Any) -> str | None:
    if isinstance(ref, dict):
        name = str(ref.get("name") or "").strip()
        return name or None
    return None


def _category_name(category: Any) -> str | None:
    if category is None or (isinstance(category, str) and not category.strip()):
        return None
    return _ref_name(category) or OTHER_CATEGORY


def _normalize_row(position: int, record: dict[str, Any], tz: str | None) -> dict[str, Any]:
    category = record.get("category")
    wallet = record.get("wallet")
    currency = wallet.get("currency") if isinstance(wallet, dict) else None
    raw_id = record.get("id", record.get("_id"))
    return {
        "Position": position,
        "Id": str(raw_id) if raw_id is not None else None,
        "Type": str(record.get("type") or "").strip().lower(),
        "Amount": coerce_amount(record.get("amount")),
        "Date": parse_local_timestamp(record.get("date"), tz),
        "CategoryId": _ref_id(category),
        "CategoryName": _category_name(category),
        "WalletId": _ref_id(wallet),
        "WalletName": _ref_name(wallet) or OTHER_WALLET,
        "Currency": str(currency or "VND").upper(),
        "Record": dict(record),
    }


def transactions_frame(transactions: Iterable[dict[str, Any]] | None, tz: str | None = None) -> pd.DataFrame:
    """One normalized row per record, in input order. Undated records keep a NaT date."""
    rows = [
        _normalize_row(position, record, tz)
        for position, record in enumerate(transactions or [])
        if isinstance(record, dict)
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame["Date"] = pd.to_datetime(frame["Date"])
    frame["Amount"] = frame["Amount"].astype(float)
    return frame


def dated_frame(transactions: Iterable[dict[str, Any]] | None, tz: str | None = None) -> pd.DataFrame:
    frame = transactions_frame(transactions, tz)
    return frame.loc[frame["Date"].notna()].copy()


def records_from_payload(payload: Any, key: str = "transactions") -> list[dict[str, Any]]:
    """Accept a bare list or an object wrapping the list under ``key``."""
    if isinstance(payload, dict):
        payload = payload.get(key, [])
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def load_records_json(path: str, key: str = "transactions") -> list[dict[str, Any]]:
    """Read a JSON export from disk; a missing file yields no records."""
    target = Path(path).expanduser()
    if not target.exists():
        return []
    return records_from_payload(json.loads(target.read_text(encoding="utf-8")), key)
