"""Display formatting helpers for amounts and percentages (vi-VN conventions)."""

from __future__ import annotations

import math

CURRENCY_SYMBOLS = {
    "VND": "₫",
    "USD": "US$",
    "EUR": "€",
    "JPY": "¥",
}

_ZERO_DECIMAL_CURRENCIES = {"VND", "JPY"}


def round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3, -2.5 -> -2)."""
    number = float(value)
    if not math.isfinite(number):
        return 0
    return int(math.floor(number + 0.5))


def _group_digits(value: float, decimals: int) -> str:
    # Python formats 1,234.50; vi-VN wants 1.234,50.
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "\0").replace(".", ",").replace("\0", ".")


def format_money(amount: float, currency: str = "VND") -> str:
    code = str(currency or "VND").upper()
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    decimals = 0 if code in _ZERO_DECIMAL_CURRENCIES else 2
    sign = "-" if value < 0 else ""
    body = _group_digits(abs(value), decimals)
    return f"{sign}{body} {CURRENCY_SYMBOLS.get(code, code)}"


def format_pct(value: float) -> str:
    """Unsigned whole percentage; direction is carried by the surrounding words."""
    return f"{abs(round_half_up(value))}%"
