"""Wallet balance totals grouped by currency."""

from __future__ import annotations

from typing import Any, Iterable

from formatting import format_money
from transactions import coerce_amount


def wallet_totals_by_currency(wallets: Iterable[dict[str, Any]] | None) -> dict[str, float]:
    totals: dict[str, float] = {}
    for wallet in wallets or []:
        if not isinstance(wallet, dict):
            continue
        currency = str(wallet.get("currency") or "VND").upper()
        totals[currency] = totals.get(currency, 0.0) + coerce_amount(wallet.get("initialBalance"))
    return totals


def format_wallet_totals(totals: dict[str, float]) -> str:
    if not totals:
        return format_money(0, "VND")
    return " • ".join(format_money(amount, currency) for currency, amount in totals.items())
