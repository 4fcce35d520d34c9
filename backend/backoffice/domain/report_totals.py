# Overview: Store-wide totals for bucketed and grouped report rows.
# Profit percentages are always recomputed from summed amounts, never
# averaged across rows.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class TotalsFields:
    count: str
    purchase: str
    value: str
    profit: str
    extra_sums: tuple[str, ...] = ()


BUY_FIELDS = TotalsFields(
    count="buys_count",
    purchase="purchase_amt",
    value="estimated_value",
    profit="profit",
)

CATEGORY_FIELDS = TotalsFields(
    count="transactions_count",
    purchase="total_purchase",
    value="total_estimated_value",
    profit="total_profit",
    extra_sums=("items_count",),
)


def profit_percent(profit: int, purchase: int) -> float:
    if purchase <= 0:
        return 0.0
    return round(profit / purchase * 100, 2)


def average(total: int, count: int) -> int:
    if count <= 0:
        return 0
    return round(total / count)


def buy_metrics(count: int, purchase: int, estimated_value: int) -> dict:
    """Per-bucket and per-total figures for the buys reports (amounts in cents)."""
    profit = estimated_value - purchase
    return {
        "buys_count": count,
        "purchase_amt": purchase,
        "estimated_value": estimated_value,
        "profit": profit,
        "profit_percent": profit_percent(profit, purchase),
        "avg_buy_price": average(purchase, count),
    }


def calculate_totals(rows: Iterable[dict], fields: TotalsFields = BUY_FIELDS) -> dict:
    rows = list(rows)
    count = sum(r.get(fields.count, 0) for r in rows)
    purchase = sum(r.get(fields.purchase, 0) for r in rows)
    value = sum(r.get(fields.value, 0) for r in rows)
    profit = sum(r.get(fields.profit, 0) for r in rows)

    totals = {
        fields.count: count,
        fields.purchase: purchase,
        fields.value: value,
        fields.profit: profit,
        "profit_percent": profit_percent(profit, purchase),
        "avg_buy_price": average(purchase, count),
    }
    for key in fields.extra_sums:
        totals[key] = sum(r.get(key, 0) for r in rows)
    return totals
