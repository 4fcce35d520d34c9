# Overview: CSV row shapes and streaming for report exports.
# Every export is header row, data rows, then a TOTALS row.

from __future__ import annotations

import csv
import io
from decimal import Decimal
from typing import Iterable, Iterator, Sequence


BUYS_HEADER = ("Date", "# of Buys", "Purchase Amt", "Estimated Value", "Profit", "Profit %", "Avg Buy Price")
CATEGORY_HEADER = ("Category", "Transactions", "Items", "Purchase Amt", "Est. Value", "Profit", "Profit %")
TRANSACTIONS_HEADER = ("Date", "Transaction #", "Customer", "Type", "Purchase Amt", "Estimated Value", "Profit", "Profit %")


def format_money(cents: int) -> str:
    return f"{Decimal(cents) / 100:,.2f}"


def format_percent(value: float) -> str:
    return f"{value:.2f}%"


def iter_csv(header: Sequence, rows: Iterable[Sequence]) -> Iterator[str]:
    """Yield one encoded CSV line at a time."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def _flush() -> str:
        line = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return line

    writer.writerow(header)
    yield _flush()
    for row in rows:
        writer.writerow(row)
        yield _flush()


def buys_rows(rows: Iterable[dict], totals: dict) -> Iterator[list]:
    for row in rows:
        yield [
            row["date"],
            row["buys_count"],
            format_money(row["purchase_amt"]),
            format_money(row["estimated_value"]),
            format_money(row["profit"]),
            format_percent(row["profit_percent"]),
            format_money(row["avg_buy_price"]),
        ]
    yield [
        "TOTALS",
        totals["buys_count"],
        format_money(totals["purchase_amt"]),
        format_money(totals["estimated_value"]),
        format_money(totals["profit"]),
        format_percent(totals["profit_percent"]),
        format_money(totals["avg_buy_price"]),
    ]


def category_rows(rows: Iterable[dict], totals: dict) -> Iterator[list]:
    for row in rows:
        yield [
            row["category_name"],
            row["transactions_count"],
            row["items_count"],
            format_money(row["total_purchase"]),
            format_money(row["total_estimated_value"]),
            format_money(row["total_profit"]),
            format_percent(row["profit_percent"]),
        ]
    yield [
        "TOTALS",
        totals["transactions_count"],
        totals["items_count"],
        format_money(totals["total_purchase"]),
        format_money(totals["total_estimated_value"]),
        format_money(totals["total_profit"]),
        format_percent(totals["profit_percent"]),
    ]


def transaction_rows(rows: Iterable[dict], totals: dict) -> Iterator[list]:
    for row in rows:
        yield [
            row["date"],
            row["transaction_number"],
            row["customer_name"] or "",
            row["type"],
            format_money(row["purchase_amt"]),
            format_money(row["estimated_value"]),
            format_money(row["profit"]),
            format_percent(row["profit_percent"]),
        ]
    yield [
        "TOTALS",
        totals["buys_count"],
        "",
        "",
        format_money(totals["purchase_amt"]),
        format_money(totals["estimated_value"]),
        format_money(totals["profit"]),
        format_percent(totals["profit_percent"]),
    ]
