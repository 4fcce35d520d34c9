# Overview: Contiguous calendar buckets (day / month / year) and zero-filled
# aggregation of buy records into them.

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Iterator

from .report_totals import buy_metrics


UNIT_DAY = "day"
UNIT_MONTH = "month"
UNIT_YEAR = "year"
UNITS = (UNIT_DAY, UNIT_MONTH, UNIT_YEAR)

KEY_FORMATS = {
    UNIT_DAY: "%Y-%m-%d",
    UNIT_MONTH: "%Y-%m",
    UNIT_YEAR: "%Y",
}

LABEL_FORMATS = {
    UNIT_DAY: "%b %d, %Y",
    UNIT_MONTH: "%b %Y",
    UNIT_YEAR: "%Y",
}


class BucketError(ValueError):
    pass


@dataclass(frozen=True)
class Bucket:
    key: str
    label: str
    start: date
    end: date


@dataclass(frozen=True)
class BuyRecord:
    """One processed buy, reduced to what the period reports need (cents)."""
    transaction_id: int
    processed_at: datetime
    purchase_amt: int
    estimated_value: int


def _unit_start(d: date, unit: str) -> date:
    if unit == UNIT_DAY:
        return d
    if unit == UNIT_MONTH:
        return d.replace(day=1)
    return d.replace(month=1, day=1)


def _unit_end(d: date, unit: str) -> date:
    if unit == UNIT_DAY:
        return d
    if unit == UNIT_MONTH:
        return d.replace(day=calendar.monthrange(d.year, d.month)[1])
    return d.replace(month=12, day=31)


def _advance(d: date, unit: str) -> date:
    if unit == UNIT_DAY:
        return date.fromordinal(d.toordinal() + 1)
    if unit == UNIT_MONTH:
        if d.month == 12:
            return d.replace(year=d.year + 1, month=1)
        return d.replace(month=d.month + 1)
    return d.replace(year=d.year + 1)


def bucket_key(value: date, unit: str) -> str:
    return value.strftime(KEY_FORMATS[unit])


def iter_buckets(start: date, end: date, unit: str) -> Iterator[Bucket]:
    """Every calendar unit touching [start, end], oldest first, no gaps."""
    if unit not in UNITS:
        raise BucketError(f"Unknown bucket unit: {unit}")
    if end < start:
        raise BucketError("End date must not be before start date")

    cursor = _unit_start(start, unit)
    while cursor <= end:
        yield Bucket(
            key=bucket_key(cursor, unit),
            label=cursor.strftime(LABEL_FORMATS[unit]),
            start=cursor,
            end=_unit_end(cursor, unit),
        )
        cursor = _advance(cursor, unit)


def aggregate_buys(
    records: Iterable[BuyRecord],
    start: date,
    end: date,
    unit: str,
    *,
    newest_first: bool = False,
) -> list[dict]:
    """
    One row per bucket; buckets without records are zero-filled.

    Callers pick the ordering: trend views read oldest first, list views
    newest first.
    """
    groups: dict[str, list[BuyRecord]] = {}
    for record in records:
        groups.setdefault(bucket_key(record.processed_at, unit), []).append(record)

    rows = []
    for bucket in iter_buckets(start, end, unit):
        group = groups.get(bucket.key, [])
        row = {"date": bucket.label}
        if unit == UNIT_DAY:
            row["date_key"] = bucket.key
        else:
            row["start_date"] = bucket.start.isoformat()
            row["end_date"] = bucket.end.isoformat()
        row.update(buy_metrics(
            len(group),
            sum(r.purchase_amt for r in group),
            sum(r.estimated_value for r in group),
        ))
        rows.append(row)

    if newest_first:
        rows.reverse()
    return rows
