# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from ..domain import category_tree
from ..domain.bucketing import UNIT_DAY, UNIT_MONTH, UNIT_YEAR, BucketError, BuyRecord, aggregate_buys
from ..domain.category_tree import CategoryCycleError, RootResolver
from ..domain.report_totals import CATEGORY_FIELDS, buy_metrics, calculate_totals, profit_percent
from ..extensions import db
from ..models import Inventory, InventoryAdjustment, Product, ProductVariant, Transaction, TransactionItem
from ..time_utils import end_of_day, start_of_day, utcnow
from .category_service import CategoryError, expand_category_filter, load_categories
from .tenant_service import require_category_in_store, require_store


TRANSACTION_STATUS_PAYMENT_PROCESSED = "payment_processed"

KIND_ALL = "all"
KIND_IN_STORE = "in_store"
KIND_ONLINE = "online"
KIND_TRADE_IN = "trade_in"
KINDS = (KIND_ALL, KIND_IN_STORE, KIND_ONLINE, KIND_TRADE_IN)

UNCATEGORIZED_ID = 0
UNCATEGORIZED_NAME = "Uncategorized"

DEFAULT_INVENTORY_WINDOW_DAYS = 30


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


# =============================================================================
# BUY TRANSACTIONS
# =============================================================================

def _apply_kind(query, kind: str):
    if kind == KIND_ALL:
        return query
    if kind == KIND_IN_STORE:
        return query.filter(
            Transaction.type == "in_store",
            or_(Transaction.source.is_(None), Transaction.source.notin_(("online", "trade_in"))),
        )
    if kind == KIND_ONLINE:
        return query.filter(or_(Transaction.type == "mail_in", Transaction.source == "online"))
    if kind == KIND_TRADE_IN:
        return query.filter(Transaction.source == "trade_in")
    raise ReportError(f"kind must be one of: {', '.join(KINDS)}")


def _allowed_categories(store_id: int, category_ids: list[int] | None) -> set[int] | None:
    try:
        return expand_category_filter(store_id, category_ids)
    except CategoryError as exc:
        raise ReportError(str(exc)) from exc


def _processed_transactions(
    *,
    store_id: int,
    start: date,
    end: date,
    kind: str,
    allowed_categories: set[int] | None,
) -> list[Transaction]:
    if end < start:
        raise ReportError("End date must not be before start date")

    query = db.session.query(Transaction).filter(
        Transaction.store_id == store_id,
        Transaction.status == TRANSACTION_STATUS_PAYMENT_PROCESSED,
        Transaction.payment_processed_at >= start_of_day(start),
        Transaction.payment_processed_at <= end_of_day(end),
    )
    query = _apply_kind(query, kind)
    if allowed_categories is not None:
        query = query.filter(Transaction.items.any(TransactionItem.category_id.in_(allowed_categories)))

    return (
        query.options(selectinload(Transaction.items), selectinload(Transaction.customer))
        .order_by(Transaction.payment_processed_at.asc(), Transaction.id.asc())
        .all()
    )


def _estimated_value(transaction: Transaction) -> int:
    return sum(item.price_cents * item.quantity for item in transaction.items)


def buys_by_period(
    *,
    store_id: int,
    start: date,
    end: date,
    unit: str,
    kind: str = KIND_ALL,
    category_ids: list[int] | None = None,
    newest_first: bool = False,
) -> dict:
    require_store(store_id)
    allowed = _allowed_categories(store_id, category_ids)
    transactions = _processed_transactions(
        store_id=store_id, start=start, end=end, kind=kind, allowed_categories=allowed,
    )
    records = [
        BuyRecord(
            transaction_id=t.id,
            processed_at=t.payment_processed_at,
            purchase_amt=t.final_offer_cents,
            estimated_value=_estimated_value(t),
        )
        for t in transactions
    ]
    try:
        rows = aggregate_buys(records, start, end, unit, newest_first=newest_first)
    except BucketError as exc:
        raise ReportError(str(exc)) from exc

    return {
        "unit": unit,
        "kind": kind,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "rows": rows,
        "totals": calculate_totals(rows),
    }


def daily_buys(*, store_id: int, start: date, end: date, kind: str = KIND_ALL, category_ids: list[int] | None = None) -> dict:
    """List view: one row per day, newest first."""
    return buys_by_period(
        store_id=store_id, start=start, end=end, unit=UNIT_DAY,
        kind=kind, category_ids=category_ids, newest_first=True,
    )


def daily_buys_trend(*, store_id: int, start: date, end: date, kind: str = KIND_ALL, category_ids: list[int] | None = None) -> dict:
    return buys_by_period(
        store_id=store_id, start=start, end=end, unit=UNIT_DAY,
        kind=kind, category_ids=category_ids,
    )


def monthly_buys(*, store_id: int, start: date, end: date, kind: str = KIND_ALL, category_ids: list[int] | None = None) -> dict:
    return buys_by_period(
        store_id=store_id, start=start, end=end, unit=UNIT_MONTH,
        kind=kind, category_ids=category_ids,
    )


def yearly_buys(
    *,
    store_id: int,
    years: int = 5,
    today: date | None = None,
    kind: str = KIND_ALL,
    category_ids: list[int] | None = None,
) -> dict:
    """The last `years` calendar years including the current one, oldest first."""
    if years < 1:
        raise ReportError("years must be at least 1")
    today = today or utcnow().date()
    return buys_by_period(
        store_id=store_id,
        start=date(today.year - (years - 1), 1, 1),
        end=date(today.year, 12, 31),
        unit=UNIT_YEAR,
        kind=kind,
        category_ids=category_ids,
    )


def default_daily_range(today: date | None = None) -> tuple[date, date]:
    today = today or utcnow().date()
    return today.replace(day=1), today


def default_monthly_range(today: date | None = None, months: int = 12) -> tuple[date, date]:
    today = today or utcnow().date()
    year, month = today.year, today.month - (months - 1)
    while month < 1:
        month += 12
        year -= 1
    return date(year, month, 1), today


def buy_transactions(
    *,
    store_id: int,
    start: date,
    end: date,
    kind: str = KIND_ALL,
    category_ids: list[int] | None = None,
) -> dict:
    """Per-transaction detail for a date range, newest first."""
    require_store(store_id)
    allowed = _allowed_categories(store_id, category_ids)
    transactions = _processed_transactions(
        store_id=store_id, start=start, end=end, kind=kind, allowed_categories=allowed,
    )

    rows = []
    for t in reversed(transactions):
        row = {
            "transaction_id": t.id,
            "transaction_number": t.transaction_number,
            "date": t.payment_processed_at.strftime("%b %d, %Y"),
            "customer_name": t.customer.full_name if t.customer else None,
            "type": t.type,
            "source": t.source,
        }
        row.update(buy_metrics(1, t.final_offer_cents, _estimated_value(t)))
        rows.append(row)

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "kind": kind,
        "rows": rows,
        "totals": calculate_totals(rows),
    }


# =============================================================================
# CATEGORY BREAKDOWN
# =============================================================================

def category_breakdown(
    *,
    store_id: int,
    start: date,
    end: date,
    kind: str = KIND_ALL,
    category_ids: list[int] | None = None,
) -> dict:
    """
    Buy items grouped by their (leaf) category.

    Items without a known category land in the synthetic Uncategorized
    row (id 0). A transaction counts once per category no matter how many
    of its items fall there.
    """
    require_store(store_id)
    allowed = _allowed_categories(store_id, category_ids)
    transactions = _processed_transactions(
        store_id=store_id, start=start, end=end, kind=kind, allowed_categories=allowed,
    )

    categories = load_categories(store_id)
    by_id = {c.id: c for c in categories}
    parent_ids = {c.parent_id for c in categories if c.parent_id is not None}
    root_of = RootResolver(by_id)

    groups: dict[int, dict] = {}
    try:
        for transaction in transactions:
            for item in transaction.items:
                if allowed is not None and item.category_id not in allowed:
                    continue
                category = by_id.get(item.category_id) if item.category_id else None
                key = category.id if category else UNCATEGORIZED_ID

                row = groups.get(key)
                if row is None:
                    row = {
                        "category_id": key,
                        "category_name": category.name if category else UNCATEGORIZED_NAME,
                        "parent_id": category.parent_id if category else None,
                        "root_category_id": root_of(category.id) if category else None,
                        "is_leaf": category.id not in parent_ids if category else True,
                        "transactions_count": 0,
                        "items_count": 0,
                        "total_purchase": 0,
                        "total_estimated_value": 0,
                        "_seen_transactions": set(),
                    }
                    groups[key] = row

                row["items_count"] += item.quantity
                row["total_estimated_value"] += item.price_cents * item.quantity
                row["total_purchase"] += item.buy_price_cents * item.quantity
                if transaction.id not in row["_seen_transactions"]:
                    row["_seen_transactions"].add(transaction.id)
                    row["transactions_count"] += 1
    except CategoryCycleError as exc:
        raise ReportError(str(exc)) from exc

    rows = []
    for row in groups.values():
        del row["_seen_transactions"]
        row["total_profit"] = row["total_estimated_value"] - row["total_purchase"]
        row["profit_percent"] = profit_percent(row["total_profit"], row["total_purchase"])
        rows.append(row)
    rows.sort(key=lambda r: r["total_estimated_value"], reverse=True)

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "kind": kind,
        "rows": rows,
        "totals": calculate_totals(rows, CATEGORY_FIELDS),
    }


# =============================================================================
# INVENTORY BY CATEGORY
# =============================================================================

def _empty_inventory_figures() -> dict:
    return {
        "total_units": 0,
        "total_value": 0,
        "added_units": 0,
        "added_cost": 0,
        "removed_units": 0,
        "removed_cost": 0,
    }


def _accumulate(figures: dict, stock: list[tuple], moves: list[tuple], include) -> dict:
    for category_id, quantity, unit_cost in stock:
        if include(category_id):
            figures["total_units"] += quantity
            figures["total_value"] += quantity * unit_cost
    for category_id, quantity_change, cost_impact in moves:
        if not include(category_id):
            continue
        if quantity_change > 0:
            figures["added_units"] += quantity_change
            figures["added_cost"] += cost_impact
        else:
            figures["removed_units"] += -quantity_change
            figures["removed_cost"] += -cost_impact
    return figures


def inventory_category_report(
    *,
    store_id: int,
    parent_category_id: int | None = None,
    since: date | None = None,
    today: date | None = None,
) -> dict:
    """
    Stock on hand and ledger movement for one level of the category tree.

    Each row covers a child category of `parent_category_id` (roots when
    None) together with all its descendants. Movement comes from
    InventoryAdjustment rows created on or after `since`.
    """
    require_store(store_id)
    today = today or utcnow().date()
    since = since or (today - timedelta(days=DEFAULT_INVENTORY_WINDOW_DAYS))

    categories = load_categories(store_id)
    by_id = {c.id: c for c in categories}
    if parent_category_id is not None:
        parent = require_category_in_store(parent_category_id, store_id)
        try:
            trail = category_tree.breadcrumb(by_id, parent.id) + [{"id": parent.id, "name": parent.name}]
        except CategoryCycleError as exc:
            raise ReportError(str(exc)) from exc
    else:
        trail = []

    stock = (
        db.session.query(Product.category_id, Inventory.quantity, Inventory.unit_cost_cents)
        .join(ProductVariant, ProductVariant.id == Inventory.product_variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(Inventory.store_id == store_id)
        .all()
    )
    moves = (
        db.session.query(
            Product.category_id,
            InventoryAdjustment.quantity_change,
            InventoryAdjustment.total_cost_impact_cents,
        )
        .join(ProductVariant, ProductVariant.id == InventoryAdjustment.product_variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(
            InventoryAdjustment.store_id == store_id,
            InventoryAdjustment.created_at >= start_of_day(since),
        )
        .all()
    )

    level = sorted(
        (c for c in categories if c.parent_id == parent_category_id),
        key=lambda c: ((c.name or "").lower(), c.id),
    )
    has_children = {c.parent_id for c in categories if c.parent_id is not None}

    rows = []
    try:
        for category in level:
            members = category_tree.descendant_ids(categories, category.id)
            row = {
                "category_id": category.id,
                "name": category.name,
                "is_leaf": category.id not in has_children,
            }
            row.update(_accumulate(_empty_inventory_figures(), stock, moves, lambda cid, m=members: cid in m))
            rows.append(row)
    except CategoryCycleError as exc:
        raise ReportError(str(exc)) from exc

    if parent_category_id is None:
        row = {"category_id": None, "name": UNCATEGORIZED_NAME, "is_leaf": True}
        row.update(_accumulate(
            _empty_inventory_figures(), stock, moves,
            lambda cid: cid is None or cid not in by_id,
        ))
        if row["total_units"] or row["added_units"] or row["removed_units"]:
            rows.append(row)

    totals = _empty_inventory_figures()
    for row in rows:
        for key in totals:
            totals[key] += row[key]

    return {
        "parent_category_id": parent_category_id,
        "breadcrumb": trail,
        "since": since.isoformat(),
        "rows": rows,
        "totals": totals,
    }


def stock_summary(*, store_id: int) -> dict:
    """Store-wide units and value on hand (cents)."""
    require_store(store_id)
    units, value = (
        db.session.query(
            func.coalesce(func.sum(Inventory.quantity), 0),
            func.coalesce(func.sum(Inventory.quantity * Inventory.unit_cost_cents), 0),
        )
        .filter(Inventory.store_id == store_id)
        .one()
    )
    return {"total_units": int(units), "total_value": int(value)}
