# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order lifecycle service.

Every state-changing call validates the transition first, then mutates,
then commits, all inside run_with_retry: a rejected or failed operation
leaves the order exactly as it was.

Status guards live in domain.order_states; this module applies them to
persisted orders and keeps totals and stock in step.
"""

from __future__ import annotations

from ..domain import order_states as states
from ..extensions import db
from ..models import Order, OrderItem, Store
from ..time_utils import utcnow
from . import inventory_service
from .concurrency import lock_for_update, run_with_retry
from .tenant_service import (
    TenantAccessError,
    require_customer_in_store,
    require_order_in_store,
    require_variant_in_store,
)


LABEL_REQUIRED_ADDRESS_FIELDS = ("address_line_1", "city", "postal_code", "country")

BULK_ACTION_DELETE = "delete"
BULK_ACTION_CANCEL = "cancel"
BULK_ACTIONS = (BULK_ACTION_DELETE, BULK_ACTION_CANCEL)


class OrderError(Exception):
    """Raised when an order operation is rejected or fails."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def _guard(action: str, order: Order) -> None:
    message = states.rejection_for(action, order.status)
    if message:
        raise OrderError(message, {"status": order.status, "action": action})


# =============================================================================
# TOTALS
# =============================================================================

def calculate_totals(order: Order) -> Order:
    """
    Recompute derived amounts from items and completed payments.

    sub_total = sum of line totals
    total = max(0, sub_total + shipping + tax - discount)
    balance_due = max(0, total - total_paid)
    """
    order.sub_total_cents = sum(item.line_total_cents for item in order.items)
    order.total_cents = max(
        0,
        order.sub_total_cents
        + order.shipping_cost_cents
        + order.sales_tax_cents
        - order.discount_cost_cents,
    )
    order.total_paid_cents = sum(p.amount_cents for p in order.payments if p.status == "completed")
    order.balance_due_cents = max(0, order.total_cents - order.total_paid_cents)
    return order


# =============================================================================
# CREATION AND ITEMS
# =============================================================================

def _next_invoice_number(store_id: int) -> str:
    """
    ORD-<store>-<seq>, one past the highest sequence issued so far.

    Deleted orders leave gaps; numbers are never reused. The store row is
    locked so concurrent creates in one store serialize here.
    """
    lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()

    prefix = f"ORD-{store_id}-"
    last = (
        db.session.query(db.func.max(Order.invoice_number))
        .filter(Order.store_id == store_id, Order.invoice_number.like(f"{prefix}%"))
        .scalar()
    )
    sequence = 0
    if last and last[len(prefix):].isdigit():
        sequence = int(last[len(prefix):])
    return f"{prefix}{sequence + 1:06d}"


def create_order(
    store_id: int,
    *,
    customer_id: int | None = None,
    status: str = states.STATUS_PENDING,
    shipping_cost_cents: int = 0,
    sales_tax_cents: int = 0,
    discount_cost_cents: int = 0,
    shipping_address: dict | None = None,
    billing_address: dict | None = None,
    source_platform: str | None = None,
    external_marketplace_id: str | None = None,
    notes: str | None = None,
) -> Order:
    def _op():
        if status not in (states.STATUS_PENDING, states.STATUS_DRAFT):
            raise OrderError("New orders must start as pending or draft.")
        if customer_id is not None:
            require_customer_in_store(customer_id, store_id)

        order = Order(
            store_id=store_id,
            customer_id=customer_id,
            invoice_number=_next_invoice_number(store_id),
            status=status,
            shipping_cost_cents=shipping_cost_cents,
            sales_tax_cents=sales_tax_cents,
            discount_cost_cents=discount_cost_cents,
            shipping_address=shipping_address,
            billing_address=billing_address,
            source_platform=source_platform,
            external_marketplace_id=external_marketplace_id,
            notes=notes,
        )
        db.session.add(order)
        calculate_totals(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def add_item(
    order_id: int,
    store_id: int,
    *,
    title: str,
    quantity: int,
    price_cents: int,
    cost_cents: int = 0,
    discount_cents: int = 0,
    product_variant_id: int | None = None,
    sku: str | None = None,
) -> OrderItem:
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        _guard(states.ACTION_EDIT_ITEMS, order)
        if quantity <= 0:
            raise OrderError("Quantity must be positive")
        if discount_cents > price_cents * quantity:
            raise OrderError("Discount cannot exceed the line amount")
        if product_variant_id is not None:
            require_variant_in_store(product_variant_id, store_id)

        item = OrderItem(
            title=title,
            quantity=quantity,
            price_cents=price_cents,
            cost_cents=cost_cents,
            discount_cents=discount_cents,
            product_variant_id=product_variant_id,
            sku=sku,
        )
        order.items.append(item)
        calculate_totals(order)
        db.session.commit()
        return item

    return run_with_retry(_op)


def _require_item(order: Order, item_id: int) -> OrderItem:
    for item in order.items:
        if item.id == item_id:
            return item
    raise OrderError("Order item not found")


def update_item(
    order_id: int,
    store_id: int,
    item_id: int,
    *,
    quantity: int | None = None,
    price_cents: int | None = None,
    discount_cents: int | None = None,
) -> OrderItem:
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        _guard(states.ACTION_EDIT_ITEMS, order)
        item = _require_item(order, item_id)

        new_quantity = item.quantity if quantity is None else quantity
        new_price = item.price_cents if price_cents is None else price_cents
        new_discount = item.discount_cents if discount_cents is None else discount_cents
        if new_quantity <= 0:
            raise OrderError("Quantity must be positive")
        if new_discount > new_price * new_quantity:
            raise OrderError("Discount cannot exceed the line amount")

        item.quantity = new_quantity
        item.price_cents = new_price
        item.discount_cents = new_discount
        calculate_totals(order)
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_item(order_id: int, store_id: int, item_id: int) -> Order:
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        _guard(states.ACTION_EDIT_ITEMS, order)
        item = _require_item(order, item_id)
        order.items.remove(item)
        calculate_totals(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


# =============================================================================
# TRANSITIONS
# =============================================================================

def _transition(order_id: int, store_id: int, action: str, mutate=None) -> Order:
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        _guard(action, order)
        if mutate is not None:
            mutate(order)
        order.status = states.TARGET_STATUS[action]
        db.session.commit()
        return order

    return run_with_retry(_op)


def confirm_order(order_id: int, store_id: int) -> Order:
    return _transition(order_id, store_id, states.ACTION_CONFIRM)


def ship_order(
    order_id: int,
    store_id: int,
    *,
    tracking_number: str | None = None,
    carrier: str | None = None,
    create_label: bool = False,
) -> Order:
    """
    Mark an order shipped. Creating a carrier label needs a complete
    shipping address; plain tracking entry does not.
    """
    def _mutate(order: Order) -> None:
        if create_label:
            address = order.shipping_address or {}
            missing = [f for f in LABEL_REQUIRED_ADDRESS_FIELDS if not address.get(f)]
            if missing:
                raise OrderError(
                    "A valid shipping address is required to create a shipping label.",
                    {"missing_fields": missing},
                )
        if tracking_number:
            order.tracking_number = tracking_number
        if carrier:
            order.shipping_carrier = carrier.lower()
        if order.shipped_at is None:
            order.shipped_at = utcnow()

    return _transition(order_id, store_id, states.ACTION_SHIP, _mutate)


def deliver_order(order_id: int, store_id: int) -> Order:
    def _mutate(order: Order) -> None:
        order.delivered_at = utcnow()

    return _transition(order_id, store_id, states.ACTION_DELIVER, _mutate)


def complete_order(order_id: int, store_id: int) -> Order:
    return _transition(order_id, store_id, states.ACTION_COMPLETE)


def _restore_order_stock(order: Order, reason: str) -> int:
    restored = 0
    for item in order.items:
        if item.product_variant_id is None or item.quantity <= 0:
            continue
        inventory_service.restore_stock(
            store_id=order.store_id,
            variant_id=item.product_variant_id,
            quantity=item.quantity,
            reason=reason,
            reference=order.invoice_number,
        )
        restored += item.quantity
    return restored


def cancel_order(order_id: int, store_id: int, *, reason: str | None = None) -> Order:
    """Cancel from any state but completed; stock comes back in the same commit."""
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        message = states.cancel_rejection(order.status)
        if message:
            raise OrderError(message, {"status": order.status})

        _restore_order_stock(order, "Order cancelled")
        order.status = states.STATUS_CANCELLED
        if reason:
            order.notes = f"{order.notes}\n{reason}".strip() if order.notes else reason
        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int, store_id: int) -> None:
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        _guard(states.ACTION_DELETE, order)
        _restore_order_stock(order, "Order deleted")
        db.session.delete(order)
        db.session.commit()

    run_with_retry(_op)


def bulk_action(store_id: int, action: str, order_ids: list[int]) -> dict:
    """
    Apply delete or cancel to many orders. Each order is its own unit of
    work; failures are reported per id and do not affect the others.
    """
    if action not in BULK_ACTIONS:
        raise OrderError(f"Unknown bulk action: {action}")

    succeeded: list[int] = []
    failed: dict[int, str] = {}
    for order_id in order_ids:
        try:
            if action == BULK_ACTION_DELETE:
                delete_order(order_id, store_id)
            else:
                cancel_order(order_id, store_id)
            succeeded.append(order_id)
        except (OrderError, TenantAccessError, inventory_service.InventoryError) as exc:
            failed[order_id] = str(exc)

    return {"action": action, "succeeded": succeeded, "failed": failed}


def get_order(order_id: int, store_id: int) -> Order:
    return require_order_in_store(order_id, store_id)
