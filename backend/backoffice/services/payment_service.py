# Overview: Service-layer operations for order payments; encapsulates business logic and database work.

from __future__ import annotations

from ..domain import order_states as states
from ..extensions import db
from ..models import Payment
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .order_service import calculate_totals
from .tenant_service import require_order_in_store


# =============================================================================
# PAYMENT METHODS
# =============================================================================

METHOD_CASH = "cash"
METHOD_CARD = "card"
METHOD_CHECK = "check"
METHOD_WIRE = "wire"
METHOD_STORE_CREDIT = "store_credit"
METHOD_MARKETPLACE = "marketplace"

PAYMENT_METHODS = (
    METHOD_CASH,
    METHOD_CARD,
    METHOD_CHECK,
    METHOD_WIRE,
    METHOD_STORE_CREDIT,
    METHOD_MARKETPLACE,
)

PAYMENT_STATUS_COMPLETED = "completed"


class PaymentError(Exception):
    """Raised when a payment cannot be recorded."""
    pass


def receive_payment(
    order_id: int,
    store_id: int,
    *,
    amount_cents: int,
    payment_method: str,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record a payment against an order.

    Allowed in any status as long as the order is not already fully
    paid. A pending or draft order moves to confirmed once fully paid and
    to partial_payment while a balance remains.

    Raises:
        PaymentError: fully paid order, bad amount or unknown method
        TenantAccessError: order not in this store
    """
    def _op():
        order = require_order_in_store(order_id, store_id, for_update=True)
        calculate_totals(order)

        if order.is_fully_paid():
            raise PaymentError("Order is already fully paid.")
        if amount_cents <= 0:
            raise PaymentError("Payment amount must be positive")
        if payment_method not in PAYMENT_METHODS:
            raise PaymentError(f"Invalid payment method: {payment_method}")

        payment = Payment(
            store_id=store_id,
            payment_method=payment_method,
            amount_cents=amount_cents,
            status=PAYMENT_STATUS_COMPLETED,
            reference=reference,
            notes=notes,
            paid_at=utcnow(),
        )
        order.payments.append(payment)
        calculate_totals(order)

        if order.status in (states.STATUS_PENDING, states.STATUS_DRAFT, states.STATUS_PARTIAL_PAYMENT):
            if order.is_fully_paid():
                order.status = states.STATUS_CONFIRMED
            elif order.total_paid_cents > 0:
                order.status = states.STATUS_PARTIAL_PAYMENT

        db.session.commit()
        return payment

    return run_with_retry(_op)
