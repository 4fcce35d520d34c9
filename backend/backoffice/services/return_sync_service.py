# Overview: Service-layer operations for importing marketplace refunds as local returns; encapsulates business logic and database work.

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..domain import order_states as states
from ..domain.platform_payloads import RefundPayload
from ..domain.status_mapping import map_return_status
from ..extensions import db
from ..models import Order, PlatformOrder, ProductReturn, ProductReturnItem
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# RETURN CONSTANTS
# =============================================================================

RETURN_TYPE_REFUND = "refund"
SYNC_STATUS_SYNCED = "synced"

# Returns in these statuses never count toward the refunded total
NON_COUNTING_RETURN_STATUSES = ("rejected", "cancelled")

_RETURN_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class RefundImportResult:
    imported: int = 0
    skipped: int = 0
    returns: list[ProductReturn] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.skipped

    @property
    def message(self) -> str:
        if self.total == 0:
            return "No refunds found for this order."
        if self.imported == 0:
            return f"All {self.skipped} refund(s) have already been imported."
        message = f"Imported {self.imported} refund(s)."
        if self.skipped:
            message += f" ({self.skipped} already existed)"
        return message

    def to_dict(self) -> dict:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "message": self.message,
            "return_ids": [r.id for r in self.returns],
        }


def generate_return_number(now: datetime | None = None) -> str:
    """RET-YYYYMMDD-XXXXXX with a random uppercase alphanumeric suffix."""
    now = now or utcnow()
    suffix = "".join(secrets.choice(_RETURN_NUMBER_ALPHABET) for _ in range(6))
    return f"RET-{now:%Y%m%d}-{suffix}"


def return_exists(external_return_id: str, store_marketplace_id: int) -> bool:
    return db.session.query(
        db.session.query(ProductReturn)
        .filter_by(external_return_id=external_return_id, store_marketplace_id=store_marketplace_id)
        .exists()
    ).scalar()


def _build_return(order: Order, platform_order: PlatformOrder, refund: RefundPayload) -> ProductReturn:
    items_by_external = {
        item.external_line_item_id: item
        for item in order.items
        if item.external_line_item_id
    }
    marketplace = platform_order.marketplace
    now = utcnow()

    product_return = ProductReturn(
        store_id=order.store_id,
        order_id=order.id,
        customer_id=order.customer_id,
        return_number=generate_return_number(now),
        # Refund objects are already processed on the marketplace side
        status=map_return_status(refund.status or "refunded"),
        type=RETURN_TYPE_REFUND,
        reason=refund.note,
        subtotal_cents=refund.subtotal_cents,
        refund_amount_cents=refund.refund_amount_cents,
        source_platform=marketplace.platform if marketplace else order.source_platform,
        store_marketplace_id=platform_order.store_marketplace_id,
        external_return_id=refund.id,
        sync_status=SYNC_STATUS_SYNCED,
        synced_at=now,
        requested_at=refund.created_at or now,
    )

    for line in refund.lines:
        order_item = items_by_external.get(line.line_item_id)
        quantity = max(line.quantity, 0)
        unit_price = line.subtotal_cents // quantity if quantity else line.subtotal_cents
        product_return.items.append(ProductReturnItem(
            order_item_id=order_item.id if order_item else None,
            product_variant_id=order_item.product_variant_id if order_item else None,
            quantity=quantity,
            unit_price_cents=unit_price,
            line_total_cents=line.subtotal_cents,
            restock=line.restock,
        ))
    return product_return


def import_refund(order: Order, platform_order: PlatformOrder, refund: RefundPayload) -> ProductReturn | None:
    """
    Import one refund as a ProductReturn, or return None if it already exists.

    The existence check and the insert share a savepoint in the caller's
    transaction, and the unique (external_return_id, store_marketplace_id)
    constraint turns a concurrent duplicate into a skip instead of a
    second row.
    """
    if return_exists(refund.id, platform_order.store_marketplace_id):
        return None

    try:
        with db.session.begin_nested():
            product_return = _build_return(order, platform_order, refund)
            db.session.add(product_return)
            db.session.flush()
    except IntegrityError:
        logger.info(
            "Refund %s for marketplace %s imported concurrently; skipping",
            refund.id,
            platform_order.store_marketplace_id,
        )
        return None
    return product_return


def refunded_total_cents(order: Order) -> int:
    total = (
        db.session.query(db.func.coalesce(db.func.sum(ProductReturn.refund_amount_cents), 0))
        .filter(
            ProductReturn.order_id == order.id,
            ProductReturn.status.notin_(NON_COUNTING_RETURN_STATUSES),
        )
        .scalar()
    )
    return int(total or 0)


def apply_refunded_status(order: Order) -> bool:
    """Move the order to refunded once refunds cover its total."""
    if order.status in states.TERMINAL_STATUSES or order.status == states.STATUS_COMPLETED:
        return False
    if order.total_cents <= 0:
        return False
    if refunded_total_cents(order) < order.total_cents:
        return False
    order.status = states.STATUS_REFUNDED
    return True


def import_refunds(order: Order, platform_order: PlatformOrder, refunds: list[RefundPayload]) -> RefundImportResult:
    """Does not commit; the caller owns the transaction."""
    result = RefundImportResult()
    for refund in refunds:
        product_return = import_refund(order, platform_order, refund)
        if product_return is None:
            result.skipped += 1
        else:
            result.imported += 1
            result.returns.append(product_return)

    if result.imported:
        apply_refunded_status(order)
    return result
