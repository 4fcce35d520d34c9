# Overview: Service-layer operations for marketplace order reconciliation; encapsulates business logic and database work.

"""
Platform order reconciler.

sync_order folds one marketplace payload into the local order: status,
shipping/billing address, tracking, customer details and refunds. The
whole fold is one transaction; any failure rolls it back and surfaces as
SyncError("Failed to sync order: ...").

Refund import inside an order sync is best effort: it runs in its own
savepoint, and a failure there is logged and discarded without touching
the rest of the fold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..domain import order_states as states
from ..domain.platform_payloads import (
    AddressPayload,
    OrderPayload,
    parse_order_payload,
    parse_refund_payloads,
)
from ..domain.status_mapping import map_external_status, tracking_update
from ..extensions import db
from ..models import Customer, CustomerAddress, Order, PlatformOrder, StoreMarketplace
from ..time_utils import utcnow
from . import return_sync_service
from .platform_client import ClientFactory, PlatformService
from .return_sync_service import RefundImportResult
from .tenant_service import TenantAccessError, require_order_in_store

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when an order or its refunds could not be synced."""
    pass


@dataclass
class SyncResult:
    order_id: int
    success: bool
    message: str
    previous_status: Optional[str] = None
    status: Optional[str] = None
    refunds: Optional[RefundImportResult] = None

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "success": self.success,
            "message": self.message,
            "previous_status": self.previous_status,
            "status": self.status,
            "refunds": self.refunds.to_dict() if self.refunds else None,
        }


# =============================================================================
# PAYLOAD FOLDING
# =============================================================================

def _apply_addresses(order: Order, payload: OrderPayload) -> None:
    if payload.shipping_address is not None:
        order.shipping_address = payload.shipping_address.normalized()
    if payload.billing_address is not None:
        order.billing_address = payload.billing_address.normalized()


def _apply_tracking(order: Order, payload: OrderPayload, now: datetime) -> None:
    update = tracking_update(payload.latest_fulfillment, already_shipped_at=order.shipped_at, now=now)
    if update is None:
        return
    if update.tracking_number:
        order.tracking_number = update.tracking_number
    if update.carrier:
        order.shipping_carrier = update.carrier
    if update.shipped_at is not None:
        order.shipped_at = update.shipped_at


def _address_matches(existing: CustomerAddress, address: AddressPayload) -> bool:
    return (
        existing.address == address.address1
        and existing.city == address.city
        and (existing.zip or None) == (address.zip or None)
    )


def _ensure_customer_address(customer: Customer, address: AddressPayload) -> Optional[CustomerAddress]:
    if any(_address_matches(existing, address) for existing in customer.addresses):
        return None

    created = CustomerAddress(
        first_name=address.first_name,
        last_name=address.last_name,
        company=address.company,
        address=address.address1,
        address2=address.address2,
        city=address.city,
        state=address.state,
        zip=address.zip,
        country=address.country_value,
        phone=address.phone,
        is_default=not customer.addresses,
        is_shipping=True,
    )
    customer.addresses.append(created)
    return created


def enrich_customer(order: Order, payload: OrderPayload) -> Optional[Customer]:
    """
    Attach or backfill the order's customer from the payload.

    Phone, company and email are only filled when empty locally. A new
    address row is created unless one already matches on
    (street, city, zip).
    """
    customer = order.customer
    remote = payload.customer

    if customer is None:
        if remote is None:
            return None
        customer = Customer(
            store_id=order.store_id,
            first_name=remote.first_name,
            last_name=remote.last_name,
        )
        db.session.add(customer)
        order.customer = customer

    address = payload.shipping_address or (remote.default_address if remote else None)
    if address is not None and address.address1 and address.city:
        _ensure_customer_address(customer, address)

    if not customer.phone_number:
        customer.phone_number = (
            (address.phone if address else None)
            or (remote.phone if remote else None)
            or payload.phone
        )
    if not customer.company_name and address is not None and address.company:
        customer.company_name = address.company
    if not customer.email:
        customer.email = (remote.email if remote else None) or payload.email or payload.contact_email

    return customer


def apply_payload(order: Order, payload: OrderPayload, *, now: datetime) -> Optional[str]:
    """Fold a parsed payload into the order. Returns the new status, if any."""
    new_status = map_external_status(payload, order.status)
    if new_status is not None:
        order.status = new_status

    _apply_addresses(order, payload)
    _apply_tracking(order, payload, now)
    enrich_customer(order, payload)
    return new_status


def _update_platform_order(platform_order: PlatformOrder, payload: OrderPayload, now: datetime) -> None:
    if payload.cancelled_at is not None:
        platform_order.status = "cancelled"
    elif payload.closed_at is not None:
        platform_order.status = "closed"
    else:
        platform_order.status = "open"
    platform_order.external_order_number = payload.name or platform_order.external_order_number
    platform_order.fulfillment_status = payload.fulfillment_status
    platform_order.payment_status = payload.financial_status
    platform_order.total_cents = payload.total_price_cents
    platform_order.ordered_at = payload.created_at or platform_order.ordered_at
    platform_order.platform_data = payload.raw
    platform_order.last_synced_at = now


# =============================================================================
# SYNC ENTRY POINTS
# =============================================================================

def _resolve_platform_order(order: Order) -> PlatformOrder:
    if order.platform_order is not None:
        return order.platform_order

    if not order.external_marketplace_id or not order.source_platform:
        raise SyncError("This order is not linked to a marketplace.")

    marketplace = (
        db.session.query(StoreMarketplace)
        .filter_by(store_id=order.store_id, platform=order.source_platform, status="active")
        .order_by(StoreMarketplace.id)
        .first()
    )
    if marketplace is None:
        raise SyncError(f"No active {order.source_platform} connection for this store.")

    platform_order = PlatformOrder(
        order=order,
        marketplace=marketplace,
        store_marketplace_id=marketplace.id,
        external_order_id=order.external_marketplace_id,
    )
    db.session.add(platform_order)
    return platform_order


def _close_client(client: PlatformService) -> None:
    close = getattr(client, "close", None)
    if callable(close):
        close()


def _sync_refunds_quietly(order: Order, platform_order: PlatformOrder, client: PlatformService) -> Optional[RefundImportResult]:
    platform = platform_order.marketplace.platform
    try:
        with db.session.begin_nested():
            refunds = parse_refund_payloads(platform, client.get_order_refunds(platform_order))
            result = return_sync_service.import_refunds(order, platform_order, refunds)
    except Exception:
        logger.warning("Refund sync failed for order %s; continuing", order.id, exc_info=True)
        return None
    return result


def sync_order(store_id: int, order_id: int, *, client_factory: ClientFactory) -> SyncResult:
    """
    Pull the marketplace copy of an order and fold it into local state.

    Raises:
        TenantAccessError: order not in this store
        SyncError: anything failed; nothing was committed
    """
    order = require_order_in_store(order_id, store_id, for_update=True)
    previous_status = order.status
    client = None
    try:
        platform_order = _resolve_platform_order(order)
        client = client_factory(platform_order.marketplace)

        raw = client.refresh_order(platform_order)
        payload = parse_order_payload(platform_order.marketplace.platform, raw)

        now = utcnow()
        apply_payload(order, payload, now=now)
        _update_platform_order(platform_order, payload, now)
        db.session.flush()

        refunds = _sync_refunds_quietly(order, platform_order, client)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.error("Order %s sync failed: %s", order_id, exc)
        raise SyncError(f"Failed to sync order: {exc}") from exc
    finally:
        if client is not None:
            _close_client(client)

    logger.info("Order %s synced (%s -> %s)", order_id, previous_status, order.status)
    return SyncResult(
        order_id=order_id,
        success=True,
        message="Order synced successfully.",
        previous_status=previous_status,
        status=order.status,
        refunds=refunds,
    )


def sync_orders(store_id: int, order_ids: list[int], *, client_factory: ClientFactory) -> list[SyncResult]:
    """Batch sync; each order commits or rolls back on its own."""
    results = []
    for order_id in order_ids:
        try:
            results.append(sync_order(store_id, order_id, client_factory=client_factory))
        except (SyncError, TenantAccessError) as exc:
            results.append(SyncResult(order_id=order_id, success=False, message=str(exc)))
    return results


def sync_order_returns(store_id: int, order_id: int, *, client_factory: ClientFactory) -> RefundImportResult:
    """
    Manual refund sync for one order. Unlike the automatic pass inside
    sync_order, failures here are reported to the caller.
    """
    order = require_order_in_store(order_id, store_id, for_update=True)
    platform_order = order.platform_order
    if platform_order is None:
        raise SyncError("This order is not linked to a marketplace.")

    client = None
    try:
        client = client_factory(platform_order.marketplace)
        refunds = parse_refund_payloads(
            platform_order.marketplace.platform,
            client.get_order_refunds(platform_order),
        )
        if not refunds:
            # release the order row lock
            db.session.rollback()
            return RefundImportResult()

        platform_order.last_synced_at = utcnow()
        db.session.flush()
        result = return_sync_service.import_refunds(order, platform_order, refunds)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.error("Refund sync for order %s failed: %s", order_id, exc)
        raise SyncError(f"Failed to sync returns: {exc}") from exc
    finally:
        if client is not None:
            _close_client(client)

    logger.info("Order %s refunds synced: %s", order_id, result.message)
    return result


def linked_order_ids(store_id: int) -> list[int]:
    """Orders eligible for a scheduled sync: linked and not in a terminal state."""
    rows = (
        db.session.query(Order.id)
        .filter(
            Order.store_id == store_id,
            Order.external_marketplace_id.isnot(None),
            Order.status.notin_((states.STATUS_CANCELLED, states.STATUS_REFUNDED, states.STATUS_COMPLETED)),
        )
        .order_by(Order.id)
        .all()
    )
    return [order_id for (order_id,) in rows]
