# Overview: Folding rules from marketplace order state onto local order status.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from . import order_states as states
from .platform_payloads import FulfillmentPayload, OrderPayload


KNOWN_CARRIERS = ("fedex", "ups", "usps", "dhl")
CARRIER_OTHER = "other"

REFUNDED_FINANCIAL_STATUSES = frozenset({"refunded", "partially_refunded"})

RETURN_STATUS_ALIASES = {
    "pending": "pending",
    "requested": "pending",
    "awaiting": "pending",
    "open": "pending",
    "approved": "approved",
    "accepted": "approved",
    "processing": "processing",
    "in_progress": "processing",
    "completed": "completed",
    "closed": "completed",
    "refunded": "completed",
    "rejected": "rejected",
    "denied": "rejected",
    "declined": "rejected",
    "cancelled": "cancelled",
    "canceled": "cancelled",
}


def _candidate_status(payload: OrderPayload, current: str) -> Optional[str]:
    """
    Priority-ordered rules; the first rule whose payload condition holds
    decides the outcome, even when that outcome is "no change".
    """
    financial = (payload.financial_status or "").lower()
    fulfillment = (payload.fulfillment_status or "").lower()

    if payload.cancelled_at is not None:
        return states.STATUS_CANCELLED

    if financial in REFUNDED_FINANCIAL_STATUSES:
        return states.STATUS_REFUNDED

    if any((f.shipment_status or "").lower() == "delivered" for f in payload.fulfillments):
        return states.STATUS_COMPLETED

    if payload.closed_at is not None and fulfillment == "fulfilled":
        return states.STATUS_COMPLETED

    if fulfillment == "fulfilled":
        if current == states.STATUS_COMPLETED:
            return None
        return states.STATUS_SHIPPED

    if fulfillment == "partial":
        if current in (states.STATUS_PENDING, states.STATUS_CONFIRMED):
            return states.STATUS_PROCESSING
        return None

    if financial == "paid":
        if current in (states.STATUS_PENDING, states.STATUS_DRAFT):
            return states.STATUS_CONFIRMED
        return None

    if financial == "partially_paid":
        if current in (states.STATUS_PENDING, states.STATUS_DRAFT):
            return states.STATUS_PARTIAL_PAYMENT
        return None

    return None


def map_external_status(payload: OrderPayload, current: str) -> Optional[str]:
    """
    Map a marketplace payload onto a new local status, or None for no change.

    Never moves an order backwards: terminal states absorb, completed orders
    can neither be cancelled nor refunded by sync, and a result equal to the
    current status is reported as no change.
    """
    if current in states.TERMINAL_STATUSES:
        return None

    new_status = _candidate_status(payload, current)
    if new_status is None or new_status == current:
        return None

    if current == states.STATUS_COMPLETED:
        return None

    if states.is_regression(current, new_status):
        return None

    return new_status


def detect_carrier(tracking_company: Optional[str]) -> str:
    name = (tracking_company or "").lower()
    for carrier in KNOWN_CARRIERS:
        if carrier in name:
            return carrier
    return CARRIER_OTHER


@dataclass(frozen=True)
class TrackingUpdate:
    tracking_number: Optional[str]
    carrier: Optional[str]
    shipped_at: Optional[datetime]


def tracking_update(
    fulfillment: Optional[FulfillmentPayload],
    *,
    already_shipped_at: Optional[datetime],
    now: datetime,
) -> Optional[TrackingUpdate]:
    """
    Tracking fields from the latest fulfillment.

    shipped_at is only produced once: for a successful fulfillment on an
    order that has no shipped_at yet, using the fulfillment's timestamp.
    """
    if fulfillment is None:
        return None

    carrier = detect_carrier(fulfillment.tracking_company) if fulfillment.tracking_company else None

    shipped_at = None
    if (fulfillment.status or "").lower() == "success" and already_shipped_at is None:
        shipped_at = fulfillment.created_at or now

    return TrackingUpdate(
        tracking_number=fulfillment.tracking_number,
        carrier=carrier,
        shipped_at=shipped_at,
    )


def map_return_status(raw_status: Optional[str]) -> str:
    return RETURN_STATUS_ALIASES.get((raw_status or "").strip().lower(), "pending")
