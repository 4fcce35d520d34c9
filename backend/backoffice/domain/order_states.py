# Overview: Order lifecycle states and the transition table guarding every status change.

from __future__ import annotations


# =============================================================================
# STATES
# =============================================================================

STATUS_DRAFT = "draft"
STATUS_PENDING = "pending"
STATUS_PARTIAL_PAYMENT = "partial_payment"
STATUS_CONFIRMED = "confirmed"
STATUS_PROCESSING = "processing"
STATUS_SHIPPED = "shipped"
STATUS_DELIVERED = "delivered"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_REFUNDED = "refunded"

ALL_STATUSES = (
    STATUS_DRAFT,
    STATUS_PENDING,
    STATUS_PARTIAL_PAYMENT,
    STATUS_CONFIRMED,
    STATUS_PROCESSING,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_REFUNDED,
)

# Absorbing for marketplace sync: no payload moves an order out of these.
TERMINAL_STATUSES = frozenset({STATUS_CANCELLED, STATUS_REFUNDED})

# Position along the forward lifecycle; used to refuse regressions.
LIFECYCLE_RANK = {
    STATUS_DRAFT: 0,
    STATUS_PENDING: 0,
    STATUS_PARTIAL_PAYMENT: 1,
    STATUS_CONFIRMED: 2,
    STATUS_PROCESSING: 3,
    STATUS_SHIPPED: 4,
    STATUS_DELIVERED: 5,
    STATUS_COMPLETED: 6,
}


# =============================================================================
# TRANSITIONS
# =============================================================================

ACTION_CONFIRM = "confirm"
ACTION_SHIP = "ship"
ACTION_DELIVER = "deliver"
ACTION_COMPLETE = "complete"
ACTION_DELETE = "delete"
ACTION_EDIT_ITEMS = "edit_items"

ALLOWED_FROM = {
    ACTION_CONFIRM: frozenset({STATUS_PENDING, STATUS_PARTIAL_PAYMENT}),
    ACTION_SHIP: frozenset({STATUS_CONFIRMED, STATUS_PROCESSING}),
    ACTION_DELIVER: frozenset({STATUS_SHIPPED}),
    ACTION_COMPLETE: frozenset({STATUS_DELIVERED, STATUS_CONFIRMED, STATUS_SHIPPED}),
    ACTION_DELETE: frozenset({STATUS_PENDING, STATUS_DRAFT}),
    ACTION_EDIT_ITEMS: frozenset({STATUS_PENDING, STATUS_DRAFT}),
}

TARGET_STATUS = {
    ACTION_CONFIRM: STATUS_CONFIRMED,
    ACTION_SHIP: STATUS_SHIPPED,
    ACTION_DELIVER: STATUS_DELIVERED,
    ACTION_COMPLETE: STATUS_COMPLETED,
}

REJECTION_MESSAGES = {
    ACTION_CONFIRM: "Order cannot be confirmed in its current state.",
    ACTION_SHIP: "Order cannot be shipped in its current state.",
    ACTION_DELIVER: "Order cannot be marked as delivered in its current state.",
    ACTION_COMPLETE: "Order cannot be completed in its current state.",
    ACTION_DELETE: "Only pending or draft orders can be deleted.",
    ACTION_EDIT_ITEMS: "Items can only be modified on pending orders.",
}


def can(action: str, status: str) -> bool:
    return status in ALLOWED_FROM[action]


def rejection_for(action: str, status: str) -> str | None:
    """Return the user-facing error for `action` from `status`, or None if allowed."""
    if can(action, status):
        return None
    return REJECTION_MESSAGES[action]


def cancel_rejection(status: str) -> str | None:
    """Cancel is allowed from every state except completed (and cancelled itself)."""
    if status == STATUS_CANCELLED:
        return "Order is already cancelled."
    if status == STATUS_COMPLETED:
        return "Completed orders cannot be cancelled."
    return None


def is_regression(current: str, new: str) -> bool:
    """True when moving current -> new would step backwards in the lifecycle."""
    if current not in LIFECYCLE_RANK or new not in LIFECYCLE_RANK:
        return False
    return LIFECYCLE_RANK[new] < LIFECYCLE_RANK[current]
