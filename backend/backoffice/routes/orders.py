# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/backoffice/routes/orders.py
"""
Order API Routes

Thin adapter over order_service, payment_service and order_sync_service.
Every route is mounted under /api/stores/<store_id>/orders and passes the
store id explicitly to the service layer.

ERRORS:
- 400: validation failure or rejected transition (order unchanged)
- 404: order not found in this store
- 502: marketplace sync failed
- 500: unexpected failure (logged)
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import order_service, order_sync_service, payment_service
from ..services.inventory_service import InventoryError
from ..services.order_service import OrderError
from ..services.order_sync_service import SyncError
from ..services.payment_service import PaymentError
from ..services.platform_client import configured_client_factory
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, parse_cents, parse_int, require_fields
from ..decorators import store_scoped


orders_bp = Blueprint("orders", __name__, url_prefix="/api/stores/<int:store_id>/orders")


def _client_factory():
    return configured_client_factory(current_app.config)


# =============================================================================
# ORDER CREATION AND LOOKUP
# =============================================================================

@orders_bp.post("/")
@store_scoped
def create_order_route(store_id: int):
    """
    Create a pending (or draft) order.

    Request body (all optional):
    {
        "customer_id": 12,
        "status": "pending",
        "shipping_cost_cents": 500,
        "sales_tax_cents": 0,
        "discount_cost_cents": 0,
        "shipping_address": {...},
        "billing_address": {...},
        "notes": "..."
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id")
        order = order_service.create_order(
            store_id,
            customer_id=parse_int(customer_id, "customer_id") if customer_id is not None else None,
            status=data.get("status", "pending"),
            shipping_cost_cents=parse_cents(data.get("shipping_cost_cents", 0), "shipping_cost_cents"),
            sales_tax_cents=parse_cents(data.get("sales_tax_cents", 0), "sales_tax_cents"),
            discount_cost_cents=parse_cents(data.get("discount_cost_cents", 0), "discount_cost_cents"),
            shipping_address=data.get("shipping_address"),
            billing_address=data.get("billing_address"),
            notes=data.get("notes"),
        )
        return jsonify({"order": order.to_dict(include_items=True)}), 201

    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@store_scoped
def get_order_route(store_id: int, order_id: int):
    try:
        order = order_service.get_order(order_id, store_id)
        data = order.to_dict(include_items=True)
        data["platform_order"] = order.platform_order.to_dict() if order.platform_order else None
        return jsonify({"order": data}), 200
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


# =============================================================================
# ITEMS
# =============================================================================

@orders_bp.post("/<int:order_id>/items")
@store_scoped
def add_item_route(store_id: int, order_id: int):
    """
    Add a line item. Only pending or draft orders accept item changes.

    Request body:
    {
        "title": "14k Gold Chain",
        "quantity": 1,
        "price_cents": 45000,
        "cost_cents": 20000,          (optional)
        "discount_cents": 0,          (optional)
        "product_variant_id": 7,      (optional, enables stock restore)
        "sku": "GC-14K-20"            (optional)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "title", "quantity", "price_cents")
        variant_id = data.get("product_variant_id")
        item = order_service.add_item(
            order_id,
            store_id,
            title=data["title"],
            quantity=parse_int(data["quantity"], "quantity", minimum=1),
            price_cents=parse_cents(data["price_cents"], "price_cents"),
            cost_cents=parse_cents(data.get("cost_cents", 0), "cost_cents"),
            discount_cents=parse_cents(data.get("discount_cents", 0), "discount_cents"),
            product_variant_id=parse_int(variant_id, "product_variant_id") if variant_id is not None else None,
            sku=data.get("sku"),
        )
        order = order_service.get_order(order_id, store_id)
        return jsonify({"item": item.to_dict(), "order": order.to_dict()}), 201

    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to add order item")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/items/<int:item_id>")
@store_scoped
def update_item_route(store_id: int, order_id: int, item_id: int):
    try:
        data = request.get_json(silent=True) or {}
        item = order_service.update_item(
            order_id,
            store_id,
            item_id,
            quantity=parse_int(data["quantity"], "quantity", minimum=1) if "quantity" in data else None,
            price_cents=parse_cents(data["price_cents"], "price_cents") if "price_cents" in data else None,
            discount_cents=parse_cents(data["discount_cents"], "discount_cents") if "discount_cents" in data else None,
        )
        order = order_service.get_order(order_id, store_id)
        return jsonify({"item": item.to_dict(), "order": order.to_dict()}), 200

    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update order item")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/items/<int:item_id>")
@store_scoped
def remove_item_route(store_id: int, order_id: int, item_id: int):
    try:
        order = order_service.remove_item(order_id, store_id, item_id)
        return jsonify({"order": order.to_dict(include_items=True)}), 200

    except OrderError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to remove order item")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

def _run_transition(fn, store_id: int, order_id: int, label: str, **kwargs):
    try:
        order = fn(order_id, store_id, **kwargs)
        return jsonify({"order": order.to_dict()}), 200
    except (OrderError, InventoryError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to %s order", label)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/confirm")
@store_scoped
def confirm_order_route(store_id: int, order_id: int):
    return _run_transition(order_service.confirm_order, store_id, order_id, "confirm")


@orders_bp.post("/<int:order_id>/ship")
@store_scoped
def ship_order_route(store_id: int, order_id: int):
    """
    Mark shipped.

    Request body (optional):
    {
        "tracking_number": "1Z999AA10123456784",
        "carrier": "ups",
        "create_label": false
    }
    """
    data = request.get_json(silent=True) or {}
    return _run_transition(
        order_service.ship_order,
        store_id,
        order_id,
        "ship",
        tracking_number=data.get("tracking_number"),
        carrier=data.get("carrier"),
        create_label=bool(data.get("create_label", False)),
    )


@orders_bp.post("/<int:order_id>/deliver")
@store_scoped
def deliver_order_route(store_id: int, order_id: int):
    return _run_transition(order_service.deliver_order, store_id, order_id, "deliver")


@orders_bp.post("/<int:order_id>/complete")
@store_scoped
def complete_order_route(store_id: int, order_id: int):
    return _run_transition(order_service.complete_order, store_id, order_id, "complete")


@orders_bp.post("/<int:order_id>/cancel")
@store_scoped
def cancel_order_route(store_id: int, order_id: int):
    data = request.get_json(silent=True) or {}
    return _run_transition(order_service.cancel_order, store_id, order_id, "cancel", reason=data.get("reason"))


@orders_bp.delete("/<int:order_id>")
@store_scoped
def delete_order_route(store_id: int, order_id: int):
    try:
        order_service.delete_order(order_id, store_id)
        return jsonify({"deleted": True, "order_id": order_id}), 200
    except (OrderError, InventoryError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/bulk")
@store_scoped
def bulk_action_route(store_id: int):
    """
    Request body:
    {
        "action": "cancel" | "delete",
        "order_ids": [1, 2, 3]
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "action", "order_ids")
        order_ids = data["order_ids"]
        if not isinstance(order_ids, list):
            raise ValidationError("order_ids must be a list")
        result = order_service.bulk_action(
            store_id,
            data["action"],
            [parse_int(i, "order_ids") for i in order_ids],
        )
        return jsonify(result), 200
    except (ValidationError, OrderError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to run bulk order action")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@orders_bp.post("/<int:order_id>/payments")
@store_scoped
def receive_payment_route(store_id: int, order_id: int):
    """
    Request body:
    {
        "amount_cents": 2500,
        "payment_method": "cash",
        "reference": "chk #1042",   (optional)
        "notes": "..."              (optional)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "amount_cents", "payment_method")
        payment = payment_service.receive_payment(
            order_id,
            store_id,
            amount_cents=parse_cents(data["amount_cents"], "amount_cents", allow_zero=False),
            payment_method=data["payment_method"],
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        order = order_service.get_order(order_id, store_id)
        return jsonify({"payment": payment.to_dict(), "order": order.to_dict()}), 201

    except (ValidationError, PaymentError) as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# MARKETPLACE SYNC
# =============================================================================

@orders_bp.post("/<int:order_id>/sync")
@store_scoped
def sync_order_route(store_id: int, order_id: int):
    try:
        result = order_sync_service.sync_order(store_id, order_id, client_factory=_client_factory())
        return jsonify(result.to_dict()), 200
    except SyncError as e:
        return jsonify({"success": False, "error": str(e)}), 502
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.post("/<int:order_id>/sync-returns")
@store_scoped
def sync_order_returns_route(store_id: int, order_id: int):
    try:
        result = order_sync_service.sync_order_returns(store_id, order_id, client_factory=_client_factory())
        return jsonify({"success": True, **result.to_dict()}), 200
    except SyncError as e:
        return jsonify({"success": False, "error": str(e)}), 502
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.post("/sync")
@store_scoped
def sync_orders_route(store_id: int):
    """
    Batch sync. Body {"order_ids": [...]} or empty to sync every linked,
    non-terminal order in the store.
    """
    try:
        data = request.get_json(silent=True) or {}
        order_ids = data.get("order_ids")
        if order_ids is None:
            order_ids = order_sync_service.linked_order_ids(store_id)
        elif not isinstance(order_ids, list):
            raise ValidationError("order_ids must be a list")
        else:
            order_ids = [parse_int(i, "order_ids") for i in order_ids]

        results = order_sync_service.sync_orders(store_id, order_ids, client_factory=_client_factory())
        return jsonify({
            "results": [r.to_dict() for r in results],
            "synced": sum(1 for r in results if r.success),
            "failed": sum(1 for r in results if not r.success),
        }), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to run batch order sync")
        return jsonify({"error": "Internal server error"}), 500
