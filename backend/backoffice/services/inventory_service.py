# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Inventory, InventoryAdjustment, ProductVariant, Product, Warehouse
from ..models.inventory import ADJUSTMENT_TYPE_RESTOCK
from .concurrency import lock_for_update


class InventoryError(Exception):
    """Raised when an inventory operation fails."""
    pass


def get_default_warehouse(store_id: int) -> Warehouse:
    warehouse = (
        db.session.query(Warehouse)
        .filter_by(store_id=store_id)
        .order_by(Warehouse.is_default.desc(), Warehouse.id.asc())
        .first()
    )
    if warehouse is None:
        warehouse = Warehouse(store_id=store_id, name="Main", is_default=True)
        db.session.add(warehouse)
        db.session.flush()
    return warehouse


def _require_variant_in_store(variant_id: int, store_id: int) -> ProductVariant:
    variant = (
        db.session.query(ProductVariant)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(ProductVariant.id == variant_id, Product.store_id == store_id)
        .first()
    )
    if variant is None:
        raise InventoryError("Product variant not found")
    return variant


def record_adjustment(
    *,
    store_id: int,
    variant_id: int,
    quantity_change: int,
    adjustment_type: str,
    reason: str | None = None,
    reference: str | None = None,
    warehouse_id: int | None = None,
    unit_cost_cents: int | None = None,
) -> InventoryAdjustment:
    """
    Change on-hand stock and append the matching ledger row.

    Does not commit: runs inside the caller's unit of work so stock moves
    roll back together with the order change that caused them.
    """
    if quantity_change == 0:
        raise InventoryError("quantity_change must be non-zero")

    variant = _require_variant_in_store(variant_id, store_id)
    if warehouse_id is None:
        warehouse_id = get_default_warehouse(store_id).id

    inventory = lock_for_update(
        db.session.query(Inventory).filter_by(product_variant_id=variant.id, warehouse_id=warehouse_id)
    ).first()
    if inventory is None:
        inventory = Inventory(
            store_id=store_id,
            product_variant_id=variant.id,
            warehouse_id=warehouse_id,
            quantity=0,
            unit_cost_cents=variant.cost_cents,
        )
        db.session.add(inventory)
        db.session.flush()

    if unit_cost_cents is None:
        unit_cost_cents = inventory.unit_cost_cents

    quantity_before = inventory.quantity
    quantity_after = quantity_before + quantity_change
    if quantity_after < 0:
        raise InventoryError(f"Insufficient stock for SKU {variant.sku}")

    inventory.quantity = quantity_after

    adjustment = InventoryAdjustment(
        store_id=store_id,
        inventory_id=inventory.id,
        product_variant_id=variant.id,
        type=adjustment_type,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        quantity_change=quantity_change,
        unit_cost_cents=unit_cost_cents,
        total_cost_impact_cents=quantity_change * unit_cost_cents,
        reason=reason,
        reference=reference,
    )
    db.session.add(adjustment)
    db.session.flush()
    return adjustment


def restore_stock(
    *,
    store_id: int,
    variant_id: int,
    quantity: int,
    reason: str,
    reference: str | None = None,
) -> InventoryAdjustment:
    if quantity <= 0:
        raise InventoryError("Restored quantity must be positive")
    return record_adjustment(
        store_id=store_id,
        variant_id=variant_id,
        quantity_change=quantity,
        adjustment_type=ADJUSTMENT_TYPE_RESTOCK,
        reason=reason,
        reference=reference,
    )


def get_on_hand(store_id: int, variant_id: int) -> int:
    rows = db.session.query(Inventory.quantity).filter_by(store_id=store_id, product_variant_id=variant_id).all()
    return sum(q for (q,) in rows)
