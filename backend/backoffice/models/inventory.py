from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ADJUSTMENT_TYPE_RESTOCK = "restock"
ADJUSTMENT_TYPE_RECEIVE = "receive"
ADJUSTMENT_TYPE_REMOVE = "remove"
ADJUSTMENT_TYPE_CORRECTION = "correction"


class Warehouse(db.Model):
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_warehouses_store_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "is_default": self.is_default,
        }


class Inventory(db.Model):
    """
    Cached on-hand quantity for one (variant, warehouse).

    quantity is derived state: every change goes through an
    InventoryAdjustment row, which is what period reports read.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_variant_id", "warehouse_id", name="uq_inventory_variant_warehouse"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    variant = db.relationship("ProductVariant", backref=db.backref("inventory_rows", lazy=True))
    warehouse = db.relationship("Warehouse")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_variant_id": self.product_variant_id,
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "version_id": self.version_id,
        }


class InventoryAdjustment(db.Model):
    """Append-only stock ledger row. Never updated or deleted."""
    __tablename__ = "inventory_adjustments"
    __table_args__ = (
        db.Index("ix_inventory_adjustments_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    quantity_change = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cost_impact_cents = db.Column(db.Integer, nullable=False, default=0)

    reason = db.Column(db.String(255), nullable=True)
    reference = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory = db.relationship("Inventory", backref=db.backref("adjustments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "inventory_id": self.inventory_id,
            "product_variant_id": self.product_variant_id,
            "type": self.type,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "quantity_change": self.quantity_change,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_impact_cents": self.total_cost_impact_cents,
            "reason": self.reason,
            "reference": self.reference,
            "created_at": to_utc_z(self.created_at),
        }
