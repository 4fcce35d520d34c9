from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ProductReturn(db.Model):
    """
    Refund/return against an order.

    Platform-sourced returns are unique on (external_return_id,
    store_marketplace_id); the constraint is what makes refund import
    idempotent under concurrent syncs.
    """
    __tablename__ = "product_returns"
    __table_args__ = (
        db.UniqueConstraint("external_return_id", "store_marketplace_id", name="uq_product_returns_external_marketplace"),
        db.UniqueConstraint("store_id", "return_number", name="uq_product_returns_store_number"),
        db.Index("ix_product_returns_order_status", "order_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)

    return_number = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")
    type = db.Column(db.String(16), nullable=False, default="refund")
    reason = db.Column(db.Text, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    refund_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    source_platform = db.Column(db.String(32), nullable=True)
    store_marketplace_id = db.Column(db.Integer, db.ForeignKey("store_marketplaces.id"), nullable=True, index=True)
    external_return_id = db.Column(db.String(64), nullable=True)
    sync_status = db.Column(db.String(16), nullable=True)
    synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    requested_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("returns", lazy=True, cascade="all, delete-orphan"))
    items = db.relationship(
        "ProductReturnItem",
        back_populates="product_return",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "return_number": self.return_number,
            "status": self.status,
            "type": self.type,
            "reason": self.reason,
            "subtotal_cents": self.subtotal_cents,
            "refund_amount_cents": self.refund_amount_cents,
            "source_platform": self.source_platform,
            "store_marketplace_id": self.store_marketplace_id,
            "external_return_id": self.external_return_id,
            "sync_status": self.sync_status,
            "synced_at": to_utc_z(self.synced_at) if self.synced_at else None,
            "requested_at": to_utc_z(self.requested_at) if self.requested_at else None,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class ProductReturnItem(db.Model):
    __tablename__ = "product_return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_return_id = db.Column(db.Integer, db.ForeignKey("product_returns.id"), nullable=False, index=True)
    order_item_id = db.Column(db.Integer, db.ForeignKey("order_items.id"), nullable=True)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)
    restock = db.Column(db.Boolean, nullable=False, default=False)

    product_return = db.relationship("ProductReturn", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_return_id": self.product_return_id,
            "order_item_id": self.order_item_id,
            "product_variant_id": self.product_variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "restock": self.restock,
        }
