from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StoreMarketplace(db.Model):
    """A store's connection to one external sales platform (Shopify, ...)."""
    __tablename__ = "store_marketplaces"
    __table_args__ = (
        db.UniqueConstraint("store_id", "platform", "shop_domain", name="uq_store_marketplaces_store_platform_shop"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    platform = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(120), nullable=True)
    shop_domain = db.Column(db.String(255), nullable=True)
    access_token = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("marketplaces", lazy=True))

    def to_dict(self) -> dict:
        # access_token is never serialized
        return {
            "id": self.id,
            "store_id": self.store_id,
            "platform": self.platform,
            "name": self.name,
            "shop_domain": self.shop_domain,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class PlatformOrder(db.Model):
    """
    Shadow of a local Order on one marketplace.

    Written only by the reconciler: platform_data holds the last raw
    payload fetched, and the status columns mirror its marketplace-side
    values for display and filtering.
    """
    __tablename__ = "platform_orders"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_platform_orders_order"),
        db.UniqueConstraint("store_marketplace_id", "external_order_id", name="uq_platform_orders_marketplace_external"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    store_marketplace_id = db.Column(db.Integer, db.ForeignKey("store_marketplaces.id"), nullable=False, index=True)

    external_order_id = db.Column(db.String(64), nullable=False)
    external_order_number = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(32), nullable=True)
    fulfillment_status = db.Column(db.String(32), nullable=True)
    payment_status = db.Column(db.String(32), nullable=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    platform_data = db.Column(db.JSON, nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    order = db.relationship("Order", back_populates="platform_order")
    marketplace = db.relationship("StoreMarketplace")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "store_marketplace_id": self.store_marketplace_id,
            "external_order_id": self.external_order_id,
            "external_order_number": self.external_order_number,
            "status": self.status,
            "fulfillment_status": self.fulfillment_status,
            "payment_status": self.payment_status,
            "total_cents": self.total_cents,
            "ordered_at": to_utc_z(self.ordered_at) if self.ordered_at else None,
            "last_synced_at": to_utc_z(self.last_synced_at) if self.last_synced_at else None,
        }
