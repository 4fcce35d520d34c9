from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TRACKING_URL_TEMPLATES = {
    "fedex": "https://www.fedex.com/fedextrack/?trknbr={number}",
    "ups": "https://www.ups.com/track?tracknum={number}",
    "usps": "https://tools.usps.com/go/TrackConfirmAction?tLabels={number}",
    "dhl": "https://www.dhl.com/en/express/tracking.html?AWB={number}",
}


class Order(db.Model):
    """
    Customer order (local or imported from a marketplace).

    Status moves forward through the lifecycle in domain.order_states;
    cancelled and refunded are terminal. All amounts are in cents and
    sub_total / total / balance_due are always recomputed from items and
    payments, never set directly by callers.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("store_id", "invoice_number", name="uq_orders_store_invoice"),
        db.Index("ix_orders_store_status_created", "store_id", "status", "created_at"),
        db.Index("ix_orders_store_external", "store_id", "external_marketplace_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    # Amounts (cents)
    sub_total_cents = db.Column(db.Integer, nullable=False, default=0)
    sales_tax_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    total_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    balance_due_cents = db.Column(db.Integer, nullable=False, default=0)

    # Marketplace origin
    source_platform = db.Column(db.String(32), nullable=True)
    external_marketplace_id = db.Column(db.String(64), nullable=True)

    # Fulfillment
    tracking_number = db.Column(db.String(128), nullable=True)
    shipping_carrier = db.Column(db.String(32), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shipping_address = db.Column(db.JSON, nullable=True)
    billing_address = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payments = db.relationship(
        "Payment",
        back_populates="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )
    platform_order = db.relationship(
        "PlatformOrder",
        back_populates="order",
        uselist=False,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def tracking_url(self) -> str | None:
        if not self.tracking_number:
            return None
        template = TRACKING_URL_TEMPLATES.get((self.shipping_carrier or "").lower())
        if template is None:
            return None
        return template.format(number=self.tracking_number)

    def is_fully_paid(self) -> bool:
        return self.total_cents > 0 and self.total_paid_cents >= self.total_cents

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "invoice_number": self.invoice_number,
            "status": self.status,
            "sub_total_cents": self.sub_total_cents,
            "sales_tax_cents": self.sales_tax_cents,
            "shipping_cost_cents": self.shipping_cost_cents,
            "discount_cost_cents": self.discount_cost_cents,
            "total_cents": self.total_cents,
            "total_paid_cents": self.total_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "source_platform": self.source_platform,
            "external_marketplace_id": self.external_marketplace_id,
            "tracking_number": self.tracking_number,
            "shipping_carrier": self.shipping_carrier,
            "tracking_url": self.tracking_url,
            "shipped_at": to_utc_z(self.shipped_at) if self.shipped_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "shipping_address": self.shipping_address,
            "billing_address": self.billing_address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Marketplace line item id, used to attach imported refund lines
    external_line_item_id = db.Column(db.String(64), nullable=True, index=True)

    order = db.relationship("Order", back_populates="items")
    variant = db.relationship("ProductVariant")

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity - self.discount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_variant_id": self.product_variant_id,
            "title": self.title,
            "sku": self.sku,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "external_line_item_id": self.external_line_item_id,
        }


class Payment(db.Model):
    """Payment received against an order."""
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_order_status", "order_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="completed")
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "order_id": self.order_id,
            "payment_method": self.payment_method,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "reference": self.reference,
            "notes": self.notes,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
        }
