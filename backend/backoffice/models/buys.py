from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Transaction(db.Model):
    """
    Buy / trade-in transaction: the store purchasing goods from a customer.

    final_offer_cents is what the store paid. The items' price_cents is the
    estimated resale value and feeds the profit columns of the buys reports.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("store_id", "transaction_number", name="uq_transactions_store_number"),
        db.Index("ix_transactions_store_status_processed", "store_id", "status", "payment_processed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    transaction_number = db.Column(db.String(64), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="in_store")  # in_store, mail_in
    source = db.Column(db.String(16), nullable=True)  # online, trade_in, walk_in
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    final_offer_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(32), nullable=True)
    payment_processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="TransactionItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "transaction_number": self.transaction_number,
            "type": self.type,
            "source": self.source,
            "status": self.status,
            "final_offer_cents": self.final_offer_cents,
            "payment_method": self.payment_method,
            "payment_processed_at": to_utc_z(self.payment_processed_at) if self.payment_processed_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionItem(db.Model):
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False, default=0)  # resale estimate
    buy_price_cents = db.Column(db.Integer, nullable=False, default=0)  # amount paid

    transaction = db.relationship("Transaction", back_populates="items")
    category = db.relationship("Category")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "category_id": self.category_id,
            "title": self.title,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "buy_price_cents": self.buy_price_cents,
        }
