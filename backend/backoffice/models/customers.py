from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data, scoped to a store.

    Marketplace sync backfills phone, company and email only when the
    local value is empty; it never overwrites what staff entered.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_store_email", "store_id", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(32), nullable=True)
    company_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    addresses = db.relationship(
        "CustomerAddress",
        back_populates="customer",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CustomerAddress.id",
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "company_name": self.company_name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CustomerAddress(db.Model):
    __tablename__ = "customer_addresses"
    __table_args__ = (
        db.Index("ix_customer_addresses_match", "customer_id", "address", "city", "zip"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    company = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=False)
    address2 = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=False)
    state = db.Column(db.String(64), nullable=True)
    zip = db.Column(db.String(32), nullable=True)
    country = db.Column(db.String(64), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_shipping = db.Column(db.Boolean, nullable=False, default=False)
    is_billing = db.Column(db.Boolean, nullable=False, default=False)

    customer = db.relationship("Customer", back_populates="addresses")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company": self.company,
            "address": self.address,
            "address2": self.address2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
            "phone": self.phone,
            "is_default": self.is_default,
            "is_shipping": self.is_shipping,
            "is_billing": self.is_billing,
        }
