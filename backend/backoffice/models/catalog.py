from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Category(db.Model):
    """
    Product category, arranged as a per-store forest via parent_id.

    A category with no children is a leaf; only leaves are assigned to
    products and buy items, but reports roll leaves up through their
    ancestors.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_store_parent", "store_id", "parent_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    name = db.Column(db.String(191), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} parent_id={self.parent_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "sort_order": self.sort_order,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_category", "store_id", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    variants = db.relationship("ProductVariant", back_populates="product", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "category_id": self.category_id,
            "title": self.title,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ProductVariant(db.Model):
    """Sellable SKU of a product; stock lives in Inventory rows per warehouse."""
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "sku", name="uq_product_variants_product_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sku = db.Column(db.String(64), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="variants")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
        }
