"""
Store scoping helpers.

Every service call names its store explicitly. These helpers load a row
only if it belongs to that store; anything else (missing or foreign)
raises TenantAccessError with a not-found message so callers cannot probe
for records in other stores.

USAGE:
    from backoffice.services.tenant_service import require_order_in_store

    order = require_order_in_store(order_id, store_id)
"""

from ..extensions import db
from ..models import Category, Customer, Order, Product, ProductVariant, Store, StoreMarketplace
from .concurrency import lock_for_update


class TenantAccessError(Exception):
    """Raised when a record is missing or belongs to another store."""
    pass


def require_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise TenantAccessError("Store not found")
    return store


def require_order_in_store(order_id: int, store_id: int, *, for_update: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id, store_id=store_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise TenantAccessError("Order not found")
    return order


def require_category_in_store(category_id: int, store_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id, store_id=store_id).first()
    if category is None:
        raise TenantAccessError("Category not found")
    return category


def require_customer_in_store(customer_id: int, store_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, store_id=store_id).first()
    if customer is None:
        raise TenantAccessError("Customer not found")
    return customer


def require_marketplace_in_store(marketplace_id: int, store_id: int) -> StoreMarketplace:
    marketplace = db.session.query(StoreMarketplace).filter_by(id=marketplace_id, store_id=store_id).first()
    if marketplace is None:
        raise TenantAccessError("Marketplace not found")
    return marketplace


def require_variant_in_store(variant_id: int, store_id: int) -> ProductVariant:
    variant = (
        db.session.query(ProductVariant)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(ProductVariant.id == variant_id, Product.store_id == store_id)
        .first()
    )
    if variant is None:
        raise TenantAccessError("Product variant not found")
    return variant

