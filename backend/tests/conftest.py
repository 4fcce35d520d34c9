"""
Pytest fixtures for back-office tests.

Provides test database setup, store fixtures for tenant isolation, a
category tree, a marketplace-linked order and a fake marketplace client.
"""

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import (
    Category,
    Customer,
    Order,
    OrderItem,
    PlatformOrder,
    Product,
    ProductVariant,
    Store,
    StoreMarketplace,
    Transaction,
    TransactionItem,
)
from backoffice.models.inventory import ADJUSTMENT_TYPE_RECEIVE
from backoffice.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store(db_session):
    """Store A (first tenant)."""
    store = Store(name="Main Street", code="MAIN")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    """Store B (second tenant)."""
    store = Store(name="Uptown", code="UPTOWN")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def customer(db_session, store):
    customer = Customer(store_id=store.id, first_name="Ada", last_name="Lovelace")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def categories(db_session, store):
    """Jewelry > Rings > Gold Rings, plus an unrelated Coins root."""
    jewelry = Category(store_id=store.id, name="Jewelry")
    coins = Category(store_id=store.id, name="Coins")
    db_session.add_all([jewelry, coins])
    db_session.flush()

    rings = Category(store_id=store.id, name="Rings", parent_id=jewelry.id)
    db_session.add(rings)
    db_session.flush()

    gold = Category(store_id=store.id, name="Gold Rings", parent_id=rings.id)
    db_session.add(gold)
    db_session.commit()
    return {"jewelry": jewelry, "rings": rings, "gold": gold, "coins": coins}


@pytest.fixture(scope='function')
def variant(db_session, store, categories):
    """A stocked variant (10 on hand at 2000c) in Gold Rings."""
    product = Product(store_id=store.id, category_id=categories["gold"].id, title="14k Band")
    db_session.add(product)
    db_session.flush()

    variant = ProductVariant(product_id=product.id, sku="BAND-14K", price_cents=4500, cost_cents=2000)
    db_session.add(variant)
    db_session.flush()

    inventory_service.record_adjustment(
        store_id=store.id,
        variant_id=variant.id,
        quantity_change=10,
        adjustment_type=ADJUSTMENT_TYPE_RECEIVE,
        reason="Opening stock",
    )
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def marketplace(db_session, store):
    marketplace = StoreMarketplace(
        store_id=store.id,
        platform="shopify",
        name="Main Shopify",
        shop_domain="main-street.myshopify.com",
        access_token="shpat_test",
    )
    db_session.add(marketplace)
    db_session.commit()
    return marketplace


@pytest.fixture(scope='function')
def linked_order(db_session, store, customer, marketplace):
    """Confirmed 50.00 order linked to Shopify order 1001 with two line items."""
    order = Order(
        store_id=store.id,
        customer_id=customer.id,
        invoice_number="ORD-TEST-0001",
        status="confirmed",
        source_platform="shopify",
        external_marketplace_id="1001",
    )
    order.items.append(OrderItem(title="Ring", quantity=1, price_cents=3000, external_line_item_id="L1"))
    order.items.append(OrderItem(title="Chain", quantity=1, price_cents=2000, external_line_item_id="L2"))
    order.sub_total_cents = 5000
    order.total_cents = 5000
    order.balance_due_cents = 5000
    db_session.add(order)
    db_session.flush()

    db_session.add(PlatformOrder(
        order_id=order.id,
        store_marketplace_id=marketplace.id,
        external_order_id="1001",
    ))
    db_session.commit()
    return order


def make_buy(db_session, store, *, processed_at, final_offer_cents, items, type="in_store", source=None, number=None):
    """
    Persist a processed buy transaction.

    items: [(category_id, quantity, price_cents, buy_price_cents), ...]
    """
    count = db_session.query(Transaction).count()
    transaction = Transaction(
        store_id=store.id,
        transaction_number=number or f"BUY-{count + 1:05d}",
        type=type,
        source=source,
        status="payment_processed",
        final_offer_cents=final_offer_cents,
        payment_processed_at=processed_at,
    )
    for category_id, quantity, price_cents, buy_price_cents in items:
        transaction.items.append(TransactionItem(
            category_id=category_id,
            title="Item",
            quantity=quantity,
            price_cents=price_cents,
            buy_price_cents=buy_price_cents,
        ))
    db_session.add(transaction)
    db_session.commit()
    return transaction


@pytest.fixture
def buy_factory(db_session, store):
    def _make(**kwargs):
        return make_buy(db_session, store, **kwargs)
    return _make


class FakePlatformService:
    """In-memory stand-in for a marketplace client."""

    def __init__(self, order=None, refunds=None, order_error=None, refunds_error=None):
        self.order = order or {}
        self.refunds = refunds or []
        self.order_error = order_error
        self.refunds_error = refunds_error
        self.calls = []
        self.closed = False

    def refresh_order(self, platform_order):
        self.calls.append(("refresh_order", platform_order.external_order_id))
        if self.order_error:
            raise self.order_error
        return self.order

    def get_order_refunds(self, platform_order):
        self.calls.append(("get_order_refunds", platform_order.external_order_id))
        if self.refunds_error:
            raise self.refunds_error
        return self.refunds

    def close(self):
        self.closed = True

    def factory(self, marketplace):
        return self


@pytest.fixture
def fake_platform():
    return FakePlatformService()


@pytest.fixture
def shopify_order():
    """Minimal Shopify order payload builder."""
    def _build(**overrides):
        data = {
            "id": 1001,
            "name": "#1001",
            "email": "ada@example.com",
            "financial_status": "paid",
            "fulfillment_status": None,
            "cancelled_at": None,
            "closed_at": None,
            "created_at": "2024-03-01T10:00:00-05:00",
            "total_price": "50.00",
            "fulfillments": [],
            "line_items": [
                {"id": "L1", "title": "Ring", "quantity": 1, "price": "30.00"},
                {"id": "L2", "title": "Chain", "quantity": 1, "price": "20.00"},
            ],
        }
        data.update(overrides)
        return data
    return _build

