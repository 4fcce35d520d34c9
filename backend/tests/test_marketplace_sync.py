"""
Marketplace reconciliation tests.

Verifies:
- sync_order folds status, addresses, tracking and customer details
- A failing fetch rolls the whole sync back
- Refund import is idempotent and drives the refunded status
- Refund failures inside an order sync are swallowed
- Batch sync isolates each order
"""

import pytest

from backoffice.extensions import db
from backoffice.models import Order, PlatformOrder, ProductReturn
from backoffice.domain.platform_payloads import parse_refund_payloads
from backoffice.services import order_sync_service, return_sync_service
from backoffice.services.order_sync_service import SyncError
from backoffice.services.platform_client import PlatformAPIError
from backoffice.services.tenant_service import TenantAccessError


REFUND = {
    "id": 9001,
    "note": "Scratched clasp",
    "created_at": "2024-03-04T09:00:00Z",
    "refund_line_items": [
        {"line_item_id": "L2", "quantity": 1, "subtotal": "20.00", "restock_type": "return"},
    ],
    "transactions": [{"kind": "refund", "status": "success", "amount": "20.00"}],
}

FULL_REFUND = {
    "id": 9002,
    "refund_line_items": [
        {"line_item_id": "L1", "quantity": 1, "subtotal": "30.00", "restock_type": "no_restock"},
    ],
    "transactions": [{"kind": "refund", "status": "success", "amount": "30.00"}],
}


def _reload(order_id):
    db.session.expire_all()
    return db.session.get(Order, order_id)


# =============================================================================
# ORDER SYNC
# =============================================================================


class TestSyncOrder:

    def test_fulfilled_payload_ships_order(self, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order(
            fulfillment_status="fulfilled",
            fulfillments=[{
                "status": "success",
                "tracking_number": "7812",
                "tracking_company": "FedEx",
                "created_at": "2024-03-02T15:30:00Z",
            }],
            shipping_address={
                "first_name": "Ada",
                "last_name": "Lovelace",
                "address1": "1 Main St",
                "city": "Springfield",
                "province_code": "IL",
                "zip": "62701",
                "country_code": "US",
                "phone": "555-0100",
            },
        )

        result = order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)

        assert result.success
        assert result.previous_status == "confirmed"
        assert result.status == "shipped"
        assert fake_platform.closed

        order = _reload(linked_order.id)
        assert order.status == "shipped"
        assert order.tracking_number == "7812"
        assert order.shipping_carrier == "fedex"
        assert order.shipped_at is not None
        assert order.shipping_address["state"] == "IL"
        assert order.shipping_address["address_line_1"] == "1 Main St"
        assert order.customer.phone_number == "555-0100"
        assert order.customer.email == "ada@example.com"
        assert len(order.customer.addresses) == 1
        assert order.platform_order.status == "open"
        assert order.platform_order.total_cents == 5000
        assert order.platform_order.last_synced_at is not None

    def test_repeat_sync_does_not_duplicate_address(self, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order(shipping_address={"address1": "1 Main St", "city": "Springfield", "zip": "62701"})
        order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert len(_reload(linked_order.id).customer.addresses) == 1

    def test_existing_customer_fields_are_kept(self, db_session, store, linked_order, fake_platform, shopify_order):
        linked_order.customer.email = "kept@example.com"
        db_session.commit()
        fake_platform.order = shopify_order(email="new@example.com")
        order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert _reload(linked_order.id).customer.email == "kept@example.com"

    def test_cancelled_payload(self, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order(cancelled_at="2024-03-02T10:00:00Z")
        result = order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert result.status == "cancelled"
        assert _reload(linked_order.id).platform_order.status == "cancelled"

    def test_completed_order_is_not_cancelled(self, db_session, store, linked_order, fake_platform, shopify_order):
        linked_order.status = "completed"
        db_session.commit()
        fake_platform.order = shopify_order(cancelled_at="2024-03-02T10:00:00Z")
        result = order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert result.status == "completed"

    def test_fetch_failure_rolls_back(self, store, linked_order, fake_platform):
        fake_platform.order_error = PlatformAPIError("Shopify returned HTTP 500", 500)
        with pytest.raises(SyncError) as exc:
            order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert str(exc.value).startswith("Failed to sync order:")
        assert fake_platform.closed

        order = _reload(linked_order.id)
        assert order.status == "confirmed"
        assert order.platform_order.last_synced_at is None

    def test_bad_payload_rolls_back(self, store, linked_order, fake_platform):
        fake_platform.order = {"name": "#1001"}
        with pytest.raises(SyncError):
            order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert _reload(linked_order.id).platform_order.last_synced_at is None

    def test_unlinked_order(self, db_session, store, fake_platform):
        order = Order(store_id=store.id, invoice_number="ORD-LOCAL", status="pending")
        db_session.add(order)
        db_session.commit()
        with pytest.raises(SyncError) as exc:
            order_sync_service.sync_order(store.id, order.id, client_factory=fake_platform.factory)
        assert "not linked" in str(exc.value)
        assert fake_platform.calls == []

    def test_platform_order_created_from_marketplace(self, db_session, store, marketplace, fake_platform, shopify_order):
        order = Order(
            store_id=store.id,
            invoice_number="ORD-IMPORTED",
            status="pending",
            source_platform="shopify",
            external_marketplace_id="2002",
        )
        db_session.add(order)
        db_session.commit()
        fake_platform.order = shopify_order(
            id=2002,
            financial_status="paid",
            customer={"first_name": "Grace", "last_name": "Hopper", "email": "grace@example.com"},
        )

        result = order_sync_service.sync_order(store.id, order.id, client_factory=fake_platform.factory)

        assert result.status == "confirmed"
        platform_order = db_session.query(PlatformOrder).filter_by(order_id=order.id).one()
        assert platform_order.external_order_id == "2002"
        assert platform_order.store_marketplace_id == marketplace.id
        customer = _reload(order.id).customer
        assert (customer.first_name, customer.email) == ("Grace", "grace@example.com")
        assert customer.store_id == store.id

    def test_other_store_cannot_sync(self, other_store, linked_order, fake_platform):
        with pytest.raises(TenantAccessError):
            order_sync_service.sync_order(other_store.id, linked_order.id, client_factory=fake_platform.factory)


# =============================================================================
# REFUNDS
# =============================================================================


class TestRefundImport:

    def test_refund_imported_during_sync(self, db_session, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order()
        fake_platform.refunds = [REFUND]

        result = order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)

        assert result.refunds.imported == 1
        product_return = db_session.query(ProductReturn).one()
        assert product_return.external_return_id == "9001"
        assert product_return.status == "completed"
        assert product_return.refund_amount_cents == 2000
        assert product_return.reason == "Scratched clasp"
        assert product_return.return_number.startswith("RET-")
        (item,) = product_return.items
        assert item.order_item_id == linked_order.items[1].id
        assert item.restock is True
        # partial refund leaves the order alone
        assert _reload(linked_order.id).status == "confirmed"

    def test_second_import_is_skipped(self, db_session, store, linked_order, fake_platform):
        fake_platform.refunds = [REFUND]

        first = order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        second = order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)

        assert (first.imported, first.skipped) == (1, 0)
        assert (second.imported, second.skipped) == (0, 1)
        assert second.message == "All 1 refund(s) have already been imported."
        assert db_session.query(ProductReturn).count() == 1

    def test_mixed_import_message(self, store, linked_order, fake_platform):
        fake_platform.refunds = [REFUND]
        order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)

        fake_platform.refunds = [REFUND, FULL_REFUND]
        result = order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert result.message == "Imported 1 refund(s). (1 already existed)"

    def test_no_refunds_message(self, store, linked_order, fake_platform):
        result = order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert result.message == "No refunds found for this order."
        # nothing imported, so the locked order row is released right away
        assert not db.session.in_transaction()
        assert fake_platform.closed

    def test_full_refund_marks_order_refunded(self, store, linked_order, fake_platform):
        fake_platform.refunds = [REFUND, FULL_REFUND]
        result = order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert result.imported == 2
        assert _reload(linked_order.id).status == "refunded"

    def test_rejected_returns_do_not_count(self, db_session, store, linked_order, fake_platform):
        rejected = dict(FULL_REFUND, status="declined")
        fake_platform.refunds = [REFUND, rejected]
        order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert _reload(linked_order.id).status == "confirmed"

    def test_manual_refund_sync_reports_failure(self, store, linked_order, fake_platform):
        fake_platform.refunds_error = PlatformAPIError("Shopify rejected the access token", 401)
        with pytest.raises(SyncError) as exc:
            order_sync_service.sync_order_returns(store.id, linked_order.id, client_factory=fake_platform.factory)
        assert str(exc.value) == "Failed to sync returns: Shopify rejected the access token"

    def test_refund_failure_does_not_block_order_sync(self, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order(fulfillment_status="fulfilled")
        fake_platform.refunds_error = PlatformAPIError("Shopify returned HTTP 503", 503)

        result = order_sync_service.sync_order(store.id, linked_order.id, client_factory=fake_platform.factory)

        assert result.success
        assert result.refunds is None
        assert _reload(linked_order.id).status == "shipped"

    def test_import_refund_skips_existing(self, db_session, store, linked_order):
        order = db_session.get(Order, linked_order.id)
        platform_order = order.platform_order
        (refund,) = parse_refund_payloads("shopify", [REFUND])

        assert return_sync_service.import_refund(order, platform_order, refund) is not None
        assert return_sync_service.import_refund(order, platform_order, refund) is None
        assert return_sync_service.return_exists("9001", platform_order.store_marketplace_id)


# =============================================================================
# BATCH
# =============================================================================


class TestBatchSync:

    def test_failures_are_isolated(self, db_session, store, linked_order, fake_platform, shopify_order):
        local = Order(store_id=store.id, invoice_number="ORD-LOCAL", status="pending")
        db_session.add(local)
        db_session.commit()
        fake_platform.order = shopify_order(fulfillment_status="fulfilled")

        results = order_sync_service.sync_orders(
            store.id,
            [local.id, linked_order.id, 424242],
            client_factory=fake_platform.factory,
        )

        assert [r.success for r in results] == [False, True, False]
        assert results[2].message == "Order not found"
        assert _reload(linked_order.id).status == "shipped"

    def test_linked_order_ids_skip_terminal(self, db_session, store, linked_order):
        done = Order(
            store_id=store.id,
            invoice_number="ORD-DONE",
            status="cancelled",
            source_platform="shopify",
            external_marketplace_id="3003",
        )
        db_session.add(done)
        db_session.commit()
        assert order_sync_service.linked_order_ids(store.id) == [linked_order.id]
