"""
Order lifecycle and payment tests.

Verifies:
- Allowed transitions move the order and stamp timestamps
- Rejected transitions raise OrderError and leave the order unchanged
- Cancel restores stock in the same commit
- Bulk actions isolate failures per order
- Payments drive pending -> partial_payment -> confirmed
"""

import pytest

from backoffice.extensions import db
from backoffice.models import InventoryAdjustment, Order, Product, ProductVariant
from backoffice.services import inventory_service, order_service, payment_service
from backoffice.services.order_service import OrderError
from backoffice.services.payment_service import PaymentError
from backoffice.services.tenant_service import TenantAccessError


@pytest.fixture
def pending_order(db_session, store, customer):
    order = order_service.create_order(store.id, customer_id=customer.id, shipping_cost_cents=500)
    order_service.add_item(order.id, store.id, title="Ring", quantity=2, price_cents=2000)
    return db_session.get(Order, order.id)


def _set_status(order, status):
    order.status = status
    db.session.commit()


# =============================================================================
# CREATION AND ITEMS
# =============================================================================


class TestCreateAndItems:

    def test_create_assigns_invoice_number(self, db_session, store):
        first = order_service.create_order(store.id)
        second = order_service.create_order(store.id)
        assert first.status == "pending"
        assert first.invoice_number == f"ORD-{store.id}-000001"
        assert second.invoice_number == f"ORD-{store.id}-000002"

    def test_invoice_numbers_survive_deletes(self, db_session, store):
        first = order_service.create_order(store.id)
        second = order_service.create_order(store.id)
        order_service.delete_order(first.id, store.id)

        third = order_service.create_order(store.id)
        fourth = order_service.create_order(store.id)
        assert second.invoice_number == f"ORD-{store.id}-000002"
        assert third.invoice_number == f"ORD-{store.id}-000003"
        assert fourth.invoice_number == f"ORD-{store.id}-000004"

    def test_invoice_sequence_is_per_store(self, db_session, store, other_store):
        order_service.create_order(store.id)
        assert order_service.create_order(other_store.id).invoice_number == f"ORD-{other_store.id}-000001"

    def test_create_rejects_non_initial_status(self, db_session, store):
        with pytest.raises(OrderError):
            order_service.create_order(store.id, status="shipped")

    def test_create_rejects_foreign_customer(self, db_session, store, other_store):
        from backoffice.models import Customer
        foreign = Customer(store_id=other_store.id, first_name="Eve")
        db_session.add(foreign)
        db_session.commit()
        with pytest.raises(TenantAccessError):
            order_service.create_order(store.id, customer_id=foreign.id)

    def test_totals_follow_items(self, pending_order):
        assert pending_order.sub_total_cents == 4000
        assert pending_order.total_cents == 4500
        assert pending_order.balance_due_cents == 4500

    def test_update_and_remove_item(self, pending_order, store):
        item = pending_order.items[0]
        order_service.update_item(pending_order.id, store.id, item.id, quantity=3, discount_cents=1000)
        order = order_service.get_order(pending_order.id, store.id)
        assert order.sub_total_cents == 5000
        assert order.total_cents == 5500

        order_service.remove_item(pending_order.id, store.id, item.id)
        order = order_service.get_order(pending_order.id, store.id)
        assert order.items == []
        assert order.total_cents == 500

    def test_foreign_variant_rejected(self, db_session, pending_order, store, other_store):
        product = Product(store_id=other_store.id, title="Uptown Pendant")
        db_session.add(product)
        db_session.flush()
        foreign = ProductVariant(product_id=product.id, sku="UP-1", price_cents=900, cost_cents=400)
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(TenantAccessError) as exc:
            order_service.add_item(
                pending_order.id, store.id, title="Pendant", quantity=1, price_cents=900,
                product_variant_id=foreign.id,
            )
        assert str(exc.value) == "Product variant not found"

        order = order_service.get_order(pending_order.id, store.id)
        assert len(order.items) == 1
        assert order_service.cancel_order(pending_order.id, store.id).status == "cancelled"

    def test_discount_cannot_exceed_line(self, pending_order, store):
        with pytest.raises(OrderError):
            order_service.add_item(pending_order.id, store.id, title="X", quantity=1, price_cents=100, discount_cents=200)

    def test_items_locked_after_confirm(self, pending_order, store):
        order_service.confirm_order(pending_order.id, store.id)
        with pytest.raises(OrderError) as exc:
            order_service.add_item(pending_order.id, store.id, title="X", quantity=1, price_cents=100)
        assert str(exc.value) == "Items can only be modified on pending orders."


# =============================================================================
# TRANSITIONS
# =============================================================================


class TestTransitions:

    def test_happy_path(self, pending_order, store):
        order = order_service.confirm_order(pending_order.id, store.id)
        assert order.status == "confirmed"

        order = order_service.ship_order(pending_order.id, store.id, tracking_number="1Z999", carrier="UPS")
        assert order.status == "shipped"
        assert order.shipped_at is not None
        assert order.shipping_carrier == "ups"
        assert order.tracking_url.endswith("1Z999")

        order = order_service.deliver_order(pending_order.id, store.id)
        assert order.status == "delivered"
        assert order.delivered_at is not None

        order = order_service.complete_order(pending_order.id, store.id)
        assert order.status == "completed"

    def test_ship_from_pending_rejected(self, pending_order, store):
        with pytest.raises(OrderError) as exc:
            order_service.ship_order(pending_order.id, store.id)
        assert str(exc.value) == "Order cannot be shipped in its current state."
        db.session.expire_all()
        assert order_service.get_order(pending_order.id, store.id).status == "pending"

    def test_label_requires_address(self, pending_order, store):
        order_service.confirm_order(pending_order.id, store.id)
        with pytest.raises(OrderError) as exc:
            order_service.ship_order(pending_order.id, store.id, tracking_number="T1", create_label=True)
        assert "postal_code" in exc.value.details["missing_fields"]

        order = order_service.get_order(pending_order.id, store.id)
        assert order.status == "confirmed"
        assert order.tracking_number is None

    def test_label_with_full_address(self, db_session, store):
        order = order_service.create_order(store.id, shipping_address={
            "address_line_1": "1 Main St",
            "city": "Springfield",
            "postal_code": "62701",
            "country": "US",
        })
        order_service.confirm_order(order.id, store.id)
        shipped = order_service.ship_order(order.id, store.id, create_label=True)
        assert shipped.status == "shipped"

    def test_deliver_requires_shipped(self, pending_order, store):
        order_service.confirm_order(pending_order.id, store.id)
        with pytest.raises(OrderError):
            order_service.deliver_order(pending_order.id, store.id)

    def test_complete_from_confirmed(self, pending_order, store):
        order_service.confirm_order(pending_order.id, store.id)
        assert order_service.complete_order(pending_order.id, store.id).status == "completed"

    def test_wrong_store_is_not_found(self, pending_order, other_store):
        with pytest.raises(TenantAccessError):
            order_service.confirm_order(pending_order.id, other_store.id)


# =============================================================================
# CANCEL AND DELETE
# =============================================================================


class TestCancelAndDelete:

    def test_cancel_completed_rejected(self, pending_order, store):
        _set_status(pending_order, "completed")
        with pytest.raises(OrderError) as exc:
            order_service.cancel_order(pending_order.id, store.id)
        assert str(exc.value) == "Completed orders cannot be cancelled."
        db.session.expire_all()
        assert order_service.get_order(pending_order.id, store.id).status == "completed"

    def test_cancel_twice_rejected(self, pending_order, store):
        order_service.cancel_order(pending_order.id, store.id)
        with pytest.raises(OrderError):
            order_service.cancel_order(pending_order.id, store.id)

    def test_cancel_restores_stock(self, db_session, store, variant):
        order = order_service.create_order(store.id)
        order_service.add_item(
            order.id, store.id, title="14k Band", quantity=2, price_cents=4500, product_variant_id=variant.id,
        )
        _set_status(db_session.get(Order, order.id), "shipped")

        cancelled = order_service.cancel_order(order.id, store.id, reason="Customer changed mind")
        assert cancelled.status == "cancelled"
        assert "Customer changed mind" in cancelled.notes
        assert inventory_service.get_on_hand(store.id, variant.id) == 12

        adjustment = (
            db_session.query(InventoryAdjustment)
            .filter_by(product_variant_id=variant.id, type="restock")
            .one()
        )
        assert adjustment.quantity_change == 2
        assert adjustment.reference == cancelled.invoice_number

    def test_delete_pending(self, pending_order, store):
        order_service.delete_order(pending_order.id, store.id)
        with pytest.raises(TenantAccessError):
            order_service.get_order(pending_order.id, store.id)

    def test_delete_confirmed_rejected(self, pending_order, store):
        order_service.confirm_order(pending_order.id, store.id)
        with pytest.raises(OrderError) as exc:
            order_service.delete_order(pending_order.id, store.id)
        assert str(exc.value) == "Only pending or draft orders can be deleted."

    def test_bulk_cancel_isolates_failures(self, db_session, store):
        ok = order_service.create_order(store.id)
        done = order_service.create_order(store.id)
        ok_id, done_id = ok.id, done.id
        _set_status(db_session.get(Order, done_id), "completed")

        result = order_service.bulk_action(store.id, "cancel", [ok_id, done_id, 999999])

        assert result["succeeded"] == [ok_id]
        assert result["failed"][done_id] == "Completed orders cannot be cancelled."
        assert result["failed"][999999] == "Order not found"
        assert order_service.get_order(ok_id, store.id).status == "cancelled"

    def test_bulk_unknown_action(self, store):
        with pytest.raises(OrderError):
            order_service.bulk_action(store.id, "archive", [1])


# =============================================================================
# PAYMENTS
# =============================================================================


class TestPayments:

    def test_partial_then_full(self, pending_order, store):
        payment_service.receive_payment(pending_order.id, store.id, amount_cents=2000, payment_method="cash")
        order = order_service.get_order(pending_order.id, store.id)
        assert order.status == "partial_payment"
        assert order.total_paid_cents == 2000
        assert order.balance_due_cents == 2500

        payment_service.receive_payment(pending_order.id, store.id, amount_cents=2500, payment_method="card")
        order = order_service.get_order(pending_order.id, store.id)
        assert order.status == "confirmed"
        assert order.balance_due_cents == 0

    def test_fully_paid_rejects_more(self, pending_order, store):
        payment_service.receive_payment(pending_order.id, store.id, amount_cents=4500, payment_method="cash")
        with pytest.raises(PaymentError) as exc:
            payment_service.receive_payment(pending_order.id, store.id, amount_cents=100, payment_method="cash")
        assert str(exc.value) == "Order is already fully paid."

    def test_payment_does_not_move_shipped_order(self, pending_order, store):
        _set_status(pending_order, "shipped")
        payment_service.receive_payment(pending_order.id, store.id, amount_cents=4500, payment_method="wire")
        assert order_service.get_order(pending_order.id, store.id).status == "shipped"

    def test_invalid_method(self, pending_order, store):
        with pytest.raises(PaymentError):
            payment_service.receive_payment(pending_order.id, store.id, amount_cents=100, payment_method="barter")
        assert order_service.get_order(pending_order.id, store.id).payments == []
