"""
API route tests.

Verifies:
- Store scoping: unknown stores and other stores' records are 404
- Service errors map to 400 / 502 with the service message
- Report endpoints return JSON and streamed CSV with a TOTALS row
"""

from datetime import datetime

import pytest

from backoffice.extensions import db
from backoffice.models import Order, Product, ProductVariant
from backoffice.routes import orders as order_routes
from backoffice.services.platform_client import PlatformAPIError


def _create_order(client, store_id, **body):
    response = client.post(f"/api/stores/{store_id}/orders/", json=body)
    assert response.status_code == 201
    return response.get_json()["order"]


# =============================================================================
# TENANT SCOPING
# =============================================================================


class TestStoreScoping:

    def test_unknown_store(self, client, db_session):
        response = client.get("/api/stores/9999/orders/1")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Store not found"}

    def test_other_stores_order_is_not_found(self, client, store, other_store):
        order = _create_order(client, store.id)
        response = client.get(f"/api/stores/{other_store.id}/orders/{order['id']}")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Order not found"

    def test_other_store_cannot_cancel(self, client, store, other_store):
        order = _create_order(client, store.id)
        response = client.post(f"/api/stores/{other_store.id}/orders/{order['id']}/cancel")
        assert response.status_code == 404
        db.session.expire_all()
        assert db.session.get(Order, order["id"]).status == "pending"


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderRoutes:

    def test_create_and_fetch(self, client, store, customer):
        order = _create_order(client, store.id, customer_id=customer.id, shipping_cost_cents=500)
        assert order["status"] == "pending"
        assert order["total_cents"] == 500

        response = client.get(f"/api/stores/{store.id}/orders/{order['id']}")
        assert response.status_code == 200
        assert response.get_json()["order"]["platform_order"] is None

    def test_create_rejects_bad_cents(self, client, store):
        response = client.post(f"/api/stores/{store.id}/orders/", json={"shipping_cost_cents": "lots"})
        assert response.status_code == 400

    def test_rejected_transition_is_400(self, client, store):
        order = _create_order(client, store.id)
        response = client.post(f"/api/stores/{store.id}/orders/{order['id']}/ship", json={})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Order cannot be shipped in its current state."

    def test_item_then_confirm(self, client, store):
        order = _create_order(client, store.id)
        base = f"/api/stores/{store.id}/orders/{order['id']}"

        response = client.post(f"{base}/items", json={"title": "Ring", "quantity": 1, "price_cents": 2500})
        assert response.status_code == 201
        assert response.get_json()["order"]["total_cents"] == 2500

        response = client.post(f"{base}/confirm")
        assert response.status_code == 200
        assert response.get_json()["order"]["status"] == "confirmed"

    def test_item_with_other_stores_variant_is_404(self, db_session, client, store, other_store):
        product = Product(store_id=other_store.id, title="Uptown Pendant")
        db_session.add(product)
        db_session.flush()
        foreign = ProductVariant(product_id=product.id, sku="UP-1", price_cents=900)
        db_session.add(foreign)
        db_session.commit()

        order = _create_order(client, store.id)
        response = client.post(
            f"/api/stores/{store.id}/orders/{order['id']}/items",
            json={"title": "Pendant", "quantity": 1, "price_cents": 900, "product_variant_id": foreign.id},
        )
        assert response.status_code == 404
        assert response.get_json() == {"error": "Product variant not found"}

    def test_item_requires_fields(self, client, store):
        order = _create_order(client, store.id)
        response = client.post(f"/api/stores/{store.id}/orders/{order['id']}/items", json={"title": "Ring"})
        assert response.status_code == 400

    def test_payment(self, client, store):
        order = _create_order(client, store.id)
        base = f"/api/stores/{store.id}/orders/{order['id']}"
        client.post(f"{base}/items", json={"title": "Ring", "quantity": 1, "price_cents": 2500})

        response = client.post(f"{base}/payments", json={"amount_cents": 1000, "payment_method": "cash"})
        assert response.status_code == 201
        body = response.get_json()
        assert body["payment"]["amount_cents"] == 1000
        assert body["order"]["status"] == "partial_payment"

    def test_zero_payment_rejected(self, client, store):
        order = _create_order(client, store.id)
        response = client.post(
            f"/api/stores/{store.id}/orders/{order['id']}/payments",
            json={"amount_cents": 0, "payment_method": "cash"},
        )
        assert response.status_code == 400

    def test_bulk_cancel(self, client, store):
        first = _create_order(client, store.id)
        second = _create_order(client, store.id)
        response = client.post(
            f"/api/stores/{store.id}/orders/bulk",
            json={"action": "cancel", "order_ids": [first["id"], second["id"]]},
        )
        assert response.status_code == 200
        assert sorted(response.get_json()["succeeded"]) == sorted([first["id"], second["id"]])

    def test_delete(self, client, store):
        order = _create_order(client, store.id)
        response = client.delete(f"/api/stores/{store.id}/orders/{order['id']}")
        assert response.status_code == 200
        assert client.get(f"/api/stores/{store.id}/orders/{order['id']}").status_code == 404


# =============================================================================
# SYNC
# =============================================================================


class TestSyncRoutes:

    @pytest.fixture(autouse=True)
    def _fake_client(self, monkeypatch, fake_platform):
        monkeypatch.setattr(order_routes, "configured_client_factory", lambda config: fake_platform.factory)

    def test_sync_success(self, client, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order(fulfillment_status="fulfilled")
        response = client.post(f"/api/stores/{store.id}/orders/{linked_order.id}/sync")
        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["status"] == "shipped"

    def test_sync_failure_is_502(self, client, store, linked_order, fake_platform):
        fake_platform.order_error = PlatformAPIError("Order not found on Shopify", 404)
        response = client.post(f"/api/stores/{store.id}/orders/{linked_order.id}/sync")
        assert response.status_code == 502
        assert response.get_json() == {
            "success": False,
            "error": "Failed to sync order: Order not found on Shopify",
        }

    def test_sync_returns(self, client, store, linked_order, fake_platform):
        response = client.post(f"/api/stores/{store.id}/orders/{linked_order.id}/sync-returns")
        assert response.status_code == 200
        assert response.get_json()["message"] == "No refunds found for this order."

    def test_batch_defaults_to_linked_orders(self, client, store, linked_order, fake_platform, shopify_order):
        fake_platform.order = shopify_order()
        response = client.post(f"/api/stores/{store.id}/orders/sync", json={})
        assert response.status_code == 200
        body = response.get_json()
        assert body["synced"] == 1
        assert body["failed"] == 0
        assert body["results"][0]["order_id"] == linked_order.id


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategoryRoutes:

    def test_tree(self, client, store, categories):
        response = client.get(f"/api/stores/{store.id}/categories/tree")
        assert response.status_code == 200
        assert [n["label"] for n in response.get_json()["categories"]] == ["Coins", "Jewelry", "Rings", "Gold Rings"]

    def test_create(self, client, store, categories):
        response = client.post(
            f"/api/stores/{store.id}/categories/",
            json={"name": "Bracelets", "parent_id": categories["jewelry"].id},
        )
        assert response.status_code == 201
        assert response.get_json()["category"]["parent_id"] == categories["jewelry"].id

    def test_move_into_descendant_is_400(self, client, store, categories):
        response = client.patch(
            f"/api/stores/{store.id}/categories/{categories['jewelry'].id}/parent",
            json={"parent_id": categories["gold"].id},
        )
        assert response.status_code == 400

    def test_breadcrumb(self, client, store, categories):
        response = client.get(f"/api/stores/{store.id}/categories/{categories['gold'].id}/breadcrumb")
        assert [c["name"] for c in response.get_json()["breadcrumb"]] == ["Jewelry", "Rings"]

    def test_other_stores_category(self, client, categories, other_store):
        response = client.get(f"/api/stores/{other_store.id}/categories/{categories['gold'].id}/descendants")
        assert response.status_code == 404


# =============================================================================
# REPORTS
# =============================================================================


class TestReportRoutes:

    def test_daily_json(self, client, store, categories, buy_factory):
        buy_factory(
            processed_at=datetime(2024, 1, 2, 12, 0),
            final_offer_cents=1000,
            items=[(categories["gold"].id, 1, 1500, 1000)],
        )
        response = client.get(f"/api/stores/{store.id}/reports/buys/daily?start=2024-01-01&end=2024-01-03")
        assert response.status_code == 200
        body = response.get_json()
        assert len(body["rows"]) == 3
        assert body["totals"]["purchase_amt"] == 1000

    def test_bad_kind(self, client, store):
        response = client.get(f"/api/stores/{store.id}/reports/buys/monthly?kind=raffle")
        assert response.status_code == 400

    def test_bad_date(self, client, store):
        response = client.get(f"/api/stores/{store.id}/reports/buys/daily?start=yesterday")
        assert response.status_code == 400

    def test_csv_has_totals_row(self, client, store, categories, buy_factory):
        buy_factory(
            processed_at=datetime(2024, 1, 2, 12, 0),
            final_offer_cents=1000,
            items=[(categories["gold"].id, 1, 1500, 1000)],
        )
        response = client.get(f"/api/stores/{store.id}/reports/buys/categories.csv?start=2024-01-01&end=2024-01-31")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment" in response.headers["Content-Disposition"]

        lines = response.get_data(as_text=True).splitlines()
        assert len(lines) == 3
        assert lines[1].startswith("Gold Rings")
        assert lines[-1].startswith("TOTALS")

    def test_unknown_csv_view(self, client, store):
        assert client.get(f"/api/stores/{store.id}/reports/buys/weekly.csv").status_code == 404

    def test_inventory(self, client, store, categories, variant):
        response = client.get(f"/api/stores/{store.id}/reports/inventory/categories")
        assert response.status_code == 200
        assert response.get_json()["totals"]["total_units"] == 10

        response = client.get(f"/api/stores/{store.id}/reports/inventory/summary")
        assert response.get_json() == {"total_units": 10, "total_value": 20000}


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"
