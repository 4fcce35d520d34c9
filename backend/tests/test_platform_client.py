"""
Shopify client tests against an in-process httpx transport.
"""

import httpx
import pytest

from backoffice.domain.platform_payloads import UnsupportedPlatformError
from backoffice.models import PlatformOrder, StoreMarketplace
from backoffice.services.platform_client import (
    PlatformAPIError,
    ShopifyService,
    client_for,
    configured_client_factory,
)


def make_client(handler):
    return ShopifyService(
        shop_domain="main-street.myshopify.com",
        access_token="shpat_test",
        transport=httpx.MockTransport(handler),
    )


PLATFORM_ORDER = PlatformOrder(external_order_id="1001")


def test_refresh_order_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("X-Shopify-Access-Token")
        return httpx.Response(200, json={"order": {"id": 1001, "name": "#1001"}})

    with make_client(handler) as client:
        order = client.refresh_order(PLATFORM_ORDER)

    assert order == {"id": 1001, "name": "#1001"}
    assert seen["url"] == "https://main-street.myshopify.com/admin/api/2024-07/orders/1001.json"
    assert seen["token"] == "shpat_test"


def test_refunds_list():
    def handler(request):
        assert request.url.path.endswith("/orders/1001/refunds.json")
        return httpx.Response(200, json={"refunds": [{"id": 9001}]})

    with make_client(handler) as client:
        assert client.get_order_refunds(PLATFORM_ORDER) == [{"id": 9001}]


def test_refunds_missing_key_is_empty():
    with make_client(lambda request: httpx.Response(200, json={})) as client:
        assert client.get_order_refunds(PLATFORM_ORDER) == []


@pytest.mark.parametrize("status,message", [
    (401, "Shopify rejected the access token"),
    (403, "Shopify rejected the access token"),
    (404, "Order not found on Shopify"),
    (500, "Shopify returned HTTP 500"),
    (429, "Shopify returned HTTP 429"),
])
def test_http_errors(status, message):
    with make_client(lambda request: httpx.Response(status, json={"errors": "nope"})) as client:
        with pytest.raises(PlatformAPIError) as exc:
            client.refresh_order(PLATFORM_ORDER)
    assert str(exc.value) == message
    assert exc.value.status_code == status


def test_invalid_json():
    with make_client(lambda request: httpx.Response(200, content=b"<html>")) as client:
        with pytest.raises(PlatformAPIError) as exc:
            client.refresh_order(PLATFORM_ORDER)
    assert str(exc.value) == "Shopify returned invalid JSON"


def test_order_key_missing():
    with make_client(lambda request: httpx.Response(200, json={"orders": []})) as client:
        with pytest.raises(PlatformAPIError):
            client.refresh_order(PLATFORM_ORDER)


def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client:
        with pytest.raises(PlatformAPIError) as exc:
            client.refresh_order(PLATFORM_ORDER)
    assert str(exc.value).startswith("Shopify request failed")
    assert exc.value.status_code is None


def test_missing_credentials():
    with pytest.raises(PlatformAPIError):
        ShopifyService(shop_domain="main-street.myshopify.com", access_token="")


def test_client_for_unsupported_platform():
    with pytest.raises(UnsupportedPlatformError):
        client_for(StoreMarketplace(platform="etsy", shop_domain="x", access_token="y"))


def test_configured_factory_uses_app_config():
    factory = configured_client_factory({"SHOPIFY_API_VERSION": "2025-01"})
    client = factory(StoreMarketplace(platform="Shopify", shop_domain="a.myshopify.com", access_token="t"))
    try:
        assert client.base_url == "https://a.myshopify.com/admin/api/2025-01"
    finally:
        client.close()
