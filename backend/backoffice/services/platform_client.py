"""Marketplace API clients.

WHAT:
    Narrow read-only clients the order reconciler consumes:
    - refresh_order: raw decoded order JSON for a PlatformOrder
    - get_order_refunds: raw decoded refund list for a PlatformOrder

WHY:
    The reconciler interprets payloads itself; clients only fetch. No
    retries here: failures surface immediately as PlatformAPIError and
    the caller decides what to do.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

import httpx

from ..domain.platform_payloads import PLATFORM_SHOPIFY, UnsupportedPlatformError
from ..models import PlatformOrder, StoreMarketplace

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-07"
DEFAULT_TIMEOUT = 30.0


class PlatformAPIError(Exception):
    """HTTP, auth or decoding failure talking to a marketplace."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PlatformService(Protocol):
    def refresh_order(self, platform_order: PlatformOrder) -> dict: ...

    def get_order_refunds(self, platform_order: PlatformOrder) -> list[dict]: ...


class ShopifyService:
    """Shopify Admin REST client for a single connected shop.

    Usage:
        client = ShopifyService(shop_domain="mystore.myshopify.com", access_token="shpat_xxx")
        order = client.refresh_order(platform_order)
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not shop_domain or not access_token:
            raise PlatformAPIError("Shopify connection is missing its shop domain or access token")
        self.shop_domain = shop_domain
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-Shopify-Access-Token": access_token,
                "Accept": "application/json",
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ShopifyService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, path: str) -> Any:
        logger.debug("[SHOPIFY] GET %s%s", self.base_url, path)
        try:
            response = self._client.get(path)
        except httpx.HTTPError as exc:
            raise PlatformAPIError(f"Shopify request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise PlatformAPIError("Shopify rejected the access token", response.status_code)
        if response.status_code == 404:
            raise PlatformAPIError("Order not found on Shopify", response.status_code)
        if response.status_code >= 400:
            raise PlatformAPIError(
                f"Shopify returned HTTP {response.status_code}", response.status_code
            )

        try:
            return response.json()
        except ValueError as exc:
            raise PlatformAPIError("Shopify returned invalid JSON") from exc

    def refresh_order(self, platform_order: PlatformOrder) -> dict:
        data = self._get(f"/orders/{platform_order.external_order_id}.json")
        order = data.get("order") if isinstance(data, dict) else None
        if not isinstance(order, dict):
            raise PlatformAPIError("Shopify order response had no order")
        return order

    def get_order_refunds(self, platform_order: PlatformOrder) -> list[dict]:
        data = self._get(f"/orders/{platform_order.external_order_id}/refunds.json")
        refunds = data.get("refunds") if isinstance(data, dict) else None
        return refunds if isinstance(refunds, list) else []


ClientFactory = Callable[[StoreMarketplace], PlatformService]


def client_for(
    marketplace: StoreMarketplace,
    *,
    api_version: str = DEFAULT_API_VERSION,
    timeout: float = DEFAULT_TIMEOUT,
) -> PlatformService:
    platform = (marketplace.platform or "").lower()
    if platform == PLATFORM_SHOPIFY:
        return ShopifyService(
            shop_domain=marketplace.shop_domain,
            access_token=marketplace.access_token,
            api_version=api_version,
            timeout=timeout,
        )
    raise UnsupportedPlatformError(f"Unsupported platform: {marketplace.platform}")


def configured_client_factory(config) -> ClientFactory:
    """Bind client_for to an app config mapping (SHOPIFY_API_VERSION, PLATFORM_HTTP_TIMEOUT)."""
    def _factory(marketplace: StoreMarketplace) -> PlatformService:
        return client_for(
            marketplace,
            api_version=config.get("SHOPIFY_API_VERSION", DEFAULT_API_VERSION),
            timeout=config.get("PLATFORM_HTTP_TIMEOUT", DEFAULT_TIMEOUT),
        )
    return _factory
