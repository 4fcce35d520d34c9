# Overview: Typed marketplace payloads.
# Each supported platform gets its own frozen dataclasses built from the raw
# decoded JSON; optional fields are explicit and fallback precedence lives in
# one place per field.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..time_utils import parse_iso_datetime
from ..validation import decimal_to_cents


PLATFORM_SHOPIFY = "shopify"
SUPPORTED_PLATFORMS = (PLATFORM_SHOPIFY,)


class UnsupportedPlatformError(Exception):
    """Raised when a payload is tagged with a platform we cannot interpret."""


def _str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class AddressPayload:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    province_code: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AddressPayload"]:
        if not isinstance(data, dict) or not data:
            return None
        return cls(**{name: _str(data.get(name)) for name in cls.__dataclass_fields__})

    @property
    def name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def state(self) -> Optional[str]:
        # province_code, else province, else None
        return self.province_code or self.province

    @property
    def country_value(self) -> Optional[str]:
        return self.country_code or self.country

    def normalized(self) -> dict:
        """Fixed field set stored on Order.shipping_address / billing_address."""
        return {
            "name": self.name,
            "company": self.company,
            "address_line_1": self.address1,
            "address_line_2": self.address2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.zip,
            "country": self.country_value,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class CustomerPayload:
    id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    default_address: Optional[AddressPayload] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CustomerPayload"]:
        if not isinstance(data, dict) or not data:
            return None
        return cls(
            id=_str(data.get("id")),
            email=_str(data.get("email")),
            phone=_str(data.get("phone")),
            first_name=_str(data.get("first_name")),
            last_name=_str(data.get("last_name")),
            default_address=AddressPayload.from_dict(data.get("default_address")),
        )


@dataclass(frozen=True)
class FulfillmentPayload:
    id: Optional[str] = None
    status: Optional[str] = None
    shipment_status: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_company: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Any) -> "FulfillmentPayload":
        data = data if isinstance(data, dict) else {}
        return cls(
            id=_str(data.get("id")),
            status=_str(data.get("status")),
            shipment_status=_str(data.get("shipment_status")),
            tracking_number=_str(data.get("tracking_number")),
            tracking_company=_str(data.get("tracking_company")),
            created_at=_dt(data.get("created_at")),
        )


@dataclass(frozen=True)
class LineItemPayload:
    id: Optional[str] = None
    title: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 0
    price_cents: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "LineItemPayload":
        data = data if isinstance(data, dict) else {}
        return cls(
            id=_str(data.get("id")),
            title=_str(data.get("title")) or _str(data.get("name")),
            sku=_str(data.get("sku")),
            quantity=int(data.get("quantity") or 0),
            price_cents=decimal_to_cents(data.get("price")),
        )


@dataclass(frozen=True)
class RefundLinePayload:
    line_item_id: Optional[str] = None
    quantity: int = 0
    subtotal_cents: int = 0
    restock_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "RefundLinePayload":
        data = data if isinstance(data, dict) else {}
        return cls(
            line_item_id=_str(data.get("line_item_id")),
            quantity=int(data.get("quantity") or 0),
            subtotal_cents=decimal_to_cents(data.get("subtotal")),
            restock_type=_str(data.get("restock_type")),
        )

    @property
    def restock(self) -> bool:
        return self.restock_type not in (None, "no_restock")


@dataclass(frozen=True)
class RefundPayload:
    id: str
    status: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    lines: tuple[RefundLinePayload, ...] = ()
    transaction_amounts_cents: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "RefundPayload":
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            raise ValueError("Refund payload has no id")
        amounts = tuple(
            decimal_to_cents(t.get("amount"))
            for t in data.get("transactions") or []
            if isinstance(t, dict)
            and (t.get("kind") or "refund") == "refund"
            and (t.get("status") or "success") == "success"
        )
        return cls(
            id=str(data["id"]),
            status=_str(data.get("status")),
            note=_str(data.get("note")),
            created_at=_dt(data.get("created_at")),
            lines=tuple(RefundLinePayload.from_dict(line) for line in data.get("refund_line_items") or []),
            transaction_amounts_cents=amounts,
        )

    @property
    def refund_amount_cents(self) -> int:
        # Successful refund transactions, else the refunded line subtotals
        if self.transaction_amounts_cents:
            return sum(self.transaction_amounts_cents)
        return sum(line.subtotal_cents for line in self.lines)

    @property
    def subtotal_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines)


@dataclass(frozen=True)
class ShopifyOrderPayload:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    contact_email: Optional[str] = None
    phone: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    total_price_cents: int = 0
    shipping_address: Optional[AddressPayload] = None
    billing_address: Optional[AddressPayload] = None
    customer: Optional[CustomerPayload] = None
    fulfillments: tuple[FulfillmentPayload, ...] = ()
    line_items: tuple[LineItemPayload, ...] = ()
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    platform = PLATFORM_SHOPIFY

    @classmethod
    def from_dict(cls, data: dict) -> "ShopifyOrderPayload":
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            raise ValueError("Order payload has no id")
        return cls(
            id=str(data["id"]),
            name=_str(data.get("name")),
            email=_str(data.get("email")),
            contact_email=_str(data.get("contact_email")),
            phone=_str(data.get("phone")),
            financial_status=_str(data.get("financial_status")),
            fulfillment_status=_str(data.get("fulfillment_status")),
            cancelled_at=_dt(data.get("cancelled_at")),
            closed_at=_dt(data.get("closed_at")),
            created_at=_dt(data.get("created_at")),
            total_price_cents=decimal_to_cents(data.get("total_price")),
            shipping_address=AddressPayload.from_dict(data.get("shipping_address")),
            billing_address=AddressPayload.from_dict(data.get("billing_address")),
            customer=CustomerPayload.from_dict(data.get("customer")),
            fulfillments=tuple(FulfillmentPayload.from_dict(f) for f in data.get("fulfillments") or []),
            line_items=tuple(LineItemPayload.from_dict(li) for li in data.get("line_items") or []),
            raw=data,
        )

    @property
    def latest_fulfillment(self) -> Optional[FulfillmentPayload]:
        return self.fulfillments[-1] if self.fulfillments else None


# Sum type over known platforms; add a parser per platform here.
OrderPayload = ShopifyOrderPayload

_ORDER_PARSERS = {
    PLATFORM_SHOPIFY: ShopifyOrderPayload.from_dict,
}

_REFUND_PARSERS = {
    PLATFORM_SHOPIFY: RefundPayload.from_dict,
}


def parse_order_payload(platform: str, data: dict) -> OrderPayload:
    parser = _ORDER_PARSERS.get((platform or "").lower())
    if parser is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform}")
    return parser(data)


def parse_refund_payloads(platform: str, data: list) -> list[RefundPayload]:
    parser = _REFUND_PARSERS.get((platform or "").lower())
    if parser is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform}")
    return [parser(item) for item in data or []]
