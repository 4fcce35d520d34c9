# Overview: Request input validation helpers shared by blueprints and CLI commands.

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any


# Maximum amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


def require_fields(data: dict | None, *names: str) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("JSON body required")
    missing = [n for n in names if data.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")
    return data


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation in strings.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return result


def parse_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    cents = parse_int(value, field, minimum=0)
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    if not allow_zero and cents == 0:
        raise ValidationError(f"{field} must be positive")
    return cents


def decimal_to_cents(value: Any) -> int:
    """
    Convert a marketplace money value ("12.50", 12.5, None) to integer cents.
    Unparseable values count as zero.
    """
    if value in (None, ""):
        return 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return 0
    return int((amount * 100).quantize(Decimal("1")))


def parse_date(value: Any, field: str, *, default: date | None = None) -> date:
    if value in (None, ""):
        if default is None:
            raise ValidationError(f"{field} required")
        return default
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date")
