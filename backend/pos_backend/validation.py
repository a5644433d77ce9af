"""
Cart payload validation.

Turns the JSON-shaped cart submitted by the request layer into typed
CartItem / Discount values. Type problems raise InvalidRequestError here;
business-rule checks (sign of quantities, discount bounds) are the line
allocator's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidRequestError
from .money import DISCOUNT_KINDS, DISCOUNT_NONE
from .services.pricing_service import Discount


# Maximum price: 9,999,999.99
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = Decimal("9999999.99")
MAX_QUANTITY = 1_000_000


@dataclass(frozen=True)
class CartItem:
    """One requested line, before catalog defaults are filled in."""
    product_id: int
    quantity: int
    unit_price: Decimal | None = None
    discount: Discount | None = None
    taxable: bool | None = None
    tax_rate: Decimal | None = None
    tax_exempt: bool = False
    product_name: str | None = None
    barcode: str | None = None


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidRequestError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise InvalidRequestError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise InvalidRequestError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise InvalidRequestError(f"{key} must be an integer")
    if isinstance(value, float):
        raise InvalidRequestError(f"{key} must be an integer, not a decimal")
    raise InvalidRequestError(f"{key} must be an integer")


def coerce_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidRequestError(f"{key} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidRequestError(f"{key} must be a number")
    else:
        raise InvalidRequestError(f"{key} must be a number")

    if not result.is_finite():
        raise InvalidRequestError(f"{key} must be a finite number")
    return result


def coerce_money(key: str, value: Any) -> Decimal:
    """Like coerce_decimal, but at most 2 decimal places (what the columns store)."""
    result = coerce_decimal(key, value)
    if result.normalize().as_tuple().exponent < -2:
        raise InvalidRequestError(
            f"{key} cannot have more than 2 decimal places",
            details={key: str(result)},
        )
    return result


def coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
        raise InvalidRequestError(f"{key} must be a boolean")
    # fallback: truthiness
    return bool(value)


def _optional_str(key: str, value: Any, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise InvalidRequestError(f"{key} exceeds max length {max_length}")
    return text or None


def parse_discount(raw: Any, key: str = "discount") -> Discount | None:
    """
    Parse {"kind": "percentage"|"amount"|"none", "value": n}.

    "type" is accepted as an alias for "kind". None, {} and kind "none"
    all mean no discount.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidRequestError(f"{key} must be an object")
    if not raw:
        return None

    kind = raw.get("kind", raw.get("type"))
    if kind is None or kind == DISCOUNT_NONE:
        return None
    if kind not in DISCOUNT_KINDS:
        raise InvalidRequestError(
            f"{key}.kind must be one of {', '.join(DISCOUNT_KINDS)}",
            details={"kind": kind},
        )
    if raw.get("value") is None:
        raise InvalidRequestError(f"{key}.value is required")

    return Discount(kind=kind, value=coerce_money(f"{key}.value", raw["value"]))


def parse_cart_item(raw: Any, index: int) -> CartItem:
    if not isinstance(raw, dict):
        raise InvalidRequestError(f"items[{index}] must be an object")

    prefix = f"items[{index}]"
    for required in ("product_id", "quantity"):
        if raw.get(required) is None:
            raise InvalidRequestError(f"{prefix}.{required} is required")

    unit_price = None
    if raw.get("unit_price") is not None:
        unit_price = coerce_money(f"{prefix}.unit_price", raw["unit_price"])
        if unit_price > MAX_PRICE:
            raise InvalidRequestError(f"{prefix}.unit_price cannot exceed {MAX_PRICE}")

    quantity = coerce_int(f"{prefix}.quantity", raw["quantity"])
    if abs(quantity) > MAX_QUANTITY:
        raise InvalidRequestError(f"{prefix}.quantity cannot exceed {MAX_QUANTITY}")

    return CartItem(
        product_id=coerce_int(f"{prefix}.product_id", raw["product_id"]),
        quantity=quantity,
        unit_price=unit_price,
        discount=parse_discount(raw.get("discount"), key=f"{prefix}.discount"),
        taxable=coerce_bool(f"{prefix}.taxable", raw["taxable"]) if raw.get("taxable") is not None else None,
        tax_rate=coerce_money(f"{prefix}.tax_rate", raw["tax_rate"]) if raw.get("tax_rate") is not None else None,
        tax_exempt=coerce_bool(f"{prefix}.tax_exempt", raw.get("tax_exempt", False)),
        product_name=_optional_str(f"{prefix}.product_name", raw.get("product_name"), 200),
        barcode=_optional_str(f"{prefix}.barcode", raw.get("barcode"), 100),
    )


def parse_cart(items: Any) -> list[CartItem]:
    """Validate the items array. An empty cart is rejected."""
    if items is None:
        raise InvalidRequestError("items is required")
    if not isinstance(items, (list, tuple)):
        raise InvalidRequestError("items must be a list")
    if not items:
        raise InvalidRequestError("Cart must contain at least one item")
    return [
        item if isinstance(item, CartItem) else parse_cart_item(item, i)
        for i, item in enumerate(items)
    ]


def parse_optional_money(key: str, value: Any) -> Decimal | None:
    if value is None:
        return None
    amount = coerce_money(key, value)
    if amount < 0:
        raise InvalidRequestError(f"{key} must be >= 0")
    return amount


def parse_note(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequestError("note must be a string")
    return _optional_str("note", value, 500)
