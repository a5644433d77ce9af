# Overview: Line allocator; turns cart lines plus an order discount into per-line and order totals.

"""
Line allocation for a cart.

Order of operations (must not change, reconciliation depends on it):

1. Each line: raw = quantity * unit_price, minus its own discount
   -> discounted_total. The sum of discounted totals is the order base.
2. The order-level discount resolves against the order base.
3. The order discount is prorated onto lines by their share of the order
   base -> net_total.
4. Taxable, positively-rated, non-exempt lines split net_total into base and
   tax (money.extract_tax); all other lines add net_total to the subtotal.
5. total = order_base - order_discount_amount.

Nothing is rounded here. Amounts are rounded once, when persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ..errors import InvalidRequestError
from ..money import (
    DISCOUNT_KINDS,
    DISCOUNT_PERCENTAGE,
    HUNDRED,
    ZERO,
    extract_tax,
    resolve_discount,
)


@dataclass(frozen=True)
class Discount:
    kind: str
    value: Decimal


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    unit_price: Decimal
    discount: Discount | None = None
    taxable: bool = False
    tax_rate: Decimal = ZERO
    tax_exempt: bool = False

    @property
    def is_taxed(self) -> bool:
        return bool(self.taxable) and self.tax_rate > 0 and not self.tax_exempt


@dataclass(frozen=True)
class LineAllocation:
    request: LineRequest
    raw_total: Decimal
    discount_amount: Decimal
    discounted_total: Decimal
    order_discount_share: Decimal
    net_total: Decimal
    taxable_base: Decimal
    tax: Decimal


@dataclass(frozen=True)
class Allocation:
    lines: tuple[LineAllocation, ...]
    order_base: Decimal
    order_discount: Discount | None
    order_discount_amount: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _check_discount(discount: Discount | None, label: str) -> None:
    if discount is None:
        return
    if discount.kind not in DISCOUNT_KINDS:
        raise InvalidRequestError(f"{label}: unknown discount kind '{discount.kind}'")
    if discount.value < 0:
        raise InvalidRequestError(f"{label}: discount value cannot be negative")
    if discount.kind == DISCOUNT_PERCENTAGE and discount.value > HUNDRED:
        raise InvalidRequestError(f"{label}: percentage discount cannot exceed 100")


def validate_lines(lines: Sequence[LineRequest], order_discount: Discount | None = None) -> None:
    if not lines:
        raise InvalidRequestError("Cart must contain at least one item")

    for i, line in enumerate(lines):
        label = f"items[{i}]"
        if line.quantity <= 0:
            raise InvalidRequestError(
                f"{label}: quantity must be positive",
                details={"product_id": line.product_id, "quantity": line.quantity},
            )
        if line.unit_price < 0:
            raise InvalidRequestError(
                f"{label}: unit price cannot be negative",
                details={"product_id": line.product_id},
            )
        if line.tax_rate < 0:
            raise InvalidRequestError(f"{label}: tax rate cannot be negative")
        _check_discount(line.discount, label)

    _check_discount(order_discount, "order discount")


def allocate(lines: Sequence[LineRequest], order_discount: Discount | None = None) -> Allocation:
    """Allocate item and order discounts and tax across a cart."""
    validate_lines(lines, order_discount)

    staged = []
    order_base = ZERO
    for line in lines:
        raw_total = Decimal(line.quantity) * line.unit_price
        discount = line.discount
        discount_amount = resolve_discount(
            discount.kind if discount else None,
            discount.value if discount else None,
            raw_total,
        )
        discounted_total = raw_total - discount_amount
        staged.append((line, raw_total, discount_amount, discounted_total))
        order_base += discounted_total

    order_discount_amount = resolve_discount(
        order_discount.kind if order_discount else None,
        order_discount.value if order_discount else None,
        order_base,
    )

    subtotal = ZERO
    tax = ZERO
    allocations = []
    for line, raw_total, discount_amount, discounted_total in staged:
        share = ZERO
        if order_base > 0 and order_discount_amount > 0:
            share = order_discount_amount * (discounted_total / order_base)
        net_total = discounted_total - share

        if line.is_taxed:
            line_base, line_tax = extract_tax(net_total, line.tax_rate)
        else:
            line_base, line_tax = net_total, ZERO
        subtotal += line_base
        tax += line_tax

        allocations.append(
            LineAllocation(
                request=line,
                raw_total=raw_total,
                discount_amount=discount_amount,
                discounted_total=discounted_total,
                order_discount_share=share,
                net_total=net_total,
                taxable_base=line_base,
                tax=line_tax,
            )
        )

    return Allocation(
        lines=tuple(allocations),
        order_base=order_base,
        order_discount=order_discount,
        order_discount_amount=order_discount_amount,
        subtotal=subtotal,
        tax=tax,
        total=order_base - order_discount_amount,
    )
