"""
Money math shared by the line allocator and tax reconciliation.

All amounts are Decimal and stay unrounded through a calculation; callers
round with quantize_money() only when persisting or reporting.

Tax is extracted from tax-inclusive amounts as a straight percentage of the
inclusive amount (tax = inclusive * rate / 100), NOT as the algebraic inverse
inclusive * rate / (100 + rate). Reconciliation reports rely on the same
formula, so the two must change together.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Sequence

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

DISCOUNT_NONE = "none"
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_AMOUNT = "amount"
DISCOUNT_KINDS = (DISCOUNT_NONE, DISCOUNT_PERCENTAGE, DISCOUNT_AMOUNT)


def quantize_money(value) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    if value is None:
        return ZERO.quantize(CENT)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_discount(kind: str | None, value: Decimal | None, base: Decimal) -> Decimal:
    """
    Resolve a discount descriptor against the amount it discounts.

    percentage -> base * value / 100
    amount     -> min(value, base)
    none/None  -> 0

    The result is always within [0, base].
    """
    if kind is None or kind == DISCOUNT_NONE or value is None:
        return ZERO
    if kind not in DISCOUNT_KINDS:
        raise ValueError(f"Unknown discount kind: {kind}")
    if value < 0:
        raise ValueError("Discount value cannot be negative")
    if base <= 0:
        return ZERO

    if kind == DISCOUNT_PERCENTAGE:
        amount = base * value / HUNDRED
    else:
        amount = value

    return min(amount, base)


def extract_tax(inclusive_amount: Decimal, rate_percent: Decimal) -> tuple[Decimal, Decimal]:
    """Split a tax-inclusive amount into (base, tax)."""
    if rate_percent is None or rate_percent <= 0:
        return inclusive_amount, ZERO
    tax = inclusive_amount * rate_percent / HUNDRED
    return inclusive_amount - tax, tax


def expected_tax(line_total: Decimal, rate_percent: Decimal) -> Decimal:
    """Tax a tax-inclusive line total should have carried."""
    return extract_tax(line_total, rate_percent)[1]


def split_money(amount: Decimal, weights: Sequence[Decimal]) -> list[Decimal]:
    """
    Split a rounded, non-negative amount across non-negative weights.

    Each share is truncated to the cent; the cents left over go one at a
    time to the shares that lost the most to truncation (earlier shares win
    ties). The shares always sum to amount exactly.
    """
    amount = quantize_money(amount)
    total_weight = sum(weights, ZERO)
    if amount == 0:
        return [ZERO.quantize(CENT) for _ in weights]
    if total_weight <= 0:
        raise ValueError("Cannot split a non-zero amount across zero weights")

    exact = [amount * weight / total_weight for weight in weights]
    shares = [value.quantize(CENT, rounding=ROUND_DOWN) for value in exact]

    leftover_cents = int((amount - sum(shares, ZERO)) / CENT)
    by_remainder = sorted(
        range(len(shares)),
        key=lambda i: (-(exact[i] - shares[i]), i),
    )
    for i in by_remainder[:leftover_cents]:
        shares[i] += CENT
    return shares
