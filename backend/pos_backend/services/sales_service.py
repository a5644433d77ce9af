"""
Sale transaction engine.

Every write operation (create, void, unvoid, return) runs as one atomic
unit on the session it is given: the sale row, its item rows and the stock
counter changes commit together or not at all.

A sale's amounts are never edited after creation. Voiding flips a flag;
a return is a new sale with negated amounts that increments stock back.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import ConflictError, InvalidRequestError, NotFoundError
from ..extensions import db
from ..models import PaymentType, Product, Sale, SaleItem
from ..money import ZERO, quantize_money, split_money
from ..time_utils import to_utc_z, utcnow
from ..validation import CartItem, parse_cart, parse_discount, parse_note, parse_optional_money
from .concurrency import lock_for_update, unit_of_work
from .pricing_service import Allocation, Discount, LineRequest, allocate


logger = logging.getLogger(__name__)


def generate_sale_number(prefix: str = "SALE") -> str:
    """
    <prefix>-<epoch millis>-<64 random bits as hex>.

    The unique constraint on sales.sale_number backs this up; a collision
    fails the whole unit instead of reusing a number.
    """
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(8).upper()}"


def _signed(value: Decimal, sign: int) -> Decimal:
    # keep zero unsigned so it never serializes as "-0.00"
    return -value if sign < 0 and value else value


def _load_products(session, items: list[CartItem]) -> dict[int, Product]:
    product_ids = sorted({item.product_id for item in items})
    # Lock in id order so two carts touching the same products cannot deadlock
    products = lock_for_update(
        session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
    ).all()
    by_id = {product.id: product for product in products}

    missing = [pid for pid in product_ids if pid not in by_id]
    if missing:
        raise InvalidRequestError("Unknown product", details={"product_ids": missing})
    return by_id


def _line_request(item: CartItem, product: Product) -> LineRequest:
    """Fill values the cart left out from the product's current catalog row."""
    taxable = item.taxable if item.taxable is not None else bool(product.is_taxable)
    if item.tax_rate is not None:
        tax_rate = item.tax_rate
    else:
        tax_rate = Decimal(product.tax_rate or 0)

    return LineRequest(
        product_id=product.id,
        quantity=item.quantity,
        unit_price=item.unit_price if item.unit_price is not None else Decimal(product.price),
        discount=item.discount,
        taxable=taxable,
        tax_rate=tax_rate if taxable else ZERO,
        tax_exempt=item.tax_exempt,
    )


def _check_payment_type(session, payment_type_id: int | None) -> None:
    if payment_type_id is None:
        return
    if session.get(PaymentType, payment_type_id) is None:
        raise InvalidRequestError(
            f"Payment type {payment_type_id} not found",
            details={"payment_type_id": payment_type_id},
        )


def _check_returnable(session, original: Sale, items: list[CartItem]) -> None:
    """
    A linked return may not take back more of a product than the original
    sale sold, counting earlier non-voided returns against the same sale.
    """
    sold: dict[int, int] = defaultdict(int)
    for line in original.items:
        sold[line.product_id] += line.quantity

    returned: dict[int, int] = defaultdict(int)
    earlier = session.query(SaleItem).join(Sale, SaleItem.sale_id == Sale.id).filter(
        Sale.original_sale_id == original.id,
        Sale.is_return.is_(True),
        Sale.is_voided.is_(False),
    ).all()
    for line in earlier:
        returned[line.product_id] += abs(line.quantity)

    requested: dict[int, int] = defaultdict(int)
    for item in items:
        requested[item.product_id] += item.quantity

    over = []
    for product_id, qty in requested.items():
        available = sold[product_id] - returned[product_id]
        if qty > available:
            over.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "sold_quantity": sold[product_id],
                "already_returned": returned[product_id],
            })

    if over:
        raise ConflictError(
            f"Return exceeds quantities sold on sale {original.sale_number}",
            details={"items": over},
        )


def _build_sale(
    allocation: Allocation,
    lines: list[tuple[CartItem, Product]],
    *,
    sign: int,
    sale_number: str,
    payment_type_id: int | None,
    amount_tendered: Decimal | None,
    note: str | None,
    original_sale_id: int | None,
) -> Sale:
    """
    Round the allocation once and lay it out as Sale + SaleItem rows.

    Each stored line total is exactly quantity * unit_price minus its stored
    discount. The order discount and the tax are rounded at sale level and
    split across the lines, so the line columns always add up to the sale's.
    """
    item_discounts = [quantize_money(line.discount_amount) for line in allocation.lines]
    line_totals = [
        quantize_money(line.raw_total) - discount
        for line, discount in zip(allocation.lines, item_discounts)
    ]
    order_base = sum(line_totals, ZERO)

    order_discount_amount = min(quantize_money(allocation.order_discount_amount), order_base)
    order_shares = split_money(
        order_discount_amount,
        [line.discounted_total for line in allocation.lines],
    )
    line_taxes = split_money(allocation.tax, [line.tax for line in allocation.lines])

    total = order_base - order_discount_amount
    tax = sum(line_taxes, ZERO)
    # Derived so total == subtotal + tax holds exactly
    subtotal = total - tax

    if amount_tendered is None:
        tendered = total
    else:
        tendered = quantize_money(amount_tendered)
        if tendered < total:
            raise InvalidRequestError(
                "Amount tendered is less than the sale total",
                details={"amount_tendered": str(tendered), "total_amount": str(total)},
            )
    change = tendered - total

    order_discount = allocation.order_discount
    sale = Sale(
        sale_number=sale_number,
        created_at=utcnow(),
        subtotal=_signed(subtotal, sign),
        discount_type=order_discount.kind if order_discount else None,
        discount_value=quantize_money(order_discount.value) if order_discount else ZERO,
        discount_amount=order_discount_amount,
        tax_amount=_signed(tax, sign),
        total_amount=_signed(total, sign),
        payment_type_id=payment_type_id,
        amount_tendered=_signed(tendered, sign),
        change_amount=_signed(change, sign),
        note=note,
        is_voided=False,
        is_return=sign < 0,
        original_sale_id=original_sale_id,
    )

    for i, (item, product) in enumerate(lines):
        request = allocation.lines[i].request
        discount = request.discount
        sale.items.append(
            SaleItem(
                product_id=product.id,
                product_name=item.product_name or product.name,
                barcode=item.barcode or product.barcode,
                quantity=sign * request.quantity,
                unit_price=quantize_money(request.unit_price),
                discount_type=discount.kind if discount else None,
                discount_value=quantize_money(discount.value) if discount else ZERO,
                discount_amount=item_discounts[i],
                order_discount_amount=order_shares[i],
                is_taxable=request.taxable,
                tax_rate=request.tax_rate,
                tax_exempt=request.tax_exempt,
                tax_amount=_signed(line_taxes[i], sign),
                line_total=_signed(line_totals[i], sign),
            )
        )

    return sale


def _record_sale(
    session,
    items,
    *,
    sign: int,
    payment_type_id: int | None,
    amount_tendered,
    order_discount,
    note: str | None,
    original_sale_id: int | None = None,
) -> Sale:
    cart = parse_cart(items)
    if isinstance(order_discount, Discount):
        discount = order_discount
    else:
        discount = parse_discount(order_discount, key="order_discount")
    tendered = parse_optional_money("amount_tendered", amount_tendered)
    note = parse_note(note)

    prefix_key = "RETURN_NUMBER_PREFIX" if sign < 0 else "SALE_NUMBER_PREFIX"
    prefix = current_app.config.get(prefix_key, "RET" if sign < 0 else "SALE")

    with unit_of_work(session):
        _check_payment_type(session, payment_type_id)

        if original_sale_id is not None:
            original = lock_for_update(session.query(Sale).filter_by(id=original_sale_id)).first()
            if not original:
                raise NotFoundError(
                    f"Sale {original_sale_id} not found",
                    details={"sale_id": original_sale_id},
                )
            if original.is_return:
                raise InvalidRequestError("Cannot return against a return")
            if original.is_voided:
                raise ConflictError(
                    f"Sale {original.sale_number} is voided",
                    details={"sale_id": original.id},
                )
            _check_returnable(session, original, cart)

        products = _load_products(session, cart)
        lines = [(item, products[item.product_id]) for item in cart]
        allocation = allocate([_line_request(item, product) for item, product in lines], discount)

        sale = _build_sale(
            allocation,
            lines,
            sign=sign,
            sale_number=generate_sale_number(prefix),
            payment_type_id=payment_type_id,
            amount_tendered=tendered if sign > 0 else None,
            note=note,
            original_sale_id=original_sale_id,
        )
        session.add(sale)

        # Sale decrements, return increments
        for item, product in lines:
            product.stock_quantity = (product.stock_quantity or 0) - sign * item.quantity

        session.flush()

    logger.info(
        "%s %s recorded: total=%s tax=%s items=%d",
        "Return" if sign < 0 else "Sale",
        sale.sale_number,
        sale.total_amount,
        sale.tax_amount,
        len(sale.items),
    )
    return sale


def create_sale(
    items,
    *,
    payment_type_id: int | None = None,
    amount_tendered=None,
    order_discount=None,
    note: str | None = None,
    session=None,
) -> Sale:
    """
    Create a completed sale from a cart and decrement stock.

    items: list of {"product_id", "quantity", optional "unit_price",
    "discount": {"kind", "value"}, "taxable", "tax_rate", "tax_exempt",
    "product_name", "barcode"}. Omitted price/tax values come from the
    product's catalog row.

    amount_tendered defaults to the computed total.

    Raises:
        InvalidRequestError: bad cart, unknown product or payment type,
            tendered below total
        PersistenceError: store failure (the unit was rolled back)
    """
    return _record_sale(
        session or db.session,
        items,
        sign=1,
        payment_type_id=payment_type_id,
        amount_tendered=amount_tendered,
        order_discount=order_discount,
        note=note,
    )


def create_return(
    items,
    *,
    payment_type_id: int | None = None,
    order_discount=None,
    original_sale_id: int | None = None,
    note: str | None = None,
    session=None,
) -> Sale:
    """
    Create a return: same allocation as a sale, every quantity and amount
    negated, stock incremented by the returned quantities.

    Quantities in items are given as positive numbers. original_sale_id is
    optional; a standalone return is allowed.

    Raises:
        InvalidRequestError: bad cart, or original is itself a return
        NotFoundError: original_sale_id does not exist
        ConflictError: original is voided, or the return exceeds what it sold
        PersistenceError: store failure (the unit was rolled back)
    """
    return _record_sale(
        session or db.session,
        items,
        sign=-1,
        payment_type_id=payment_type_id,
        amount_tendered=None,
        order_discount=order_discount,
        note=note,
        original_sale_id=original_sale_id,
    )


def _locked_sale(session, sale_id: int) -> Sale:
    sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def void_sale(sale_id: int, *, session=None) -> Sale:
    """Flag a sale as voided. Amounts and stock are left as they were."""
    session = session or db.session
    with unit_of_work(session):
        sale = _locked_sale(session, sale_id)
        if sale.is_voided:
            raise ConflictError(
                "Sale already voided",
                details={"sale_id": sale.id, "voided_at": to_utc_z(sale.voided_at)},
            )
        sale.is_voided = True
        sale.voided_at = utcnow()

    logger.info("Sale %s voided", sale.sale_number)
    return sale


def unvoid_sale(sale_id: int, *, session=None) -> Sale:
    """Clear the void flag and timestamp."""
    session = session or db.session
    with unit_of_work(session):
        sale = _locked_sale(session, sale_id)
        if not sale.is_voided:
            raise ConflictError("Sale is not voided", details={"sale_id": sale.id})
        sale.is_voided = False
        sale.voided_at = None

    logger.info("Sale %s unvoided", sale.sale_number)
    return sale


def get_sale(sale_id: int, *, session=None) -> Sale:
    session = session or db.session
    sale = session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    include_voided: bool = True,
    limit: int | None = None,
    session=None,
) -> list[Sale]:
    """Sales in [start, end), newest first."""
    session = session or db.session
    query = session.query(Sale)
    if start:
        query = query.filter(Sale.created_at >= start)
    if end:
        query = query.filter(Sale.created_at < end)
    if not include_voided:
        query = query.filter(Sale.is_voided.is_(False))
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def list_returns_for_sale(sale_id: int, *, session=None) -> list[Sale]:
    session = session or db.session
    get_sale(sale_id, session=session)
    return session.query(Sale).filter(
        Sale.original_sale_id == sale_id,
        Sale.is_return.is_(True),
    ).order_by(Sale.created_at.asc(), Sale.id.asc()).all()
