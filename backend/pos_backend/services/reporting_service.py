# Overview: Read-only sales reports over persisted sales and sale items.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from pos_backend.errors import InvalidRequestError
from pos_backend.extensions import db
from pos_backend.models import PaymentType, Sale, SaleItem
from pos_backend.money import quantize_money
from pos_backend.time_utils import parse_date_range, to_utc_z


def parse_range(
    start: str | datetime | None,
    end: str | datetime | None,
) -> tuple[datetime | None, datetime | None]:
    """
    Normalize report bounds to a half-open [start, end) range.

    Strings are ISO-8601; a date-only end covers that whole day.
    datetimes are taken as-is (end exclusive).
    """
    if isinstance(start, datetime) or isinstance(end, datetime):
        if not all(v is None or isinstance(v, datetime) for v in (start, end)):
            raise InvalidRequestError("start and end must both be datetimes or strings")
        start_dt, end_dt = start, end
    else:
        try:
            start_dt, end_dt = parse_date_range(start, end)
        except ValueError:
            raise InvalidRequestError(
                "start and end must be ISO-8601 dates or datetimes",
                details={"start": start, "end": end},
            )
    if start_dt and end_dt and end_dt <= start_dt:
        raise InvalidRequestError("end must be after start")
    return start_dt, end_dt


def apply_sale_filters(query, start_dt, end_dt, include_voided: bool):
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at < end_dt)
    if not include_voided:
        query = query.filter(Sale.is_voided.is_(False))
    return query


def _range_dict(start_dt, end_dt) -> dict:
    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
    }


def _money(value):
    return quantize_money(value or 0)


def _sale_aggregates():
    return (
        func.count(Sale.id).label("sale_count"),
        func.coalesce(func.sum(Sale.total_amount), 0).label("total_revenue"),
        func.coalesce(func.sum(Sale.subtotal), 0).label("total_subtotal"),
        func.coalesce(func.sum(Sale.tax_amount), 0).label("total_tax"),
        func.coalesce(func.sum(Sale.discount_amount), 0).label("total_discounts"),
    )


def sales_summary(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    include_voided: bool = False,
    session=None,
) -> dict:
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)

    query = session.query(
        *_sale_aggregates(),
        func.coalesce(func.sum(Sale.amount_tendered), 0).label("total_tendered"),
        func.coalesce(func.sum(Sale.change_amount), 0).label("total_change"),
    )
    row = apply_sale_filters(query, start_dt, end_dt, include_voided).one()

    return {
        **_range_dict(start_dt, end_dt),
        "sale_count": int(row.sale_count or 0),
        "total_revenue": _money(row.total_revenue),
        "total_subtotal": _money(row.total_subtotal),
        "total_tax": _money(row.total_tax),
        "total_discounts": _money(row.total_discounts),
        "total_tendered": _money(row.total_tendered),
        "total_change": _money(row.total_change),
    }


def sales_by_payment(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    include_voided: bool = False,
    session=None,
) -> dict:
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)

    query = session.query(
        PaymentType.name.label("payment_name"),
        *_sale_aggregates(),
    ).outerjoin(PaymentType, Sale.payment_type_id == PaymentType.id)
    query = apply_sale_filters(query, start_dt, end_dt, include_voided)
    rows = query.group_by(PaymentType.name).all()

    result = [
        {
            "payment_name": row.payment_name,
            "sale_count": int(row.sale_count or 0),
            "total_revenue": _money(row.total_revenue),
            "total_subtotal": _money(row.total_subtotal),
            "total_tax": _money(row.total_tax),
        }
        for row in rows
    ]
    result.sort(key=lambda r: r["total_revenue"], reverse=True)
    return {**_range_dict(start_dt, end_dt), "rows": result}


def top_products(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    limit: int = 10,
    include_voided: bool = False,
    session=None,
) -> dict:
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)
    if limit is not None and limit <= 0:
        raise InvalidRequestError("limit must be positive")

    revenue = func.coalesce(func.sum(SaleItem.line_total), 0)
    query = session.query(
        SaleItem.product_name.label("product_name"),
        func.coalesce(func.sum(SaleItem.quantity), 0).label("total_quantity"),
        revenue.label("total_revenue"),
        func.count(func.distinct(SaleItem.sale_id)).label("sale_count"),
    ).join(Sale, SaleItem.sale_id == Sale.id)
    query = apply_sale_filters(query, start_dt, end_dt, include_voided)
    query = query.group_by(SaleItem.product_name).order_by(revenue.desc())
    if limit:
        query = query.limit(limit)

    return {
        **_range_dict(start_dt, end_dt),
        "rows": [
            {
                "product_name": row.product_name,
                "total_quantity": int(row.total_quantity or 0),
                "total_revenue": _money(row.total_revenue),
                "sale_count": int(row.sale_count or 0),
            }
            for row in query.all()
        ],
    }


def daily_sales(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    include_voided: bool = False,
    session=None,
) -> dict:
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)

    day = func.date(Sale.created_at)
    query = session.query(day.label("day"), *_sale_aggregates())
    query = apply_sale_filters(query, start_dt, end_dt, include_voided)
    rows = query.group_by(day).order_by(day.desc()).all()

    return {
        **_range_dict(start_dt, end_dt),
        "rows": [
            {
                "date": str(row.day),
                "sale_count": int(row.sale_count or 0),
                "total_revenue": _money(row.total_revenue),
                "total_subtotal": _money(row.total_subtotal),
                "total_tax": _money(row.total_tax),
                "total_discounts": _money(row.total_discounts),
            }
            for row in rows
        ],
    }


def product_sales(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    product_id: int | None = None,
    include_voided: bool = False,
    session=None,
) -> dict:
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)

    revenue = func.coalesce(func.sum(SaleItem.line_total), 0)
    query = session.query(
        SaleItem.product_name.label("product_name"),
        SaleItem.barcode.label("barcode"),
        func.coalesce(func.sum(SaleItem.quantity), 0).label("total_quantity"),
        func.avg(SaleItem.unit_price).label("avg_unit_price"),
        revenue.label("total_revenue"),
        func.coalesce(func.sum(SaleItem.discount_amount), 0).label("total_discounts"),
        func.count(func.distinct(SaleItem.sale_id)).label("sale_count"),
    ).join(Sale, SaleItem.sale_id == Sale.id)
    if product_id is not None:
        query = query.filter(SaleItem.product_id == product_id)
    query = apply_sale_filters(query, start_dt, end_dt, include_voided)
    rows = query.group_by(SaleItem.product_name, SaleItem.barcode).order_by(revenue.desc()).all()

    return {
        **_range_dict(start_dt, end_dt),
        "product_id": product_id,
        "rows": [
            {
                "product_name": row.product_name,
                "barcode": row.barcode,
                "total_quantity": int(row.total_quantity or 0),
                "avg_unit_price": _money(row.avg_unit_price),
                "total_revenue": _money(row.total_revenue),
                "total_discounts": _money(row.total_discounts),
                "sale_count": int(row.sale_count or 0),
            }
            for row in rows
        ],
    }
