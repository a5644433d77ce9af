"""
Tax reconciliation: how much tax should have been collected vs. what the
engine recorded.

Read-only. Expected tax per item uses the same straight-percentage formula
as the line allocator (money.expected_tax on the stored tax-inclusive
line_total). The sale's recorded tax is spread back over its taxable items
in proportion to their expected tax; an item whose share falls below
expected * TAX_EXCLUSION_TOLERANCE is flagged as tax-excluded.

Return sales carry negative amounts, so the tolerance test compares
magnitudes.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from flask import current_app

from pos_backend.extensions import db
from pos_backend.models import Sale, SaleItem
from pos_backend.money import ZERO, expected_tax, quantize_money
from pos_backend.time_utils import to_utc_z
from .reporting_service import apply_sale_filters, parse_range


def _tolerance() -> Decimal:
    return Decimal(str(current_app.config.get("TAX_EXCLUSION_TOLERANCE", 0.95)))


def _taxable_items(session, start_dt, end_dt, include_voided: bool):
    query = session.query(SaleItem, Sale).join(Sale, SaleItem.sale_id == Sale.id).filter(
        SaleItem.is_taxable.is_(True),
        SaleItem.tax_rate > 0,
    )
    query = apply_sale_filters(query, start_dt, end_dt, include_voided)
    return query.order_by(
        Sale.created_at.desc(),
        SaleItem.product_name.asc(),
        SaleItem.id.asc(),
    ).all()


def _day(dt: datetime) -> str:
    return dt.date().isoformat()


def tax_reconciliation(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    include_voided: bool = False,
    session=None,
) -> dict:
    """
    Per-item expected/actual/excluded tax plus a summary.

    Tax-exempt lines on taxable products are included on purpose: their
    expected tax is what was not collected.
    """
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)
    tolerance = _tolerance()

    rows = _taxable_items(session, start_dt, end_dt, include_voided)

    expected_by_item: dict[int, Decimal] = {}
    expected_by_sale: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for item, sale in rows:
        expected = expected_tax(Decimal(item.line_total), Decimal(item.tax_rate))
        expected_by_item[item.id] = expected
        expected_by_sale[sale.id] += expected

    details = []
    total_expected = total_actual = total_excluded = ZERO
    excluded_count = 0
    for item, sale in rows:
        expected = expected_by_item[item.id]
        sale_expected = expected_by_sale[sale.id]
        recorded = Decimal(sale.tax_amount or 0)

        if sale_expected != 0:
            actual = recorded * expected / sale_expected
            is_excluded = abs(actual) < abs(expected) * tolerance
        else:
            actual = ZERO
            is_excluded = True
        excluded = expected - actual

        total_expected += expected
        total_actual += actual
        total_excluded += excluded
        if is_excluded:
            excluded_count += 1

        details.append({
            "sale_item_id": item.id,
            "sale_id": sale.id,
            "sale_number": sale.sale_number,
            "sale_date": to_utc_z(sale.created_at),
            "product_name": item.product_name,
            "barcode": item.barcode,
            "quantity": item.quantity,
            "unit_price": quantize_money(item.unit_price),
            "line_total": quantize_money(item.line_total),
            "tax_rate": Decimal(item.tax_rate),
            "tax_exempt": item.tax_exempt,
            "sale_tax_amount": quantize_money(recorded),
            "expected_base": quantize_money(Decimal(item.line_total) - expected),
            "expected_tax": quantize_money(expected),
            "actual_tax": quantize_money(actual),
            "excluded_tax": quantize_money(excluded),
            "is_tax_excluded": is_excluded,
        })

    summary = {
        "total_items": len(details),
        "total_expected_tax": quantize_money(total_expected),
        "total_actual_tax": quantize_money(total_actual),
        "total_excluded_tax": quantize_money(total_excluded),
        "items_tax_excluded": excluded_count,
        "items_tax_included": len(details) - excluded_count,
    }

    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "summary": summary,
        "details": details,
    }


def daily_tax_reconciliation(
    *,
    start: str | datetime | None = None,
    end: str | datetime | None = None,
    include_voided: bool = False,
    session=None,
) -> list[dict]:
    """
    Expected vs. recorded tax per calendar day (UTC), newest day first.

    recorded_tax sums the tax of every sale that day; expected_tax sums the
    expected tax of that day's taxable items. excluded_tax never goes below 0.
    """
    session = session or db.session
    start_dt, end_dt = parse_range(start, end)

    sales = apply_sale_filters(session.query(Sale), start_dt, end_dt, include_voided).all()

    sale_count: dict[str, int] = defaultdict(int)
    recorded: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for sale in sales:
        day = _day(sale.created_at)
        sale_count[day] += 1
        recorded[day] += Decimal(sale.tax_amount or 0)

    expected: dict[str, Decimal] = defaultdict(lambda: ZERO)
    item_count: dict[str, int] = defaultdict(int)
    for item, sale in _taxable_items(session, start_dt, end_dt, include_voided):
        day = _day(sale.created_at)
        expected[day] += expected_tax(Decimal(item.line_total), Decimal(item.tax_rate))
        item_count[day] += 1

    result = []
    for day in sorted(sale_count, reverse=True):
        excluded = expected[day] - recorded[day]
        result.append({
            "date": day,
            "sale_count": sale_count[day],
            "taxable_item_count": item_count[day],
            "recorded_tax": quantize_money(recorded[day]),
            "expected_tax": quantize_money(expected[day]),
            "excluded_tax": quantize_money(excluded if excluded > 0 else ZERO),
        })
    return result
