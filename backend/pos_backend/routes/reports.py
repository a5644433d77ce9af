from flask import Blueprint, jsonify, request

from pos_backend.errors import SaleError
from pos_backend.services import reporting_service, tax_reconciliation_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args() -> dict:
    return {
        "start": request.args.get("start"),
        "end": request.args.get("end"),
        "include_voided": request.args.get("include_voided", "false").lower() == "true",
    }


@reports_bp.get("/sales-summary")
def sales_summary_report():
    try:
        return jsonify(reporting_service.sales_summary(**_range_args())), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/sales-by-payment")
def sales_by_payment_report():
    try:
        return jsonify(reporting_service.sales_by_payment(**_range_args())), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/top-products")
def top_products_report():
    limit = request.args.get("limit", 10, type=int)
    try:
        return jsonify(reporting_service.top_products(limit=limit, **_range_args())), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/daily-sales")
def daily_sales_report():
    try:
        return jsonify(reporting_service.daily_sales(**_range_args())), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/product-sales")
def product_sales_report():
    product_id = request.args.get("product_id", type=int)
    try:
        report = reporting_service.product_sales(product_id=product_id, **_range_args())
        return jsonify(report), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/tax-reconciliation")
def tax_reconciliation_report():
    try:
        return jsonify(tax_reconciliation_service.tax_reconciliation(**_range_args())), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@reports_bp.get("/tax-reconciliation/daily")
def daily_tax_reconciliation_report():
    try:
        rows = tax_reconciliation_service.daily_tax_reconciliation(**_range_args())
        return jsonify({"rows": rows}), 200
    except SaleError as exc:
        return jsonify(exc.to_dict()), exc.status_code
