# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pos_backend/routes/sales.py
"""Sales API routes: create, read, void, unvoid."""

from flask import Blueprint, request, jsonify, current_app

from ..errors import SaleError
from ..services import sales_service
from ..services.concurrency import run_with_retry
from ..services.reporting_service import parse_range


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
def create_sale_route():
    """
    Create a completed sale and decrement stock.

    Request body:
    {
        "items": [
            {"product_id": 1, "quantity": 2, "unit_price": "100.00",
             "discount": {"kind": "percentage", "value": 10},
             "taxable": true, "tax_rate": 15, "tax_exempt": false}
        ],
        "payment_type_id": 1,
        "amount_tendered": "200.00",  (optional, default: total)
        "order_discount": {"kind": "amount", "value": 5},  (optional)
        "note": "..."  (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = run_with_retry(lambda: sales_service.create_sale(
            data.get("items"),
            payment_type_id=data.get("payment_type_id"),
            amount_tendered=data.get("amount_tendered"),
            order_discount=data.get("order_discount"),
            note=data.get("note"),
        ))

        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    """List sales newest first. Query: start, end, include_voided, limit."""
    try:
        start_dt, end_dt = parse_range(request.args.get("start"), request.args.get("end"))
        include_voided = request.args.get("include_voided", "true").lower() == "true"
        limit = request.args.get("limit", type=int)

        sales = sales_service.list_sales(
            start=start_dt,
            end=end_dt,
            include_voided=include_voided,
            limit=limit,
        )
        return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with items and the ids of returns made against it."""
    try:
        sale = sales_service.get_sale(sale_id)
        returns = sales_service.list_returns_for_sale(sale_id)

        return jsonify({
            "sale": sale.to_dict(include_items=True),
            "return_ids": [r.id for r in returns],
        }), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<int:sale_id>/void")
def void_sale_route(sale_id: int):
    """
    Flag a sale as voided. Amounts stay as recorded.

    Returns:
        200: Sale voided
        404: Sale not found
        409: Sale already voided
    """
    try:
        sale = run_with_retry(lambda: sales_service.void_sale(sale_id))
        return jsonify({"sale": sale.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/unvoid")
def unvoid_sale_route(sale_id: int):
    """
    Clear the void flag on a sale.

    Returns:
        200: Sale restored
        404: Sale not found
        409: Sale is not voided
    """
    try:
        sale = run_with_retry(lambda: sales_service.unvoid_sale(sale_id))
        return jsonify({"sale": sale.to_dict()}), 200

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to unvoid sale")
        return jsonify({"error": "Internal server error"}), 500
