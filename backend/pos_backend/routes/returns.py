# Overview: Flask API routes for returns; parses input and returns JSON responses.

# backend/pos_backend/routes/returns.py
"""
Return API routes.

A return is a new sale record with negated amounts that puts stock back.
It may reference the original sale or stand alone.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import SaleError
from ..services import sales_service
from ..services.concurrency import run_with_retry


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("/")
def create_return_route():
    """
    Create a return.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2, ...}],  (positive quantities)
        "payment_type_id": 1,
        "order_discount": {"kind": "percentage", "value": 10},  (optional)
        "original_sale_id": 123,  (optional)
        "note": "Customer changed mind"  (optional)
    }

    Returns:
        201: Return created
        400: Invalid cart
        404: Original sale not found
        409: Original voided, or return exceeds quantities sold
    """
    try:
        data = request.get_json(silent=True) or {}

        return_sale = run_with_retry(lambda: sales_service.create_return(
            data.get("items"),
            payment_type_id=data.get("payment_type_id"),
            order_discount=data.get("order_discount"),
            original_sale_id=data.get("original_sale_id"),
            note=data.get("note"),
        ))

        return jsonify({"sale": return_sale.to_dict(include_items=True)}), 201

    except SaleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500
