# Overview: Flask API routes for payment types.

from flask import Blueprint, jsonify

from ..extensions import db
from ..models import PaymentType


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payment-types")


@payments_bp.get("/")
def list_payment_types_route():
    """Active payment types, by name."""
    payment_types = db.session.query(PaymentType).filter(
        PaymentType.is_active.is_(True)
    ).order_by(PaymentType.name.asc()).all()
    return jsonify({"payment_types": [pt.to_dict() for pt in payment_types]}), 200
