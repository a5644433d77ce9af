from __future__ import annotations

from ..extensions import db
from ..money import quantize_money
from pos_backend.time_utils import to_utc_z


def _money(value) -> str | None:
    return str(quantize_money(value)) if value is not None else None


class Sale(db.Model):
    """
    One checkout transaction (or a return, when is_return is set).

    Amounts are written once at creation and never edited. Voiding only flips
    is_voided/voided_at. A return is a separate Sale with negated amounts,
    optionally pointing at the sale it reverses through original_sale_id.

    total_amount = subtotal + tax_amount
    change_amount = amount_tendered - total_amount
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_voided_created", "is_voided", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "SALE-1760900000000-9F2C4A1B0E7D6C55")
    sale_number = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Tax-exclusive sum of line bases after all discounts
    subtotal = db.Column(db.Numeric(18, 2), nullable=False)

    # Order-level discount descriptor
    discount_type = db.Column(db.String(16), nullable=True)  # percentage, amount
    discount_value = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    tax_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(18, 2), nullable=False)

    payment_type_id = db.Column(db.Integer, db.ForeignKey("payment_types.id"), nullable=True, index=True)
    amount_tendered = db.Column(db.Numeric(18, 2), nullable=False)
    change_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    note = db.Column(db.String(500), nullable=True)

    # Void is a status flag, not a reversal
    is_voided = db.Column(db.Boolean, nullable=False, default=False)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Returns
    is_return = db.Column(db.Boolean, nullable=False, default=False, index=True)
    original_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    # Optimistic lock counter; bumps on void/unvoid, so it stays out of to_dict()
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payment_type = db.relationship("PaymentType")
    original_sale = db.relationship(
        "Sale",
        remote_side=[id],
        backref=db.backref("returns", lazy=True),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "created_at": to_utc_z(self.created_at),
            "subtotal": _money(self.subtotal),
            "discount_type": self.discount_type,
            "discount_value": _money(self.discount_value),
            "discount_amount": _money(self.discount_amount),
            "tax_amount": _money(self.tax_amount),
            "total_amount": _money(self.total_amount),
            "payment_type_id": self.payment_type_id,
            "payment_type_name": self.payment_type.name if self.payment_type else None,
            "amount_tendered": _money(self.amount_tendered),
            "change_amount": _money(self.change_amount),
            "note": self.note,
            "is_voided": self.is_voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "is_return": self.is_return,
            "original_sale_id": self.original_sale_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    One line on a sale.

    Product name/barcode/price/tax settings are snapshotted at sale time so
    receipts stay accurate after the catalog changes.

    line_total is tax-inclusive, after the line's own discount and before the
    order discount share (order_discount_amount). quantity, line_total and
    tax_amount are negative on return lines; unit_price never is.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.Index("ix_sale_items_taxable", "is_taxable", "tax_rate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Snapshot
    product_name = db.Column(db.String(200), nullable=False)
    barcode = db.Column(db.String(100), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(18, 2), nullable=False)

    # Item discount descriptor
    discount_type = db.Column(db.String(16), nullable=True)
    discount_value = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    # Prorated share of the order-level discount
    order_discount_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    is_taxable = db.Column(db.Boolean, nullable=False, default=True)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    tax_exempt = db.Column(db.Boolean, nullable=False, default=False)
    tax_amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)

    line_total = db.Column(db.Numeric(18, 2), nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, order_by="SaleItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "discount_type": self.discount_type,
            "discount_value": _money(self.discount_value),
            "discount_amount": _money(self.discount_amount),
            "order_discount_amount": _money(self.order_discount_amount),
            "is_taxable": self.is_taxable,
            "tax_rate": str(self.tax_rate),
            "tax_exempt": self.tax_exempt,
            "tax_amount": _money(self.tax_amount),
            "line_total": _money(self.line_total),
        }
