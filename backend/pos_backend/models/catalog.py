from __future__ import annotations

from ..extensions import db
from ..money import quantize_money
from pos_backend.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    The sale engine only reads name/barcode/price/tax settings as defaults
    for a cart line and moves stock_quantity. Everything else is owned by the
    catalog.

    stock_quantity is a plain counter: sales decrement it, returns increment
    it, and it may go negative. version_id makes concurrent writers to the
    same row fail loudly instead of losing an update.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False)
    barcode = db.Column(db.String(100), nullable=True, unique=True)
    sku = db.Column(db.String(50), nullable=True)

    # Catalog price is tax-inclusive
    price = db.Column(db.Numeric(18, 2), nullable=False)
    cost = db.Column(db.Numeric(18, 2), nullable=True)

    is_taxable = db.Column(db.Boolean, nullable=False, default=True)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "sku": self.sku,
            "price": str(quantize_money(self.price)),
            "cost": str(quantize_money(self.cost)) if self.cost is not None else None,
            "is_taxable": self.is_taxable,
            "tax_rate": str(self.tax_rate),
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PaymentType(db.Model):
    """How a sale was paid (Cash, Card, ...). Referenced, never owned, by sales."""
    __tablename__ = "payment_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_payment_types_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
        }
