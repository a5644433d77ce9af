"""initial sale schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates:
- payment_types: how a sale was paid
- products: catalog rows with stock counter and optimistic version
- sales: sale and return headers (amounts negated on returns)
- sale_items: snapshotted lines, tax-inclusive line totals
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'payment_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_payment_types_name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('barcode', sa.String(length=100), nullable=True),
        sa.Column('sku', sa.String(length=50), nullable=True),
        sa.Column('price', sa.Numeric(18, 2), nullable=False),
        sa.Column('cost', sa.Numeric(18, 2), nullable=True),
        sa.Column('is_taxable', sa.Boolean(), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_active', 'products', ['is_active'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_number', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('subtotal', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_value', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('payment_type_id', sa.Integer(), nullable=True),
        sa.Column('amount_tendered', sa.Numeric(18, 2), nullable=False),
        sa.Column('change_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('note', sa.String(length=500), nullable=True),
        sa.Column('is_voided', sa.Boolean(), nullable=False),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_return', sa.Boolean(), nullable=False),
        sa.Column('original_sale_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['payment_type_id'], ['payment_types.id']),
        sa.ForeignKeyConstraint(['original_sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_number', name='uq_sales_sale_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_voided_created', 'sales', ['is_voided', 'created_at'])
    op.create_index(op.f('ix_sales_payment_type_id'), 'sales', ['payment_type_id'])
    op.create_index(op.f('ix_sales_is_return'), 'sales', ['is_return'])
    op.create_index(op.f('ix_sales_original_sale_id'), 'sales', ['original_sale_id'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('barcode', sa.String(length=100), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_value', sa.Numeric(18, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('order_discount_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('is_taxable', sa.Boolean(), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_exempt', sa.Boolean(), nullable=False),
        sa.Column('tax_amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(18, 2), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index(op.f('ix_sale_items_sale_id'), 'sale_items', ['sale_id'])
    op.create_index(op.f('ix_sale_items_product_id'), 'sale_items', ['product_id'])
    op.create_index('ix_sale_items_taxable', 'sale_items', ['is_taxable', 'tax_rate'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('payment_types')
