"""initial smartpos schema

Revision ID: b7c1e9d2a4f0
Revises:
Create Date: 2026-10-01 00:00:00.000000

Creates the SmartPOS schema from scratch:
- shops: owner scope of every other row
- products / stock_movements: catalog and append-only stock ledger
- customers: credit customers and their debt
- sales / sale_items: completed transactions with VAT breakdown
- shifts: cash-drawer periods, at most one open per shop
- full_tax_invoices / document_sequences: tax invoice register and numbering
- settings: deployment-wide singleton
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1e9d2a4f0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # products: stock is only changed through the stock ledger
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('price_satang', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('reorder_point', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'barcode', name='uq_products_shop_barcode'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_nonnegative'),
        sa.CheckConstraint('price_satang >= 0', name='ck_products_price_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_shop_id', 'products', ['shop_id'])
    op.create_index('ix_products_shop_name', 'products', ['shop_id', 'name'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False),
        sa.Column('note', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_source', 'stock_movements', ['source'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])
    op.create_index('ix_stock_movements_product_created', 'stock_movements', ['product_id', 'created_at'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('total_debt_satang', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'name', name='uq_customers_shop_name'),
        sa.CheckConstraint('total_debt_satang >= 0', name='ck_customers_debt_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_shop_id', 'customers', ['shop_id'])

    # ============================================================================
    # sales: immutable after creation
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('payment_type', sa.String(length=16), nullable=False),
        sa.Column('total_amount_satang', sa.Integer(), nullable=False),
        sa.Column('subtotal_satang', sa.Integer(), nullable=False),
        sa.Column('vat_rate_bps', sa.Integer(), nullable=False),
        sa.Column('vat_amount_satang', sa.Integer(), nullable=False),
        sa.Column('total_with_vat_satang', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_shop_id', 'sales', ['shop_id'])
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'])
    op.create_index('ix_sales_shop_created', 'sales', ['shop_id', 'created_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_satang', sa.Integer(), nullable=False),
        sa.Column('total_price_satang', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # shifts: partial unique index keeps one open shift per shop
    # ============================================================================
    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('shift_number', sa.Integer(), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('opening_cash_satang', sa.Integer(), nullable=False),
        sa.Column('closing_cash_satang', sa.Integer(), nullable=True),
        sa.Column('expected_cash_satang', sa.Integer(), nullable=False),
        sa.Column('actual_cash_satang', sa.Integer(), nullable=True),
        sa.Column('cash_difference_satang', sa.Integer(), nullable=True),
        sa.Column('total_sales_satang', sa.Integer(), nullable=False),
        sa.Column('cash_sales_satang', sa.Integer(), nullable=False),
        sa.Column('credit_sales_satang', sa.Integer(), nullable=False),
        sa.Column('sale_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'shift_date', 'shift_number', name='uq_shifts_shop_date_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shifts_shop_id', 'shifts', ['shop_id'])
    op.create_index('ix_shifts_status', 'shifts', ['status'])
    op.create_index('ix_shifts_shop_date', 'shifts', ['shop_id', 'shift_date'])
    op.create_index(
        'uq_shifts_one_open_per_shop',
        'shifts',
        ['shop_id'],
        unique=True,
        sqlite_where=sa.text("status = 'open'"),
        postgresql_where=sa.text("status = 'open'"),
    )

    # ============================================================================
    # full_tax_invoices: one per sale, numbers never reused
    # ============================================================================
    op.create_table(
        'full_tax_invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=32), nullable=False),
        sa.Column('seller_name', sa.String(length=255), nullable=False),
        sa.Column('seller_address', sa.Text(), nullable=False),
        sa.Column('seller_tax_id', sa.String(length=13), nullable=False),
        sa.Column('buyer_name', sa.String(length=255), nullable=False),
        sa.Column('buyer_address', sa.Text(), nullable=False),
        sa.Column('buyer_tax_id', sa.String(length=13), nullable=True),
        sa.Column('subtotal_satang', sa.Integer(), nullable=False),
        sa.Column('vat_amount_satang', sa.Integer(), nullable=False),
        sa.Column('total_with_vat_satang', sa.Integer(), nullable=False),
        sa.Column('issued_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_full_tax_invoices_sale'),
        sa.UniqueConstraint('shop_id', 'invoice_number', name='uq_full_tax_invoices_shop_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_full_tax_invoices_shop_id', 'full_tax_invoices', ['shop_id'])
    op.create_index('ix_full_tax_invoices_invoice_number', 'full_tax_invoices', ['invoice_number'])
    op.create_index('ix_full_tax_invoices_status', 'full_tax_invoices', ['status'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'document_type', 'period', name='uq_doc_sequences_shop_type_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_shop_id', 'document_sequences', ['shop_id'])

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('singleton_key', sa.String(length=16), nullable=False),
        sa.Column('vat_enabled', sa.Boolean(), nullable=False),
        sa.Column('seller_name', sa.String(length=255), nullable=False),
        sa.Column('seller_address', sa.Text(), nullable=False),
        sa.Column('seller_tax_id', sa.String(length=13), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('singleton_key', name='uq_settings_singleton'),
    )


def downgrade():
    op.drop_table('settings')
    op.drop_index('ix_document_sequences_shop_id', table_name='document_sequences')
    op.drop_table('document_sequences')
    op.drop_index('ix_full_tax_invoices_status', table_name='full_tax_invoices')
    op.drop_index('ix_full_tax_invoices_invoice_number', table_name='full_tax_invoices')
    op.drop_index('ix_full_tax_invoices_shop_id', table_name='full_tax_invoices')
    op.drop_table('full_tax_invoices')
    op.drop_index('uq_shifts_one_open_per_shop', table_name='shifts')
    op.drop_index('ix_shifts_shop_date', table_name='shifts')
    op.drop_index('ix_shifts_status', table_name='shifts')
    op.drop_index('ix_shifts_shop_id', table_name='shifts')
    op.drop_table('shifts')
    op.drop_index('ix_sale_items_product_id', table_name='sale_items')
    op.drop_index('ix_sale_items_sale_id', table_name='sale_items')
    op.drop_table('sale_items')
    op.drop_index('ix_sales_shop_created', table_name='sales')
    op.drop_index('ix_sales_customer_id', table_name='sales')
    op.drop_index('ix_sales_shop_id', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_customers_shop_id', table_name='customers')
    op.drop_table('customers')
    op.drop_index('ix_stock_movements_product_created', table_name='stock_movements')
    op.drop_index('ix_stock_movements_created_at', table_name='stock_movements')
    op.drop_index('ix_stock_movements_source', table_name='stock_movements')
    op.drop_index('ix_stock_movements_product_id', table_name='stock_movements')
    op.drop_table('stock_movements')
    op.drop_index('ix_products_shop_name', table_name='products')
    op.drop_index('ix_products_shop_id', table_name='products')
    op.drop_table('products')
    op.drop_table('shops')
