"""Supplier item catalog

Revision ID: 20261020_supplier_items
Revises: 20261019_initial
Create Date: 2026-10-20

This migration adds:
1. supplier_items: one row per (supplier, inventory item) with the supplier's
   SKU, quoted unit cost, minimum order quantity and a preferred flag
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261020_supplier_items'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. SUPPLIER ITEMS
    # ==========================================================================
    op.create_table('supplier_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('supplier_sku', sa.String(length=64), nullable=True),
        sa.Column('unit_cost', sa.Numeric(12, 4), nullable=False, server_default='0'),
        sa.Column('min_order_qty', sa.Numeric(14, 3), nullable=True),
        sa.Column('is_preferred', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('supplier_id', 'inventory_item_id', name='uq_supplier_items_supplier_item'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_supplier_items_supplier_id', 'supplier_items', ['supplier_id'])
    op.create_index('ix_supplier_items_item_preferred', 'supplier_items', ['inventory_item_id', 'is_preferred'])


def downgrade():
    op.drop_table('supplier_items')
