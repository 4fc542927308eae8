"""create pharmacy tables

Revision ID: 1a7c3e9d52f0
Revises:
Create Date: 2026-10-19 09:12:41.508311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '1a7c3e9d52f0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    """Medicines, their batches, sale orders and the audit trails."""
    op.create_table(
        'medicines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('sku', sa.String(), nullable=False),
        sa.Column('unit', sa.String(), nullable=False),
        sa.Column('usage', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('min_stock_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sell_price', sa.BigInteger(), nullable=False),
        sa.Column('cost_price', sa.BigInteger(), nullable=False),
        sa.Column('units_per_blister', sa.Integer(), nullable=True),
        sa.Column('blisters_per_box', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('manufacturer', sa.String(), nullable=True),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', 'tenant_id', name='_medicines_sku_tenant_uc'),
    )
    op.create_index(op.f('ix_medicines_id'), 'medicines', ['id'], unique=False)
    op.create_index(op.f('ix_medicines_name'), 'medicines', ['name'], unique=False)
    op.create_index(op.f('ix_medicines_tenant_id'), 'medicines', ['tenant_id'], unique=False)

    op.create_table(
        'inventory_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('batch_number', sa.String(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('import_date', sa.Date(), nullable=False),
        sa.Column('cost_price', sa.BigInteger(), nullable=False),
        sa.Column('original_quantity', sa.Integer(), nullable=False),
        sa.Column('current_quantity', sa.Integer(), nullable=False),
        sa.Column('supplier', sa.String(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamp_columns(),
        sa.CheckConstraint('current_quantity >= 0', name='ck_inventory_batches_current_non_negative'),
        sa.CheckConstraint('current_quantity <= original_quantity', name='ck_inventory_batches_current_le_original'),
        sa.ForeignKeyConstraint(['medicine_id'], ['medicines.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_inventory_batches_id'), 'inventory_batches', ['id'], unique=False)
    op.create_index(op.f('ix_inventory_batches_tenant_id'), 'inventory_batches', ['tenant_id'], unique=False)
    op.create_index('ix_inventory_batches_medicine_expiry', 'inventory_batches', ['tenant_id', 'medicine_id', 'expiry_date'], unique=False)

    op.create_table(
        'sale_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('patient_id', sa.String(), nullable=True),
        sa.Column('patient_name', sa.String(), nullable=False),
        sa.Column('total_amount', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.Enum('COMPLETED', 'CANCELLED', name='saleorderstatus'), nullable=False),
        sa.Column('sale_source', sa.Enum('WALK_IN', 'CLINIC', 'ONLINE', name='salesource'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sale_orders_id'), 'sale_orders', ['id'], unique=False)
    op.create_index(op.f('ix_sale_orders_tenant_id'), 'sale_orders', ['tenant_id'], unique=False)
    op.create_index(op.f('ix_sale_orders_patient_id'), 'sale_orders', ['patient_id'], unique=False)
    op.create_index('ix_sale_orders_tenant_created', 'sale_orders', ['tenant_id', 'created_at'], unique=False)

    op.create_table(
        'sale_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_order_id', sa.Integer(), nullable=False),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.BigInteger(), nullable=False),
        sa.Column('subtotal', sa.BigInteger(), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['sale_order_id'], ['sale_orders.id']),
        sa.ForeignKeyConstraint(['medicine_id'], ['medicines.id']),
        sa.ForeignKeyConstraint(['batch_id'], ['inventory_batches.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sale_order_items_id'), 'sale_order_items', ['id'], unique=False)
    op.create_index(op.f('ix_sale_order_items_tenant_id'), 'sale_order_items', ['tenant_id'], unique=False)

    op.create_table(
        'inventory_batch_audit',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('medicine_id', sa.Integer(), nullable=False),
        sa.Column('sale_order_id', sa.Integer(), nullable=True),
        sa.Column('change_type', sa.String(), nullable=False),
        sa.Column('change_amount', sa.Integer(), nullable=False),
        sa.Column('old_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['batch_id'], ['inventory_batches.id']),
        sa.ForeignKeyConstraint(['medicine_id'], ['medicines.id']),
        sa.ForeignKeyConstraint(['sale_order_id'], ['sale_orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_inventory_batch_audit_id'), 'inventory_batch_audit', ['id'], unique=False)
    op.create_index(op.f('ix_inventory_batch_audit_tenant_id'), 'inventory_batch_audit', ['tenant_id'], unique=False)

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_log_id'), 'audit_log', ['id'], unique=False)
    op.create_index(op.f('ix_audit_log_tenant_id'), 'audit_log', ['tenant_id'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('inventory_batch_audit')
    op.drop_table('sale_order_items')
    op.drop_table('sale_orders')
    op.drop_table('inventory_batches')
    op.drop_table('medicines')
    sa.Enum(name='salesource').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='saleorderstatus').drop(op.get_bind(), checkfirst=True)
