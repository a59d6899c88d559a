"""Initial schema: catalog, users, movements, replenishment orders, incidents

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 09:30:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None

record_state = sa.Enum('ACTIVE', 'INACTIVE', name='recordstate')


def upgrade():
    # Catalog
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('state', record_state, nullable=False, server_default='ACTIVE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_name', sa.String(length=150), nullable=False),
        sa.Column('tax_id', sa.String(length=11), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tax_id')
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=True),
        sa.Column('business_name', sa.String(length=150), nullable=True),
        sa.Column('national_id', sa.String(length=8), nullable=True),
        sa.Column('tax_id', sa.String(length=11), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customers_national_id', 'customers', ['national_id'], unique=True)
    op.create_index('ix_customers_tax_id', 'customers', ['tax_id'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_price', sa.DECIMAL(precision=10, scale=2), nullable=False, server_default='0.0'),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('state', record_state, nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('ADMIN', 'EMPLOYEE', name='userrole'), nullable=False, server_default='EMPLOYEE'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email')
    )

    # Replenishment orders, lines embedded as JSON
    op.create_table(
        'replenishment_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.Enum('IN_PROGRESS', 'COMPLETED', 'CANCELLED', name='orderstatus'), nullable=False),
        sa.Column('lines', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_replenishment_orders_supplier_id', 'replenishment_orders', ['supplier_id'])
    op.create_index('ix_replenishment_orders_created_at', 'replenishment_orders', ['created_at'])
    op.create_index('ix_replenishment_orders_status', 'replenishment_orders', ['status'])

    # Movements and their specializations
    op.create_table(
        'movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('kind', sa.Enum('SALE', 'PURCHASE', 'ADJUSTMENT', name='movementkind'), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_movements_kind', 'movements', ['kind'])
    op.create_index('ix_movements_occurred_at', 'movements', ['occurred_at'])

    op.create_table(
        'sale_movements',
        sa.Column('movement_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.Enum('RECEIPT', 'INVOICE', name='documenttype'), nullable=False),
        sa.Column('series', sa.String(length=4), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('total', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['movement_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('movement_id'),
        sa.UniqueConstraint('document_type', 'sequence', name='uq_sale_document_sequence')
    )

    op.create_table(
        'purchase_movements',
        sa.Column('movement_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('total', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['movement_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
        sa.ForeignKeyConstraint(['order_id'], ['replenishment_orders.id']),
        sa.PrimaryKeyConstraint('movement_id')
    )
    op.create_index('ix_purchase_movements_order_id', 'purchase_movements', ['order_id'])

    op.create_table(
        'adjustment_movements',
        sa.Column('movement_id', sa.Integer(), nullable=False),
        sa.Column('adjustment_kind', sa.Enum('SHORTAGE', 'OVERAGE', name='adjustmentkind'), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['movement_id'], ['movements.id']),
        sa.PrimaryKeyConstraint('movement_id')
    )
    op.create_index('ix_adjustment_movements_adjustment_kind', 'adjustment_movements', ['adjustment_kind'])

    op.create_table(
        'movement_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('movement_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.DECIMAL(precision=10, scale=2), nullable=False),
        sa.Column('subtotal', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['movement_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_movement_lines_movement_id', 'movement_lines', ['movement_id'])
    op.create_index('ix_movement_lines_product_id', 'movement_lines', ['product_id'])

    # Incidents, details embedded as JSON
    op.create_table(
        'incidents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('movement_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('effective_date', sa.DateTime(), nullable=False),
        sa.Column('registered_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['movement_id'], ['movements.id']),
        sa.ForeignKeyConstraint(['order_id'], ['replenishment_orders.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_incidents_movement_id', 'incidents', ['movement_id'])
    op.create_index('ix_incidents_order_id', 'incidents', ['order_id'])
    op.create_index('ix_incidents_effective_date', 'incidents', ['effective_date'])


def downgrade():
    op.drop_table('incidents')
    op.drop_table('movement_lines')
    op.drop_table('adjustment_movements')
    op.drop_table('purchase_movements')
    op.drop_table('sale_movements')
    op.drop_table('movements')
    op.drop_table('replenishment_orders')
    op.drop_table('users')
    op.drop_table('products')
    op.drop_table('customers')
    op.drop_table('suppliers')
    op.drop_table('categories')
