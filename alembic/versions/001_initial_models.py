"""initial_models

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('user_role', sa.String(50), nullable=False, server_default='client'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_user_email', 'users', ['email'])
    op.create_index('idx_user_status', 'users', ['status'])

    # Create product_categories table
    op.create_table(
        'product_categories',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('name'),
    )

    # Create product_schemes table
    op.create_table(
        'product_schemes',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('sku', sa.String(255), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image', sa.String(1024), nullable=True),
        sa.Column('unit_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('bulk_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('minimum_bulk_qty', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('max_units_per_link', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('shopify_product_id', sa.String(64), nullable=True),
        sa.Column('shopify_variant_id', sa.String(64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('category_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('sku'),
        sa.ForeignKeyConstraint(['category_id'], ['product_categories.uuid'], ),
        sa.CheckConstraint('max_units_per_link >= 1', name='ck_scheme_units_per_link_positive'),
    )
    op.create_index('idx_scheme_shopify_product_id', 'product_schemes', ['shopify_product_id'])

    # Create bulk_purchases table
    op.create_table(
        'bulk_purchases',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('shopify_order_id', sa.String(64), nullable=False),
        sa.Column('shopify_order_number', sa.String(64), nullable=True),
        sa.Column('order_date', sa.DateTime(), nullable=True),
        sa.Column('product_sku', sa.String(255), nullable=False),
        sa.Column('product_title', sa.String(255), nullable=False),
        sa.Column('product_id', sa.String(64), nullable=True),
        sa.Column('variant_id', sa.String(64), nullable=True),
        sa.Column('variant_title', sa.String(255), nullable=True),
        sa.Column('quantity_purchased', sa.Integer(), nullable=False),
        sa.Column('quantity_remaining', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('unit_cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('billing_name', sa.String(255), nullable=True),
        sa.Column('billing_address', sa.Text(), nullable=True),
        sa.Column('shipping_name', sa.String(255), nullable=True),
        sa.Column('shipping_address', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('product_scheme_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('shopify_order_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.uuid'], ),
        sa.ForeignKeyConstraint(['product_scheme_id'], ['product_schemes.uuid'], ),
        sa.CheckConstraint('quantity_purchased >= 0', name='ck_bulk_purchased_non_negative'),
        sa.CheckConstraint('quantity_remaining >= 0', name='ck_bulk_remaining_non_negative'),
        sa.CheckConstraint('quantity_remaining <= quantity_purchased', name='ck_bulk_remaining_within_purchased'),
    )
    op.create_index('idx_bulk_purchase_user_id', 'bulk_purchases', ['user_id'])
    op.create_index('idx_bulk_purchase_status', 'bulk_purchases', ['status'])
    op.create_index('idx_bulk_purchase_product_sku', 'bulk_purchases', ['product_sku'])

    # Create patient_links table
    op.create_table(
        'patient_links',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('link_token', sa.String(128), nullable=False),
        sa.Column('custom_url', sa.String(255), nullable=False),
        sa.Column('discount_code', sa.String(64), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('current_uses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('patient_email', sa.String(255), nullable=True),
        sa.Column('patient_name', sa.String(255), nullable=True),
        sa.Column('patient_phone', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('bulk_purchase_id', sa.String(36), nullable=False),
        sa.Column('product_scheme_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('link_token'),
        sa.UniqueConstraint('discount_code'),
        sa.ForeignKeyConstraint(['user_id'], ['users.uuid'], ),
        sa.ForeignKeyConstraint(['bulk_purchase_id'], ['bulk_purchases.uuid'], ),
        sa.ForeignKeyConstraint(['product_scheme_id'], ['product_schemes.uuid'], ),
        sa.CheckConstraint('max_uses >= 1', name='ck_link_max_uses_positive'),
        sa.CheckConstraint('current_uses >= 0', name='ck_link_current_uses_non_negative'),
        sa.CheckConstraint('current_uses <= max_uses', name='ck_link_current_uses_within_max'),
    )
    op.create_index('idx_patient_link_user_id', 'patient_links', ['user_id'])
    op.create_index('idx_patient_link_bulk_purchase_id', 'patient_links', ['bulk_purchase_id'])

    # Create patient_fulfillments table
    op.create_table(
        'patient_fulfillments',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('patient_email', sa.String(255), nullable=False),
        sa.Column('patient_name', sa.String(255), nullable=False),
        sa.Column('patient_phone', sa.String(50), nullable=True),
        sa.Column('quantity_fulfilled', sa.Integer(), nullable=False),
        sa.Column('fulfillment_date', sa.DateTime(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('patient_link_id', sa.String(36), nullable=False),
        sa.Column('bulk_purchase_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.ForeignKeyConstraint(['patient_link_id'], ['patient_links.uuid'], ),
        sa.ForeignKeyConstraint(['bulk_purchase_id'], ['bulk_purchases.uuid'], ),
    )
    op.create_index('idx_fulfillment_patient_link_id', 'patient_fulfillments', ['patient_link_id'])
    op.create_index('idx_fulfillment_bulk_purchase_id', 'patient_fulfillments', ['bulk_purchase_id'])
    op.create_index('idx_fulfillment_date', 'patient_fulfillments', ['fulfillment_date'])

    # Create order_syncs table
    op.create_table(
        'order_syncs',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('shopify_order_id', sa.String(64), nullable=False),
        sa.Column('order_number', sa.String(64), nullable=True),
        sa.Column('order_data', sa.JSON(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('synced_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid'),
        sa.UniqueConstraint('shopify_order_id'),
    )


def downgrade() -> None:
    op.drop_table('order_syncs')
    op.drop_index('idx_fulfillment_date', table_name='patient_fulfillments')
    op.drop_index('idx_fulfillment_bulk_purchase_id', table_name='patient_fulfillments')
    op.drop_index('idx_fulfillment_patient_link_id', table_name='patient_fulfillments')
    op.drop_table('patient_fulfillments')
    op.drop_index('idx_patient_link_bulk_purchase_id', table_name='patient_links')
    op.drop_index('idx_patient_link_user_id', table_name='patient_links')
    op.drop_table('patient_links')
    op.drop_index('idx_bulk_purchase_product_sku', table_name='bulk_purchases')
    op.drop_index('idx_bulk_purchase_status', table_name='bulk_purchases')
    op.drop_index('idx_bulk_purchase_user_id', table_name='bulk_purchases')
    op.drop_table('bulk_purchases')
    op.drop_index('idx_scheme_shopify_product_id', table_name='product_schemes')
    op.drop_table('product_schemes')
    op.drop_table('product_categories')
    op.drop_index('idx_user_status', table_name='users')
    op.drop_index('idx_user_email', table_name='users')
    op.drop_table('users')
