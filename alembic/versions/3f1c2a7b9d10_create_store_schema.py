"""create_store_schema

Revision ID: 3f1c2a7b9d10
Revises:
Create Date: 2026-10-12 09:14:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7b9d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = ('pending', 'processing', 'shipped', 'delivered', 'cancelled')
PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded')
PAYMENT_PROVIDERS = ('vnpay', 'paypal', 'vietqr')
TRANSACTION_STATUSES = ('pending', 'completed', 'failed', 'cancelled')

ENUM_TYPES = (
    'order_status_enum',
    'payment_status_enum',
    'payment_provider_enum',
    'payment_transaction_status_enum',
)


def _timestamps(updated: bool = True) -> list:
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=True)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    """Upgrade schema - Create storefront tables."""

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id', name='pk_roles'),
        sa.UniqueConstraint('name', name='uq_roles_name'),
    )

    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role_id', sa.Integer(), server_default='3', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['role_id'], ['roles.id'], name='fk_users_role_id_roles', ondelete='RESTRICT'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        sa.UniqueConstraint('slug', name='uq_categories_slug'),
    )

    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), server_default='0', nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('additional_images', JSONB(), server_default='[]', nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        *_timestamps(),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint(
            'discount_percentage >= 0 AND discount_percentage <= 100',
            name='ck_products_discount_range',
        ),
        sa.ForeignKeyConstraint(
            ['category_id'],
            ['categories.id'],
            name='fk_products_category_id_categories',
            ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('slug', name='uq_products_slug'),
    )
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_is_active', 'products', ['is_active'])

    op.create_table(
        'customers',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('billing_address', sa.Text(), nullable=True),
        sa.Column('billing_city', sa.String(length=100), nullable=True),
        sa.Column('billing_country', sa.String(length=100), nullable=True),
        sa.Column('billing_postal_code', sa.String(length=20), nullable=True),
        sa.Column('shipping_address', sa.Text(), nullable=True),
        sa.Column('shipping_city', sa.String(length=100), nullable=True),
        sa.Column('shipping_country', sa.String(length=100), nullable=True),
        sa.Column('shipping_postal_code', sa.String(length=20), nullable=True),
        sa.Column('discount_percentage', sa.Numeric(5, 2), server_default='0', nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'discount_percentage >= 0 AND discount_percentage <= 100',
            name='ck_customers_discount_range',
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_customers_user_id_users', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sa.UniqueConstraint('user_id', name='uq_customers_user_id'),
    )

    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*ORDER_STATUSES, name='order_status_enum'),
            server_default='pending',
            nullable=True,
        ),
        sa.Column(
            'payment_status',
            sa.Enum(*PAYMENT_STATUSES, name='payment_status_enum'),
            server_default='pending',
            nullable=True,
        ),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), server_default='0', nullable=True),
        sa.Column('shipping_cost', sa.Numeric(12, 2), server_default='0', nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), server_default='COD', nullable=True),
        sa.Column('shipping_address', sa.Text(), nullable=False),
        sa.Column('shipping_phone', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['customer_id'],
            ['customers.id'],
            name='fk_orders_customer_id_customers',
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('product_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5, 2), server_default='0', nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity >= 1', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(
            ['order_id'], ['orders.id'], name='fk_order_items_order_id_orders', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['product_id'],
            ['products.id'],
            name='fk_order_items_product_id_products',
            ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_order_items'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table(
        'cart_items',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 1', name='ck_cart_items_quantity_positive'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'], name='fk_cart_items_user_id_users', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['product_id'],
            ['products.id'],
            name='fk_cart_items_product_id_products',
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_cart_items'),
        sa.UniqueConstraint('user_id', 'product_id', name='unique_user_product'),
    )
    op.create_index('ix_cart_items_user_id', 'cart_items', ['user_id'])

    op.create_table(
        'payments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column(
            'provider',
            sa.Enum(*PAYMENT_PROVIDERS, name='payment_provider_enum'),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), server_default='VND', nullable=True),
        sa.Column(
            'status',
            sa.Enum(*TRANSACTION_STATUSES, name='payment_transaction_status_enum'),
            server_default='pending',
            nullable=True,
        ),
        sa.Column('transaction_id', sa.String(length=255), nullable=True),
        sa.Column('response_data', JSONB(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['order_id'], ['orders.id'], name='fk_payments_order_id_orders', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_payments'),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])
    op.create_index('ix_payments_transaction_id', 'payments', ['transaction_id'])

    op.create_table(
        'reviews',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('customer_id', UUID(as_uuid=True), nullable=False),
        sa.Column('rating', sa.SmallInteger(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('is_verified_purchase', sa.Boolean(), server_default='false', nullable=True),
        sa.Column('is_visible', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('helpful_count', sa.Integer(), server_default='0', nullable=True),
        *_timestamps(),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
        sa.ForeignKeyConstraint(
            ['product_id'],
            ['products.id'],
            name='fk_reviews_product_id_products',
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['customer_id'],
            ['customers.id'],
            name='fk_reviews_customer_id_customers',
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_reviews'),
        sa.UniqueConstraint('product_id', 'customer_id', name='uq_reviews_product_customer'),
    )
    op.create_index('ix_reviews_product_id', 'reviews', ['product_id'])
    op.create_index('ix_reviews_customer_id', 'reviews', ['customer_id'])


def downgrade() -> None:
    """Downgrade schema - Drop storefront tables."""

    op.drop_index('ix_reviews_customer_id', table_name='reviews')
    op.drop_index('ix_reviews_product_id', table_name='reviews')
    op.drop_table('reviews')

    op.drop_index('ix_payments_transaction_id', table_name='payments')
    op.drop_index('ix_payments_order_id', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_cart_items_user_id', table_name='cart_items')
    op.drop_table('cart_items')

    op.drop_index('ix_order_items_product_id', table_name='order_items')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')

    op.drop_index('ix_orders_created_at', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_customer_id', table_name='orders')
    op.drop_index('ix_orders_order_number', table_name='orders')
    op.drop_table('orders')

    op.drop_table('customers')

    op.drop_index('ix_products_is_active', table_name='products')
    op.drop_index('ix_products_category_id', table_name='products')
    op.drop_table('products')

    op.drop_table('categories')
    op.drop_table('users')
    op.drop_table('roles')

    for enum_name in ENUM_TYPES:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
