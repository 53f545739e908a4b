"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Catalog item cache
    op.create_table(
        'catalog_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant', sa.String(length=255), nullable=False),
        sa.Column('item_id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=255), nullable=True),
        sa.Column('tags', postgresql.JSONB(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('compare_at_price', sa.Float(), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=False),
        sa.Column('available_sizes', postgresql.JSONB(), nullable=True),
        sa.Column('handle', sa.String(length=255), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('inventory_quantity', sa.Integer(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('total_sold', sa.Integer(), nullable=True),
        sa.Column('profit_margin', sa.Float(), nullable=True),
        sa.Column('detected_colors', postgresql.JSONB(), nullable=True),
        sa.Column('color_seasons', postgresql.JSONB(), nullable=True),
        sa.Column('silhouette', sa.String(length=128), nullable=True),
        sa.Column('style_tags', postgresql.JSONB(), nullable=True),
        sa.Column('fabric', sa.String(length=128), nullable=True),
        sa.Column('design_details', postgresql.JSONB(), nullable=True),
        sa.Column('pattern', sa.String(length=128), nullable=True),
        sa.Column('priority_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('priority_calculated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant', 'item_id', name='uq_catalog_items_tenant_item')
    )
    op.create_index(
        'ix_catalog_items_tenant_priority',
        'catalog_items',
        ['tenant', 'priority_score'],
    )

    # Tenant overrides
    op.create_table(
        'tenant_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant', sa.String(length=255), nullable=False),
        sa.Column('ranking_enabled', sa.Boolean(), nullable=True),
        sa.Column('api_key', sa.Text(), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('max_tokens', sa.Integer(), nullable=True),
        sa.Column('system_prompt', sa.Text(), nullable=True),
        sa.Column('recommendation_prompt', sa.Text(), nullable=True),
        sa.Column('rate_limit_enabled', sa.Boolean(), nullable=True),
        sa.Column('requests_per_minute', sa.Integer(), nullable=True),
        sa.Column('requests_per_day', sa.Integer(), nullable=True),
        sa.Column('number_of_suggestions', sa.Integer(), nullable=True),
        sa.Column('minimum_match_score', sa.Integer(), nullable=True),
        sa.Column('max_products_to_scan', sa.Integer(), nullable=True),
        sa.Column('budget_low_max', sa.Float(), nullable=True),
        sa.Column('budget_medium_max', sa.Float(), nullable=True),
        sa.Column('budget_high_max', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant')
    )

    # Priority weights
    op.create_table(
        'priority_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant', sa.String(length=255), nullable=False),
        sa.Column('strategy', sa.String(length=64), nullable=True),
        sa.Column('new_arrival_boost', sa.Float(), nullable=True),
        sa.Column('overstock_boost', sa.Float(), nullable=True),
        sa.Column('slow_mover_boost', sa.Float(), nullable=True),
        sa.Column('high_margin_boost', sa.Float(), nullable=True),
        sa.Column('on_sale_boost', sa.Float(), nullable=True),
        sa.Column('new_arrival_days', sa.Integer(), nullable=True),
        sa.Column('overstock_threshold', sa.Integer(), nullable=True),
        sa.Column('slow_mover_threshold', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant')
    )


def downgrade() -> None:
    op.drop_table('priority_settings')
    op.drop_table('tenant_settings')
    op.drop_index('ix_catalog_items_tenant_priority', table_name='catalog_items')
    op.drop_table('catalog_items')
