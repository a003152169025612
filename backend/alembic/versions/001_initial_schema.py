"""Initial schema

Revision ID: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'price_snapshots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('origin', sa.String(3), nullable=False),
        sa.Column('destination', sa.String(3), nullable=False),
        sa.Column('departure_date', sa.Date(), nullable=False),
        sa.Column('search_date', sa.Date(), nullable=False),
        sa.Column('days_until_departure', sa.Integer(), nullable=False),
        sa.Column('min_price', sa.Float(), nullable=False),
        sa.Column('avg_price', sa.Float(), nullable=False),
        sa.Column('max_price', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_price_snapshots_id', 'price_snapshots', ['id'])
    op.create_index('ix_price_snapshots_search_date', 'price_snapshots', ['search_date'])
    op.create_index(
        'ix_price_snapshot_lookup', 'price_snapshots', ['origin', 'destination', 'departure_date']
    )

    op.create_table(
        'seasonal_buckets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('origin', sa.String(3), nullable=False),
        sa.Column('destination', sa.String(3), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('far_sum', sa.Float(), nullable=False, server_default='0'),
        sa.Column('far_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('near_sum', sa.Float(), nullable=False, server_default='0'),
        sa.Column('near_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('origin', 'destination', 'month', name='uq_seasonal_bucket_route_month'),
    )
    op.create_index('ix_seasonal_buckets_last_updated', 'seasonal_buckets', ['last_updated'])


def downgrade():
    op.drop_table('seasonal_buckets')
    op.drop_table('price_snapshots')
