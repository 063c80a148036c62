"""create_delivery_tables

Revision ID: 3f2a9c1d7b4e
Revises:
Create Date: 2026-10-19 09:12:41.207315

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7b4e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

delivery_status = sa.Enum('pending', 'in_progress', 'completed', 'cancelled', name='deliverystatus')


def upgrade() -> None:
    op.create_table(
        'delivery',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('status', delivery_status, nullable=False),
        sa.Column('origin_lat', sa.Float(), nullable=False),
        sa.Column('origin_lng', sa.Float(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_distance_meters', sa.Float(), nullable=False),
        sa.Column('total_duration_seconds', sa.Float(), nullable=False),
        sa.Column('baseline_distance_meters', sa.Float(), nullable=False),
        sa.Column('degraded', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_delivery_id'), 'delivery', ['id'], unique=False)
    op.create_index(op.f('ix_delivery_owner_id'), 'delivery', ['owner_id'], unique=False)
    op.create_index(op.f('ix_delivery_status'), 'delivery', ['status'], unique=False)

    op.create_table(
        'delivery_destination',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('delivery_id', sa.Integer(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('visit_order', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['delivery_id'], ['delivery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('delivery_id', 'visit_order', name='uq_destination_delivery_visit_order')
    )
    op.create_index(op.f('ix_delivery_destination_id'), 'delivery_destination', ['id'], unique=False)
    op.create_index(op.f('ix_delivery_destination_delivery_id'), 'delivery_destination', ['delivery_id'], unique=False)

    op.create_table(
        'savings_record',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('delivery_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('optimized_distance_meters', sa.Float(), nullable=False),
        sa.Column('baseline_distance_meters', sa.Float(), nullable=False),
        sa.Column('fuel_saved_liters', sa.Float(), nullable=False),
        sa.Column('fuel_price_per_liter', sa.Float(), nullable=True),
        sa.Column('cost_saved', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['delivery_id'], ['delivery.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('delivery_id')
    )
    op.create_index(op.f('ix_savings_record_id'), 'savings_record', ['id'], unique=False)
    op.create_index(op.f('ix_savings_record_owner_id'), 'savings_record', ['owner_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_savings_record_owner_id'), table_name='savings_record')
    op.drop_index(op.f('ix_savings_record_id'), table_name='savings_record')
    op.drop_table('savings_record')
    op.drop_index(op.f('ix_delivery_destination_delivery_id'), table_name='delivery_destination')
    op.drop_index(op.f('ix_delivery_destination_id'), table_name='delivery_destination')
    op.drop_table('delivery_destination')
    op.drop_index(op.f('ix_delivery_status'), table_name='delivery')
    op.drop_index(op.f('ix_delivery_owner_id'), table_name='delivery')
    op.drop_index(op.f('ix_delivery_id'), table_name='delivery')
    op.drop_table('delivery')
    delivery_status.drop(op.get_bind(), checkfirst=True)
