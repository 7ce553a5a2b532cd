"""initial_homekeep_schema

Revision ID: 7a3e91c04b2d
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '7a3e91c04b2d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _stamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'properties',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        *_stamps(),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )

    op.create_table(
        'maintenance_tasks',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('property_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('frequency', sa.JSON(), nullable=False),
        sa.Column('last_completed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_due', sa.DateTime(timezone=True), nullable=False),
        *_stamps(),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )
    op.create_index('ix_maintenance_tasks_property_id', 'maintenance_tasks', ['property_id'])

    op.create_table(
        'maintenance_logs',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('task_id', sa.String(64), nullable=False),
        sa.Column('property_id', sa.String(64), nullable=False),
        sa.Column('completed_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cost', sa.Numeric(14, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('service_provider_id', sa.String(64), nullable=True),
        sa.Column('documents', sa.JSON(), nullable=False),
        *_stamps(),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )
    op.create_index('ix_maintenance_logs_task_id', 'maintenance_logs', ['task_id'])
    op.create_index('ix_maintenance_logs_property_id', 'maintenance_logs', ['property_id'])

    op.create_table(
        'warranties',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('property_id', sa.String(64), nullable=False),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('manufacturer', sa.String(255), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('documents', sa.JSON(), nullable=False),
        *_stamps(),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )
    op.create_index('ix_warranties_property_id', 'warranties', ['property_id'])

    op.create_table(
        'service_providers',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.JSON(), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('website', sa.String(500), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        *_stamps(),
        sa.PrimaryKeyConstraint('owner_id', 'id'),
    )

    op.create_table(
        'trial_info',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('key', sa.String(32), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_pro', sa.Boolean(), nullable=False),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('owner_id', 'key'),
    )

    op.create_table(
        'notification_contacts',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('owner_id'),
    )


def downgrade() -> None:
    op.drop_table('notification_contacts')
    op.drop_table('trial_info')
    op.drop_table('service_providers')
    op.drop_index('ix_warranties_property_id', table_name='warranties')
    op.drop_table('warranties')
    op.drop_index('ix_maintenance_logs_property_id', table_name='maintenance_logs')
    op.drop_index('ix_maintenance_logs_task_id', table_name='maintenance_logs')
    op.drop_table('maintenance_logs')
    op.drop_index('ix_maintenance_tasks_property_id', table_name='maintenance_tasks')
    op.drop_table('maintenance_tasks')
    op.drop_table('properties')
