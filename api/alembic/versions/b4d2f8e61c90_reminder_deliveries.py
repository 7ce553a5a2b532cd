"""reminder_deliveries

Revision ID: b4d2f8e61c90
Revises: 7a3e91c04b2d
Create Date: 2026-10-18 14:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'b4d2f8e61c90'
down_revision: Union[str, None] = '7a3e91c04b2d'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reminder_deliveries',
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('key', sa.String(80), nullable=False),
        sa.Column('fire_at_epoch', sa.BigInteger(), nullable=False),
        sa.Column('fire_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('owner_id', 'key', 'fire_at_epoch'),
    )


def downgrade() -> None:
    op.drop_table('reminder_deliveries')
