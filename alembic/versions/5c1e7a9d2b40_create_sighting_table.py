"""create_sighting_table

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e7a9d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'sighting',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('animal', sa.String(length=20), nullable=False),
        sa.Column('is_baby', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('image_url', sa.String(length=2048), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('latitude BETWEEN -90 AND 90', name='ck_sighting_latitude'),
        sa.CheckConstraint('longitude BETWEEN -180 AND 180', name='ck_sighting_longitude'),
        sa.CheckConstraint('last_active_at >= created_at', name='ck_sighting_last_active'),
    )

    # Active-sightings query and expiry sweep both filter on last_active_at
    op.create_index('ix_sighting_last_active_at', 'sighting', ['last_active_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_sighting_last_active_at', table_name='sighting')
    op.drop_table('sighting')
