"""create_stored_entries

Revision ID: 20261017_1200_create_entries
Revises:
Create Date: 2026-10-17 12:00:00

Adds: stored_entries table (key, owner_key, category, payload, created_at)
Adds: index on (owner_key, category) for listing, index on created_at for sweeps
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261017_1200_create_entries'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'stored_entries',
        sa.Column('key', sa.String(128), primary_key=True),
        sa.Column('owner_key', sa.String(64), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('payload', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
    )

    op.create_index(
        'ix_stored_entries_owner_category',
        'stored_entries',
        ['owner_key', 'category']
    )
    op.create_index(
        'ix_stored_entries_created_at',
        'stored_entries',
        ['created_at']
    )


def downgrade() -> None:
    op.drop_index('ix_stored_entries_created_at', 'stored_entries')
    op.drop_index('ix_stored_entries_owner_category', 'stored_entries')
    op.drop_table('stored_entries')
