"""add_cards_identities

Revision ID: 7c8d9e0f1a2b
Revises: 1a2b3c4d5e6f
Create Date: 2026-09-20 16:41:03.552871

Kept separate from the legacy table so a deployment can run without it;
the client falls back to single-profile behaviour until this is applied.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c8d9e0f1a2b'
down_revision: Union[str, Sequence[str], None] = '1a2b3c4d5e6f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the multi-profile table with per-account unique handles."""
    op.create_table('cards_identities',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_shop_account', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('shop_name', sa.String(length=255), nullable=True),
        sa.Column('shop_address', sa.String(length=500), nullable=True),
        sa.Column('shop_latitude', sa.Float(), nullable=True),
        sa.Column('shop_longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cards_identities_owner_id', 'cards_identities', ['owner_id'], unique=False)
    # Handles are unique per account, compared case-insensitively
    op.create_index(
        'uq_cards_identities_owner_username',
        'cards_identities',
        ['owner_id', sa.text('lower(username)')],
        unique=True,
    )


def downgrade() -> None:
    """Drop the multi-profile table."""
    op.drop_index('uq_cards_identities_owner_username', table_name='cards_identities')
    op.drop_index('ix_cards_identities_owner_id', table_name='cards_identities')
    op.drop_table('cards_identities')
