"""create_legacy_profiles

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-09-02 10:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the single-profile-per-account table."""
    op.create_table('profiles',
        sa.Column('id', sa.UUID(), nullable=False),
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
    op.create_index('ix_profiles_username_lower', 'profiles', [sa.text('lower(username)')], unique=False)

    op.create_table('profile_selections',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('profile_id', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    """Drop the legacy profile and selection tables."""
    op.drop_table('profile_selections')
    op.drop_index('ix_profiles_username_lower', table_name='profiles')
    op.drop_table('profiles')
