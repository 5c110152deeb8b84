"""add_special_playlist

Revision ID: 8f3a2d6c1b70
Revises: 5c1e0b7a9d42
Create Date: 2026-10-18 12:45:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8f3a2d6c1b70"
down_revision: Union[str, None] = "5c1e0b7a9d42"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add table for year and all-time ranking playlists."""
    op.create_table(
        "specialplaylist",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(50), nullable=False, unique=True),
        sa.Column("spotify_id", sa.String(50), nullable=True),
    )


def downgrade() -> None:
    """Remove ranking playlist table."""
    op.drop_table("specialplaylist")
