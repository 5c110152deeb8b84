"""create_playlist_tables

Revision ID: 5c1e0b7a9d42
Revises:
Create Date: 2026-10-18 12:30:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e0b7a9d42"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create playlist, song and membership tables."""
    op.create_table(
        "playlist",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("spotify_id", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_playlist_day", "playlist", ["day"], unique=True)

    op.create_table(
        "song",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("spotify_id", sa.String(50), nullable=True),
        sa.Column("spotify_checked_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("artist", "title"),
    )

    op.create_table(
        "playlistsong",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "playlist_id", sa.Integer(), sa.ForeignKey("playlist.id"), nullable=False
        ),
        sa.Column("song_id", sa.Integer(), sa.ForeignKey("song.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.UniqueConstraint("playlist_id", "song_id"),
    )


def downgrade() -> None:
    """Drop playlist, song and membership tables."""
    op.drop_table("playlistsong")
    op.drop_table("song")
    op.drop_index("ix_playlist_day", table_name="playlist")
    op.drop_table("playlist")
