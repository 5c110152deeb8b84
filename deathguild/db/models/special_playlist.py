from sqlalchemy import Column, String

from deathguild.db.base import Base


class SpecialPlaylist(Base):
    """Spotify playlist for a computed ranking like a year or all-time."""

    slug = Column(String(50), unique=True, nullable=False)
    spotify_id = Column(String(50), nullable=True)
