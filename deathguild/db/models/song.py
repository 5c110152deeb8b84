from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.orm import relationship

from deathguild.db.base import Base, TimestampMixin


class Song(Base, TimestampMixin):
    """An artist/title pair extracted from a playlist."""

    __table_args__ = (UniqueConstraint("artist", "title"),)

    artist = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)

    # Spotify track ID, null until a search finds a match
    spotify_id = Column(String(50), nullable=True)

    # Last time we searched Spotify for this song
    spotify_checked_at = Column(DateTime, nullable=True)

    # Relationships
    playlists = relationship("PlaylistSong", back_populates="song")
