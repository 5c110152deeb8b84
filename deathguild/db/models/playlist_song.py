from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from deathguild.db.base import Base


class PlaylistSong(Base):
    """Appearance of a song within a playlist."""

    __table_args__ = (UniqueConstraint("playlist_id", "song_id"),)

    playlist_id = Column(Integer, ForeignKey("playlist.id"), nullable=False)
    song_id = Column(Integer, ForeignKey("song.id"), nullable=False)

    # 0-based index of the song in the scraped playlist
    position = Column(Integer, nullable=False)

    # Relationships
    playlist = relationship("Playlist", back_populates="songs")
    song = relationship("Song", back_populates="playlists")
