from sqlalchemy import Column, Date, String
from sqlalchemy.orm import relationship

from deathguild.db.base import Base, TimestampMixin


class Playlist(Base, TimestampMixin):
    """Songs played at Death Guild on a single night."""

    day = Column(Date, unique=True, index=True, nullable=False)

    # ID of the playlist we created for this night in Spotify
    spotify_id = Column(String(50), nullable=True)

    # Relationships
    songs = relationship(
        "PlaylistSong",
        back_populates="playlist",
        order_by="PlaylistSong.position",
    )
