"""
Pydantic models for playlists and the songs they contain.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class Song(BaseModel):
    """An artist/title pair extracted from a playlist."""

    artist: str
    title: str
    id: Optional[int] = None

    # 1-indexed track number, only set when loaded as part of a playlist
    position: Optional[int] = None

    spotify_id: Optional[str] = None
    spotify_checked_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Playlist(BaseModel):
    """A playlist for a single night of Death Guild."""

    day: date
    id: Optional[int] = None
    spotify_id: Optional[str] = None
    songs: List[Song] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @property
    def formatted_day(self) -> str:
        """The playlist's date formatted as ISO8601."""
        return self.day.isoformat()
