"""
Pydantic models for aggregate statistics.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from deathguild.schemas.playlist import Playlist


class PlaylistYear(BaseModel):
    """Playlists grouped under the year they were played."""

    year: int
    playlists: List[Playlist] = Field(default_factory=list)


class ArtistRanking(BaseModel):
    artist: str
    count: int


class SongRanking(BaseModel):
    artist: str
    title: str
    spotify_id: Optional[str] = None
    count: int
