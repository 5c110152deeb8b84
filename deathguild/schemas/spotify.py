from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class SpotifyTokenSchema(BaseModel):
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


class SpotifyUserProfile(BaseModel):
    id: str
    display_name: Optional[str] = None
    uri: str


class SpotifyTrack(BaseModel):
    id: str
    name: str
    artists: List[Dict[str, Any]]
    uri: str

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.get("name", "") for artist in self.artists)


class SpotifyPlaylist(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    public: Optional[bool] = None
    uri: str
    external_urls: Dict[str, str] = Field(default_factory=dict)


class SpotifyPlaylistPage(BaseModel):
    items: List[SpotifyPlaylist] = Field(default_factory=list)
    limit: int
    offset: int
    total: int
    next: Optional[str] = None
