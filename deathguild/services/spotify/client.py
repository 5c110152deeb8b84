import asyncio
import logging
from typing import List, Dict, Any, Optional
from datetime import timedelta, datetime

import httpx

from deathguild.core.errors import ExternalAPIError, RateLimitExceeded
from deathguild.schemas.spotify import (
    SpotifyUserProfile,
    SpotifyTrack,
    SpotifyPlaylist,
    SpotifyPlaylistPage,
)
from deathguild.services.spotify.auth import SpotifyAuthService
from deathguild.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

BASE_URL = "https://api.spotify.com/v1"

# Spotify won't return more than this many playlists per page.
MAX_PLAYLISTS_PAGE_SIZE = 50

# Spotify won't accept more than this many tracks in one playlist update.
MAX_PLAYLIST_TRACKS = 100


class SpotifyClient:
    """Client for interacting with Spotify Web API."""

    def __init__(
        self,
        auth_service: SpotifyAuthService,
        refresh_token: str,
        access_token: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.auth_service = auth_service
        self.refresh_token = refresh_token
        self.access_token = access_token
        self.expires_at = expires_at
        self.transport = transport
        self.timeout = timeout
        self._refresh_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "SpotifyClient":
        """Create a client from the Spotify credentials in settings."""
        settings.require_spotify()
        auth_service = SpotifyAuthService(
            settings.spotify_client_id, settings.spotify_client_secret
        )
        return cls(
            auth_service,
            settings.spotify_refresh_token,
            timeout=settings.http_timeout,
        )

    def _token_expired(self) -> bool:
        return (
            self.access_token is None
            or self.expires_at is None
            or self.expires_at <= utc_now()
        )

    async def _ensure_token(self) -> None:
        """Refresh the access token if it's missing or expired."""
        async with self._refresh_lock:
            if not self._token_expired():
                return

            token_data = await self.auth_service.refresh_token(self.refresh_token)

            self.access_token = token_data.access_token
            self.expires_at = utc_now() + timedelta(seconds=token_data.expires_in)
            if token_data.refresh_token:
                self.refresh_token = token_data.refresh_token

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Dict[str, Any] = None,
        data: Dict[str, Any] = None,
    ) -> Dict[str, Any]:
        """Send a request to the Spotify API."""
        await self._ensure_token()

        url = f"{BASE_URL}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=data,
                    headers=headers,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 429:
            try:
                retry_after = int(response.headers.get("Retry-After", 1))
            except ValueError:
                # Retry-After may also be an HTTP date
                retry_after = 1
            raise RateLimitExceeded(retry_after)

        if response.is_error:
            raise ExternalAPIError(
                f"{method} {endpoint} failed with status {response.status_code}: "
                f"{response.text}",
                status_code=response.status_code,
            )

        return response.json() if response.text else {}

    async def get_user_profile(self) -> SpotifyUserProfile:
        """Get the current user's Spotify profile."""
        data = await self._request("GET", "/me")
        return SpotifyUserProfile(**data)

    async def search_tracks(
        self, query: str, limit: int = 10, offset: int = 0
    ) -> List[SpotifyTrack]:
        """Search for tracks on Spotify."""
        params = {
            "q": query,
            "type": "track",
            "limit": limit,
            "offset": offset,
        }

        data = await self._request("GET", "/search", params=params)
        return [
            SpotifyTrack(**item)
            for item in data.get("tracks", {}).get("items", [])
            if item
        ]

    async def get_current_user_playlists(
        self, limit: int = MAX_PLAYLISTS_PAGE_SIZE, offset: int = 0
    ) -> SpotifyPlaylistPage:
        """Get one page of the current user's playlists."""
        params = {
            "limit": limit,
            "offset": offset,
        }

        data = await self._request("GET", "/me/playlists", params=params)
        data["items"] = [item for item in data.get("items", []) if item]
        return SpotifyPlaylistPage(**data)

    async def create_playlist(
        self, user_id: str, name: str, description: str = "", public: bool = True
    ) -> SpotifyPlaylist:
        """Create a new playlist for a user."""
        endpoint = f"/users/{user_id}/playlists"
        data = {
            "name": name,
            "description": description,
            "public": public,
        }

        response = await self._request("POST", endpoint, data=data)
        return SpotifyPlaylist(**response)

    async def replace_playlist_tracks(
        self, playlist_id: str, track_ids: List[str]
    ) -> Dict[str, Any]:
        """
        Replace all tracks in a playlist.

        Spotify rejects more than MAX_PLAYLIST_TRACKS tracks, so callers are
        expected to truncate.
        """
        if len(track_ids) > MAX_PLAYLIST_TRACKS:
            raise ValueError(
                f"Can't replace more than {MAX_PLAYLIST_TRACKS} tracks at once"
            )

        endpoint = f"/playlists/{playlist_id}/tracks"
        data = {
            "uris": [f"spotify:track:{track_id}" for track_id in track_ids],
        }

        return await self._request("PUT", endpoint, data=data)
