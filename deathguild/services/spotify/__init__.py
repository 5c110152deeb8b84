"""
Spotify Web API client and authentication.
"""

from deathguild.services.spotify.auth import SpotifyAuthService
from deathguild.services.spotify.client import SpotifyClient

__all__ = [
    "SpotifyAuthService",
    "SpotifyClient",
]
