import base64
import logging
from typing import Optional

import httpx

from deathguild.core.errors import ExternalAPIError
from deathguild.schemas.spotify import SpotifyTokenSchema

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"


class SpotifyAuthService:
    """Service for Spotify authentication flows."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.transport = transport

    def _auth_header(self) -> str:
        return base64.b64encode(
            f"{self.client_id}:{self.client_secret}".encode()
        ).decode()

    async def refresh_token(self, refresh_token: str) -> SpotifyTokenSchema:
        """
        Exchange a refresh token for a new access token.

        The first access/refresh token pair is procured outside this program,
        so no redirect flow is needed here.
        """
        headers = {
            "Authorization": f"Basic {self._auth_header()}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(TOKEN_URL, headers=headers, data=data)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalAPIError(
                f"Token refresh failed: {e}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"Token refresh failed: {e}") from e

        logger.debug("Refreshed Spotify access token")
        return SpotifyTokenSchema(**response.json())
