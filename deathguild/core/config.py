"""
Configuration read from environment variables.

Each command builds one Settings instance at startup and hands it to the
components it runs.
"""

import os
from datetime import timedelta
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError

from deathguild.core.errors import ConfigurationError

TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime configuration for the pipeline commands."""

    database_url: str

    # Number of jobs allowed to run at once in a pool round.
    concurrency: int = 5

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_refresh_token: Optional[str] = None

    # Songs searched per enrichment job (and transaction).
    enrich_batch_size: int = 20

    # Total number of songs to process before stopping an enrichment run.
    enrich_limit: Optional[int] = None

    # Songs that weren't found are searched again after this long, plus up to
    # recheck_jitter more so they don't all come due at once.
    recheck_window: timedelta = timedelta(days=30)
    recheck_jitter: timedelta = timedelta(days=10)

    playlist_batch_size: int = 100
    ranking_limit: int = 100

    # Bounds in seconds of the pause taken after every external request.
    rate_limit_min: float = 1.0
    rate_limit_max: float = 2.0

    scrape_base_url: str = "http://www.deathguild.com"
    scrape_index_path: str = "/playdates"
    http_timeout: float = 10.0

    verbose: bool = False

    @property
    def scrape_index_url(self) -> str:
        return self.scrape_base_url + self.scrape_index_path

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from, defaults to os.environ

        Returns:
            Populated settings

        Raises:
            ConfigurationError: If DATABASE_URL is missing or a value can't be parsed
        """
        if environ is None:
            environ = os.environ

        database_url = environ.get("DATABASE_URL")
        if not database_url:
            raise ConfigurationError("DATABASE_URL must be set")

        values = {
            "database_url": database_url,
            "spotify_client_id": environ.get("SPOTIFY_CLIENT_ID") or None,
            "spotify_client_secret": environ.get("SPOTIFY_CLIENT_SECRET") or None,
            "spotify_refresh_token": environ.get("SPOTIFY_REFRESH_TOKEN") or None,
            "verbose": environ.get("VERBOSE", "false").lower() in TRUE_VALUES,
        }

        try:
            if environ.get("CONCURRENCY"):
                values["concurrency"] = int(environ["CONCURRENCY"])
            if environ.get("ENRICH_BATCH_SIZE"):
                values["enrich_batch_size"] = int(environ["ENRICH_BATCH_SIZE"])
            if environ.get("ENRICH_LIMIT"):
                values["enrich_limit"] = int(environ["ENRICH_LIMIT"])
            if environ.get("RECHECK_DAYS"):
                values["recheck_window"] = timedelta(days=int(environ["RECHECK_DAYS"]))
            if environ.get("RECHECK_JITTER_DAYS"):
                values["recheck_jitter"] = timedelta(
                    days=int(environ["RECHECK_JITTER_DAYS"])
                )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        try:
            settings = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        if settings.concurrency < 1:
            raise ConfigurationError("CONCURRENCY must be at least 1")
        if settings.enrich_batch_size < 1:
            raise ConfigurationError("ENRICH_BATCH_SIZE must be at least 1")

        return settings

    def require_spotify(self) -> None:
        """Ensure the credentials needed to talk to Spotify are present."""
        missing = [
            name
            for name, value in [
                ("SPOTIFY_CLIENT_ID", self.spotify_client_id),
                ("SPOTIFY_CLIENT_SECRET", self.spotify_client_secret),
                ("SPOTIFY_REFRESH_TOKEN", self.spotify_refresh_token),
            ]
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing Spotify configuration: {', '.join(missing)}")
