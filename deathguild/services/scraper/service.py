"""
Fetches the playlist index and every playlist in it, storing what's new.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional
from urllib.parse import urljoin

import httpx
from sqlalchemy.orm import sessionmaker

from deathguild.core.config import Settings
from deathguild.core.errors import FetchError, JobsFailedError
from deathguild.db.session import session_scope
from deathguild.services import store
from deathguild.services.pool import Job, Pool
from deathguild.services.scraper.parser import (
    PlaylistLink,
    extract_day,
    scrape_index,
    scrape_playlist,
)

logger = logging.getLogger(__name__)


class PlaylistScraper:
    """Scrapes playlists off the legacy site into the database."""

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.transport = transport
        self.sleep = sleep

    async def fetch(self, url: str) -> str:
        """Get a page from the legacy site."""
        logger.debug(f"Requesting: {url}")
        try:
            async with httpx.AsyncClient(
                transport=self.transport, timeout=self.settings.http_timeout
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed requesting: {url}: {e}") from e

        if response.status_code != 200:
            raise FetchError(
                f"Bad response when requesting: {url} "
                f"(status code = {response.status_code})",
                status_code=response.status_code,
            )

        return response.text

    async def handle_playlist(self, link: PlaylistLink) -> bool:
        """
        Scrape and store a single playlist.

        Args:
            link: Link to the playlist from the index

        Returns:
            False if the playlist had already been stored, True otherwise
        """
        day = extract_day(link)

        with session_scope(self.session_factory) as db:
            handled = store.is_playlist_handled(db, day)

        if handled:
            logger.debug(f"Playlist {day.isoformat()} already handled; skipping")
            return False

        document = await self.fetch(urljoin(self.settings.scrape_base_url, link))
        songs = scrape_playlist(document)

        with session_scope(self.session_factory) as db:
            store.upsert_playlist_and_songs(db, day, songs)

        # be kind and rate limit our requests
        delay = random.uniform(self.settings.rate_limit_min, self.settings.rate_limit_max)
        logger.debug(f"Sleeping {delay:.2f} seconds")
        await self.sleep(delay)

        return True

    async def run(self) -> Pool:
        """
        Scrape every playlist in the index that hasn't been stored yet.

        Raises:
            JobsFailedError: If any playlist failed to scrape
        """
        index_url = self.settings.scrape_index_url
        logger.info(f"Requesting index at: {index_url}")
        links = scrape_index(await self.fetch(index_url))

        jobs = [
            Job(f"playlist: {link}", lambda link=link: self.handle_playlist(link))
            for link in links
        ]

        pool = Pool(self.settings.concurrency)
        await pool.run(jobs)
        pool.log_errors()
        pool.log_slowest()

        if not pool.success:
            raise JobsFailedError(pool)

        logger.info(f"Scraped {pool.jobs_executed} new playlist(s)")
        return pool
