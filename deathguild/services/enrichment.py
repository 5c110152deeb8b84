"""
Resolves songs to Spotify track IDs.

Songs are searched in batches, one transaction per batch, with a pause after
every search to stay under Spotify's rate limit. Songs that aren't found are
recorded as checked so they're only searched again once the recheck window
has passed.
"""

import asyncio
import logging
import random
import re
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from deathguild.core.config import Settings
from deathguild.core.errors import JobsFailedError
from deathguild.db.session import session_scope
from deathguild.schemas.playlist import Song
from deathguild.schemas.spotify import SpotifyTrack
from deathguild.services import store
from deathguild.services.pool import Job, Pool
from deathguild.services.spotify.client import SpotifyClient
from deathguild.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

TRAILING_PARENTHETICAL = re.compile(r"(\s*\([^()]*\))+\s*$")


def trim_trailing_parenthetical(title: str) -> str:
    """
    Strip a parenthetical qualifier from the end of a title.

    "Song (Remix)" and "Song (Remix) (Other)" both become "Song", but
    parentheses that aren't at the very end are left alone.
    """
    return TRAILING_PARENTHETICAL.sub("", title)


def search_query(artist: str, title: str) -> str:
    return f"artist:{artist} {title}"


class EnrichmentResult:
    """Counts of what an enrichment run did."""

    def __init__(self):
        self.processed = 0
        self.found = 0
        self.not_found = 0

    def __repr__(self) -> str:
        return (
            f"<EnrichmentResult processed={self.processed} "
            f"found={self.found} not_found={self.not_found}>"
        )


class SongEnricher:
    """Searches Spotify for songs that don't have a track ID yet."""

    def __init__(
        self,
        session_factory: sessionmaker,
        client: SpotifyClient,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_factory = session_factory
        self.client = client
        self.settings = settings
        self.sleep = sleep

    async def _search(self, artist: str, title: str) -> Optional[SpotifyTrack]:
        try:
            tracks = await self.client.search_tracks(search_query(artist, title))
        finally:
            # be kind and rate limit our requests, even when they fail
            delay = random.uniform(
                self.settings.rate_limit_min, self.settings.rate_limit_max
            )
            logger.debug(f"Sleeping {delay:.2f} seconds")
            await self.sleep(delay)

        return tracks[0] if tracks else None

    async def retrieve_spotify_id(self, song: Song) -> bool:
        """
        Search Spotify for a song and record the result on it.

        Args:
            song: Song to search for; spotify_id and spotify_checked_at are set

        Returns:
            Whether a track was found
        """
        track = await self._search(song.artist, song.title)

        if track is None:
            trimmed = trim_trailing_parenthetical(song.title)
            if trimmed and trimmed != song.title:
                logger.debug(f"Retrying search with trimmed title: {trimmed}")
                track = await self._search(song.artist, trimmed)

        song.spotify_checked_at = utc_now()

        if track is None:
            logger.warning(f"Song not found: {song.artist} - {song.title}")
            return False

        song.spotify_id = track.id
        logger.info(
            f"Got track ID: {track.id} (original: {song.artist} - {song.title}) "
            f"(Spotify: {track.artist_names} - {track.name})"
        )
        return True

    async def enrich_batch(self, songs: List[Song], result: EnrichmentResult) -> bool:
        """
        Search for a batch of songs and store the results in one transaction.

        Every search finishes before the transaction opens, so no session is
        held across an await. A failed search aborts the batch before
        anything is written, leaving every song in it eligible for the next
        run.
        """
        found = 0
        for song in songs:
            if await self.retrieve_spotify_id(song):
                found += 1

        with session_scope(self.session_factory) as db:
            for song in songs:
                store.update_song_spotify_id(db, song)

        result.processed += len(songs)
        result.found += found
        result.not_found += len(songs) - found
        return True

    async def run(self) -> EnrichmentResult:
        """
        Search for songs needing Spotify IDs until none are left.

        Raises:
            JobsFailedError: If any batch failed
        """
        settings = self.settings
        batch_size = settings.enrich_batch_size
        result = EnrichmentResult()

        while True:
            # Do work in batches so we don't have to keep everything in memory
            # at once.
            round_size = batch_size * settings.concurrency
            if settings.enrich_limit is not None:
                round_size = min(round_size, settings.enrich_limit - result.processed)
                if round_size <= 0:
                    logger.info(f"Reached limit of {settings.enrich_limit} song(s)")
                    break

            with session_scope(self.session_factory) as db:
                songs = store.songs_needing_spotify_id(
                    db,
                    round_size,
                    settings.recheck_window,
                    settings.recheck_jitter,
                )

            if not songs:
                logger.info("Finished checking for song IDs")
                break

            batches = [
                songs[i : i + batch_size] for i in range(0, len(songs), batch_size)
            ]
            jobs = [
                Job(
                    f"songs: {batch[0].artist} - {batch[0].title} (+{len(batch) - 1})",
                    lambda batch=batch: self.enrich_batch(batch, result),
                )
                for batch in batches
            ]

            pool = Pool(settings.concurrency)
            await pool.run(jobs)
            pool.log_errors()

            if not pool.success:
                raise JobsFailedError(pool)

            logger.info(
                f"Retrieved {result.found} Spotify ID(s); "
                f"failed to find {result.not_found}"
            )

        return result
