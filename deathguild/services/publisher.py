"""
Publishes playlists to Spotify.

Three kinds of Spotify playlists are kept up to date: one per night, one per
year with that year's most played songs, and one with the most played songs
of all time.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import sessionmaker

from deathguild.core.config import Settings
from deathguild.core.errors import JobsFailedError
from deathguild.db.session import session_scope
from deathguild.schemas.playlist import Playlist
from deathguild.services import statistics, store
from deathguild.services.pool import Job, Pool
from deathguild.services.spotify.client import (
    MAX_PLAYLIST_TRACKS,
    MAX_PLAYLISTS_PAGE_SIZE,
    SpotifyClient,
)
from deathguild.utils.datetime_helper import verbose_date

logger = logging.getLogger(__name__)

PLAYLIST_NAME_FORMAT = "Death Guild Playlist - {day}"
PLAYLIST_DESCRIPTION_FORMAT = (
    "Songs played at Death Guild in San Francisco on {verbose_day}."
)

YEAR_PLAYLIST_NAME_FORMAT = "Death Guild - Top Songs of {year}"
YEAR_PLAYLIST_DESCRIPTION_FORMAT = "The most played songs at Death Guild in {year}."

ALL_TIME_SLUG = "all-time"
ALL_TIME_PLAYLIST_NAME = "Death Guild - Top Songs of All Time"
ALL_TIME_PLAYLIST_DESCRIPTION = "The most played songs at Death Guild of all time."


def truncate_track_ids(name: str, track_ids: List[str]) -> List[str]:
    """
    Cut a list of tracks down to what Spotify accepts in one replace.

    Replacing tracks isn't additive, so anything past the limit is dropped
    from the playlist.
    """
    if len(track_ids) <= MAX_PLAYLIST_TRACKS:
        return track_ids

    logger.warning(
        f'Dropping {len(track_ids) - MAX_PLAYLIST_TRACKS} song(s) from "{name}" '
        f"because Spotify accepts at most {MAX_PLAYLIST_TRACKS}"
    )
    return track_ids[:MAX_PLAYLIST_TRACKS]


class PlaylistPublisher:
    """Creates and fills Spotify playlists for nights and rankings."""

    def __init__(
        self,
        session_factory: sessionmaker,
        client: SpotifyClient,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.client = client
        self.settings = settings

        # Cache of the user's Spotify playlists by name, built once per run.
        self.playlist_map: Dict[str, str] = {}
        self.user_id = None

    async def get_playlist_map(self) -> Dict[str, str]:
        """
        Retrieve every playlist of the current user, mapped by name to ID.

        Spotify's page size is very low, so fetching everything once is much
        faster than looking up each playlist individually.
        """
        playlist_map: Dict[str, str] = {}
        offset = 0

        while True:
            page = await self.client.get_current_user_playlists(
                limit=MAX_PLAYLISTS_PAGE_SIZE, offset=offset
            )

            # Reached the end of pagination.
            if not page.items:
                break

            for playlist in page.items:
                playlist_map[playlist.name] = playlist.id

            offset += len(page.items)
            if page.next is None:
                break

        logger.info(f"Cached {len(playlist_map)} playlist(s)")
        return playlist_map

    async def ensure_playlist(self, name: str, description: str) -> str:
        """Get the ID of the named Spotify playlist, creating it if necessary."""
        playlist_id = self.playlist_map.get(name)
        if playlist_id is not None:
            logger.debug(f'Found cached playlist: "{name}" (ID {playlist_id})')
            return playlist_id

        playlist = await self.client.create_playlist(
            self.user_id, name, description=description, public=True
        )
        self.playlist_map[name] = playlist.id

        logger.info(f'Created playlist: "{name}" (ID {playlist.id})')
        return playlist.id

    async def publish_playlist(self, playlist: Playlist) -> bool:
        """Create or update the Spotify playlist for a night and store its ID."""
        name = PLAYLIST_NAME_FORMAT.format(day=playlist.formatted_day)
        description = PLAYLIST_DESCRIPTION_FORMAT.format(
            verbose_day=verbose_date(playlist.day)
        )

        playlist_id = await self.ensure_playlist(name, description)

        track_ids = [song.spotify_id for song in playlist.songs if song.spotify_id]
        track_ids = truncate_track_ids(name, track_ids)
        await self.client.replace_playlist_tracks(playlist_id, track_ids)

        playlist.spotify_id = playlist_id
        with session_scope(self.session_factory) as db:
            store.update_playlist_spotify_id(db, playlist)

        logger.info(
            f'Updated playlist: "{name}" (ID {playlist_id}) with {len(track_ids)} song(s)'
        )
        return True

    async def publish_ranking(
        self, slug: str, years: List[int], name: str, description: str
    ) -> bool:
        """Create or update the Spotify playlist of most played songs in some years."""
        with session_scope(self.session_factory) as db:
            rankings = statistics.song_rankings(
                db, years, self.settings.ranking_limit, spotify_only=True
            )

        playlist_id = await self.ensure_playlist(name, description)

        track_ids = truncate_track_ids(name, [r.spotify_id for r in rankings])
        await self.client.replace_playlist_tracks(playlist_id, track_ids)

        with session_scope(self.session_factory) as db:
            store.update_special_playlist_spotify_id(db, slug, playlist_id)

        logger.info(
            f'Updated playlist: "{name}" (ID {playlist_id}) with {len(track_ids)} song(s)'
        )
        return True

    async def _run_round(self, jobs: List[Job]) -> Pool:
        pool = Pool(self.settings.concurrency)
        await pool.run(jobs)
        pool.log_errors()
        pool.log_slowest()

        if not pool.success:
            raise JobsFailedError(pool)
        return pool

    async def publish_playlists(self) -> int:
        """Publish every night that doesn't have a Spotify playlist yet."""
        published = 0

        while True:
            # Do work in batches so we don't have to keep everything in memory
            # at once.
            with session_scope(self.session_factory) as db:
                playlists = store.playlists_needing_spotify_id(
                    db, self.settings.playlist_batch_size
                )

            if not playlists:
                break

            jobs = [
                Job(
                    f"playlist: {playlist.formatted_day}",
                    lambda playlist=playlist: self.publish_playlist(playlist),
                )
                for playlist in playlists
            ]
            pool = await self._run_round(jobs)
            published += pool.jobs_executed

            logger.info(f"Created {len(playlists)} Spotify playlist(s)")

        return published

    async def publish_rankings(self) -> int:
        """Publish the per-year and all-time ranking playlists."""
        with session_scope(self.session_factory) as db:
            years = [playlist_year.year for playlist_year in statistics.playlist_years(db)]

        if not years:
            logger.info("No published playlists yet; skipping rankings")
            return 0

        jobs = [
            Job(
                f"ranking: {year}",
                lambda year=year: self.publish_ranking(
                    str(year),
                    [year],
                    YEAR_PLAYLIST_NAME_FORMAT.format(year=year),
                    YEAR_PLAYLIST_DESCRIPTION_FORMAT.format(year=year),
                ),
            )
            for year in years
        ]
        jobs.append(
            Job(
                f"ranking: {ALL_TIME_SLUG}",
                lambda: self.publish_ranking(
                    ALL_TIME_SLUG,
                    years,
                    ALL_TIME_PLAYLIST_NAME,
                    ALL_TIME_PLAYLIST_DESCRIPTION,
                ),
            )
        )

        pool = await self._run_round(jobs)
        return pool.jobs_executed

    async def run(self) -> None:
        """
        Publish all nights and rankings to Spotify.

        Raises:
            JobsFailedError: If any playlist failed to publish
        """
        # Check for work before building the playlist cache, which is slow.
        with session_scope(self.session_factory) as db:
            pending = store.playlists_needing_spotify_id(db, 1)
            has_published = bool(statistics.playlist_years(db))

        if not pending and not has_published:
            logger.info("No playlists to publish")
            return

        # A user is needed for some API operations, so cache one for the whole run.
        profile = await self.client.get_user_profile()
        self.user_id = profile.id

        self.playlist_map = await self.get_playlist_map()

        await self.publish_playlists()
        await self.publish_rankings()

        logger.info("Finished publishing all playlists")
