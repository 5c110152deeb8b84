"""
Persistence for playlists and songs.

Every write is an upsert keyed on a natural uniqueness constraint so that
re-scraping a night or re-publishing a playlist is idempotent. Functions
flush but never commit; the caller's session_scope is the transaction.
"""

import logging
import random
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import and_, desc, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from deathguild.core.errors import PersistenceError
from deathguild.db.models import Playlist, PlaylistSong, Song, SpecialPlaylist
from deathguild.schemas.playlist import Playlist as PlaylistSchema
from deathguild.schemas.playlist import Song as SongSchema
from deathguild.utils.datetime_helper import make_naive, utc_now_naive

logger = logging.getLogger(__name__)

# Songs due for a recheck are spread over this many jitter buckets.
RECHECK_JITTER_BUCKETS = 10


def _insert(db: Session, model):
    """Return an insert construct supporting ON CONFLICT for the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise PersistenceError(f"Upserts aren't supported on dialect: {dialect}")


def upsert_playlist_and_songs(
    db: Session, day: date, songs: Sequence[SongSchema]
) -> int:
    """
    Insert or update a playlist along with its songs and their positions.

    Args:
        db: Database session
        day: Night the playlist was played
        songs: Songs in the order they were played

    Returns:
        ID of the playlist
    """
    now = utc_now_naive()

    stmt = _insert(db, Playlist).values(day=day, created_at=now, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Playlist.day],
        set_={"updated_at": stmt.excluded.updated_at},
    ).returning(Playlist.id)
    playlist_id = db.execute(stmt).scalar_one()

    for i, song in enumerate(songs):
        stmt = _insert(db, Song).values(
            artist=song.artist, title=song.title, created_at=now, updated_at=now
        )
        # no-op update so that RETURNING gives us the existing row's ID
        stmt = stmt.on_conflict_do_update(
            index_elements=[Song.artist, Song.title],
            set_={"artist": stmt.excluded.artist},
        ).returning(Song.id)
        song_id = db.execute(stmt).scalar_one()

        stmt = _insert(db, PlaylistSong).values(
            playlist_id=playlist_id, song_id=song_id, position=i
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PlaylistSong.playlist_id, PlaylistSong.song_id],
            set_={"position": stmt.excluded.position},
        )
        db.execute(stmt)

    db.flush()

    logger.info(f"Inserted records for {len(songs)} song(s) on {day.isoformat()}")
    return playlist_id


def is_playlist_handled(db: Session, day: date) -> bool:
    """Check whether a playlist for the given night has already been stored."""
    playlist_id = db.execute(
        select(Playlist.id).where(Playlist.day == day)
    ).scalar_one_or_none()
    return playlist_id is not None


def songs_needing_spotify_id(
    db: Session,
    limit: int,
    recheck_window: timedelta,
    recheck_jitter: timedelta,
    now: Optional[datetime] = None,
) -> List[SongSchema]:
    """
    Get songs that don't have a Spotify ID and are due to be searched.

    A song is due if it's never been checked, or if its last check is older
    than the recheck window plus a jitter. Songs are spread across jitter
    buckets so that a large group checked at the same time doesn't come due
    all at once.

    Args:
        db: Database session
        limit: Maximum number of songs to return
        recheck_window: Minimum time before a song is searched again
        recheck_jitter: Maximum extra time added on top of the window
        now: Current time, defaults to the current UTC time

    Returns:
        Songs ordered newest first
    """
    now = make_naive(now) if now is not None else utc_now_naive()

    offset = random.randrange(RECHECK_JITTER_BUCKETS)
    bucket = (Song.id + offset) % RECHECK_JITTER_BUCKETS
    due = [
        and_(
            bucket == i,
            Song.spotify_checked_at
            < now - recheck_window - recheck_jitter * i / (RECHECK_JITTER_BUCKETS - 1),
        )
        for i in range(RECHECK_JITTER_BUCKETS)
    ]

    # newer songs are more likely to be found in Spotify
    query = (
        select(Song)
        .where(Song.spotify_id.is_(None))
        .where(or_(Song.spotify_checked_at.is_(None), *due))
        .order_by(desc(Song.id))
        .limit(limit)
    )

    songs = [SongSchema.model_validate(song) for song in db.execute(query).scalars()]

    logger.info(f"Found {len(songs)} song(s) needing Spotify IDs")
    return songs


def update_song_spotify_id(db: Session, song: SongSchema) -> None:
    """Record the result of a Spotify search for a song."""
    db.query(Song).filter(Song.id == song.id).update(
        {
            Song.spotify_id: song.spotify_id or None,
            Song.spotify_checked_at: make_naive(song.spotify_checked_at),
            Song.updated_at: utc_now_naive(),
        },
        synchronize_session=False,
    )


def playlist_songs(db: Session, playlist_id: int) -> List[SongSchema]:
    """Get the songs of a playlist in order, with 1-indexed positions."""
    rows = db.execute(
        select(Song, PlaylistSong.position)
        .join(PlaylistSong, PlaylistSong.song_id == Song.id)
        .where(PlaylistSong.playlist_id == playlist_id)
        .order_by(PlaylistSong.position)
    ).all()

    return [
        SongSchema(
            id=song.id,
            artist=song.artist,
            title=song.title,
            position=position + 1,
            spotify_id=song.spotify_id,
            spotify_checked_at=song.spotify_checked_at,
        )
        for song, position in rows
    ]


def playlists_needing_spotify_id(db: Session, limit: int) -> List[PlaylistSchema]:
    """
    Get playlists that haven't been published to Spotify, with their songs.

    Args:
        db: Database session
        limit: Maximum number of playlists to return

    Returns:
        Playlists ordered most recent first
    """
    rows = db.execute(
        select(Playlist)
        .where(Playlist.spotify_id.is_(None))
        .order_by(desc(Playlist.day))
        .limit(limit)
    ).scalars()

    playlists = [
        PlaylistSchema(
            id=row.id,
            day=row.day,
            spotify_id=row.spotify_id,
            songs=playlist_songs(db, row.id),
        )
        for row in rows
    ]

    logger.info(f"Found {len(playlists)} playlist(s) needing Spotify IDs")
    return playlists


def update_playlist_spotify_id(db: Session, playlist: PlaylistSchema) -> None:
    """Record the Spotify playlist created for a night."""
    db.query(Playlist).filter(Playlist.id == playlist.id).update(
        {
            Playlist.spotify_id: playlist.spotify_id or None,
            Playlist.updated_at: utc_now_naive(),
        },
        synchronize_session=False,
    )


def update_special_playlist_spotify_id(
    db: Session, slug: str, spotify_id: str
) -> None:
    """Insert or update the Spotify playlist for a ranking like "2019" or "all-time"."""
    stmt = _insert(db, SpecialPlaylist).values(slug=slug, spotify_id=spotify_id)
    stmt = stmt.on_conflict_do_update(
        index_elements=[SpecialPlaylist.slug],
        set_={"spotify_id": stmt.excluded.spotify_id},
    )
    db.execute(stmt)
