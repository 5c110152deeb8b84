"""
Read-only ranking and statistics queries used to render the site.
"""

from typing import List, Optional, Sequence

from sqlalchemy import desc, distinct, extract, func, select
from sqlalchemy.orm import Session

from deathguild.db.models import Playlist, PlaylistSong, Song, SpecialPlaylist
from deathguild.schemas.playlist import Playlist as PlaylistSchema
from deathguild.schemas.statistics import ArtistRanking, PlaylistYear, SongRanking


def _year_songs(years: Sequence[int]):
    """Join of every play of every song in the given years."""
    return (
        select(Song.artist, Song.title, Song.spotify_id)
        .select_from(Playlist)
        .join(PlaylistSong, Playlist.id == PlaylistSong.playlist_id)
        .join(Song, Song.id == PlaylistSong.song_id)
        .where(extract("year", Playlist.day).in_(list(years)))
        .subquery("year_songs")
    )


def playlist_years(db: Session) -> List[PlaylistYear]:
    """Load published playlists grouped by year, most recent first."""
    rows = db.execute(
        select(Playlist)
        .where(Playlist.spotify_id.is_not(None))
        .order_by(desc(Playlist.day))
    ).scalars()

    years: List[PlaylistYear] = []
    for row in rows:
        if not years or years[-1].year != row.day.year:
            years.append(PlaylistYear(year=row.day.year))
        years[-1].playlists.append(
            PlaylistSchema(id=row.id, day=row.day, spotify_id=row.spotify_id)
        )

    return years


def artist_rankings_by_plays(
    db: Session, years: Sequence[int], limit: int
) -> List[ArtistRanking]:
    """Rank artists by the total number of times their songs were played."""
    year_songs = _year_songs(years)
    plays = func.count().label("plays")

    rows = db.execute(
        select(year_songs.c.artist, plays)
        .group_by(year_songs.c.artist)
        .order_by(desc(plays), year_songs.c.artist)
        .limit(limit)
    ).all()

    return [ArtistRanking(artist=artist, count=count) for artist, count in rows]


def artist_rankings_by_songs(
    db: Session, years: Sequence[int], limit: int
) -> List[ArtistRanking]:
    """Rank artists by the number of distinct songs of theirs that were played."""
    year_songs = _year_songs(years)
    plays = func.count(distinct(year_songs.c.title)).label("plays")

    rows = db.execute(
        select(year_songs.c.artist, plays)
        .group_by(year_songs.c.artist)
        .order_by(desc(plays), year_songs.c.artist)
        .limit(limit)
    ).all()

    return [ArtistRanking(artist=artist, count=count) for artist, count in rows]


def song_rankings(
    db: Session, years: Sequence[int], limit: int, spotify_only: bool = False
) -> List[SongRanking]:
    """
    Rank songs by number of plays.

    Ties are broken by artist, title and Spotify ID so that the order is
    stable between runs.

    Args:
        db: Database session
        years: Years to include plays from
        limit: Maximum number of songs to return
        spotify_only: Only include songs that have a Spotify ID
    """
    year_songs = _year_songs(years)
    plays = func.count().label("plays")

    query = select(
        year_songs.c.artist, year_songs.c.title, year_songs.c.spotify_id, plays
    ).group_by(year_songs.c.artist, year_songs.c.title, year_songs.c.spotify_id)

    if spotify_only:
        query = query.where(year_songs.c.spotify_id.is_not(None))

    rows = db.execute(
        query.order_by(
            desc(plays),
            year_songs.c.artist,
            year_songs.c.title,
            year_songs.c.spotify_id,
        ).limit(limit)
    ).all()

    return [
        SongRanking(artist=artist, title=title, spotify_id=spotify_id, count=count)
        for artist, title, spotify_id, count in rows
    ]


def special_playlist_spotify_id(db: Session, slug: str) -> Optional[str]:
    """Get the Spotify ID of a ranking playlist like "2019" or "all-time"."""
    return db.execute(
        select(SpecialPlaylist.spotify_id).where(SpecialPlaylist.slug == slug)
    ).scalar_one_or_none()


def playlist_info(playlist: PlaylistSchema) -> str:
    """Summarize how much of a playlist was found in Spotify."""
    total = len(playlist.songs)
    found = sum(1 for song in playlist.songs if song.spotify_id)
    percent = found / total * 100 if total else 0.0
    return f"{found} out of {total} songs ({percent:.1f}%) were found in Spotify."
