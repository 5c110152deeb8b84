"""Unit tests for ranking and statistics queries."""

from datetime import date

import pytest

from deathguild.db.models import Playlist, Song
from deathguild.schemas.playlist import Playlist as PlaylistSchema
from deathguild.schemas.playlist import Song as SongSchema
from deathguild.services import statistics, store


@pytest.fixture
def seeded(db_session):
    """Three nights across three years, two of them published."""
    nights = {
        date(2017, 10, 30): [("Bauhaus", "Bela Lugosi's Dead")],
        date(2018, 7, 16): [
            ("Covenant", "Bullet"),
            ("Apoptygma Berzerk", "Kathy's Song"),
            ("Covenant", "Call The Ships To Port"),
        ],
        date(2019, 1, 7): [("Covenant", "Bullet"), ("VNV Nation", "Chrome")],
    }
    for day, songs in nights.items():
        store.upsert_playlist_and_songs(
            db_session, day, [SongSchema(artist=a, title=t) for a, t in songs]
        )

    db_session.query(Playlist).filter(Playlist.day >= date(2018, 1, 1)).update(
        {Playlist.spotify_id: "published"}, synchronize_session=False
    )
    db_session.query(Song).filter(Song.title.in_(["Bullet", "Chrome"])).update(
        {Song.spotify_id: Song.title}, synchronize_session=False
    )
    return db_session


class TestPlaylistYears:
    """Tests for grouping published playlists by year."""

    def test_playlist_years(self, seeded):
        """Test that only published playlists are grouped, newest first."""
        years = statistics.playlist_years(seeded)

        assert [y.year for y in years] == [2019, 2018]
        assert [p.day for p in years[0].playlists] == [date(2019, 1, 7)]
        assert years[1].playlists[0].spotify_id == "published"

    def test_playlist_years_empty(self, db_session):
        """Test that nothing is returned before anything is published."""
        assert statistics.playlist_years(db_session) == []


class TestRankings:
    """Tests for artist and song rankings."""

    def test_artist_rankings_by_plays(self, seeded):
        """Test ranking artists by total plays, ties broken by name."""
        rankings = statistics.artist_rankings_by_plays(seeded, [2018, 2019], 10)

        assert [(r.artist, r.count) for r in rankings] == [
            ("Covenant", 3),
            ("Apoptygma Berzerk", 1),
            ("VNV Nation", 1),
        ]

    def test_artist_rankings_by_songs(self, seeded):
        """Test ranking artists by number of distinct songs."""
        rankings = statistics.artist_rankings_by_songs(seeded, [2018, 2019], 10)

        assert [(r.artist, r.count) for r in rankings] == [
            ("Covenant", 2),
            ("Apoptygma Berzerk", 1),
            ("VNV Nation", 1),
        ]

    def test_song_rankings(self, seeded):
        """Test ranking songs by plays with a stable order for ties."""
        rankings = statistics.song_rankings(seeded, [2018, 2019], 10)

        assert [(r.artist, r.title, r.count) for r in rankings] == [
            ("Covenant", "Bullet", 2),
            ("Apoptygma Berzerk", "Kathy's Song", 1),
            ("Covenant", "Call The Ships To Port", 1),
            ("VNV Nation", "Chrome", 1),
        ]
        assert rankings[0].spotify_id == "Bullet"

    def test_song_rankings_spotify_only(self, seeded):
        """Test that songs without a Spotify ID can be excluded."""
        rankings = statistics.song_rankings(seeded, [2018, 2019], 10, spotify_only=True)

        assert [r.title for r in rankings] == ["Bullet", "Chrome"]

    def test_song_rankings_single_year(self, seeded):
        """Test that plays outside the given years are ignored."""
        rankings = statistics.song_rankings(seeded, [2017], 10)

        assert [(r.artist, r.count) for r in rankings] == [("Bauhaus", 1)]

    def test_song_rankings_limit(self, seeded):
        """Test that rankings are capped."""
        assert len(statistics.song_rankings(seeded, [2018, 2019], 2)) == 2


class TestSpecialPlaylists:
    """Tests for looking up ranking playlists."""

    def test_special_playlist_spotify_id(self, db_session):
        """Test that a ranking playlist's ID is found by slug."""
        assert statistics.special_playlist_spotify_id(db_session, "all-time") is None

        store.update_special_playlist_spotify_id(db_session, "all-time", "playlist1")

        assert statistics.special_playlist_spotify_id(db_session, "all-time") == "playlist1"


class TestPlaylistInfo:
    """Tests for summarizing a playlist."""

    def test_playlist_info(self):
        """Test the summary of a partially found playlist."""
        playlist = PlaylistSchema(
            day=date(2019, 1, 7),
            songs=[
                SongSchema(artist="Covenant", title="Bullet", spotify_id="t1"),
                SongSchema(artist="VNV Nation", title="Chrome", spotify_id="t2"),
                SongSchema(artist="Unknown", title="Demo"),
            ],
        )

        assert (
            statistics.playlist_info(playlist)
            == "2 out of 3 songs (66.7%) were found in Spotify."
        )

    def test_playlist_info_empty(self):
        """Test that an empty playlist doesn't divide by zero."""
        playlist = PlaylistSchema(day=date(2019, 1, 7))

        assert (
            statistics.playlist_info(playlist)
            == "0 out of 0 songs (0.0%) were found in Spotify."
        )
