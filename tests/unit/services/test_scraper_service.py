"""Unit tests for PlaylistScraper."""

from datetime import date
from unittest.mock import AsyncMock

import httpx
import pytest
from sqlalchemy import func, select

from deathguild.core.errors import FetchError, JobsFailedError
from deathguild.db.models import Playlist, PlaylistSong, Song
from deathguild.services import store
from deathguild.services.scraper import PlaylistScraper

INDEX_URL = "http://www.deathguild.com/playdates"

INDEX = """
<div id="playlist"><table><tr>
  <td><a href="http://www.deathguild.com/playlist/2018-07-16">July 16, 2018</a></td>
  <td><a href="/playlist/2016-09-26">September 26, 2016</a></td>
</tr></table></div>
"""


@pytest.fixture
def pages(read_fixture):
    """Responses served by the fake legacy site, by URL."""
    return {
        INDEX_URL: (200, INDEX),
        "http://www.deathguild.com/playlist/2018-07-16": (
            200,
            read_fixture("2018-07-16.html"),
        ),
        "http://www.deathguild.com/playlist/2016-09-26": (
            200,
            read_fixture("2016-09-26.html"),
        ),
    }


@pytest.fixture
def requested():
    """URLs requested from the fake legacy site."""
    return []


@pytest.fixture
def transport(pages, requested):
    """Transport serving the fake legacy site."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        status_code, text = pages.get(url, (404, "Not Found"))
        return httpx.Response(status_code, text=text)

    return httpx.MockTransport(handler)


@pytest.fixture
def sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock()


@pytest.fixture
def scraper(session_factory, settings, transport, sleep):
    """Create a scraper against the fake legacy site."""
    return PlaylistScraper(session_factory, settings, transport=transport, sleep=sleep)


def count(session_factory, model) -> int:
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


class TestPlaylistScraper:
    """Tests for scraping playlists into the database."""

    @pytest.mark.asyncio
    async def test_run(self, scraper, session_factory, sleep):
        """Test that every playlist in the index is stored."""
        pool = await scraper.run()

        assert pool.success
        assert pool.jobs_executed == 2
        assert count(session_factory, Playlist) == 2
        assert count(session_factory, Song) == 10
        assert count(session_factory, PlaylistSong) == 10

        # One pause after every playlist fetched
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_run_skips_handled_playlists(self, scraper, requested):
        """Test that a second run doesn't fetch playlists already stored."""
        await scraper.run()
        requested.clear()

        pool = await scraper.run()

        assert pool.jobs_executed == 0
        assert requested == [INDEX_URL]

    @pytest.mark.asyncio
    async def test_run_empty_playlist_fails(
        self, scraper, pages, session_factory, read_fixture
    ):
        """Test that an empty playlist fails its job and isn't stored."""
        pages["http://www.deathguild.com/playlist/2016-09-26"] = (
            200,
            read_fixture("header-only.html"),
        )

        with pytest.raises(JobsFailedError) as exc_info:
            await scraper.run()

        assert exc_info.value.pool.jobs_errored == 1
        assert exc_info.value.pool.jobs_executed == 1

        with session_factory() as db:
            assert store.is_playlist_handled(db, date(2018, 7, 16))
            assert not store.is_playlist_handled(db, date(2016, 9, 26))

    @pytest.mark.asyncio
    async def test_run_index_unavailable(self, scraper, pages):
        """Test that a missing index aborts the run."""
        del pages[INDEX_URL]

        with pytest.raises(FetchError) as exc_info:
            await scraper.run()

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_handle_playlist_already_handled(
        self, scraper, session_factory, requested, sleep
    ):
        """Test that a stored night is skipped without a request."""
        with session_factory() as db:
            store.upsert_playlist_and_songs(db, date(2016, 9, 26), [])
            db.commit()

        result = await scraper.handle_playlist("/playlist/2016-09-26")

        assert result is False
        assert requested == []
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_transport_error(self, session_factory, settings, sleep):
        """Test that a connection failure is reported as a fetch error."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        scraper = PlaylistScraper(
            session_factory,
            settings,
            transport=httpx.MockTransport(handler),
            sleep=sleep,
        )

        with pytest.raises(FetchError, match="Failed requesting"):
            await scraper.fetch(INDEX_URL)
