"""
Parsing of the legacy Death Guild site's HTML.

The site has used more than one markup layout for playlists over the years.
Each known layout is a variant below, and a document is parsed with the first
variant that finds songs in it.
"""

import html
import logging
import re
from datetime import date
from typing import List, Union
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from deathguild.core.errors import EmptyPlaylistError, ParseError
from deathguild.schemas.playlist import Song

logger = logging.getLogger(__name__)

# Links to individual playlists on the index page.
INDEX_LINK_SELECTOR = "#playlist table a"

# Type alias for a URL to a playlist pulled from the index.
PlaylistLink = str

Document = Union[str, bytes]


def _parse(document: Document) -> BeautifulSoup:
    return BeautifulSoup(document, "html.parser")


def scrape_index(document: Document) -> List[PlaylistLink]:
    """
    Extract links to every playlist from the index page.

    Raises:
        ParseError: If any link is missing its href. The whole index is
            rejected rather than returning a partial list.
    """
    soup = _parse(document)

    links = []
    for anchor in soup.select(INDEX_LINK_SELECTOR):
        link = anchor.get("href")
        if not link:
            raise ParseError(f"No href attribute for link: {anchor.get_text()}")
        links.append(link)

    logger.info(f"Found {len(links)} playlist(s) in index")
    return links


def extract_day(link: PlaylistLink) -> date:
    """Get the night of a playlist from the last segment of its link."""
    segment = urlparse(link).path.rstrip("/").split("/")[-1]
    try:
        return date.fromisoformat(segment)
    except ValueError as e:
        raise ParseError(f"Couldn't extract a day from link: {link}") from e


class PlaylistLayout:
    """A known markup layout for playlist pages."""

    name = ""
    selector = ""

    def matches(self, soup: BeautifulSoup) -> bool:
        return soup.select_one(self.selector) is not None

    def extract(self, soup: BeautifulSoup) -> List[Song]:
        raise NotImplementedError


class TableLayout(PlaylistLayout):
    """Old style playlists: one table row per song, artist then title."""

    name = "table"
    selector = "table.Normal tr"

    def extract(self, soup: BeautifulSoup) -> List[Song]:
        songs = []
        for row in soup.select(self.selector):
            cells = row.find_all("td", recursive=False)
            if len(cells) < 2:
                continue

            artist = cells[0].get_text().strip()
            title = cells[1].get_text().strip()

            # Ignore headers
            if artist == "Artist" and title == "Title":
                continue

            songs.append(Song(artist=artist, title=title))
        return songs


class InlineEmphasisLayout(PlaylistLayout):
    """
    New style playlists: `<em>Artist</em> - Title<br>` repeated in one block.

    The title isn't wrapped in an element of its own, so it's found with a
    regexp over the parent's markup anchored on the artist.
    """

    name = "inline-emphasis"
    selector = "div#playlist em"

    def extract(self, soup: BeautifulSoup) -> List[Song]:
        songs = []

        # Serialized markup of each parent and how far into it we've matched,
        # so an artist played twice in a night gets the right title each time.
        scanned = {}

        for em in soup.select(self.selector):
            artist = em.get_text()
            content, start = scanned.get(id(em.parent), (None, 0))
            if content is None:
                content = str(em.parent)

            # get_text unescaped the artist, so escape it again to match the
            # markup, then escape it for use in a regexp.
            pattern = re.compile(
                r"<em>%s</em> - (.*?)<" % re.escape(html.escape(artist, quote=False))
            )
            match = pattern.search(content, start)
            if match is None:
                raise ParseError(f"Failed to find title match for: {artist}")
            scanned[id(em.parent)] = (content, match.end())

            title = html.unescape(match.group(1))
            songs.append(Song(artist=artist.strip(), title=title.strip()))
        return songs


LAYOUTS: List[PlaylistLayout] = [TableLayout(), InlineEmphasisLayout()]


def scrape_playlist(document: Document) -> List[Song]:
    """
    Extract the ordered songs of a playlist page.

    Raises:
        ParseError: If the page's markup doesn't have the structure we expect
        EmptyPlaylistError: If no songs were found, which probably means the
            site's layout changed and our selectors no longer work
    """
    soup = _parse(document)

    # Use the first layout that finds songs; pages can carry stray markup
    # matching another layout's selector.
    songs: List[Song] = []
    for layout in LAYOUTS:
        if not layout.matches(soup):
            continue
        songs = layout.extract(soup)
        if songs:
            logger.debug(f"Parsed playlist with {layout.name} layout")
            break

    if not songs:
        raise EmptyPlaylistError(
            "Found zero-length playlist; this probably means that scraping logic is broken"
        )

    logger.info(f"Found playlist of {len(songs)} song(s)")
    return songs
