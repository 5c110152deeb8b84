"""
Scraping of playlists from the legacy Death Guild site.
"""

from deathguild.services.scraper.parser import (
    extract_day,
    scrape_index,
    scrape_playlist,
)
from deathguild.services.scraper.service import PlaylistScraper

__all__ = [
    "extract_day",
    "scrape_index",
    "scrape_playlist",
    "PlaylistScraper",
]
