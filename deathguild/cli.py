"""
Command line entry point.

    dg scrape     scrape new playlists from the legacy site
    dg enrich     search Spotify for songs missing track IDs
    dg publish    create and update Spotify playlists

Configuration comes from environment variables (see deathguild.core.config).
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from deathguild.core.config import Settings
from deathguild.core.errors import DeathGuildError
from deathguild.db.session import create_session_factory
from deathguild.services.enrichment import SongEnricher
from deathguild.services.publisher import PlaylistPublisher
from deathguild.services.scraper import PlaylistScraper
from deathguild.services.spotify import SpotifyClient

logger = logging.getLogger("deathguild")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # Request logs from httpx are noisy at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def scrape(settings: Settings) -> None:
    session_factory = create_session_factory(settings.database_url)
    await PlaylistScraper(session_factory, settings).run()


async def enrich(settings: Settings) -> None:
    session_factory = create_session_factory(settings.database_url)
    client = SpotifyClient.from_settings(settings)
    result = await SongEnricher(session_factory, client, settings).run()
    logger.info(
        f"Processed {result.processed} song(s): "
        f"{result.found} found, {result.not_found} not found"
    )


async def publish(settings: Settings) -> None:
    session_factory = create_session_factory(settings.database_url)
    client = SpotifyClient.from_settings(settings)
    await PlaylistPublisher(session_factory, client, settings).run()


COMMANDS = {
    "scrape": scrape,
    "enrich": enrich,
    "publish": publish,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dg",
        description="Scrape Death Guild playlists and publish them to Spotify.",
    )
    parser.add_argument(
        "command", choices=sorted(COMMANDS), help="Pipeline step to run"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Print debug output"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except DeathGuildError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.verbose or args.verbose)

    try:
        asyncio.run(COMMANDS[args.command](settings))
    except DeathGuildError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
