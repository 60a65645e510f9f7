"""Geocode a place, collect Wikipedia articles about it and store it.

Usage:
    python -m tacitus.etl.scrape_location "Paris, France"
    python -m tacitus.etl.scrape_location "Paris, France" --mode geo
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import httpx

from tacitus.config import settings
from tacitus.db.migrate import upgrade_to_head
from tacitus.db.session import async_session, engine
from tacitus.errors import LocationNotFound
from tacitus.logging_config import setup_logging
from tacitus.services.context_resolver import ContextResolver
from tacitus.services.geocoder import NominatimGeocoder
from tacitus.services.location_store import LocationStore
from tacitus.services.outcome import Outcome
from tacitus.services.wikipedia import WikipediaClient

logger = logging.getLogger(__name__)


async def scrape(place_name: str, *, text_search: bool = True) -> Outcome:
    """Run one location through the create-location pipeline."""
    async with httpx.AsyncClient() as client, async_session() as session:
        resolver = ContextResolver(
            LocationStore(session),
            NominatimGeocoder(client),
            WikipediaClient(client),
        )
        return await resolver.create_location(place_name, text_search=text_search)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tacitus-scrape",
        description="Store a location and its Wikipedia articles for answer context.",
    )
    parser.add_argument("location", help='Place name, e.g. "Paris, France"')
    parser.add_argument(
        "--mode",
        choices=["text", "geo"],
        default="text",
        help="Wikipedia search by place name (text) or by coordinates (geo)",
    )
    return parser


async def _run(args: argparse.Namespace) -> Outcome:
    try:
        return await scrape(args.location, text_search=args.mode == "text")
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if settings.run_migrations:
        upgrade_to_head()
    setup_logging(settings.log_level, settings.log_format)

    logger.info("Processing location: %s", args.location)
    outcome = asyncio.run(_run(args))

    if not outcome.succeeded:
        if isinstance(outcome.error, LocationNotFound):
            logger.error("Location %r not found", args.location)
        else:
            logger.error("Failed to process location %r: %s", args.location, outcome.reason)
        return 1

    record = outcome.value
    if outcome.is_degraded:
        logger.warning("Stored fallback article only (%s)", outcome.reason)
    logger.info(
        "Stored %r at (%s, %s) with id=%d and %d article(s)",
        record.location_name,
        record.latitude,
        record.longitude,
        record.id,
        len(record.articles),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
