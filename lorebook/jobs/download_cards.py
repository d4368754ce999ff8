"""
Download the card catalog.

Run this job to refresh the bundled catalog with the latest LorcanaJSON export.
"""

import asyncio
import logging

import httpx

from lorebook.services.card_database import download_catalog, load_catalog

logger = logging.getLogger(__name__)


async def run_download() -> None:
    """Download the card catalog and check that it parses."""
    logger.info("Downloading card catalog...")

    try:
        path = await download_catalog()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Failed to download card catalog: %s", e)
        raise

    catalog = load_catalog(path)
    logger.info("Downloaded %d card prints to %s", len(catalog), path)


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_download())


if __name__ == "__main__":
    main()
