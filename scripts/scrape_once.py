#!/usr/bin/env python3
"""Run a single feed update outside the server.

Useful after editing the subscription list, or to debug one channel.
Purging and the SponsorBlock recheck still use the full subscription list.

Usage:
    python scripts/scrape_once.py [URI ...] [--create-tables]

Options:
    URI              Only scrape these channel URIs (default: every subscription)
    --create-tables  Create missing tables before running
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from subfeed.db.database import dispose_db, init_db
from subfeed.main import create_feed_updater
from subfeed.utils.http_client import close_all_clients
from subfeed.utils.logging import setup_logging


async def scrape_once(uris: list[str], create_tables: bool) -> int:
    if create_tables:
        await init_db()

    updater = create_feed_updater()
    try:
        await updater.update_feeds(only=uris or None)
    finally:
        await close_all_clients()
        await dispose_db()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one feed update")
    parser.add_argument("uris", nargs="*", help="Channel URIs to scrape (default: all subscriptions)")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(scrape_once(args.uris, args.create_tables)))
