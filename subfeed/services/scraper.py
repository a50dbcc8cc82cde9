"""Feed update runs.

A run re-reads the subscriptions, visits every channel once in random
order, then lets each source clean up. Only one run can be in progress:
a trigger that fires during a run is dropped, not queued.
"""

import enum
import logging
import random
import time
import traceback
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.config import Settings, get_settings, load_shorts_whitelist, load_subscriptions
from subfeed.services.enrichment import EnrichmentResult, Enricher
from subfeed.services.notifications import Notifier
from subfeed.services.reconcile import ReconcileResult, reconcile_channel
from subfeed.services.sources.base import Source
from subfeed.services.sources.registry import SourceRegistry
from subfeed.utils.logging import LogContext

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    """Whether a feed update is in progress."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class ChannelScrapeResult:
    """Outcome of scraping one channel."""

    reconcile: ReconcileResult | None = None
    enrichment: EnrichmentResult | None = None

    @property
    def terminated(self) -> bool:
        return self.reconcile is None


def format_elapsed(seconds: float) -> str:
    """Render a duration like ``1h 2m 3s``."""
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = [f"{hours}h"] if hours else []
    if hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


async def scrape_channel(
    source: Source,
    uri: str,
    shorts_whitelisted: bool,
    session_maker: async_sessionmaker[AsyncSession],
    enricher: Enricher,
    log: LogContext,
) -> ChannelScrapeResult:
    """Fetch one channel, reconcile it, then import its new videos."""
    listing = await source.fetch_listing(uri, shorts_whitelisted, log)
    if listing is None:
        return ChannelScrapeResult()

    reconciled = await reconcile_channel(session_maker, listing)
    log.info(f"Reconciled {listing.channel_id}: {reconciled}")

    enriched = await enricher.enrich(source, listing, reconciled.new_items, log)
    return ChannelScrapeResult(reconcile=reconciled, enrichment=enriched)


class FeedUpdater:
    """Runs feed updates, at most one at a time."""

    def __init__(
        self,
        registry: SourceRegistry,
        enricher: Enricher,
        notifier: Notifier,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.enricher = enricher
        self.notifier = notifier
        self.session_maker = session_maker
        self.settings = settings or get_settings()
        self.state = RunState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    async def update_feeds(self, only: Sequence[str] | None = None) -> bool:
        """Run one update. Returns False if another run was in progress.

        ``only`` restricts which channels are scraped; purging always uses
        the full subscription list. The first channel-level error aborts
        the run, keeping what earlier channels committed.
        """
        if self.is_running:
            logger.debug("Not fetching because a feed update is already in progress")
            return False
        self.state = RunState.RUNNING

        try:
            subscriptions = load_subscriptions(self.settings)
            shorts_whitelist = load_shorts_whitelist(self.settings)
            whitelisted = set(shorts_whitelist)

            channels = list(only) if only is not None else list(subscriptions)
            random.shuffle(channels)

            logger.info("Starting the timer")
            start = time.monotonic()
            for i, uri in enumerate(channels):
                log = LogContext(logger, f"({i + 1}/{len(channels)})")
                source = self.registry.resolve(uri)
                if source is None:
                    log.warning(f"No source handles {uri}, skipping")
                    continue
                log.info(f"Fetching channel {uri}...")
                await scrape_channel(
                    source,
                    uri,
                    uri in whitelisted,
                    self.session_maker,
                    self.enricher,
                    log,
                )
            logger.info(
                f"Done! Fetching all channels took {format_elapsed(time.monotonic() - start)}. See you soon!"
            )

            for source in self.registry.sources:
                await source.post_run_tasks(self.session_maker, subscriptions, shorts_whitelist)
        finally:
            self.state = RunState.IDLE

        return True

    async def run_safely(self) -> None:
        """Run an update, reporting any failure instead of raising it."""
        try:
            await self.update_feeds()
        except Exception as e:
            logger.exception("Feed update failed")
            stack = "".join(traceback.format_exception(e))
            await self.notifier.error(
                f"UNCAUGHT (Subfeed)```Stack:\n{stack}\nInspected:\n{e!r}\n```"
            )
