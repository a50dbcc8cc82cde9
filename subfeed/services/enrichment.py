"""Import newly discovered videos.

For every new video the source's detail fetch and, where the platform
uses it, the SponsorBlock lookup run concurrently. A video is stored only
when both succeed and its publish date is plausible; otherwise it is left
for the next run.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.constants import (
    NEW_UNREAD_THRESHOLD,
    OLD_VIDEO_ERROR_THRESHOLD,
    VIDEOS_PER_CHANNEL_SCRAPE_LIMIT,
)
from subfeed.db.crud.videos import create_video
from subfeed.models.video import Platform, SponsorBlockStatus, Video
from subfeed.services.notifications import Notifier
from subfeed.services.sources.base import (
    SKIP,
    ChannelListing,
    ItemDetail,
    ListingItem,
    Skip,
    Source,
)
from subfeed.services.sponsorblock import SponsorBlockClient
from subfeed.utils.logging import LogContext

logger = logging.getLogger(__name__)


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """Run awaitables concurrently. The first failure cancels the others
    and is re-raised once they have stopped."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class EnrichmentResult:
    """Outcome of importing a channel's new videos."""

    created: int = 0
    skipped: int = 0
    deferred: int = 0  # left for the next run because of the per-channel limit


def build_video(
    platform: Platform,
    listing: ChannelListing,
    item: ListingItem,
    detail: ItemDetail,
    sponsor_block_status: SponsorBlockStatus | None,
    published_at: datetime,
    now: datetime,
) -> Video:
    """Assemble the stored record for a new video."""
    duration = detail.duration if detail.duration is not None else item.duration
    description = detail.description if detail.description is not None else item.description
    return Video(
        video_id=item.video_id,
        platform=platform,
        type=item.video_type,
        title=item.title,
        description=description,
        duration=duration,
        display_name=listing.display_name,
        username=listing.username,
        channel_id=listing.channel_id,
        date=published_at,
        is_currently_live=item.is_live,
        # Imported as read if it's already more than a week old
        unread=now - published_at < NEW_UNREAD_THRESHOLD,
        sponsor_block_status=sponsor_block_status,
        url=item.url,
    )


class Enricher:
    """Imports a channel's new videos one at a time."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        sponsorblock: SponsorBlockClient,
        notifier: Notifier,
        limit: int = VIDEOS_PER_CHANNEL_SCRAPE_LIMIT,
    ) -> None:
        self.session_maker = session_maker
        self.sponsorblock = sponsorblock
        self.notifier = notifier
        self.limit = limit

    async def _fetch_detail(self, source: Source, item: ListingItem, log: LogContext) -> ItemDetail | Skip:
        log.info(f"Extracting extended attributes from new video {item.video_id}...")
        detail = await source.fetch_item_detail(item, log)
        if detail is not SKIP:
            log.info(f"Done extracting extended attributes from new video {item.video_id}!")
        return detail

    async def _fetch_label(self, item: ListingItem, log: LogContext) -> SponsorBlockStatus | None | Skip:
        log.info(f"Fetching full-video SponsorBlock segments from new video {item.video_id}...")
        result = await self.sponsorblock.get_full_video_label(item.video_id)
        if result.success:
            log.info(f"Done fetching full-video SponsorBlock segments from new video {item.video_id}!")
            return result.status
        log.error(
            f"Error fetching SponsorBlock segments for video {item.video_id} "
            f"with status {result.http_status}! Skipping this video for now."
        )
        await self.notifier.warning(
            f"Error fetching SponsorBlock segments for video {item.video_id}! Skipping this video for now."
        )
        return SKIP

    async def enrich(
        self,
        source: Source,
        listing: ChannelListing,
        new_items: list[ListingItem],
        log: LogContext,
        now: datetime | None = None,
    ) -> EnrichmentResult:
        """Import new videos in listing order, up to the per-channel limit.

        Source errors propagate; skips only affect their own video.
        """
        result = EnrichmentResult()

        for index, item in enumerate(new_items, start=1):
            item_log = log.child(f"[{index}/{len(new_items)}]")

            if source.uses_sponsorblock:
                detail, label = await gather_or_cancel(
                    self._fetch_detail(source, item, item_log),
                    self._fetch_label(item, item_log),
                )
            else:
                detail = await self._fetch_detail(source, item, item_log)
                label = None

            if detail is SKIP or label is SKIP:
                item_log.warning(f"Skipping {item.video_id}...")
                result.skipped += 1
                continue

            published_at = detail.published_at
            if published_at is None or published_at < OLD_VIDEO_ERROR_THRESHOLD:
                # Probably a parse failure upstream; a human should look at it
                timestamp_ms = int(published_at.timestamp() * 1000) if published_at else None
                message = (
                    f"Received timestamp {timestamp_ms} for video {item.video_id}, "
                    "which is older than expected! Skipping this video for now."
                )
                item_log.error(f"WARNING: {message}")
                await self.notifier.warning(message)
                result.skipped += 1
                continue

            video = build_video(
                source.platform, listing, item, detail, label, published_at, now or datetime.now(UTC)
            )
            async with self.session_maker() as db, db.begin():
                await create_video(db, video)
            result.created += 1

            if index >= self.limit:
                result.deferred = len(new_items) - index
                if result.deferred:
                    log.info(
                        "Skipping the rest of the new videos because there is a "
                        f"{self.limit} video limit per channel on new videos per scrape."
                    )
                break

        return result
