"""Refresh SponsorBlock labels of recent and unread videos.

Labels are crowd-sourced and usually arrive some hours after upload, so
videos still likely to be watched are checked again after every run.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.constants import SPONSORBLOCK_RECHECK_WINDOW
from subfeed.db.crud.videos import get_recheck_candidates, update_video
from subfeed.models.video import Platform
from subfeed.services.notifications import Notifier
from subfeed.services.sponsorblock import SponsorBlockClient

logger = logging.getLogger(__name__)


async def recheck_sponsorblock(
    session_maker: async_sessionmaker[AsyncSession],
    sponsorblock: SponsorBlockClient,
    notifier: Notifier,
    platform: Platform = Platform.YOUTUBE,
    now: datetime | None = None,
) -> int:
    """Re-run the lookup for videos from the last day or still unread.

    Returns the number of videos whose label changed. Failed lookups are
    reported and skipped.
    """
    logger.info("Checking SponsorBlock information...")
    since = (now or datetime.now(UTC)) - SPONSORBLOCK_RECHECK_WINDOW

    async with session_maker() as db:
        videos = await get_recheck_candidates(db, platform, since)

    changed = 0
    for index, video in enumerate(videos, start=1):
        logger.info(f"Checking video {index}/{len(videos)} ({video.video_id})...")
        result = await sponsorblock.get_full_video_label(video.video_id)
        if not result.success:
            logger.warning(
                f"Failed to fetch SponsorBlock status for video {video.video_id} with code {result.http_status}"
            )
            await notifier.warning(
                f"Failed to fetch SponsorBlock status for video {video.video_id} with code {result.http_status}"
            )
            continue
        if result.status != video.sponsor_block_status:
            async with session_maker() as db, db.begin():
                await update_video(db, video.video_id, sponsor_block_status=result.status)
            changed += 1

    logger.info(f"Done checking SponsorBlock information! {changed} label(s) changed.")
    return changed
