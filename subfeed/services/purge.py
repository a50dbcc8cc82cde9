"""Remove videos of channels that are no longer followed.

Each channel is deleted in its own transaction; a failure is logged and
the remaining channels are still purged.
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.db.crud.videos import (
    delete_channel_videos,
    get_latest_channel_video,
    get_platform_channel_ids,
)
from subfeed.models.video import VideoType

if TYPE_CHECKING:
    from subfeed.services.sources.base import Source

logger = logging.getLogger(__name__)


def channel_ids_for(source: "Source", uris: Sequence[str]) -> set[str]:
    """Stored channel IDs of the given URIs that belong to ``source``."""
    channel_ids = set()
    for uri in uris:
        if not source.identify(uri):
            continue
        try:
            channel_ids.add(source.channel_id_from_uri(uri))
        except ValueError as e:
            logger.warning(f"Ignoring malformed subscription {uri}: {e}")
    return channel_ids


async def _purge_channels(
    session_maker: async_sessionmaker[AsyncSession],
    source: "Source",
    keep: set[str],
    video_type: VideoType | None,
    reason: str,
) -> list[str]:
    async with session_maker() as db:
        stored = await get_platform_channel_ids(db, source.platform, video_type)

    purged = []
    for channel_id in sorted(stored - keep):
        try:
            async with session_maker() as db, db.begin():
                latest = await get_latest_channel_video(db, source.platform, channel_id)
                name = f"{latest.username} / {latest.display_name}" if latest else "unknown"
                logger.info(f"Channel {channel_id} ({name}) {reason}")
                await delete_channel_videos(db, source.platform, channel_id, video_type)
        except SQLAlchemyError:
            logger.exception(f"Failed to purge channel {channel_id}, continuing")
            continue
        purged.append(channel_id)
    return purged


async def purge_unsubscribed(
    session_maker: async_sessionmaker[AsyncSession],
    source: "Source",
    subscriptions: Sequence[str],
) -> list[str]:
    """Delete every video of channels missing from the subscriptions."""
    logger.info(f"Checking for unsubscribed {source.platform.value} channels...")
    purged = await _purge_channels(
        session_maker,
        source,
        channel_ids_for(source, subscriptions),
        None,
        "has been unsubscribed. Purging from DB.",
    )
    logger.info("Done checking for unsubscribed channels!")
    return purged


async def purge_unwhitelisted_shorts(
    session_maker: async_sessionmaker[AsyncSession],
    source: "Source",
    shorts_whitelist: Sequence[str],
) -> list[str]:
    """Delete shorts of channels missing from the shorts whitelist."""
    logger.info(f"Checking for shorts un-whitelisted {source.platform.value} channels...")
    purged = await _purge_channels(
        session_maker,
        source,
        channel_ids_for(source, shorts_whitelist),
        VideoType.SHORT,
        "has been removed from the Shorts whitelist. Purging shorts from DB.",
    )
    logger.info("Done checking for shorts un-whitelisted channels!")
    return purged
