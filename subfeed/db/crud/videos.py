"""CRUD operations for videos."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from subfeed.models.video import Platform, Video, VideoType


async def get_channel_videos(db: AsyncSession, channel_id: str) -> dict[str, Video]:
    """Get every stored video of a channel, keyed by video ID."""
    result = await db.execute(select(Video).where(Video.channel_id == channel_id))
    return {video.video_id: video for video in result.scalars().all()}


async def get_platform_channel_ids(
    db: AsyncSession,
    platform: Platform,
    video_type: VideoType | None = None,
) -> set[str]:
    """Get the distinct channel IDs stored for a platform."""
    query = select(Video.channel_id).where(Video.platform == platform).distinct()
    if video_type is not None:
        query = query.where(Video.type == video_type)
    result = await db.execute(query)
    return set(result.scalars().all())


async def get_latest_channel_video(
    db: AsyncSession,
    platform: Platform,
    channel_id: str,
) -> Video | None:
    """Get the most recent video of a channel, used to name it in logs."""
    result = await db.execute(
        select(Video)
        .where(Video.platform == platform, Video.channel_id == channel_id)
        .order_by(Video.date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_video(db: AsyncSession, video: Video) -> Video:
    """Add a new video and flush it."""
    db.add(video)
    await db.flush()
    return video


async def update_video(db: AsyncSession, video_id: str, **values: Any) -> int:
    """Update columns of one video. Returns the number of rows touched."""
    result = await db.execute(
        update(Video).where(Video.video_id == video_id).values(**values)
    )
    return result.rowcount


async def delete_video(db: AsyncSession, video_id: str) -> int:
    """Delete one video by ID."""
    result = await db.execute(delete(Video).where(Video.video_id == video_id))
    return result.rowcount


async def delete_channel_videos(
    db: AsyncSession,
    platform: Platform,
    channel_id: str,
    video_type: VideoType | None = None,
) -> int:
    """Delete all videos of a channel, optionally only those of one type."""
    query = delete(Video).where(Video.platform == platform, Video.channel_id == channel_id)
    if video_type is not None:
        query = query.where(Video.type == video_type)
    result = await db.execute(query)
    return result.rowcount


async def get_recheck_candidates(
    db: AsyncSession,
    platform: Platform,
    since: datetime,
) -> Sequence[Video]:
    """Get videos published after ``since`` or still unread."""
    result = await db.execute(
        select(Video)
        .where(
            Video.platform == platform,
            or_(Video.date > since, Video.unread.is_(True)),
        )
        .order_by(Video.date.desc())
    )
    return result.scalars().all()


def _feed_query(unread_only: bool, types: Iterable[VideoType]):
    query = select(Video)
    if unread_only:
        query = query.where(Video.unread.is_(True))
    types = list(types)
    if types:
        query = query.where(Video.type.in_(types))
    return query.order_by(Video.date.desc())


async def get_feed_page(
    db: AsyncSession,
    unread_only: bool = False,
    types: Iterable[VideoType] = (),
    offset: int = 0,
    limit: int = 25,
) -> Sequence[Video]:
    """Get one page of the feed, newest first."""
    result = await db.execute(_feed_query(unread_only, types).offset(offset).limit(limit))
    return result.scalars().all()


async def get_feed_candidates(
    db: AsyncSession,
    unread_only: bool = False,
    types: Iterable[VideoType] = (),
) -> Sequence[Video]:
    """Get every feed video matching the filters, newest first (for search)."""
    result = await db.execute(_feed_query(unread_only, types))
    return result.scalars().all()


async def set_read_state(db: AsyncSession, video_ids: Sequence[str], unread: bool) -> int:
    """Mark videos read or unread. Returns the number of rows touched."""
    if not video_ids:
        return 0
    result = await db.execute(
        update(Video).where(Video.video_id.in_(video_ids)).values(unread=unread)
    )
    return result.rowcount
