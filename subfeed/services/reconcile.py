"""Bring a channel's stored videos in line with its current listing.

Runs in a single transaction per channel. Videos that aren't stored yet
are only collected here; they are imported by the enrichment step once
this transaction has committed, so no slow network call happens while
the transaction is open.
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.db.crud.videos import delete_video, get_channel_videos, update_video
from subfeed.models.video import Video
from subfeed.services.sources.base import ChannelListing, ListingItem


@dataclass
class ReconcileResult:
    """What reconciliation did to one channel."""

    new_items: list[ListingItem] = field(default_factory=list)
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0

    @property
    def writes(self) -> int:
        return self.updated + self.deleted

    def __str__(self) -> str:
        return (
            f"new={len(self.new_items)}, updated={self.updated}, "
            f"deleted={self.deleted}, unchanged={self.unchanged}"
        )


def plan_update(item: ListingItem, stored: Video) -> dict[str, Any]:
    """Columns to change on a stored video, empty when it's current.

    A stream that has ended gets its final title and duration and is no
    longer live. Otherwise only a changed title or a changed, known
    duration is written. A known duration is never cleared.
    """
    if stored.is_currently_live and not item.is_live:
        values: dict[str, Any] = {"title": item.title, "is_currently_live": False}
        if item.duration is not None:
            values["duration"] = item.duration
        return values

    values = {}
    if item.title != stored.title:
        values["title"] = item.title
    if item.duration is not None and item.duration != stored.duration:
        values["duration"] = item.duration
    return values


async def reconcile_channel(
    session_maker: async_sessionmaker[AsyncSession],
    listing: ChannelListing,
) -> ReconcileResult:
    """Apply a channel listing to the store.

    Any failure rolls back every change made to this channel.
    """
    result = ReconcileResult()

    async with session_maker() as db, db.begin():
        stored_videos = await get_channel_videos(db, listing.channel_id)

        for item in listing.items:
            stored = stored_videos.get(item.video_id)

            if item.is_broken:
                # Broken or still processing
                if stored is not None:
                    await delete_video(db, item.video_id)
                    result.deleted += 1
                continue

            if stored is None:
                result.new_items.append(item)
                continue

            values = plan_update(item, stored)
            if values:
                await update_video(db, item.video_id, **values)
                result.updated += 1
            else:
                result.unchanged += 1

    return result
