"""CRUD operations module."""

from subfeed.db.crud.videos import (
    create_video,
    delete_channel_videos,
    delete_video,
    get_channel_videos,
    get_feed_candidates,
    get_feed_page,
    get_latest_channel_video,
    get_platform_channel_ids,
    get_recheck_candidates,
    set_read_state,
    update_video,
)

__all__ = [
    "create_video",
    "delete_channel_videos",
    "delete_video",
    "get_channel_videos",
    "get_feed_candidates",
    "get_feed_page",
    "get_latest_channel_video",
    "get_platform_channel_ids",
    "get_recheck_candidates",
    "set_read_state",
    "update_video",
]
