"""YouTube source backed by yt-dlp.

Listings come from a flat extraction of the channel page, which covers the
videos, shorts and streams tabs in one call. New videos then need a full
extraction of the watch page for the upload timestamp and description.
yt-dlp is blocking, so every extraction runs in a worker thread.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yt_dlp
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from yt_dlp.utils import DownloadError

from subfeed.constants import YOUTUBE_PAGE_SIZE
from subfeed.models.video import Platform, VideoType
from subfeed.services.notifications import Notifier
from subfeed.services.recheck import recheck_sponsorblock
from subfeed.services.sources.base import (
    SKIP,
    ChannelListing,
    ItemDetail,
    ListingItem,
    Skip,
    Source,
    SourceFetchError,
    SourceParseError,
    as_seconds,
    from_unix,
)
from subfeed.services.sponsorblock import SponsorBlockClient
from subfeed.utils.logging import LogContext

logger = logging.getLogger(__name__)

TERMINATED_MESSAGE = "This account has been terminated"
AGE_GATE_MESSAGE = "Sign in to confirm your age"
PROCESSING_MESSAGE = "We're processing this video. Check back later."
PAID_MESSAGES = (
    "Join this channel to get access to members-only content",
    "This video requires payment to watch",
)
UPCOMING_MESSAGE = "This live event will begin in"

# Tabs yt-dlp may hand back on their own when a channel only has one of them
TAB_SUFFIXES = ("/videos", "/shorts", "/streams")
STREAM_STATUSES = ("is_live", "was_live", "post_live")
# Ended streams whose replay has no duration yet are still being processed
ENDED_STREAM_STATUSES = ("was_live", "post_live")


class _YtDlpLogger:
    """Route yt-dlp output into logging and remember its warnings."""

    def __init__(self) -> None:
        self.warnings: list[str] = []

    def debug(self, msg: str) -> None:
        logger.debug(msg)

    def info(self, msg: str) -> None:
        logger.debug(msg)

    def warning(self, msg: str) -> None:
        self.warnings.append(msg)
        logger.warning(msg)

    def error(self, msg: str) -> None:
        logger.error(msg)


class YouTubeSource(Source):
    """Channels subscribed as ``yt://<channel id>/<@handle>``."""

    platform = Platform.YOUTUBE
    scheme = "yt://"
    supports_shorts = True
    uses_sponsorblock = True

    def __init__(
        self,
        notifier: Notifier,
        sponsorblock: SponsorBlockClient,
        cookies_path: Path | None = None,
    ) -> None:
        super().__init__(notifier)
        self.sponsorblock = sponsorblock
        self.cookies_path = cookies_path

    def channel_id_from_uri(self, uri: str) -> str:
        return self._uri_parts(uri)[0]

    def _extract_info(self, url: str, options: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        ytdlp_logger = _YtDlpLogger()
        ydl_opts = {
            "quiet": True,
            "skip_download": True,
            "logger": ytdlp_logger,
            **options,
        }
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)
            return ydl.sanitize_info(info), ytdlp_logger.warnings

    async def extract(self, url: str, **options: Any) -> tuple[dict[str, Any], list[str]]:
        """Run a yt-dlp extraction without blocking the event loop."""
        return await asyncio.to_thread(self._extract_info, url, options)

    async def fetch_listing(
        self,
        uri: str,
        shorts_whitelisted: bool,
        log: LogContext,
    ) -> ChannelListing | None:
        channel_id = self.channel_id_from_uri(uri)
        expected_uploader_id = self._uri_parts(uri)[1]

        try:
            data, _ = await self.extract(
                f"https://www.youtube.com/channel/{channel_id}",
                extract_flat="in_playlist",
                playlist_items=f"0:{YOUTUBE_PAGE_SIZE}",
            )
        except DownloadError as e:
            if TERMINATED_MESSAGE in str(e):
                log.error(f"Channel {uri} has been terminated.")
                await self.notifier.info(f"Channel `{uri}` has been terminated.")
                return None
            raise SourceFetchError(f"yt-dlp channel data scrape error for {uri}: {e}") from e

        if not isinstance(data, dict) or "entries" not in data:
            raise SourceParseError(f"yt-dlp returned no playlist data for {uri}")

        # A channel with a single tab comes back as that tab's playlist
        tabs = [data] if str(data.get("webpage_url", "")).endswith(TAB_SUFFIXES) else data["entries"]

        uploader_id = data.get("uploader_id")
        if uploader_id != expected_uploader_id:
            await self.notifier.warning(
                f"Channel `{channel_id}`, previously `{expected_uploader_id}`, is now `{uploader_id}`"
            )

        items = []
        for tab in tabs:
            for entry in (tab or {}).get("entries") or []:
                item = self._normalize(entry, shorts_whitelisted)
                if item is not None:
                    items.append(item)

        return ChannelListing(
            channel_id=data.get("channel_id") or channel_id,
            display_name=data.get("channel") or "",
            username=uploader_id or expected_uploader_id,
            items=items,
        )

    def _normalize(self, entry: dict[str, Any], shorts_whitelisted: bool) -> ListingItem | None:
        availability = entry.get("availability")
        live_status = entry.get("live_status")
        if availability in ("subscriber_only", "premium_only") or live_status == "is_upcoming":
            # Full extraction fails for these until they're public
            return None

        duration = as_seconds(entry.get("duration"))
        is_broken = live_status in ENDED_STREAM_STATUSES and duration is None
        is_short = "/shorts/" in (entry.get("url") or "")
        if is_short and not shorts_whitelisted and not is_broken:
            return None

        if live_status in STREAM_STATUSES:
            video_type = VideoType.STREAM
        elif is_short:
            video_type = VideoType.SHORT
        else:
            video_type = VideoType.VIDEO

        return ListingItem(
            video_id=entry["id"],
            title=entry.get("title") or "",
            url=f"https://youtu.be/{entry['id']}",
            video_type=video_type,
            duration=duration,
            is_live=live_status == "is_live",
            is_broken=is_broken,
            description=entry.get("description"),
        )

    async def fetch_item_detail(self, item: ListingItem, log: LogContext) -> ItemDetail | Skip:
        url = f"https://www.youtube.com/watch?v={item.video_id}"
        try:
            info, warnings = await self.extract(url, check_formats=False)
        except DownloadError as e:
            message = str(e)
            if AGE_GATE_MESSAGE in message and self.cookies_path and self.cookies_path.exists():
                log.info(f"Retrying video {item.video_id} with authentication...")
                try:
                    info, warnings = await self.extract(url, cookiefile=str(self.cookies_path))
                except DownloadError as retry_error:
                    raise SourceFetchError(
                        f"yt-dlp video data scrape error for {item.video_id}: {retry_error}"
                    ) from retry_error
            elif PROCESSING_MESSAGE in message:
                log.info(f"Video {item.video_id} was still processing.")
                await self.notifier.info(f"Video {item.video_id} was still processing.")
                return SKIP
            elif any(paid in message for paid in PAID_MESSAGES):
                log.info(
                    "Flat playlist fetch failed to retrieve availability information. "
                    f"Video {item.video_id} required payment."
                )
                return SKIP
            elif UPCOMING_MESSAGE in message:
                log.info(
                    "Flat playlist fetch failed to retrieve availability information. "
                    f"Video {item.video_id} is a pending livestream."
                )
                return SKIP
            else:
                raise SourceFetchError(f"yt-dlp video data scrape error for {item.video_id}: {e}") from e

        timestamp = info.get("timestamp")
        if warnings:
            log.warning(
                f"There were warnings on this request. Make sure {timestamp} is the right timestamp for {item.video_id}."
            )
            await self.notifier.info(
                f"There were warnings on this request. Make sure {timestamp} is the right timestamp for {item.video_id}."
            )

        return ItemDetail(
            published_at=from_unix(timestamp),
            duration=as_seconds(info.get("duration")),
            description=info.get("description"),
        )

    async def post_run_tasks(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        subscriptions: Sequence[str],
        shorts_whitelist: Sequence[str],
    ) -> None:
        await super().post_run_tasks(session_maker, subscriptions, shorts_whitelist)
        await recheck_sponsorblock(session_maker, self.sponsorblock, self.notifier, self.platform)
