"""PeerTube source using the instance REST API.

API: https://docs.joinpeertube.org/api-rest-reference.html
"""

import logging
from typing import Any

import httpx

from subfeed.constants import PEERTUBE_PAGE_SIZE
from subfeed.models.video import Platform, VideoType
from subfeed.services.notifications import Notifier
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
    from_iso,
)
from subfeed.utils.http_client import get_general_client
from subfeed.utils.logging import LogContext

logger = logging.getLogger(__name__)

# PeerTube video state: 1 is "published", everything else is still in the pipeline
STATE_PUBLISHED = 1


class PeerTubeSource(Source):
    """Channels subscribed as ``peertube://<host>/<channel name>``.

    Stored channel IDs are ``<channel name>@<host>``.
    """

    platform = Platform.PEERTUBE
    scheme = "peertube://"

    def __init__(self, notifier: Notifier, client: httpx.AsyncClient | None = None) -> None:
        super().__init__(notifier)
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_general_client()

    def channel_id_from_uri(self, uri: str) -> str:
        hostname, channel_name = self._uri_parts(uri)[:2]
        return f"{channel_name}@{hostname}"

    async def _get_json(self, url: str, **params: Any) -> Any:
        try:
            response = await self.client.get(url, params=params or None)
        except httpx.HTTPError as e:
            raise SourceFetchError(f"PeerTube request to {url} failed: {e}") from e
        if not response.is_success:
            logger.error(f"PeerTube {response.status_code} from {url}: {response.text[:500]}")
            raise SourceFetchError(
                f"PeerTube request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text[:500],
            )
        try:
            return response.json()
        except ValueError as e:
            raise SourceParseError(f"PeerTube returned invalid JSON from {url}") from e

    async def fetch_listing(
        self,
        uri: str,
        shorts_whitelisted: bool,
        log: LogContext,
    ) -> ChannelListing | None:
        hostname, channel_name = self._uri_parts(uri)[:2]
        data = await self._get_json(
            f"https://{hostname}/api/v1/video-channels/{channel_name}/videos",
            count=PEERTUBE_PAGE_SIZE,
            includeScheduledLive="false",
        )

        videos = data.get("data") or []
        channel = (videos[0].get("channel") if videos else None) or {}
        items = [self._normalize(video, hostname) for video in videos]
        log.debug(f"PeerTube listed {len(items)} videos of {data.get('total', '?')}")

        return ChannelListing(
            channel_id=self.channel_id_from_uri(uri),
            display_name=channel.get("displayName") or channel_name,
            username=channel.get("name") or channel_name,
            items=items,
        )

    def _normalize(self, video: dict[str, Any], hostname: str) -> ListingItem:
        duration = as_seconds(video.get("duration"))
        is_live = bool(video.get("isLive"))
        return ListingItem(
            video_id=video["uuid"],
            title=video.get("name") or "",
            url=video.get("url") or "",
            video_type=VideoType.STREAM if is_live else VideoType.VIDEO,
            duration=duration,
            is_live=is_live,
            is_broken=duration is None,
            published_at=from_iso(video.get("publishedAt")),
            detail_url=f"https://{hostname}/api/v1/videos/{video['id']}",
        )

    async def fetch_item_detail(self, item: ListingItem, log: LogContext) -> ItemDetail | Skip:
        if not item.detail_url:
            raise SourceParseError(f"PeerTube video {item.video_id} has no detail URL")

        data = await self._get_json(item.detail_url)
        if (data.get("state") or {}).get("id") != STATE_PUBLISHED:
            log.info(f"Video {item.video_id} was still processing.")
            await self.notifier.info(f"Video {item.video_id} was still processing.")
            return SKIP

        return ItemDetail(
            published_at=item.published_at,
            duration=as_seconds(data.get("duration")),
            description=data.get("description"),
        )
