"""Odysee source using the LBRY JSON-RPC proxy.

Claims are resolved by name first so a renamed or re-keyed channel can be
reported; the listing itself carries everything a video needs.
"""

import logging
import time
from typing import Any

import httpx

from subfeed.constants import ODYSEE_API_URL, ODYSEE_PAGE_SIZE
from subfeed.models.video import Platform, VideoType
from subfeed.services.notifications import Notifier
from subfeed.services.sources.base import (
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
from subfeed.utils.http_client import get_general_client
from subfeed.utils.logging import LogContext

logger = logging.getLogger(__name__)


class OdyseeSource(Source):
    """Channels subscribed as ``odysee://<claim id>/<@name:x>``."""

    platform = Platform.ODYSEE
    scheme = "odysee://"

    def __init__(
        self,
        notifier: Notifier,
        client: httpx.AsyncClient | None = None,
        api_url: str = ODYSEE_API_URL,
    ) -> None:
        super().__init__(notifier)
        self._client = client
        self.api_url = api_url

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_general_client()

    def channel_id_from_uri(self, uri: str) -> str:
        return self._uri_parts(uri)[0]

    async def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(
                self.api_url,
                params={"m": method},
                headers={"Referer": "https://odysee.com/"},
                json={"id": int(time.time() * 1000), "method": method, "params": params},
            )
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Odysee {method} request failed: {e}") from e
        if not response.is_success:
            logger.error(f"Odysee {response.status_code} from {method}: {response.text[:500]}")
            raise SourceFetchError(
                f"Odysee {method} request failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text[:500],
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceParseError(f"Odysee returned invalid JSON for {method}") from e
        if "error" in payload:
            raise SourceFetchError(f"Odysee {method} returned an error: {payload['error']}")
        return payload.get("result") or {}

    async def fetch_listing(
        self,
        uri: str,
        shorts_whitelisted: bool,
        log: LogContext,
    ) -> ChannelListing | None:
        expected_channel_id, name = self._uri_parts(uri)[:2]

        resolved = await self._request("resolve", {"urls": [name]})
        channel_info = resolved.get(name) or {}
        channel_id = channel_info.get("claim_id")
        if not channel_id:
            raise SourceParseError(f"Odysee could not resolve channel {name}")

        if channel_id != expected_channel_id:
            await self.notifier.warning(
                f"Odysee channel `{name}`, previously `{expected_channel_id}`, is now `{channel_id}`"
            )

        result = await self._request(
            "claim_search",
            {
                "channel_ids": [channel_id],
                "no_totals": True,
                "claim_type": ["stream"],
                "order_by": ["release_time"],
                "page": 1,
                "page_size": ODYSEE_PAGE_SIZE,
            },
        )
        items = [self._normalize(claim) for claim in result.get("items") or []]

        value = channel_info.get("value") or {}
        return ChannelListing(
            channel_id=channel_id,
            display_name=value.get("title") or channel_info.get("name") or name,
            username=channel_info.get("name") or name,
            items=items,
        )

    def _normalize(self, claim: dict[str, Any]) -> ListingItem:
        value = claim.get("value") or {}
        duration = as_seconds((value.get("video") or {}).get("duration"))
        # Livestream claims carry no video duration until the replay is published
        is_live = duration is None
        return ListingItem(
            video_id=claim["claim_id"],
            title=value.get("title") or "",
            url=(claim.get("permanent_url") or "").replace("lbry://", "https://odysee.com/"),
            video_type=VideoType.STREAM if is_live else VideoType.VIDEO,
            duration=duration,
            is_live=is_live,
            published_at=from_unix(value.get("release_time")),
            description=value.get("description"),
        )

    async def fetch_item_detail(self, item: ListingItem, log: LogContext) -> ItemDetail | Skip:
        # claim_search already returns the full claim
        return ItemDetail(
            published_at=item.published_at,
            duration=item.duration,
            description=item.description,
        )
