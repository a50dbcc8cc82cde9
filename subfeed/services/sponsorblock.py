"""SponsorBlock full-video label lookups.

Lookups use the hash-prefix API: only the first characters of the
SHA-256 of the video ID are sent, SponsorBlock answers with every video
sharing that prefix, and the exact ID is picked out locally.

API: https://wiki.sponsor.ajay.app/w/API_Docs
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from subfeed.config import get_settings
from subfeed.constants import (
    SPONSORBLOCK_CATEGORIES,
    SPONSORBLOCK_HASH_PREFIX_LENGTH,
    SPONSORBLOCK_MAX_RETRIES,
    SPONSORBLOCK_RETRY_DELAY,
)
from subfeed.models.video import SponsorBlockStatus
from subfeed.utils.http_client import get_general_client
from subfeed.utils.retry import RetryConfig, retry_request

logger = logging.getLogger(__name__)


def _should_retry(response: httpx.Response) -> bool:
    # 404 means no video with this hash prefix has segments
    return not response.is_success and response.status_code != 404


@dataclass
class SponsorBlockResult:
    """Outcome of a lookup.

    ``success`` with ``status=None`` means the video has no full-video
    label. On failure ``http_status`` holds the last response code, or
    None when no response arrived.
    """

    success: bool
    status: SponsorBlockStatus | None = None
    http_status: int | None = None


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _is_list_of_dicts(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, dict) for item in value)


def select_full_video_label(entries: Any, video_id: str) -> SponsorBlockStatus | None:
    """Pick the label for ``video_id`` out of a hash-prefix response.

    The segment with the most votes wins; ties go to the first one listed.
    Raises ValueError when the response isn't shaped like segment data.
    """
    if not _is_list_of_dicts(entries):
        raise ValueError("expected a list of video entries")
    entry = next((e for e in entries if e.get("videoID") == video_id), None)
    if entry is None:
        return None

    segments = entry.get("segments") or []
    if not _is_list_of_dicts(segments):
        raise ValueError(f"expected a list of segments for {video_id}")

    best: dict | None = None
    best_votes = 0
    for segment in segments:
        if segment.get("category") not in SPONSORBLOCK_CATEGORIES:
            continue
        votes = segment.get("votes", 0)
        if not isinstance(votes, int | float):
            votes = 0
        if best is None or votes > best_votes:
            best, best_votes = segment, votes
    return SponsorBlockStatus(best["category"]) if best else None


class SponsorBlockClient:
    """Client for SponsorBlock's privacy-preserving skip segment endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self.base_url = (base_url or get_settings().sponsorblock_api_url).rstrip("/")
        self._client = client
        self.retry_config = retry_config or RetryConfig(
            max_retries=SPONSORBLOCK_MAX_RETRIES,
            base_delay=SPONSORBLOCK_RETRY_DELAY,
            max_delay=SPONSORBLOCK_RETRY_DELAY,
            exponential_base=1.0,
            retry_on=_should_retry,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_general_client()

    async def get_full_video_label(self, video_id: str) -> SponsorBlockResult:
        """Look up the full-video label of a video."""
        prefix = sha256_hex(video_id)[:SPONSORBLOCK_HASH_PREFIX_LENGTH]
        url = f"{self.base_url}/api/skipSegments/{prefix}"
        params = {
            "categories": json.dumps(list(SPONSORBLOCK_CATEGORIES)),
            "actionType": "full",
        }

        try:
            response = await retry_request(
                self.client.get,
                url,
                params=params,
                config=self.retry_config,
                operation_name=f"SponsorBlock lookup for {video_id}",
            )
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"SponsorBlock request failed for {video_id}: {e!r}")
            return SponsorBlockResult(success=False)

        if response.status_code == 404:
            return SponsorBlockResult(success=True)
        if not response.is_success:
            logger.error(f"SponsorBlock error {response.status_code} for {video_id}: {response.text[:500]}")
            return SponsorBlockResult(success=False, http_status=response.status_code)

        try:
            status = select_full_video_label(response.json(), video_id)
        except ValueError as e:
            logger.error(f"SponsorBlock returned unusable data for {video_id}: {e}")
            return SponsorBlockResult(success=False, http_status=response.status_code)

        return SponsorBlockResult(success=True, status=status, http_status=response.status_code)
