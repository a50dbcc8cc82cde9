"""Shared contract for channel sources.

A source knows one platform: it recognizes that platform's subscription
URIs, fetches and normalizes a channel's most recent videos, fetches the
extended attributes of a single video, and cleans up after a run.
"""

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from subfeed.models.video import Platform, VideoType
from subfeed.services.notifications import Notifier
from subfeed.services.purge import purge_unsubscribed, purge_unwhitelisted_shorts
from subfeed.utils.logging import LogContext


class SourceError(Exception):
    """A channel could not be scraped. Aborts the run."""


class SourceFetchError(SourceError):
    """A platform request failed."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SourceParseError(SourceError, ValueError):
    """A subscription URI or platform payload could not be understood."""


class Skip(enum.Enum):
    """Marker for a video that cannot be imported on this run."""

    SKIP = "skip"


SKIP = Skip.SKIP


@dataclass
class ListingItem:
    """One video from a channel listing, normalized across platforms."""

    video_id: str
    title: str
    url: str
    video_type: VideoType
    duration: int | None = None  # seconds
    is_live: bool = False
    # Was live but its duration never resolved: broken or still processing
    is_broken: bool = False
    published_at: datetime | None = None
    description: str | None = None
    # Where to fetch extended attributes, when the platform needs more than video_id
    detail_url: str | None = None


@dataclass
class ChannelListing:
    """A channel's most recent videos."""

    channel_id: str
    display_name: str
    username: str
    items: list[ListingItem] = field(default_factory=list)


@dataclass
class ItemDetail:
    """Attributes only available from a video's own page."""

    published_at: datetime | None
    duration: int | None = None
    description: str | None = None


def as_seconds(value: float | int | None) -> int | None:
    """Normalize a platform duration to whole seconds."""
    if value is None:
        return None
    return int(value)


def from_unix(value: float | int | str | None) -> datetime | None:
    """Parse a unix timestamp in seconds, returning None when unusable."""
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(float(value), UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def from_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp, returning None when unusable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class Source(ABC):
    """A video platform."""

    platform: Platform
    scheme: str
    supports_shorts: bool = False
    uses_sponsorblock: bool = False

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier

    def identify(self, uri: str) -> bool:
        """Whether a subscription URI belongs to this platform."""
        return uri.startswith(self.scheme)

    def _uri_parts(self, uri: str) -> list[str]:
        parts = uri.removeprefix(self.scheme).split("/")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise SourceParseError(f"Channel could not be parsed from URI {uri}")
        return parts

    @abstractmethod
    def channel_id_from_uri(self, uri: str) -> str:
        """The stored channel ID a subscription URI refers to."""

    @abstractmethod
    async def fetch_listing(
        self,
        uri: str,
        shorts_whitelisted: bool,
        log: LogContext,
    ) -> ChannelListing | None:
        """Fetch a channel's most recent videos.

        Returns None when the platform reports the channel gone; the
        operator has been notified in that case.
        """

    @abstractmethod
    async def fetch_item_detail(self, item: ListingItem, log: LogContext) -> ItemDetail | Skip:
        """Fetch extended attributes of a new video.

        Returns SKIP for videos that can't be imported yet (processing,
        members-only, scheduled). Raises SourceError otherwise.
        """

    async def post_run_tasks(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        subscriptions: Sequence[str],
        shorts_whitelist: Sequence[str],
    ) -> None:
        """Housekeeping once every channel has been scraped."""
        await purge_unsubscribed(session_maker, self, subscriptions)
        if self.supports_shorts:
            await purge_unwhitelisted_shorts(session_maker, self, shorts_whitelist)
