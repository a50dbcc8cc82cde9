"""Pydantic schemas for API validation and serialization."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from subfeed.models.video import Platform, SponsorBlockStatus, VideoType


class VideoRead(BaseModel):
    """A video as served by the feed API."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    video_id: str = Field(serialization_alias="videoId")
    platform: Platform
    type: VideoType
    title: str
    description: str | None = None
    duration: int | None = None
    display_name: str = Field(serialization_alias="displayName")
    username: str
    channel_id: str = Field(serialization_alias="channelId")
    date: datetime
    is_currently_live: bool = Field(serialization_alias="isCurrentlyLive")
    unread: bool
    sponsor_block_status: SponsorBlockStatus | None = Field(
        default=None, serialization_alias="sponsorBlockStatus"
    )
    url: str

    @computed_field(alias="timestampMS")  # type: ignore[prop-decorator]
    @property
    def timestamp_ms(self) -> int:
        # SQLite hands back naive datetimes; everything is stored as UTC
        date = self.date if self.date.tzinfo else self.date.replace(tzinfo=UTC)
        return int(date.timestamp() * 1000)


class FeedResponse(BaseModel):
    """Feed page response."""

    success: bool = True
    documents: list[VideoRead]


class ReadStateUpdate(BaseModel):
    """Mark videos read and/or unread."""

    read: list[str] | None = None
    unread: list[str] | None = None


class ReadStateResponse(BaseModel):
    """Result of a read state update."""

    model_config = ConfigDict(populate_by_name=True)

    modified_count: int = Field(serialization_alias="modifiedCount")
