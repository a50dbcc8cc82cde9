"""Video model: one row per video across every platform."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from subfeed.models.base import Base


class Platform(str, enum.Enum):
    """Platform a video was published on."""

    YOUTUBE = "YouTube"
    PEERTUBE = "PeerTube"
    ODYSEE = "Odysee"


class VideoType(str, enum.Enum):
    """Kind of content."""

    VIDEO = "video"
    SHORT = "short"
    STREAM = "stream"


class SponsorBlockStatus(str, enum.Enum):
    """Full-video SponsorBlock label."""

    SPONSOR = "sponsor"
    SELFPROMO = "selfpromo"
    EXCLUSIVE_ACCESS = "exclusive_access"


class Video(Base):
    """A video in the unified feed.

    ``video_id`` is the platform-native ID and is the only lookup key.
    """

    __tablename__ = "videos"

    video_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    platform: Mapped[Platform] = mapped_column(Enum(Platform), nullable=False)
    type: Mapped[VideoType] = mapped_column(Enum(VideoType), nullable=False)

    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    is_currently_live: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unread: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    sponsor_block_status: Mapped[SponsorBlockStatus | None] = mapped_column(
        Enum(SponsorBlockStatus), nullable=True
    )
    url: Mapped[str] = mapped_column(String(1000), nullable=False)

    __table_args__ = (Index("ix_videos_platform_channel", "platform", "channel_id"),)

    def __repr__(self) -> str:
        return f"<Video(video_id={self.video_id}, platform={self.platform.value})>"
