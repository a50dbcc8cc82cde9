"""SQLAlchemy models."""

from subfeed.models.base import Base
from subfeed.models.video import Platform, SponsorBlockStatus, Video, VideoType

__all__ = [
    "Base",
    "Platform",
    "SponsorBlockStatus",
    "Video",
    "VideoType",
]
