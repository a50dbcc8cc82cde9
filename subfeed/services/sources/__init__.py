"""Channel sources, one per video platform."""

from subfeed.services.sources.base import (
    SKIP,
    ChannelListing,
    ItemDetail,
    ListingItem,
    Skip,
    Source,
    SourceError,
    SourceFetchError,
    SourceParseError,
)
from subfeed.services.sources.odysee import OdyseeSource
from subfeed.services.sources.peertube import PeerTubeSource
from subfeed.services.sources.registry import SourceRegistry, create_default_registry
from subfeed.services.sources.youtube import YouTubeSource

__all__ = [
    "SKIP",
    "ChannelListing",
    "ItemDetail",
    "ListingItem",
    "OdyseeSource",
    "PeerTubeSource",
    "Skip",
    "Source",
    "SourceError",
    "SourceFetchError",
    "SourceParseError",
    "SourceRegistry",
    "YouTubeSource",
    "create_default_registry",
]
