"""Resolve subscription URIs to the source that handles them."""

from collections.abc import Iterable

from subfeed.config import Settings, get_settings
from subfeed.services.notifications import Notifier
from subfeed.services.sources.base import Source
from subfeed.services.sources.odysee import OdyseeSource
from subfeed.services.sources.peertube import PeerTubeSource
from subfeed.services.sources.youtube import YouTubeSource
from subfeed.services.sponsorblock import SponsorBlockClient


class SourceRegistry:
    """The configured sources, matched by URI scheme."""

    def __init__(self, sources: Iterable[Source]) -> None:
        self.sources = list(sources)

    def resolve(self, uri: str) -> Source | None:
        return next((source for source in self.sources if source.identify(uri)), None)


def create_default_registry(
    notifier: Notifier,
    sponsorblock: SponsorBlockClient,
    settings: Settings | None = None,
) -> SourceRegistry:
    """Registry with YouTube, PeerTube and Odysee."""
    settings = settings or get_settings()
    return SourceRegistry(
        [
            YouTubeSource(notifier, sponsorblock, cookies_path=settings.cookies_path),
            PeerTubeSource(notifier),
            OdyseeSource(notifier),
        ]
    )
