"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from subfeed.config import Settings, get_settings
from subfeed.db.database import get_db
from subfeed.main import app
from subfeed.models.base import Base
from subfeed.models.video import Platform, Video, VideoType
from subfeed.services.notifications import Notifier
from subfeed.services.sources.base import (
    ChannelListing,
    ItemDetail,
    ListingItem,
    Skip,
    Source,
)
from subfeed.services.sponsorblock import SponsorBlockResult

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite://"
API_SECRET = "test-secret"
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class RecordingNotifier(Notifier):
    """Notifier that keeps messages instead of posting them."""

    def __init__(self) -> None:
        super().__init__(Settings(app_env="test"))
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []

    async def info(self, message: str) -> None:
        self.infos.append(message)

    async def warning(self, message: str) -> None:
        self.warnings.append(message)

    async def error(self, report: str) -> None:
        self.errors.append(report)


class FakeSponsorBlock:
    """SponsorBlock client answering from a dict of video ID -> result."""

    def __init__(self) -> None:
        self.results: dict[str, SponsorBlockResult] = {}
        self.calls: list[str] = []

    async def get_full_video_label(self, video_id: str) -> SponsorBlockResult:
        self.calls.append(video_id)
        return self.results.get(video_id, SponsorBlockResult(success=True))


class FakeSource(Source):
    """Source serving canned listings and details."""

    platform = Platform.YOUTUBE
    scheme = "fake://"
    supports_shorts = True
    uses_sponsorblock = True

    def __init__(self, notifier: Notifier) -> None:
        super().__init__(notifier)
        self.listings: dict[str, ChannelListing | Exception | None] = {}
        self.details: dict[str, ItemDetail | Skip | Exception] = {}
        self.detail_calls: list[str] = []
        self.listing_calls: list[str] = []
        self.post_run_calls = 0

    def channel_id_from_uri(self, uri: str) -> str:
        return self._uri_parts(uri)[0]

    async def fetch_listing(self, uri, shorts_whitelisted, log):
        self.listing_calls.append(uri)
        listing = self.listings[uri]
        if isinstance(listing, Exception):
            raise listing
        return listing

    async def fetch_item_detail(self, item, log):
        self.detail_calls.append(item.video_id)
        detail = self.details.get(item.video_id)
        if isinstance(detail, Exception):
            raise detail
        if detail is None:
            return ItemDetail(published_at=NOW - timedelta(hours=1), duration=item.duration)
        return detail

    async def post_run_tasks(self, session_maker, subscriptions, shorts_whitelist):
        self.post_run_calls += 1
        await super().post_run_tasks(session_maker, subscriptions, shorts_whitelist)


def _make_item(video_id: str, **overrides: Any) -> ListingItem:
    values: dict[str, Any] = {
        "video_id": video_id,
        "title": f"Title {video_id}",
        "url": f"https://youtu.be/{video_id}",
        "video_type": VideoType.VIDEO,
        "duration": 300,
    }
    values.update(overrides)
    return ListingItem(**values)


def _make_listing(channel_id: str, items: list[ListingItem]) -> ChannelListing:
    return ChannelListing(
        channel_id=channel_id,
        display_name=f"{channel_id} display",
        username=f"@{channel_id}",
        items=items,
    )


@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting test data."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def video_factory(session_maker) -> Callable[..., Any]:
    """Insert a stored video. Returns an async function."""

    async def create(video_id: str, **overrides: Any) -> Video:
        values: dict[str, Any] = {
            "video_id": video_id,
            "platform": Platform.YOUTUBE,
            "type": VideoType.VIDEO,
            "title": f"Title {video_id}",
            "description": None,
            "duration": 300,
            "display_name": "Channel",
            "username": "@channel",
            "channel_id": "UC1",
            "date": NOW - timedelta(days=1),
            "is_currently_live": False,
            "unread": True,
            "sponsor_block_status": None,
            "url": f"https://youtu.be/{video_id}",
        }
        values.update(overrides)
        video = Video(**values)
        async with session_maker() as db, db.begin():
            db.add(video)
        return video

    return create


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sponsorblock() -> FakeSponsorBlock:
    return FakeSponsorBlock()


@pytest.fixture
def fake_source(notifier) -> FakeSource:
    return FakeSource(notifier)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """API client authorized with the test secret."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: Settings(
        app_env="test", expected_server_authorization=API_SECRET
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": API_SECRET},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_item() -> Callable[..., ListingItem]:
    """Build a listing item with sensible defaults."""
    return _make_item


@pytest.fixture
def make_listing() -> Callable[..., ChannelListing]:
    return _make_listing


@pytest.fixture
def now() -> datetime:
    return NOW
