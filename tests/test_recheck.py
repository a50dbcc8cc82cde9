"""Tests for the SponsorBlock recheck."""

from datetime import timedelta

import httpx
import pytest

from subfeed.models.video import Platform, SponsorBlockStatus, Video
from subfeed.services.recheck import recheck_sponsorblock
from subfeed.services.sponsorblock import SponsorBlockClient, SponsorBlockResult
from subfeed.utils.retry import RetryConfig


async def label_of(session_maker, video_id: str) -> SponsorBlockStatus | None:
    async with session_maker() as db:
        return (await db.get(Video, video_id)).sponsor_block_status


class TestRecheckSponsorBlock:
    """Tests for refreshing labels."""

    @pytest.mark.asyncio
    async def test_changed_label_written(self, session_maker, video_factory, sponsorblock, notifier, now):
        """Test a label that appeared since import is stored."""
        await video_factory("v1", date=now - timedelta(hours=2))
        sponsorblock.results["v1"] = SponsorBlockResult(success=True, status=SponsorBlockStatus.SELFPROMO)

        changed = await recheck_sponsorblock(session_maker, sponsorblock, notifier, now=now)

        assert changed == 1
        assert await label_of(session_maker, "v1") == SponsorBlockStatus.SELFPROMO

    @pytest.mark.asyncio
    async def test_unchanged_label_not_written(self, session_maker, video_factory, sponsorblock, notifier, now):
        """Test matching labels cause no write."""
        await video_factory("v1", sponsor_block_status=SponsorBlockStatus.SPONSOR)
        sponsorblock.results["v1"] = SponsorBlockResult(success=True, status=SponsorBlockStatus.SPONSOR)

        assert await recheck_sponsorblock(session_maker, sponsorblock, notifier, now=now) == 0

    @pytest.mark.asyncio
    async def test_old_read_videos_skipped(self, session_maker, video_factory, sponsorblock, notifier, now):
        """Test read videos older than a day aren't checked."""
        await video_factory("old", date=now - timedelta(days=3), unread=False)
        await video_factory("unread", date=now - timedelta(days=3), unread=True)
        await video_factory("recent", date=now - timedelta(hours=3), unread=False)

        await recheck_sponsorblock(session_maker, sponsorblock, notifier, now=now)

        assert sorted(sponsorblock.calls) == ["recent", "unread"]

    @pytest.mark.asyncio
    async def test_failure_reported_and_skipped(self, session_maker, video_factory, sponsorblock, notifier, now):
        """Test a failed lookup keeps the old label and continues."""
        await video_factory("v1", sponsor_block_status=SponsorBlockStatus.SPONSOR)
        await video_factory("v2")
        sponsorblock.results["v1"] = SponsorBlockResult(success=False, http_status=500)
        sponsorblock.results["v2"] = SponsorBlockResult(success=True, status=SponsorBlockStatus.SPONSOR)

        changed = await recheck_sponsorblock(session_maker, sponsorblock, notifier, now=now)

        assert changed == 1
        assert await label_of(session_maker, "v1") == SponsorBlockStatus.SPONSOR
        assert "v1" in notifier.warnings[0]

    @pytest.mark.asyncio
    async def test_only_given_platform(self, session_maker, video_factory, sponsorblock, notifier, now):
        """Test videos of other platforms aren't checked."""
        await video_factory("p1", platform=Platform.PEERTUBE)

        await recheck_sponsorblock(session_maker, sponsorblock, notifier, now=now)

        assert sponsorblock.calls == []

    @pytest.mark.asyncio
    async def test_unreachable_service_skips_all(self, session_maker, video_factory, notifier, now):
        """Test network failures are reported per video and the recheck completes."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = SponsorBlockClient(
            base_url="https://sponsor.test",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            retry_config=RetryConfig(max_retries=1, base_delay=0, max_delay=0),
        )
        await video_factory("v1", sponsor_block_status=SponsorBlockStatus.SPONSOR)
        await video_factory("v2")

        changed = await recheck_sponsorblock(session_maker, client, notifier, now=now)

        assert changed == 0
        assert len(notifier.warnings) == 2
        assert await label_of(session_maker, "v1") == SponsorBlockStatus.SPONSOR
