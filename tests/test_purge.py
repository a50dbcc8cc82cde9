"""Tests for purging unfollowed channels."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from subfeed.models.video import Platform, Video, VideoType
from subfeed.services import purge as purge_module
from subfeed.services.notifications import Notifier
from subfeed.services.purge import channel_ids_for, purge_unsubscribed, purge_unwhitelisted_shorts
from subfeed.services.sources.peertube import PeerTubeSource


async def stored(session_maker) -> list[tuple[str, str]]:
    async with session_maker() as db:
        rows = await db.execute(select(Video.channel_id, Video.video_id).order_by(Video.video_id))
        return [tuple(row) for row in rows]


class TestChannelIdsFor:
    """Tests for mapping subscription URIs to stored channel IDs."""

    def test_filters_by_platform(self, fake_source):
        """Test only URIs of the source's platform count."""
        uris = ["fake://A/@a", "peertube://host/chan", "fake://B/@b"]
        assert channel_ids_for(fake_source, uris) == {"A", "B"}

    def test_malformed_uri_ignored(self, fake_source):
        """Test an unparseable URI is skipped."""
        assert channel_ids_for(fake_source, ["fake://A", "fake://B/@b"]) == {"B"}

    def test_peertube_channel_id(self):
        """Test PeerTube URIs map to name@host."""
        source = PeerTubeSource(Notifier())
        assert channel_ids_for(source, ["peertube://tube.test/news"]) == {"news@tube.test"}


class TestPurge:
    """Tests for the purge service."""

    @pytest.mark.asyncio
    async def test_unsubscribed_channel_removed(self, session_maker, video_factory, fake_source):
        """Test only subscribed channels keep their videos."""
        await video_factory("a1", channel_id="A")
        await video_factory("b1", channel_id="B")
        await video_factory("b2", channel_id="B")

        purged = await purge_unsubscribed(session_maker, fake_source, ["fake://A/@a"])

        assert purged == ["B"]
        assert await stored(session_maker) == [("A", "a1")]

    @pytest.mark.asyncio
    async def test_other_platforms_untouched(self, session_maker, video_factory, fake_source):
        """Test a purge only considers its own platform."""
        await video_factory("p1", channel_id="news@tube.test", platform=Platform.PEERTUBE)

        await purge_unsubscribed(session_maker, fake_source, [])

        assert await stored(session_maker) == [("news@tube.test", "p1")]

    @pytest.mark.asyncio
    async def test_unwhitelisted_shorts_removed(self, session_maker, video_factory, fake_source):
        """Test shorts go while the channel's other videos stay."""
        await video_factory("a1", channel_id="A")
        await video_factory("a2", channel_id="A", type=VideoType.SHORT)
        await video_factory("b1", channel_id="B", type=VideoType.SHORT)

        purged = await purge_unwhitelisted_shorts(session_maker, fake_source, ["fake://B/@b"])

        assert purged == ["A"]
        assert await stored(session_maker) == [("A", "a1"), ("B", "b1")]

    @pytest.mark.asyncio
    async def test_failure_continues(self, session_maker, video_factory, fake_source, monkeypatch):
        """Test a failed channel purge doesn't stop the others."""
        await video_factory("b1", channel_id="B")
        await video_factory("c1", channel_id="C")
        original = purge_module.delete_channel_videos

        async def flaky_delete(db, platform, channel_id, video_type=None):
            if channel_id == "B":
                raise OperationalError("DELETE", {}, Exception("locked"))
            return await original(db, platform, channel_id, video_type)

        monkeypatch.setattr(purge_module, "delete_channel_videos", flaky_delete)

        purged = await purge_unsubscribed(session_maker, fake_source, [])

        assert purged == ["C"]
        assert await stored(session_maker) == [("B", "b1")]

    @pytest.mark.asyncio
    async def test_post_run_tasks_purge(self, session_maker, video_factory, fake_source):
        """Test a source's post-run tasks purge both ways."""
        await video_factory("a1", channel_id="A", type=VideoType.SHORT)
        await video_factory("b1", channel_id="B")

        await fake_source.post_run_tasks(session_maker, ["fake://A/@a"], [])

        assert await stored(session_maker) == []
