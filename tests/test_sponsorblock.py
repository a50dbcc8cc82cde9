"""Tests for SponsorBlock lookups."""

import json

import httpx
import pytest

from subfeed.models.video import SponsorBlockStatus
from subfeed.services.sponsorblock import (
    SponsorBlockClient,
    select_full_video_label,
    sha256_hex,
)
from subfeed.utils.retry import RetryConfig

VIDEO_ID = "dQw4w9WgXcQ"

NO_WAIT = RetryConfig(
    max_retries=5,
    base_delay=0,
    max_delay=0,
    exponential_base=1.0,
    retry_on=lambda r: not r.is_success and r.status_code != 404,
)


def make_client(handler) -> SponsorBlockClient:
    return SponsorBlockClient(
        base_url="https://sponsor.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_config=NO_WAIT,
    )


def segments(*pairs: tuple[str, int]) -> list[dict]:
    return [{"category": category, "votes": votes, "actionType": "full"} for category, votes in pairs]


class TestSelectFullVideoLabel:
    """Tests for picking a label out of a hash-prefix response."""

    def test_most_votes_wins(self):
        """Test the segment with the most votes decides the label."""
        entries = [
            {
                "videoID": VIDEO_ID,
                "segments": segments(("sponsor", 3), ("selfpromo", 7), ("selfpromo", 7)),
            }
        ]
        assert select_full_video_label(entries, VIDEO_ID) == SponsorBlockStatus.SELFPROMO

    def test_tie_goes_to_first(self):
        """Test equal votes keep the first segment listed."""
        entries = [{"videoID": VIDEO_ID, "segments": segments(("exclusive_access", 5), ("sponsor", 5))}]
        assert select_full_video_label(entries, VIDEO_ID) == SponsorBlockStatus.EXCLUSIVE_ACCESS

    def test_other_videos_ignored(self):
        """Test entries for other videos sharing the prefix are ignored."""
        entries = [{"videoID": "someoneElse", "segments": segments(("sponsor", 10))}]
        assert select_full_video_label(entries, VIDEO_ID) is None

    def test_no_segments(self):
        """Test a matching entry without segments has no label."""
        assert select_full_video_label([{"videoID": VIDEO_ID, "segments": []}], VIDEO_ID) is None

    def test_rejects_non_list(self):
        """Test a response that isn't a list of entries is rejected."""
        with pytest.raises(ValueError):
            select_full_video_label({"message": "x"}, VIDEO_ID)


class TestSponsorBlockClient:
    """Tests for the SponsorBlock HTTP client."""

    @pytest.mark.asyncio
    async def test_sends_only_hash_prefix(self):
        """Test the request carries a 4-character hash prefix, never the ID."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(404)

        await make_client(handler).get_full_video_label(VIDEO_ID)

        request = seen[0]
        assert request.url.path == f"/api/skipSegments/{sha256_hex(VIDEO_ID)[:4]}"
        assert VIDEO_ID not in str(request.url)
        assert request.url.params["actionType"] == "full"
        assert "sponsor" in json.loads(request.url.params["categories"])

    @pytest.mark.asyncio
    async def test_not_found_means_no_label(self):
        """Test a 404 is a successful lookup without a label."""
        result = await make_client(lambda request: httpx.Response(404)).get_full_video_label(VIDEO_ID)

        assert result.success is True
        assert result.status is None

    @pytest.mark.asyncio
    async def test_label_found(self):
        """Test a matching entry yields its label."""
        body = [{"videoID": VIDEO_ID, "segments": segments(("sponsor", 3), ("selfpromo", 7), ("selfpromo", 7))}]
        result = await make_client(lambda request: httpx.Response(200, json=body)).get_full_video_label(VIDEO_ID)

        assert result.success is True
        assert result.status == SponsorBlockStatus.SELFPROMO

    @pytest.mark.asyncio
    async def test_retries_then_fails(self):
        """Test persistent errors are retried five times, then reported."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        result = await make_client(handler).get_full_video_label(VIDEO_ID)

        assert len(calls) == 6
        assert result.success is False
        assert result.http_status == 502

    @pytest.mark.asyncio
    async def test_recovers_after_retry(self):
        """Test a transient error followed by success returns the label."""
        responses = iter(
            [
                httpx.Response(500),
                httpx.Response(200, json=[{"videoID": VIDEO_ID, "segments": segments(("sponsor", 1))}]),
            ]
        )
        result = await make_client(lambda request: next(responses)).get_full_video_label(VIDEO_ID)

        assert result.success is True
        assert result.status == SponsorBlockStatus.SPONSOR

    @pytest.mark.asyncio
    async def test_invalid_json_is_failure(self):
        """Test an unparseable body counts as a failed lookup."""
        result = await make_client(lambda request: httpx.Response(200, text="not json")).get_full_video_label(
            VIDEO_ID
        )

        assert result.success is False

    @pytest.mark.asyncio
    async def test_transport_errors_retried_then_fail(self):
        """Test timeouts are retried and end in a failed result, not an exception."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectTimeout("timed out", request=request)

        result = await make_client(handler).get_full_video_label(VIDEO_ID)

        assert len(calls) == 6
        assert result.success is False
        assert result.http_status is None

    @pytest.mark.asyncio
    async def test_recovers_after_connect_error(self):
        """Test a dropped connection followed by an answer succeeds."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(404)

        result = await make_client(handler).get_full_video_label(VIDEO_ID)

        assert result.success is True
        assert result.status is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"message": "x"},
            ["not an entry"],
            [{"videoID": VIDEO_ID, "segments": "sponsor"}],
            [{"videoID": VIDEO_ID, "segments": [["sponsor", 3]]}],
        ],
    )
    async def test_unexpected_shape_is_failure(self, body):
        """Test well-formed JSON of the wrong shape counts as a failed lookup."""
        result = await make_client(lambda request: httpx.Response(200, json=body)).get_full_video_label(VIDEO_ID)

        assert result.success is False
        assert result.http_status == 200
