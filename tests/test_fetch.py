"""
Tests for the fetch orchestrator and result aggregation.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tubefeed.engine.fetch import attempt, dedupe, exclude, fetch_all
from tubefeed.engine.models import Channel, FetchRequest, Video
from tubefeed.sources.base import VideoDetails


def _make_video(video_id, channel_id="orig", channel_name="Original"):
    return Video(
        video_id=video_id,
        title=f"Video {video_id}",
        channel_id=channel_id,
        channel_name=channel_name,
    )


def _make_video_source(search=None, channel=None, details=None):
    source = MagicMock()
    source.search = AsyncMock(side_effect=search or (lambda query, page_token=None: []))
    source.get_channel_videos = AsyncMock(side_effect=channel or (lambda channel_id: []))
    source.get_video_details = AsyncMock(side_effect=details or (lambda video_id: VideoDetails()))
    return source


# ── attempt ───────────────────────────────────────────────────────────


class TestAttempt:
    @pytest.mark.asyncio
    async def test_success(self):
        videos = [_make_video("a")]
        call = AsyncMock(return_value=videos)
        assert await attempt(call, "test") == videos

    @pytest.mark.asyncio
    async def test_exception_becomes_empty(self):
        call = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        assert await attempt(call, "test") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [None, {"items": []}, "oops"])
    async def test_malformed_becomes_empty(self, response):
        call = AsyncMock(return_value=response)
        assert await attempt(call, "test") == []

    @pytest.mark.asyncio
    async def test_non_video_items_dropped(self):
        call = AsyncMock(return_value=[_make_video("a"), {"id": "b"}, None])
        assert [v.video_id for v in await attempt(call, "test")] == ["a"]


# ── fetch_all ─────────────────────────────────────────────────────────


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_results_in_request_order(self):
        async def search(query, page_token=None):
            if query == "slow":
                await asyncio.sleep(0.01)
            return [_make_video(query)]

        source = _make_video_source(search=search)
        requests = [FetchRequest("search", "slow"), FetchRequest("search", "fast")]

        results = await fetch_all(source, requests)

        assert [[v.video_id for v in r] for r in results] == [["slow"], ["fast"]]

    @pytest.mark.asyncio
    async def test_partial_failure(self):
        def search(query, page_token=None):
            if query == "bad":
                raise RuntimeError("boom")
            return [_make_video(query)]

        source = _make_video_source(search=search)
        requests = [
            FetchRequest("search", "good"),
            FetchRequest("search", "bad"),
            FetchRequest("search", "also good"),
        ]

        results = await fetch_all(source, requests)

        assert len(results) == 3
        assert results[1] == []
        assert [v.video_id for v in dedupe(results)] == ["good", "also good"]

    @pytest.mark.asyncio
    async def test_all_fail(self):
        source = _make_video_source(search=RuntimeError("offline"))
        results = await fetch_all(source, [FetchRequest("search", "q")] * 3)
        assert results == [[], [], []]

    @pytest.mark.asyncio
    async def test_limit_applied(self):
        source = _make_video_source(
            search=lambda query, page_token=None: [_make_video(str(i)) for i in range(10)]
        )
        results = await fetch_all(source, [FetchRequest("search", "q", limit=3)])
        assert [v.video_id for v in results[0]] == ["0", "1", "2"]

    @pytest.mark.asyncio
    async def test_page_token_passed(self):
        source = _make_video_source()
        await fetch_all(source, [FetchRequest("search", "q", page_token="NEXT")])
        source.search.assert_awaited_once_with("q", "NEXT")

    @pytest.mark.asyncio
    async def test_channel_feed_annotated(self):
        source = _make_video_source(channel=lambda channel_id: [_make_video("a")])
        channel = Channel("UC123", "Cooking With Dog", "https://img/avatar.jpg")
        requests = [FetchRequest("channel", "UC123", channel=channel)]

        results = await fetch_all(source, requests)
        video = results[0][0]

        source.get_channel_videos.assert_awaited_once_with("UC123")
        assert video.channel_id == "UC123"
        assert video.channel_name == "Cooking With Dog"
        assert video.channel_avatar_url == "https://img/avatar.jpg"

    @pytest.mark.asyncio
    async def test_related_videos(self):
        related = [_make_video("r1"), _make_video("r2")]
        source = _make_video_source(
            details=lambda video_id: VideoDetails(video=_make_video(video_id),
                                                  related_videos=related)
        )

        results = await fetch_all(source, [FetchRequest("related", "seed")])

        source.get_video_details.assert_awaited_once_with("seed")
        assert [v.video_id for v in results[0]] == ["r1", "r2"]

    @pytest.mark.asyncio
    async def test_related_missing_or_failing(self):
        empty = _make_video_source(details=lambda video_id: None)
        failing = _make_video_source(details=RuntimeError("not found"))

        assert await fetch_all(empty, [FetchRequest("related", "x")]) == [[]]
        assert await fetch_all(failing, [FetchRequest("related", "x")]) == [[]]

    @pytest.mark.asyncio
    async def test_no_requests(self):
        assert await fetch_all(_make_video_source(), []) == []


# ── Aggregation ───────────────────────────────────────────────────────


class TestDedupe:
    def test_first_seen_wins(self):
        first = _make_video("a", channel_name="first")
        second = _make_video("a", channel_name="second")
        result = dedupe([[first, _make_video("b")], [second, _make_video("c")]])

        assert [v.video_id for v in result] == ["a", "b", "c"]
        assert result[0].channel_name == "first"

    def test_empty(self):
        assert dedupe([]) == []
        assert dedupe([[], []]) == []


class TestExclude:
    def test_drops_taken_ids(self):
        videos = [_make_video("a"), _make_video("b"), _make_video("c")]
        assert [v.video_id for v in exclude(videos, {"b"})] == ["a", "c"]
