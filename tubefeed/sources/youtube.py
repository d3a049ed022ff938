"""
YouTube Data API v3 video source.

Search results only carry snippets, so every listing is enriched with a
videos.list call (1 quota unit per 50 videos) to get durations and full
descriptions. HTTP errors propagate; the engine's fetch wrapper turns them
into empty results.
"""
import logging
import os
from typing import Optional

import httpx

from ..engine.keywords import extract_keywords
from ..engine.models import Video
from .base import VideoDetails

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
API_KEY_ENV = "YOUTUBE_API_KEY"
MAX_RESULTS = 50  # API maximum per page
RELATED_QUERY_KEYWORDS = 3


def _best_thumbnail(snippet: dict) -> str:
    thumbnails = snippet.get("thumbnails", {})
    return (
        thumbnails.get("high", {}).get("url")
        or thumbnails.get("medium", {}).get("url")
        or thumbnails.get("default", {}).get("url", "")
    )


def _video_from_item(item: dict) -> Video:
    """Build a Video from a videos.list item."""
    snippet = item.get("snippet", {})
    content = item.get("contentDetails", {})
    return Video(
        video_id=item["id"],
        title=snippet.get("title", ""),
        channel_id=snippet.get("channelId", ""),
        channel_name=snippet.get("channelTitle", ""),
        description=snippet.get("description", ""),
        published=snippet.get("publishedAt", ""),
        duration=content.get("duration", ""),
        thumbnail_url=_best_thumbnail(snippet),
    )


class YouTubeSource:
    """VideoSource backed by the YouTube Data API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        region: str = "JP",
        max_results: int = 25,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or os.environ.get(API_KEY_ENV, "")
        if not self.api_key:
            logger.warning("No YouTube API key set (%s); requests will fail", API_KEY_ENV)
        self.region = region
        self.max_results = min(max_results, MAX_RESULTS)
        self._client = client or httpx.AsyncClient(base_url=API_BASE, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get(self, path: str, params: dict) -> dict:
        try:
            resp = await self._client.get(path, params={**params, "key": self.api_key})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 403:
                logger.error("YouTube API quota exceeded or key rejected")
            else:
                logger.error("YouTube API error on %s: %s", path, e)
            raise
        return resp.json()

    async def _videos_by_id(self, video_ids: list[str]) -> list[Video]:
        """Fetch full video resources, preserving the order of video_ids."""
        if not video_ids:
            return []
        data = await self._get(
            "/videos",
            {
                "part": "snippet,contentDetails",
                "id": ",".join(video_ids[:MAX_RESULTS]),
            },
        )
        by_id = {item["id"]: _video_from_item(item) for item in data.get("items", [])}
        return [by_id[vid] for vid in video_ids if vid in by_id]

    async def _search_ids(self, params: dict) -> list[str]:
        data = await self._get(
            "/search",
            {
                "part": "snippet",
                "type": "video",
                "maxResults": self.max_results,
                **params,
            },
        )
        return [
            item["id"]["videoId"]
            for item in data.get("items", [])
            if item.get("id", {}).get("videoId")
        ]

    async def search(self, query: str, page_token: Optional[str] = None) -> list[Video]:
        """Search videos by keyword (100 quota units per call)."""
        params = {"q": query, "order": "relevance", "regionCode": self.region}
        if page_token:
            params["pageToken"] = page_token
        video_ids = await self._search_ids(params)
        if not video_ids:
            logger.info("No YouTube results for query: %s", query)
            return []
        videos = await self._videos_by_id(video_ids)
        logger.debug("Found %d videos for query: %s", len(videos), query)
        return videos

    async def get_channel_videos(self, channel_id: str) -> list[Video]:
        """Latest uploads of a channel."""
        video_ids = await self._search_ids({"channelId": channel_id, "order": "date"})
        return await self._videos_by_id(video_ids)

    async def get_video_details(self, video_id: str) -> VideoDetails:
        """Video resource plus related videos.

        The API no longer offers related-video lookups, so related videos are
        found by searching the video's leading title keywords.
        """
        found = await self._videos_by_id([video_id])
        if not found:
            return VideoDetails()
        video = found[0]

        keywords = extract_keywords(video.title)[:RELATED_QUERY_KEYWORDS]
        if not keywords:
            return VideoDetails(video=video)
        related = await self.search(" ".join(keywords))
        related = [v for v in related if v.video_id != video_id]
        return VideoDetails(video=video, related_videos=related)

    async def get_recommended_videos(self) -> list[Video]:
        """Most popular videos in the configured region."""
        data = await self._get(
            "/videos",
            {
                "part": "snippet,contentDetails",
                "chart": "mostPopular",
                "regionCode": self.region,
                "maxResults": self.max_results,
            },
        )
        return [_video_from_item(item) for item in data.get("items", [])]
