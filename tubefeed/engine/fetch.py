"""
Concurrent fetching and result aggregation.

Every outbound call goes through attempt(), which turns any failure into an
empty list. The calls of one batch are joined with asyncio.gather, so the
batch always waits for every request and never fails as a whole.
"""
import asyncio
import dataclasses
import logging
from typing import Awaitable, Callable, Iterable

from .models import FetchRequest, Video

logger = logging.getLogger(__name__)


async def attempt(call: Callable[[], Awaitable], label: str) -> list[Video]:
    """Await one collaborator call, degrading any failure to [].

    Args:
        call: Zero-argument callable returning the awaitable to run.
        label: Description used in log messages.

    Returns:
        The videos returned, or [] on exception or malformed response.
    """
    try:
        result = await call()
    except Exception as e:
        logger.warning("Fetch failed for %s: %s", label, e)
        return []

    if result is None:
        logger.warning("Empty response for %s", label)
        return []
    if not isinstance(result, (list, tuple)):
        logger.warning("Malformed response for %s: %s", label, type(result).__name__)
        return []
    return [v for v in result if isinstance(v, Video)]


async def _related(source, video_id: str) -> list[Video]:
    details = await source.get_video_details(video_id)
    if details is None:
        return []
    return list(getattr(details, "related_videos", None) or [])


def _call_for(source, request: FetchRequest) -> Callable[[], Awaitable]:
    if request.kind == "search":
        return lambda: source.search(request.target, request.page_token)
    if request.kind == "channel":
        return lambda: source.get_channel_videos(request.target)
    if request.kind == "related":
        return lambda: _related(source, request.target)
    raise ValueError(f"Unknown request kind: {request.kind}")


def _finish(request: FetchRequest, videos: list[Video]) -> list[Video]:
    if request.limit is not None:
        videos = videos[: request.limit]
    channel = request.channel
    if request.kind == "channel" and channel is not None:
        videos = [
            dataclasses.replace(
                v,
                channel_id=channel.channel_id,
                channel_name=channel.name or v.channel_name,
                channel_avatar_url=channel.avatar_url or v.channel_avatar_url,
            )
            for v in videos
        ]
    return videos


async def fetch_all(source, requests: list[FetchRequest]) -> list[list[Video]]:
    """Issue all requests concurrently and wait for every one of them.

    Args:
        source: A VideoSource implementation.
        requests: Planned requests.

    Returns:
        One list of videos per request, in request order.
    """
    if not requests:
        return []

    async def run(request: FetchRequest) -> list[Video]:
        label = f"{request.kind}:{request.target}"
        videos = await attempt(_call_for(source, request), label)
        return _finish(request, videos)

    results = await asyncio.gather(*(run(r) for r in requests))

    failed_or_empty = sum(1 for r in results if not r)
    logger.info(
        "Fetched %d requests: %d videos, %d empty",
        len(requests),
        sum(len(r) for r in results),
        failed_or_empty,
    )
    return list(results)


def dedupe(lists: Iterable[Iterable[Video]]) -> list[Video]:
    """Flatten lists, keeping the first occurrence of each video id."""
    seen: set[str] = set()
    out = []
    for videos in lists:
        for video in videos:
            if video.video_id in seen:
                continue
            seen.add(video.video_id)
            out.append(video)
    return out


def exclude(videos: Iterable[Video], seen_ids: set[str]) -> list[Video]:
    """Drop videos whose id is already taken elsewhere."""
    return [v for v in videos if v.video_id not in seen_ids]
