"""
Contract for video data sources consumed by the engine.

Any method may raise; the fetch orchestrator absorbs failures.
"""
from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..engine.models import Video


@dataclass
class VideoDetails:
    """Detail lookup result. related_videos may be empty."""
    video: Optional[Video] = None
    related_videos: list[Video] = field(default_factory=list)


class VideoSource(Protocol):
    """Remote video/channel data source."""

    async def search(self, query: str, page_token: Optional[str] = None) -> list[Video]:
        ...

    async def get_channel_videos(self, channel_id: str) -> list[Video]:
        ...

    async def get_video_details(self, video_id: str) -> VideoDetails:
        ...

    async def get_recommended_videos(self) -> list[Video]:
        ...
