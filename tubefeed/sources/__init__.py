# Video sources
from .base import VideoDetails, VideoSource
from .youtube import YouTubeSource
