"""
Data models for the recommendation engine.

Videos and channels are plain frozen dataclasses; the preference snapshot is
a frozen pydantic model because it arrives from persisted JSON and has to be
validated at the boundary.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

DurationBucket = Literal["short", "medium", "long"]
Freshness = Literal["new", "popular", "balanced"]
DiscoveryMode = Literal["subscribed", "discovery", "balanced"]


def _text(data: dict, key: str) -> str:
    """String field of a loosely-shaped dict; missing or null becomes ""."""
    return str(data.get(key) or "")


@dataclass(frozen=True)
class Video:
    """A video as returned by a video source."""
    video_id: str
    title: str
    channel_id: str
    channel_name: str
    description: str = ""
    published: str = ""  # "3 hours ago", "3時間前" or an ISO timestamp
    duration: str = ""  # PT#H#M#S
    thumbnail_url: str = ""
    channel_avatar_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Video":
        """Build a Video from a loosely-shaped dict (CLI input files)."""
        return cls(
            video_id=_text(data, "video_id") or _text(data, "id"),
            title=_text(data, "title"),
            channel_id=_text(data, "channel_id"),
            channel_name=_text(data, "channel_name"),
            description=_text(data, "description"),
            published=_text(data, "published"),
            duration=_text(data, "duration"),
            thumbnail_url=_text(data, "thumbnail_url"),
            channel_avatar_url=_text(data, "channel_avatar_url"),
        )


@dataclass(frozen=True)
class Channel:
    """A channel the user subscribes to."""
    channel_id: str
    name: str
    avatar_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Channel":
        return cls(
            channel_id=_text(data, "channel_id") or _text(data, "id"),
            name=_text(data, "name"),
            avatar_url=_text(data, "avatar_url"),
        )


class ContextPreferences(BaseModel):
    """Fine-grained content-style preferences. "any" means no preference."""
    model_config = ConfigDict(frozen=True)

    depth: str = "any"  # casual / deep
    vocal: str = "any"  # instrumental / vocal
    era: str = "any"  # retro / modern
    region: str = "any"  # domestic / overseas
    live: str = "any"  # live
    pacing: str = "any"  # fast / slow
    visual: str = "any"  # avatar / real
    community: str = "any"  # solo / collab
    info: str = "any"  # entertainment / education


class Preferences(BaseModel):
    """Explicit user preferences, passed into every pipeline call."""
    model_config = ConfigDict(frozen=True)

    preferred_genres: tuple[str, ...] = ()
    preferred_channels: tuple[str, ...] = ()
    ng_keywords: tuple[str, ...] = ()
    preferred_durations: tuple[DurationBucket, ...] = ()
    freshness: Freshness = "balanced"
    discovery_mode: DiscoveryMode = "balanced"
    context: ContextPreferences = ContextPreferences()


@dataclass(frozen=True)
class RecommendationSource:
    """Read-only per-call input snapshot."""
    watch_history: tuple[Video, ...] = ()  # most recent first
    search_history: tuple[str, ...] = ()  # most recent first
    subscriptions: tuple[Channel, ...] = ()
    preferences: Preferences = field(default_factory=Preferences)
    page: int = 1

    @property
    def has_signal(self) -> bool:
        prefs = self.preferences
        return bool(
            self.watch_history
            or self.search_history
            or self.subscriptions
            or prefs.preferred_genres
            or prefs.preferred_channels
        )


class ReasonTag(str, Enum):
    NG_KEYWORD = "ng_keyword"
    PRIORITY_MATCH = "priority_match"
    DURATION_MISMATCH = "duration_mismatch"
    PREFERRED_CHANNEL = "preferred_channel"
    SUBSCRIBED = "subscribed"
    GENRE = "genre"
    CONTEXT = "context"
    FRESH = "fresh"
    PROFILE_KEYWORD = "profile_keyword"
    CHANNEL_AFFINITY = "channel_affinity"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Reason:
    """One entry of a score's explanation trace."""
    tag: ReasonTag
    detail: Optional[str] = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.tag.value}:{self.detail}"
        return self.tag.value


@dataclass
class ScoredVideo:
    """A candidate annotated with its score for the current call."""
    video: Video
    score: int = 0
    reasons: list[Reason] = field(default_factory=list)
    pool: Optional[str] = None  # "discovery" / "comfort" in mixed output

    @property
    def video_id(self) -> str:
        return self.video.video_id

    def has_reason(self, tag: ReasonTag) -> bool:
        return any(r.tag == tag for r in self.reasons)

    def to_dict(self) -> dict:
        v = self.video
        return {
            "video_id": v.video_id,
            "title": v.title,
            "channel_id": v.channel_id,
            "channel_name": v.channel_name,
            "published": v.published,
            "duration": v.duration,
            "score": self.score,
            "reasons": [str(r) for r in self.reasons],
            "pool": self.pool,
        }


@dataclass(frozen=True)
class FetchRequest:
    """One outbound call planned by the query planner."""
    kind: Literal["search", "channel", "related"]
    target: str  # query text, channel id or video id
    limit: Optional[int] = None
    page_token: Optional[str] = None
    channel: Optional[Channel] = None  # annotates channel-feed results


@dataclass
class UserProfile:
    """Keyword -> accumulated interest weight. Built fresh per call."""
    weights: dict[str, float] = field(default_factory=dict)

    def add(self, keyword: str, weight: float) -> None:
        self.weights[keyword] = self.weights.get(keyword, 0.0) + weight

    def top(self, n: int) -> list[str]:
        """Return the n heaviest keywords; ties keep first-seen order."""
        ranked = sorted(self.weights.items(), key=lambda kv: kv[1], reverse=True)
        return [kw for kw, _ in ranked[:n]]

    def __len__(self) -> int:
        return len(self.weights)

    def __bool__(self) -> bool:
        return bool(self.weights)
