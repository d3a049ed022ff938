"""
Rule-based relevance scoring for candidate videos.

Scores are signed integers built from additive rules applied in a fixed
order, with an NG-keyword short-circuit. Every contribution is recorded as a
structured Reason so callers can explain (and tests can assert on) a score.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from .duration import classify_duration, parse_duration
from .models import (
    Reason,
    ReasonTag,
    RecommendationSource,
    ScoredVideo,
    UserProfile,
    Video,
)
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)

# Context category -> lower-case keywords (English and Japanese)
CONTEXT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "casual": ("casual", "funny", "relax", "chill", "雑談", "まったり", "切り抜き"),
    "deep": ("explained", "analysis", "documentary", "deep dive", "解説", "考察", "徹底"),
    "instrumental": ("instrumental", "bgm", "piano", "lofi", "作業用", "インスト"),
    "vocal": ("vocal", "cover", "song", "歌ってみた", "歌枠", "歌"),
    "live": ("live", "stream", "配信", "ライブ", "生放送"),
    "solo": ("solo", "ソロ", "一人"),
    "collab": ("collab", "feat.", "コラボ", "凸待ち"),
    "entertainment": ("entertainment", "variety", "challenge", "バラエティ", "企画", "ドッキリ"),
    "education": ("tutorial", "lecture", "how to", "講座", "勉強", "授業"),
    "avatar": ("vtuber", "avatar", "live2d", "バーチャル", "ブイチューバー"),
    "real": ("vlog", "face reveal", "顔出し", "実写"),
    "retro": ("retro", "classic", "レトロ", "懐かし"),
    "modern": ("latest", "new release", "最新"),
    "domestic": ("japan", "日本", "国内"),
    "overseas": ("overseas", "english", "海外"),
    "fast": ("highlights", "shorts", "まとめ", "ダイジェスト"),
    "slow": ("full", "uncut", "完全版", "ノーカット"),
}

# Only these preference fields contribute to the score; the rest drive
# query modifiers in the planner.
SCORED_CONTEXT_FIELDS = ("depth", "vocal", "live", "community", "info", "visual")

RECENT_MARKERS = (
    "second ago", "seconds ago",
    "minute ago", "minutes ago",
    "hour ago", "hours ago",
    "day ago", "days ago",
    "秒前", "分前", "時間前", "日前",
)


def _combined_text(video: Video) -> str:
    return f"{video.title} {video.description} {video.channel_name}".lower()


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(kw in text for kw in keywords)


def is_recent(
    published: Optional[str],
    now: Optional[datetime] = None,
    max_age_days: float = DEFAULT_SETTINGS.fresh_max_age_days,
) -> bool:
    """Check whether a recency descriptor points at fresh content.

    Accepts relative phrasing ("3 hours ago", "2日前") or an ISO timestamp.
    """
    if not published:
        return False
    lowered = published.lower()
    if _contains_any(lowered, RECENT_MARKERS):
        return True
    try:
        ts = datetime.fromisoformat(published.strip().replace("Z", "+00:00"))
    except ValueError:
        return False
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    age_days = (now - ts).total_seconds() / 86400.0
    return 0 <= age_days <= max_age_days


def score_video(
    video: Video,
    source: RecommendationSource,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> ScoredVideo:
    """Score one candidate against the current preference snapshot.

    Rules, in order: NG short-circuit, duration policy, preferred channel,
    subscription, genres, context categories, freshness.

    Args:
        video: Candidate video.
        source: Per-call snapshot (preferences, subscriptions, history).
        settings: Weights and thresholds.
        now: Reference time for ISO recency descriptors.

    Returns:
        ScoredVideo with the total score and the reason trace.
    """
    settings = settings or DEFAULT_SETTINGS
    prefs = source.preferences
    text = _combined_text(video)

    for ng in prefs.ng_keywords:
        if ng and ng.lower() in text:
            return ScoredVideo(
                video=video,
                score=settings.ng_penalty,
                reasons=[Reason(ReasonTag.NG_KEYWORD, ng)],
            )

    score = 0
    reasons: list[Reason] = []

    if prefs.preferred_durations:
        seconds = parse_duration(video.duration)
        bucket = classify_duration(seconds)
        if bucket is not None and bucket in prefs.preferred_durations:
            score += settings.duration_match_bonus
            reasons.append(Reason(ReasonTag.PRIORITY_MATCH, bucket))
        elif bucket is not None:
            score += settings.duration_mismatch_penalty
            reasons.append(Reason(ReasonTag.DURATION_MISMATCH, bucket))

    channel_name = video.channel_name.lower()
    for preferred in prefs.preferred_channels:
        if preferred and preferred.lower() in channel_name:
            score += settings.preferred_channel_bonus
            reasons.append(Reason(ReasonTag.PREFERRED_CHANNEL, preferred))
            break

    for channel in source.subscriptions:
        if (channel.channel_id and channel.channel_id == video.channel_id) or (
            channel.name and channel.name.lower() == channel_name
        ):
            score += settings.subscription_bonus
            reasons.append(Reason(ReasonTag.SUBSCRIBED, channel.name))
            break

    for genre in prefs.preferred_genres:
        if genre and genre.lower() in text:
            score += settings.genre_bonus
            reasons.append(Reason(ReasonTag.GENRE, genre))

    context = prefs.context
    for field_name in SCORED_CONTEXT_FIELDS:
        category = getattr(context, field_name)
        keywords = CONTEXT_KEYWORDS.get(category)
        if keywords and _contains_any(text, keywords):
            score += settings.context_bonus
            reasons.append(Reason(ReasonTag.CONTEXT, category))

    if prefs.freshness == "new" and is_recent(
        video.published, now, settings.fresh_max_age_days
    ):
        score += settings.fresh_bonus
        reasons.append(Reason(ReasonTag.FRESH))

    return ScoredVideo(video=video, score=score, reasons=reasons)


def is_rejected(scored: ScoredVideo, settings: Optional[EngineSettings] = None) -> bool:
    """NG hits and duration mismatches fall at or below the threshold."""
    settings = settings or DEFAULT_SETTINGS
    return scored.score <= settings.reject_threshold


def rank_pool(
    videos: list[Video],
    source: RecommendationSource,
    mode: str,
    profile: Optional[UserProfile] = None,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> list[ScoredVideo]:
    """Score, filter and sort one candidate pool.

    Discovery mode rewards profile relevance and freshness; comfort mode
    rewards profile relevance and affinity to channels from the watch
    history.

    Args:
        videos: Deduplicated candidates of one pool.
        source: Per-call snapshot.
        mode: "discovery" or "comfort".
        profile: Interest profile for keyword relevance.
        settings: Weights and thresholds.
        now: Reference time for ISO recency descriptors.

    Returns:
        Surviving candidates, score descending, tagged with the pool name.
    """
    settings = settings or DEFAULT_SETTINGS
    profile_keywords = profile.top(settings.profile_match_keywords) if profile else []

    history_channels: dict[str, int] = {}
    if mode == "comfort":
        for watched in source.watch_history:
            if watched.channel_id:
                history_channels[watched.channel_id] = (
                    history_channels.get(watched.channel_id, 0) + 1
                )

    ranked = []
    for video in videos:
        scored = score_video(video, source, settings, now)
        if is_rejected(scored, settings):
            logger.debug(
                "Rejected %s (score=%d): %s",
                video.video_id,
                scored.score,
                ", ".join(str(r) for r in scored.reasons),
            )
            continue

        text = _combined_text(video)
        hits = [kw for kw in profile_keywords if kw in text]
        hits = hits[: settings.profile_keyword_max_hits]
        if hits:
            scored.score += settings.profile_keyword_weight * len(hits)
            scored.reasons.append(Reason(ReasonTag.PROFILE_KEYWORD, ",".join(hits)))

        if mode == "discovery":
            if not scored.has_reason(ReasonTag.FRESH) and is_recent(
                video.published, now, settings.fresh_max_age_days
            ):
                scored.score += settings.fresh_bonus
                scored.reasons.append(Reason(ReasonTag.FRESH))
        elif mode == "comfort":
            watched = min(
                history_channels.get(video.channel_id, 0),
                settings.channel_affinity_max_hits,
            )
            if watched:
                scored.score += settings.channel_affinity_bonus * watched
                scored.reasons.append(
                    Reason(ReasonTag.CHANNEL_AFFINITY, video.channel_name or video.channel_id)
                )

        scored.pool = mode
        ranked.append(scored)

    ranked.sort(key=lambda s: s.score, reverse=True)
    return ranked
