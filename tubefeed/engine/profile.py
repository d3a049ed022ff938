"""
Lightweight interest model built from history.

The profile is a keyword -> weight map accumulated over a bounded window of
recent watch and search history, plus subscribed channel names. Newer
entries weigh more; nothing is persisted between calls.
"""
import logging
from typing import Iterable, Optional

from .keywords import extract_keywords
from .models import Channel, UserProfile, Video
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


def _distinct_lower(keywords: Iterable[str]) -> list[str]:
    seen = set()
    out = []
    for kw in keywords:
        key = kw.lower()
        if key not in seen:
            seen.add(key)
            out.append(key)
    return out


def build_profile(
    watch_history: Iterable[Video],
    search_history: Iterable[str],
    subscriptions: Iterable[Channel],
    settings: Optional[EngineSettings] = None,
) -> UserProfile:
    """Aggregate history into a weighted keyword profile.

    Args:
        watch_history: Watched videos, most recent first.
        search_history: Search queries, most recent first.
        subscriptions: Subscribed channels.
        settings: Lookback windows and source weights.

    Returns:
        A fresh UserProfile.
    """
    settings = settings or DEFAULT_SETTINGS
    profile = UserProfile()

    watch_window = list(watch_history)[: settings.profile_watch_lookback]
    for i, video in enumerate(watch_window):
        weight = float(settings.profile_watch_lookback - i)
        text = f"{video.title} {video.description}"
        for kw in _distinct_lower(extract_keywords(text)):
            profile.add(kw, weight)

    search_window = list(search_history)[: settings.profile_search_lookback]
    for i, query in enumerate(search_window):
        weight = settings.search_weight * (settings.profile_search_lookback - i)
        for kw in _distinct_lower(extract_keywords(query)):
            profile.add(kw, weight)

    for channel in subscriptions:
        name = (channel.name or "").strip().lower()
        if name:
            profile.add(name, settings.subscription_weight)

    logger.debug(
        "Built profile: %d keywords from %d watched, %d searches",
        len(profile),
        len(watch_window),
        len(search_window),
    )
    return profile
