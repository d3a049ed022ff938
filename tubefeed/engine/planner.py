"""
Query planning: turn preferences, history and subscriptions into a bounded
set of search queries and channel-feed requests.

Randomness (genre picks, history sampling, subscription shuffles, selection
beyond the query cap) always comes from the injected numpy Generator, so a
seeded generator reproduces a plan exactly.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import numpy as np

from .keywords import extract_keywords
from .models import FetchRequest, RecommendationSource, UserProfile, Video
from .scorer import CONTEXT_KEYWORDS
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)

GENERIC_QUERIES = ("trending", "music", "gaming", "news", "急上昇", "人気 動画")

FRESHNESS_SUFFIX = {"new": " new", "popular": " best"}

# Preference fields that may add a modifier keyword to generated queries,
# in priority order.
MODIFIER_FIELDS = ("depth", "visual", "vocal", "era", "region", "pacing")

# Subscription feeds fetched by the strict planner, per discovery mode
SUBSCRIPTION_FEEDS = {"subscribed": 10, "discovery": 1, "balanced": 5}

# Subscription feeds fetched by the comfort track, per discovery mode
COMFORT_SUBSCRIPTION_FEEDS = {"subscribed": 4, "discovery": 0, "balanced": 2}

HISTORY_SAMPLE_WINDOW = 5
HISTORY_OLDER_OFFSET = 10
SEARCH_SAMPLE_WINDOW = 10
TITLE_QUERY_CHARS = 20


@dataclass
class QueryPlan:
    """Planned fan-out for one strict-pipeline call."""
    queries: list[str] = field(default_factory=list)
    channel_requests: list[FetchRequest] = field(default_factory=list)
    per_query_limit: int = DEFAULT_SETTINGS.videos_per_query

    def requests(self) -> list[FetchRequest]:
        """All requests in fetch order: searches first, then channel feeds."""
        searches = [
            FetchRequest("search", q, limit=self.per_query_limit) for q in self.queries
        ]
        return searches + list(self.channel_requests)


def _randint(rng: np.random.Generator, n: int) -> int:
    return int(rng.integers(n))


def _pick(rng: np.random.Generator, items: Sequence):
    return items[_randint(rng, len(items))]


def _shuffled(rng: np.random.Generator, items: Sequence) -> list:
    return [items[int(i)] for i in rng.permutation(len(items))]


def _dedupe(queries: Iterable[str], exclude: Iterable[str] = ()) -> list[str]:
    seen = set(exclude)
    out = []
    for q in queries:
        q = " ".join(q.split())
        if q and q not in seen:
            seen.add(q)
            out.append(q)
    return out


def _cap(
    priority: list[str], others: list[str], limit: int, rng: np.random.Generator
) -> list[str]:
    """Keep priority queries first, then a random order-preserving sample."""
    kept = priority[:limit]
    slots = limit - len(kept)
    if slots <= 0 or not others:
        return kept
    if slots >= len(others):
        return kept + others
    picks = sorted(int(i) for i in rng.choice(len(others), size=slots, replace=False))
    return kept + [others[i] for i in picks]


def context_modifier(source: RecommendationSource) -> str:
    """Return " <keyword>" for the first set context preference, else ""."""
    context = source.preferences.context
    for field_name in MODIFIER_FIELDS:
        keywords = CONTEXT_KEYWORDS.get(getattr(context, field_name))
        if keywords:
            return " " + keywords[0]
    return ""


def _history_queries(
    history: Sequence[Video], rng: np.random.Generator, modifier: str, suffix: str
) -> list[str]:
    n = len(history)
    samples = [
        history[0],
        history[_randint(rng, min(n, HISTORY_SAMPLE_WINDOW))],
        history[min(n - 1, HISTORY_OLDER_OFFSET + _randint(rng, 10))],
    ]

    queries = []
    for video in samples:
        keywords = extract_keywords(f"{video.title} {video.description}")
        if keywords:
            queries.append(" ".join(keywords[:2]) + modifier + suffix)
            if len(keywords) > 2:
                queries.append(_pick(rng, keywords) + modifier + suffix)
        elif video.title:
            queries.append(video.title[:TITLE_QUERY_CHARS])
    return queries


def plan_queries(
    source: RecommendationSource,
    rng: np.random.Generator,
    settings: Optional[EngineSettings] = None,
) -> QueryPlan:
    """Plan the searches and channel feeds for the strict pipeline.

    Explicit genres and channels come first and always survive the query
    cap. History-derived and search-history queries compete for the
    remaining slots. Generic trending queries are used when nothing else
    produced a query, and mixed in when discovery mode is on.

    Args:
        source: Per-call snapshot.
        rng: Randomness source.
        settings: Fan-out limits.

    Returns:
        QueryPlan with deduplicated queries and channel-feed requests.
    """
    settings = settings or DEFAULT_SETTINGS
    prefs = source.preferences
    suffix = FRESHNESS_SUFFIX.get(prefs.freshness, "")
    modifier = context_modifier(source)
    page_index = max(source.page, 1) - 1
    discovery = prefs.discovery_mode == "discovery"

    priority: list[str] = []
    others: list[str] = []

    genres = [g for g in prefs.preferred_genres if g.strip()]
    if genres:
        priority.append(genres[page_index % len(genres)] + modifier + suffix)
        for _ in range(2):
            priority.append(_pick(rng, genres) + modifier + suffix)

    channels = [c for c in prefs.preferred_channels if c.strip()]
    if channels:
        name = channels[page_index % len(channels)]
        priority.append(name)
        if prefs.freshness == "new":
            priority.append(f"{name} new")

    if source.watch_history and not discovery:
        others.extend(_history_queries(source.watch_history, rng, modifier, suffix))

    searches = [q for q in source.search_history if q.strip()]
    if searches:
        others.append(searches[0] + suffix)
        if len(searches) > 1:
            window = min(len(searches), SEARCH_SAMPLE_WINDOW)
            others.append(searches[_randint(rng, window)] + suffix)

    if not priority and not others:
        logger.info("No usable signal, planning generic queries")
        others.extend(GENERIC_QUERIES)
    elif discovery:
        picks = sorted(int(i) for i in rng.choice(len(GENERIC_QUERIES), size=2, replace=False))
        others.extend(GENERIC_QUERIES[i] + suffix for i in picks)

    priority = _dedupe(priority)
    others = _dedupe(others, exclude=priority)
    queries = _cap(priority, others, settings.max_queries, rng)

    subs = list(source.subscriptions)
    feed_count = min(len(subs), SUBSCRIPTION_FEEDS.get(prefs.discovery_mode, 5))
    channel_requests = [
        FetchRequest("channel", ch.channel_id, limit=settings.channel_feed_limit, channel=ch)
        for ch in _shuffled(rng, subs)[:feed_count]
        if ch.channel_id
    ]

    per_query_limit = (
        settings.videos_per_query_discovery if discovery else settings.videos_per_query
    )
    logger.info(
        "Planned %d queries (%d candidates), %d channel feeds",
        len(queries),
        len(priority) + len(others),
        len(channel_requests),
    )
    return QueryPlan(
        queries=queries,
        channel_requests=channel_requests,
        per_query_limit=per_query_limit,
    )


def plan_discovery_track(
    source: RecommendationSource,
    profile: UserProfile,
    rng: np.random.Generator,
    settings: Optional[EngineSettings] = None,
) -> list[FetchRequest]:
    """Plan OR-style keyword searches for the discovery pool.

    Preferred genres lead; the profile's top keywords follow in random
    order. Terms are chunked into "a | b | c" queries.
    """
    settings = settings or DEFAULT_SETTINGS
    prefs = source.preferences
    suffix = FRESHNESS_SUFFIX.get(prefs.freshness, "")

    profile_terms = _shuffled(rng, profile.top(settings.discovery_top_keywords))
    terms = []
    seen = set()
    for term in list(prefs.preferred_genres) + profile_terms:
        term = term.strip()
        if term and term.lower() not in seen:
            seen.add(term.lower())
            terms.append(term)

    if terms:
        size = max(settings.discovery_chunk_size, 1)
        queries = [
            " | ".join(terms[i:i + size]) + suffix for i in range(0, len(terms), size)
        ]
    else:
        queries = list(GENERIC_QUERIES)
    queries = queries[: settings.max_queries]

    return [
        FetchRequest("search", q, limit=settings.videos_per_query_discovery)
        for q in queries
    ]


def plan_comfort_track(
    source: RecommendationSource,
    rng: np.random.Generator,
    settings: Optional[EngineSettings] = None,
) -> list[FetchRequest]:
    """Plan the familiar-content pool: related videos of a recent watch plus
    a few random subscription feeds (none in discovery mode)."""
    settings = settings or DEFAULT_SETTINGS
    requests = []

    history = source.watch_history
    if history:
        seed = history[_randint(rng, min(len(history), HISTORY_SAMPLE_WINDOW))]
        if seed.video_id:
            requests.append(
                FetchRequest("related", seed.video_id, limit=settings.videos_per_query)
            )

    mode = source.preferences.discovery_mode
    feed_count = COMFORT_SUBSCRIPTION_FEEDS.get(mode, 2)
    subs = _shuffled(rng, list(source.subscriptions))[:feed_count]
    requests.extend(
        FetchRequest("channel", ch.channel_id, limit=settings.channel_feed_limit, channel=ch)
        for ch in subs
        if ch.channel_id
    )
    return requests
