"""
Recommendation pipelines.

Composes planning, fetching, scoring and mixing into end-to-end calls:

- recommend_strict: planner -> fetch -> dedupe -> score -> threshold -> sort
- recommend_weighted: profile -> discovery/comfort tracks -> rank -> mix
- recommend_fallback: shuffled generic feed

No pipeline raises on collaborator failure; an empty list is a valid
outcome.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

import numpy as np

from .duration import parse_duration
from .fetch import attempt, dedupe, exclude, fetch_all
from .mixer import mix_pools
from .models import Reason, ReasonTag, RecommendationSource, ScoredVideo
from .planner import plan_comfort_track, plan_discovery_track, plan_queries
from .profile import build_profile
from .scorer import is_rejected, rank_pool, score_video
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


def _thin_shorts(
    ranked: list[ScoredVideo],
    source: RecommendationSource,
    rng: np.random.Generator,
    settings: EngineSettings,
) -> list[ScoredVideo]:
    """Keep only a fraction of very short videos in large result sets.

    Skipped when short videos are explicitly preferred. Unknown durations
    are never treated as short.
    """
    if len(ranked) <= settings.short_thinning_min_pool:
        return ranked
    if "short" in source.preferences.preferred_durations:
        return ranked
    if settings.short_keep_probability >= 1.0:
        return ranked

    kept = []
    for scored in ranked:
        seconds = parse_duration(scored.video.duration)
        if 0 < seconds <= settings.short_max_seconds:
            if rng.random() >= settings.short_keep_probability:
                continue
        kept.append(scored)

    if len(kept) < len(ranked):
        logger.debug("Thinned %d short videos", len(ranked) - len(kept))
    return kept


async def recommend_fallback(
    video_source,
    rng: Optional[np.random.Generator] = None,
    settings: Optional[EngineSettings] = None,
) -> list[ScoredVideo]:
    """Return a shuffled copy of the generic recommended feed.

    Any failure yields [] (logged by the fetch wrapper).
    """
    settings = settings or DEFAULT_SETTINGS
    rng = rng if rng is not None else np.random.default_rng()

    videos = await attempt(video_source.get_recommended_videos, "recommended")
    videos = dedupe([videos])
    order = rng.permutation(len(videos))
    result = [
        ScoredVideo(video=videos[int(i)], reasons=[Reason(ReasonTag.FALLBACK)])
        for i in order
    ]
    logger.info("Fallback feed: %d videos", len(result))
    return result[: settings.max_results]


async def recommend_strict(
    video_source,
    source: RecommendationSource,
    rng: Optional[np.random.Generator] = None,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> list[ScoredVideo]:
    """Strict-filter pipeline.

    Every candidate is scored; NG hits and duration mismatches fall below
    the rejection threshold and are dropped. Survivors are sorted by score.

    Args:
        video_source: A VideoSource implementation.
        source: Per-call snapshot of history and preferences.
        rng: Randomness source (seed it for reproducible output).
        settings: Weights, thresholds and caps.
        now: Reference time for ISO recency descriptors.

    Returns:
        Ranked recommendations, at most settings.max_results.
    """
    settings = settings or DEFAULT_SETTINGS
    rng = rng if rng is not None else np.random.default_rng()

    plan = plan_queries(source, rng, settings)
    results = await fetch_all(video_source, plan.requests())
    candidates = dedupe(results)

    if not candidates:
        logger.warning("No candidates from %d requests, using fallback feed",
                       len(plan.requests()))
        return await recommend_fallback(video_source, rng, settings)

    scored = [score_video(v, source, settings, now) for v in candidates]
    survivors = [s for s in scored if not is_rejected(s, settings)]
    survivors = _thin_shorts(survivors, source, rng, settings)
    survivors.sort(key=lambda s: s.score, reverse=True)

    logger.info(
        "Strict pipeline: %d candidates, %d rejected, %d returned",
        len(candidates),
        len(scored) - len(survivors),
        min(len(survivors), settings.max_results),
    )
    return survivors[: settings.max_results]


async def recommend_weighted(
    video_source,
    source: RecommendationSource,
    rng: Optional[np.random.Generator] = None,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> list[ScoredVideo]:
    """Weighted dual-pool pipeline.

    Builds an interest profile, fetches a discovery pool (keyword searches)
    and a comfort pool (related videos and subscription feeds) concurrently,
    ranks each pool in its own mode and interleaves them at
    settings.discovery_ratio.

    Args:
        video_source: A VideoSource implementation.
        source: Per-call snapshot of history and preferences.
        rng: Randomness source (seed it for reproducible output).
        settings: Weights, thresholds, ratio and caps.
        now: Reference time for ISO recency descriptors.

    Returns:
        Mixed recommendations, each tagged with its pool.
    """
    settings = settings or DEFAULT_SETTINGS
    rng = rng if rng is not None else np.random.default_rng()

    profile = build_profile(
        source.watch_history, source.search_history, source.subscriptions, settings
    )
    discovery_requests = plan_discovery_track(source, profile, rng, settings)
    comfort_requests = plan_comfort_track(source, rng, settings)

    discovery_results, comfort_results = await asyncio.gather(
        fetch_all(video_source, discovery_requests),
        fetch_all(video_source, comfort_requests),
    )
    discovery_videos = dedupe(discovery_results)
    comfort_videos = exclude(
        dedupe(comfort_results), {v.video_id for v in discovery_videos}
    )

    if not discovery_videos and not comfort_videos:
        logger.warning("Both pools empty, using fallback feed")
        return await recommend_fallback(video_source, rng, settings)

    discovery_ranked = rank_pool(
        discovery_videos, source, "discovery", profile, settings, now
    )
    comfort_ranked = rank_pool(comfort_videos, source, "comfort", profile, settings, now)

    mixed = mix_pools(
        discovery_ranked,
        comfort_ranked,
        settings.discovery_ratio,
        limit=settings.max_results,
    )
    logger.info(
        "Weighted pipeline: discovery=%d comfort=%d mixed=%d (ratio=%.2f)",
        len(discovery_ranked),
        len(comfort_ranked),
        len(mixed),
        settings.discovery_ratio,
    )
    return mixed
