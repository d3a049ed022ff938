"""
Tunable constants for the recommendation engine.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class EngineSettings:
    """Scoring weights, thresholds and fan-out limits."""
    # Scorer
    ng_penalty: int = -10000
    duration_match_bonus: int = 200
    duration_mismatch_penalty: int = -500
    preferred_channel_bonus: int = 50
    subscription_bonus: int = 30
    genre_bonus: int = 40
    context_bonus: int = 30
    fresh_bonus: int = 20
    fresh_max_age_days: float = 7.0
    reject_threshold: int = -100

    # Mode-aware ranking (dual-pool pipeline)
    profile_keyword_weight: int = 10
    profile_keyword_max_hits: int = 3
    profile_match_keywords: int = 10
    channel_affinity_bonus: int = 15
    channel_affinity_max_hits: int = 3

    # Profile builder
    profile_watch_lookback: int = 20
    profile_search_lookback: int = 10
    search_weight: float = 2.0
    subscription_weight: float = 1.0

    # Query planner
    max_queries: int = 6
    videos_per_query: int = 20
    videos_per_query_discovery: int = 30
    channel_feed_limit: int = 10
    discovery_top_keywords: int = 8
    discovery_chunk_size: int = 3

    # Pipelines
    max_results: int = 100
    discovery_ratio: float = 0.65
    short_keep_probability: float = 0.3
    short_max_seconds: int = 60
    short_thinning_min_pool: int = 20


DEFAULT_SETTINGS = EngineSettings()
