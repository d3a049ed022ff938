# Recommendation engine
from .duration import classify_duration, parse_duration
from .fetch import attempt, dedupe, exclude, fetch_all
from .keywords import extract_keywords
from .mixer import mix_pools
from .models import (
    Channel,
    ContextPreferences,
    FetchRequest,
    Preferences,
    Reason,
    ReasonTag,
    RecommendationSource,
    ScoredVideo,
    UserProfile,
    Video,
)
from .pipeline import recommend_fallback, recommend_strict, recommend_weighted
from .planner import QueryPlan, plan_comfort_track, plan_discovery_track, plan_queries
from .profile import build_profile
from .scorer import is_rejected, rank_pool, score_video
from .settings import DEFAULT_SETTINGS, EngineSettings

__all__ = [
    "classify_duration",
    "parse_duration",
    "attempt",
    "dedupe",
    "exclude",
    "fetch_all",
    "extract_keywords",
    "mix_pools",
    "Channel",
    "ContextPreferences",
    "FetchRequest",
    "Preferences",
    "Reason",
    "ReasonTag",
    "RecommendationSource",
    "ScoredVideo",
    "UserProfile",
    "Video",
    "recommend_fallback",
    "recommend_strict",
    "recommend_weighted",
    "QueryPlan",
    "plan_comfort_track",
    "plan_discovery_track",
    "plan_queries",
    "build_profile",
    "is_rejected",
    "rank_pool",
    "score_video",
    "DEFAULT_SETTINGS",
    "EngineSettings",
]
