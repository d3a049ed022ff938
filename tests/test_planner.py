"""
Tests for query planning (strict planner and dual-pool tracks).
"""
import numpy as np

from tubefeed.engine.models import (
    Channel,
    ContextPreferences,
    FetchRequest,
    Preferences,
    RecommendationSource,
    UserProfile,
    Video,
)
from tubefeed.engine.planner import (
    GENERIC_QUERIES,
    context_modifier,
    plan_comfort_track,
    plan_discovery_track,
    plan_queries,
)
from tubefeed.engine.settings import EngineSettings


def _make_video(video_id="v1", title="Video"):
    return Video(video_id=video_id, title=title, channel_id="ch", channel_name="Channel")


def _make_channels(n):
    return [Channel(f"ch{i}", f"Channel {i}") for i in range(n)]


def _make_source(watch_history=(), search_history=(), subscriptions=(), page=1, **prefs):
    return RecommendationSource(
        watch_history=tuple(watch_history),
        search_history=tuple(search_history),
        subscriptions=tuple(subscriptions),
        preferences=Preferences(**prefs),
        page=page,
    )


def _rng(seed=0):
    return np.random.default_rng(seed)


# ── Context Modifier ──────────────────────────────────────────────────


class TestContextModifier:
    def test_none_set(self):
        assert context_modifier(_make_source()) == ""

    def test_first_matching_field_wins(self):
        source = _make_source(context=ContextPreferences(vocal="vocal", depth="casual"))
        assert context_modifier(source) == " casual"

    def test_unknown_category_skipped(self):
        source = _make_source(context=ContextPreferences(depth="weird", vocal="instrumental"))
        assert context_modifier(source) == " instrumental"


# ── Strict Planner ────────────────────────────────────────────────────


class TestPlanQueries:
    def test_genre_rotates_with_page(self):
        source = _make_source(preferred_genres=("cooking", "travel", "music"), page=2)
        plan = plan_queries(source, _rng())
        assert plan.queries[0] == "travel"

    def test_freshness_suffix(self):
        new = plan_queries(_make_source(preferred_genres=("cooking",), freshness="new"), _rng())
        best = plan_queries(
            _make_source(preferred_genres=("cooking",), freshness="popular"), _rng()
        )
        assert new.queries == ["cooking new"]
        assert best.queries == ["cooking best"]

    def test_context_modifier_appended(self):
        source = _make_source(
            preferred_genres=("cooking",),
            freshness="new",
            context=ContextPreferences(depth="deep"),
        )
        assert plan_queries(source, _rng()).queries == ["cooking explained new"]

    def test_preferred_channel_queries(self):
        source = _make_source(preferred_channels=("HIKAKIN",), freshness="new")
        assert plan_queries(source, _rng()).queries == ["HIKAKIN", "HIKAKIN new"]

    def test_generic_queries_without_signal(self):
        plan = plan_queries(_make_source(), _rng())

        assert plan.queries == list(GENERIC_QUERIES)
        assert plan.channel_requests == []

    def test_search_history(self):
        plan = plan_queries(_make_source(search_history=["latest query"]), _rng())
        assert plan.queries == ["latest query"]

    def test_watch_history_keywords(self):
        source = _make_source(watch_history=[_make_video(title="Minecraft survival guide")])
        plan = plan_queries(source, _rng())

        assert plan.queries[0] == "Minecraft survival"
        assert set(plan.queries[1:]) <= {"Minecraft", "survival", "guide"}

    def test_watch_history_title_fallback(self):
        source = _make_source(watch_history=[_make_video(title="a b c")])
        assert plan_queries(source, _rng()).queries == ["a b c"]

    def test_discovery_skips_history_and_adds_generic(self):
        source = _make_source(
            watch_history=[_make_video(title="Minecraft survival guide")],
            preferred_genres=("cooking",),
            discovery_mode="discovery",
        )
        plan = plan_queries(source, _rng())

        assert plan.queries[0] == "cooking"
        assert len(plan.queries) == 3
        assert set(plan.queries[1:]) <= set(GENERIC_QUERIES)
        assert not any("Minecraft" in q for q in plan.queries)

    def test_priority_survives_cap(self):
        settings = EngineSettings(max_queries=3)
        source = _make_source(
            search_history=["s1", "s2", "s3"],
            preferred_genres=("cooking",),
            preferred_channels=("ChanX",),
        )
        for seed in range(5):
            plan = plan_queries(source, _rng(seed), settings)
            assert len(plan.queries) == 3
            assert plan.queries[:2] == ["cooking", "ChanX"]
            assert plan.queries[2] in {"s1", "s2", "s3"}

    def test_queries_unique(self):
        source = _make_source(
            watch_history=[_make_video(f"v{i}", f"cooking pasta {i}") for i in range(15)],
            search_history=["cooking", "pasta"],
            preferred_genres=("cooking",),
        )
        plan = plan_queries(source, _rng(3))
        assert len(plan.queries) == len(set(plan.queries))
        assert len(plan.queries) <= 6

    def test_subscription_feed_counts(self):
        subs = _make_channels(12)
        counts = {
            mode: len(plan_queries(
                _make_source(subscriptions=subs, discovery_mode=mode), _rng()
            ).channel_requests)
            for mode in ("subscribed", "balanced", "discovery")
        }
        assert counts == {"subscribed": 10, "balanced": 5, "discovery": 1}

    def test_channel_requests_carry_channel(self):
        plan = plan_queries(_make_source(subscriptions=_make_channels(3)), _rng())

        assert {r.target for r in plan.channel_requests} == {"ch0", "ch1", "ch2"}
        for request in plan.channel_requests:
            assert request.kind == "channel"
            assert request.limit == 10
            assert request.channel.channel_id == request.target

    def test_per_query_limit(self):
        balanced = plan_queries(_make_source(), _rng())
        discovery = plan_queries(_make_source(discovery_mode="discovery"), _rng())
        assert balanced.per_query_limit == 20
        assert discovery.per_query_limit == 30

    def test_requests_order(self):
        plan = plan_queries(
            _make_source(preferred_genres=("cooking",), subscriptions=_make_channels(2)),
            _rng(),
        )
        requests = plan.requests()

        assert requests[0] == FetchRequest("search", "cooking", limit=20)
        assert [r.kind for r in requests] == ["search", "channel", "channel"]

    def test_seed_reproducible(self):
        source = _make_source(
            watch_history=[_make_video(f"v{i}", f"topic{i} extra words") for i in range(12)],
            search_history=[f"query {i}" for i in range(8)],
            subscriptions=_make_channels(8),
            preferred_genres=("cooking", "travel", "music"),
        )
        assert plan_queries(source, _rng(42)) == plan_queries(source, _rng(42))


# ── Discovery Track ───────────────────────────────────────────────────


class TestPlanDiscoveryTrack:
    def test_genres_lead_chunked_query(self):
        source = _make_source(preferred_genres=("cooking",))
        profile = UserProfile(weights={"guitar": 3.0, "piano": 2.0})
        requests = plan_discovery_track(source, profile, _rng())

        assert len(requests) == 1
        assert requests[0].kind == "search"
        assert requests[0].limit == 30
        terms = requests[0].target.split(" | ")
        assert terms[0] == "cooking"
        assert set(terms) == {"cooking", "guitar", "piano"}

    def test_freshness_suffix(self):
        source = _make_source(preferred_genres=("cooking",), freshness="new")
        requests = plan_discovery_track(source, UserProfile(), _rng())
        assert [r.target for r in requests] == ["cooking new"]

    def test_case_insensitive_dedup(self):
        source = _make_source(preferred_genres=("Guitar",))
        requests = plan_discovery_track(source, UserProfile(weights={"guitar": 1.0}), _rng())
        assert [r.target for r in requests] == ["Guitar"]

    def test_chunking_and_cap(self):
        profile = UserProfile(weights={f"k{i}": float(10 - i) for i in range(7)})
        requests = plan_discovery_track(_make_source(), profile, _rng())

        assert len(requests) == 3
        terms = [t for r in requests for t in r.target.split(" | ")]
        assert sorted(terms) == sorted(f"k{i}" for i in range(7))

        capped = plan_discovery_track(
            _make_source(), profile, _rng(), EngineSettings(max_queries=2)
        )
        assert len(capped) == 2

    def test_generic_without_terms(self):
        requests = plan_discovery_track(_make_source(), UserProfile(), _rng())
        assert [r.target for r in requests] == list(GENERIC_QUERIES)


# ── Comfort Track ─────────────────────────────────────────────────────


class TestPlanComfortTrack:
    def test_related_and_feeds(self):
        history = [_make_video(f"h{i}") for i in range(3)]
        source = _make_source(watch_history=history, subscriptions=_make_channels(5))
        requests = plan_comfort_track(source, _rng())

        assert requests[0].kind == "related"
        assert requests[0].target in {"h0", "h1", "h2"}
        assert [r.kind for r in requests[1:]] == ["channel", "channel"]

    def test_related_seed_from_recent_window(self):
        history = [_make_video(f"h{i}") for i in range(20)]
        for seed in range(10):
            requests = plan_comfort_track(_make_source(watch_history=history), _rng(seed))
            assert requests[0].target in {f"h{i}" for i in range(5)}

    def test_feed_count_by_mode(self):
        history = [_make_video("h0")]
        subs = _make_channels(6)
        kinds = {}
        for mode in ("subscribed", "balanced", "discovery"):
            source = _make_source(watch_history=history, subscriptions=subs, discovery_mode=mode)
            requests = plan_comfort_track(source, _rng())
            kinds[mode] = sum(1 for r in requests if r.kind == "channel")
        assert kinds == {"subscribed": 4, "balanced": 2, "discovery": 0}

    def test_no_history(self):
        requests = plan_comfort_track(_make_source(subscriptions=_make_channels(2)), _rng())
        assert [r.kind for r in requests] == ["channel", "channel"]
