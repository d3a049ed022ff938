"""
Tests for the interest profile builder.
"""
from tubefeed.engine.models import Channel, UserProfile, Video
from tubefeed.engine.profile import build_profile
from tubefeed.engine.settings import EngineSettings


def _make_video(title, description="", video_id="v"):
    return Video(
        video_id=video_id,
        title=title,
        channel_id="ch",
        channel_name="Channel",
        description=description,
    )


class TestBuildProfile:
    def test_recency_weighting(self):
        history = [_make_video("guitar lesson"), _make_video("guitar cover")]
        profile = build_profile(history, [], [])

        assert profile.weights == {"guitar": 39.0, "lesson": 20.0, "cover": 19.0}
        assert profile.top(3) == ["guitar", "lesson", "cover"]

    def test_keywords_case_folded(self):
        history = [_make_video("Guitar"), _make_video("guitar solo")]
        profile = build_profile(history, [], [])
        assert profile.weights["guitar"] == 39.0

    def test_repeated_keyword_counts_once_per_entry(self):
        profile = build_profile([_make_video("guitar guitar GUITAR")], [], [])
        assert profile.weights == {"guitar": 20.0}

    def test_description_included(self):
        profile = build_profile([_make_video("title", description="drums")], [], [])
        assert "drums" in profile.weights

    def test_watch_lookback_window(self):
        settings = EngineSettings(profile_watch_lookback=2)
        history = [_make_video("alpha"), _make_video("beta"), _make_video("gamma")]
        profile = build_profile(history, [], [], settings)

        assert profile.weights == {"alpha": 2.0, "beta": 1.0}

    def test_search_history_weighted(self):
        profile = build_profile([], ["piano", "drums"], [])
        assert profile.weights == {"piano": 20.0, "drums": 18.0}

    def test_subscriptions_add_channel_names(self):
        profile = build_profile([], [], [Channel("c1", "Cooking With Dog"), Channel("c2", "")])
        assert profile.weights == {"cooking with dog": 1.0}

    def test_sources_accumulate(self):
        profile = build_profile([_make_video("piano")], ["piano"], [])
        assert profile.weights["piano"] == 40.0

    def test_empty(self):
        profile = build_profile([], [], [])
        assert len(profile) == 0
        assert not profile


class TestUserProfile:
    def test_top_ties_keep_insertion_order(self):
        profile = UserProfile()
        profile.add("b", 1.0)
        profile.add("a", 1.0)
        profile.add("c", 2.0)
        assert profile.top(3) == ["c", "b", "a"]

    def test_top_more_than_available(self):
        profile = UserProfile(weights={"x": 1.0})
        assert profile.top(5) == ["x"]
