#!/usr/bin/env python3
"""
CLI for tubefeed recommendations and preference management

Usage:
    python -m tubefeed.cli --db-path prefs.db recommend --input sources.json
    python -m tubefeed.cli --db-path prefs.db recommend --input sources.json --pipeline weighted
    python -m tubefeed.cli --db-path prefs.db plan --input sources.json --seed 7
    python -m tubefeed.cli --db-path prefs.db profile --input sources.json
    python -m tubefeed.cli --db-path prefs.db show-prefs
    python -m tubefeed.cli --db-path prefs.db add-genre cooking
    python -m tubefeed.cli --db-path prefs.db toggle-duration medium
    python -m tubefeed.cli --db-path prefs.db set-context depth deep
"""
import argparse
import asyncio
import json
import logging
import sys

import numpy as np

from .db.preferences import (
    DISCOVERY_MODES,
    DURATIONS,
    FRESHNESS_VALUES,
    PreferenceStore,
)
from .engine import (
    Channel,
    EngineSettings,
    Preferences,
    RecommendationSource,
    Video,
    build_profile,
    plan_queries,
    recommend_fallback,
    recommend_strict,
    recommend_weighted,
)
from .engine.models import ContextPreferences

logger = logging.getLogger(__name__)

PIPELINES = ("strict", "weighted", "fallback")

# command -> (store method, help text)
LIST_COMMANDS = {
    "add-genre": ("add_genre", "Add a preferred genre or keyword"),
    "remove-genre": ("remove_genre", "Remove a preferred genre or keyword"),
    "add-channel": ("add_channel", "Add a preferred channel name"),
    "remove-channel": ("remove_channel", "Remove a preferred channel name"),
    "add-ng": ("add_ng_keyword", "Add an NG keyword"),
    "remove-ng": ("remove_ng_keyword", "Remove an NG keyword"),
}


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="tubefeed video recommendation CLI"
    )
    parser.add_argument(
        "--db-path",
        required=True,
        help="Path to the SQLite preference database"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Recommendation commands

    recommend_parser = subparsers.add_parser(
        "recommend",
        help="Compute recommendations from a history file and stored preferences"
    )
    recommend_parser.add_argument(
        "--input",
        required=True,
        help="JSON file with watch_history, search_history and subscriptions"
    )
    recommend_parser.add_argument(
        "--pipeline",
        choices=PIPELINES,
        default="strict",
        help="Pipeline to run (default: strict)"
    )
    recommend_parser.add_argument(
        "--limit",
        type=_positive_int,
        default=20,
        help="Max recommendations to return (default: 20)"
    )
    recommend_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output"
    )
    recommend_parser.add_argument(
        "--ratio",
        type=float,
        default=None,
        help="Discovery share for the weighted pipeline (default: 0.65)"
    )
    recommend_parser.add_argument(
        "--short-keep",
        type=float,
        default=None,
        help="Probability that very short videos survive thinning (default: 0.3)"
    )
    recommend_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number, varies the planned queries (default: 1)"
    )
    recommend_parser.add_argument(
        "--api-key",
        default=None,
        help="YouTube Data API key (default: $YOUTUBE_API_KEY)"
    )
    recommend_parser.add_argument(
        "--region",
        default="JP",
        help="Region code for searches and the popular feed (default: JP)"
    )

    plan_parser = subparsers.add_parser(
        "plan",
        help="Show the queries the strict pipeline would issue (no network)"
    )
    plan_parser.add_argument("--input", required=True, help="History JSON file")
    plan_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    plan_parser.add_argument("--page", type=int, default=1, help="Page number")

    profile_parser = subparsers.add_parser(
        "profile",
        help="Show the interest profile built from a history file"
    )
    profile_parser.add_argument("--input", required=True, help="History JSON file")
    profile_parser.add_argument(
        "--top",
        type=int,
        default=20,
        help="Number of keywords to show (default: 20)"
    )

    # Preference commands

    subparsers.add_parser("show-prefs", help="Show stored preferences")

    for command, (_, help_text) in LIST_COMMANDS.items():
        list_parser = subparsers.add_parser(command, help=help_text)
        list_parser.add_argument("value")

    toggle_parser = subparsers.add_parser(
        "toggle-duration",
        help="Toggle a preferred duration bucket"
    )
    toggle_parser.add_argument("duration", choices=DURATIONS)

    freshness_parser = subparsers.add_parser(
        "set-freshness",
        help="Set the freshness preference"
    )
    freshness_parser.add_argument("freshness", choices=FRESHNESS_VALUES)

    mode_parser = subparsers.add_parser(
        "set-mode",
        help="Set the discovery mode"
    )
    mode_parser.add_argument("mode", choices=DISCOVERY_MODES)

    context_parser = subparsers.add_parser(
        "set-context",
        help="Set a fine-grained context preference (value 'any' clears it)"
    )
    context_parser.add_argument("field", choices=list(ContextPreferences.model_fields))
    context_parser.add_argument("value")

    return parser.parse_args(argv)


def _entries(data: dict, key: str, kind: type) -> list:
    """List under key (null counts as empty); every entry must be of kind."""
    entries = data.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f"{key} must be a list")
    for entry in entries:
        if not isinstance(entry, kind):
            raise ValueError(f"{key} entries must be {kind.__name__} values, got {entry!r}")
    return entries


def load_source(path: str, preferences: Preferences, page: int = 1) -> RecommendationSource:
    """Build a RecommendationSource from a history JSON file.

    Raises:
        OSError: The file can't be read.
        ValueError: The file isn't valid JSON or has the wrong shape.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("history file must contain a JSON object")

    watch_history = _entries(data, "watch_history", dict)
    search_history = _entries(data, "search_history", str)
    subscriptions = _entries(data, "subscriptions", dict)

    return RecommendationSource(
        watch_history=tuple(Video.from_dict(v) for v in watch_history),
        search_history=tuple(search_history),
        subscriptions=tuple(Channel.from_dict(c) for c in subscriptions),
        preferences=preferences,
        page=page,
    )


def _rng(seed):
    return np.random.default_rng(seed)


async def cmd_recommend(store: PreferenceStore, args, video_source=None) -> dict:
    """Execute the recommend command."""
    from .sources.youtube import YouTubeSource

    source = load_source(args.input, store.load(), args.page)

    overrides = {"max_results": args.limit}
    if args.ratio is not None:
        overrides["discovery_ratio"] = args.ratio
    if args.short_keep is not None:
        overrides["short_keep_probability"] = args.short_keep
    settings = EngineSettings(**overrides)
    rng = _rng(args.seed)

    owns_source = video_source is None
    if owns_source:
        video_source = YouTubeSource(api_key=args.api_key, region=args.region)
    try:
        if args.pipeline == "weighted":
            results = await recommend_weighted(video_source, source, rng, settings)
        elif args.pipeline == "fallback":
            results = await recommend_fallback(video_source, rng, settings)
        else:
            results = await recommend_strict(video_source, source, rng, settings)
    finally:
        if owns_source:
            await video_source.close()

    return {
        "command": "recommend",
        "pipeline": args.pipeline,
        "count": len(results),
        "recommendations": [r.to_dict() for r in results],
    }


def cmd_plan(store: PreferenceStore, args) -> dict:
    """Execute the plan command."""
    source = load_source(args.input, store.load(), args.page)
    plan = plan_queries(source, _rng(args.seed))
    return {
        "command": "plan",
        "queries": plan.queries,
        "per_query_limit": plan.per_query_limit,
        "channel_feeds": [
            {"channel_id": r.target, "name": r.channel.name if r.channel else ""}
            for r in plan.channel_requests
        ],
    }


def cmd_profile(store: PreferenceStore, args) -> dict:
    """Execute the profile command."""
    source = load_source(args.input, store.load())
    profile = build_profile(
        source.watch_history, source.search_history, source.subscriptions
    )
    return {
        "command": "profile",
        "keywords": [
            {"keyword": kw, "weight": profile.weights[kw]}
            for kw in profile.top(args.top)
        ],
    }


def cmd_show_prefs(store: PreferenceStore, args) -> dict:
    """Execute the show-prefs command."""
    return {
        "command": "show-prefs",
        "preferences": store.load().model_dump(mode="json"),
    }


def cmd_update_prefs(store: PreferenceStore, args) -> dict:
    """Execute a preference mutation command."""
    if args.command in LIST_COMMANDS:
        method, _ = LIST_COMMANDS[args.command]
        getattr(store, method)(args.value)
    elif args.command == "toggle-duration":
        store.toggle_duration(args.duration)
    elif args.command == "set-freshness":
        store.set_freshness(args.freshness)
    elif args.command == "set-mode":
        store.set_discovery_mode(args.mode)
    elif args.command == "set-context":
        store.set_context(args.field, args.value)

    return {
        "command": args.command,
        "preferences": store.load().model_dump(mode="json"),
    }


def _print_preferences(prefs: dict) -> None:
    print(f"Genres:    {', '.join(prefs['preferred_genres']) or '-'}")
    print(f"Channels:  {', '.join(prefs['preferred_channels']) or '-'}")
    print(f"NG:        {', '.join(prefs['ng_keywords']) or '-'}")
    print(f"Durations: {', '.join(prefs['preferred_durations']) or 'any'}")
    print(f"Freshness: {prefs['freshness']}")
    print(f"Mode:      {prefs['discovery_mode']}")
    context = {k: v for k, v in prefs["context"].items() if v != "any"}
    if context:
        print("Context:   " + ", ".join(f"{k}={v}" for k, v in context.items()))


async def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    with PreferenceStore(args.db_path) as store:
        try:
            if args.command == "recommend":
                result = await cmd_recommend(store, args)
            elif args.command == "plan":
                result = cmd_plan(store, args)
            elif args.command == "profile":
                result = cmd_profile(store, args)
            elif args.command == "show-prefs":
                result = cmd_show_prefs(store, args)
            else:
                result = cmd_update_prefs(store, args)
        except (OSError, ValueError) as e:
            logger.error(f"{args.command} failed: {e}")
            sys.exit(1)

    # Output results
    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return result

    print(f"\n{'=' * 50}")
    print(f"Command: {result['command']}")
    print(f"{'=' * 50}")

    if args.command == "recommend":
        print(f"Pipeline: {result['pipeline']}")
        print(f"Recommendations: {result['count']}")
        for i, rec in enumerate(result["recommendations"], 1):
            pool = f" ({rec['pool']})" if rec.get("pool") else ""
            print(f"\n  #{i} [{rec['score']:>5}]{pool} {rec['title'][:60]}")
            print(f"     Channel: {rec['channel_name']}")
            if rec["reasons"]:
                print(f"     Reasons: {', '.join(rec['reasons'])}")

    elif args.command == "plan":
        print(f"Queries ({result['per_query_limit']} videos each):")
        for q in result["queries"]:
            print(f"  - {q}")
        print(f"Channel feeds: {len(result['channel_feeds'])}")
        for feed in result["channel_feeds"]:
            print(f"  - {feed['name'] or feed['channel_id']}")

    elif args.command == "profile":
        print(f"Top keywords: {len(result['keywords'])}")
        for entry in result["keywords"]:
            print(f"  {entry['weight']:>8.1f}  {entry['keyword']}")

    else:
        _print_preferences(result["preferences"])

    print(f"{'=' * 50}\n")
    return result


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
