"""
SQLite-backed preference store.

A simple key-value table holding one JSON value per preference field. Reads
never fail: a missing or undecodable value falls back to the default. The
engine never touches this store; callers load a Preferences snapshot and
pass it in.
"""
import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from ..engine.models import ContextPreferences, Preferences

logger = logging.getLogger(__name__)

LIST_FIELDS = ("preferred_genres", "preferred_channels", "ng_keywords", "preferred_durations")
DURATIONS = ("short", "medium", "long")
FRESHNESS_VALUES = ("new", "popular", "balanced")
DISCOVERY_MODES = ("subscribed", "discovery", "balanced")


class PreferenceStore:
    """Persisted user preferences."""

    def __init__(self, db_path: str):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite file (":memory:" for tests).
        """
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> None:
        """Open the connection and create the table if needed."""
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self.ensure_tables()

    def close(self) -> None:
        """Close the connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def ensure_tables(self) -> None:
        """Create the preferences table if it doesn't exist."""
        if not self._conn:
            raise RuntimeError("Database not connected")

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS preferences (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self._conn.commit()

    # ── Raw key-value access ─────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """Read a JSON value, returning default when absent or unreadable."""
        if not self._conn:
            raise RuntimeError("Database not connected")

        row = self._conn.execute(
            "SELECT value FROM preferences WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, ValueError) as e:
            logger.warning("Unreadable preference %s, using default: %s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        """Write a JSON-serializable value."""
        if not self._conn:
            raise RuntimeError("Database not connected")

        self._conn.execute("""
            INSERT INTO preferences (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
        """, (key, json.dumps(value, ensure_ascii=False), datetime.now().isoformat()))
        self._conn.commit()

    # ── Snapshot ─────────────────────────────────────────────────────

    def load(self) -> Preferences:
        """Load a validated Preferences snapshot.

        Each field is validated on its own so one bad value only resets that
        field.
        """
        values: dict[str, Any] = {}
        defaults = Preferences()

        for name in LIST_FIELDS:
            raw = self.get(name, [])
            if isinstance(raw, list):
                values[name] = tuple(str(v) for v in raw)

        for name in ("freshness", "discovery_mode"):
            raw = self.get(name)
            if raw is not None:
                values[name] = raw

        context = self.get("context", {})
        if isinstance(context, dict):
            try:
                values["context"] = ContextPreferences.model_validate(context)
            except ValidationError as e:
                logger.warning("Invalid context preferences, using defaults: %s", e)

        checked: dict[str, Any] = {}
        for name, value in values.items():
            try:
                Preferences.model_validate({name: value})
            except ValidationError as e:
                logger.warning(
                    "Invalid preference %s=%r, using default %r: %s",
                    name, value, getattr(defaults, name), e.errors()[0]["msg"],
                )
                continue
            checked[name] = value

        return Preferences.model_validate(checked)

    # ── Mutations ────────────────────────────────────────────────────

    def _add_to_list(self, key: str, value: str) -> list[str]:
        value = value.strip()
        items = self.get(key, [])
        if not isinstance(items, list):
            items = []
        if value and value not in items:
            items.append(value)
            self.set(key, items)
        return items

    def _remove_from_list(self, key: str, value: str) -> list[str]:
        items = self.get(key, [])
        if not isinstance(items, list):
            items = []
        remaining = [v for v in items if v != value.strip()]
        if len(remaining) != len(items):
            self.set(key, remaining)
        return remaining

    def add_genre(self, genre: str) -> list[str]:
        return self._add_to_list("preferred_genres", genre)

    def remove_genre(self, genre: str) -> list[str]:
        return self._remove_from_list("preferred_genres", genre)

    def add_channel(self, channel: str) -> list[str]:
        return self._add_to_list("preferred_channels", channel)

    def remove_channel(self, channel: str) -> list[str]:
        return self._remove_from_list("preferred_channels", channel)

    def add_ng_keyword(self, keyword: str) -> list[str]:
        return self._add_to_list("ng_keywords", keyword)

    def remove_ng_keyword(self, keyword: str) -> list[str]:
        return self._remove_from_list("ng_keywords", keyword)

    def toggle_duration(self, duration: str) -> list[str]:
        """Add the bucket if absent, remove it if present."""
        if duration not in DURATIONS:
            raise ValueError(f"Unknown duration bucket: {duration}")
        items = self.get("preferred_durations", [])
        if not isinstance(items, list):
            items = []
        if duration in items:
            items = [d for d in items if d != duration]
        else:
            items.append(duration)
        self.set("preferred_durations", items)
        return items

    def set_freshness(self, freshness: str) -> None:
        if freshness not in FRESHNESS_VALUES:
            raise ValueError(f"Unknown freshness preference: {freshness}")
        self.set("freshness", freshness)

    def set_discovery_mode(self, mode: str) -> None:
        if mode not in DISCOVERY_MODES:
            raise ValueError(f"Unknown discovery mode: {mode}")
        self.set("discovery_mode", mode)

    def set_context(self, field_name: str, value: str) -> dict:
        """Set one fine-grained context preference ("any" clears it)."""
        if field_name not in ContextPreferences.model_fields:
            raise ValueError(f"Unknown context preference: {field_name}")
        context = self.get("context", {})
        if not isinstance(context, dict):
            context = {}
        context[field_name] = value.strip() or "any"
        self.set("context", context)
        return context
