"""
HydroSync: Local Databases.

EventStore is the authoritative drink log and belongs to the main app
process. PreferenceDB keeps the user's settings and GridCacheDB keeps the
last rendered grid so the app reopens on the same picture; neither is a
source of truth for totals.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from datetime import date, datetime
from pathlib import Path

from hydrosync.data.models import (
    BeverageKind,
    DrinkEvent,
    EventOrigin,
    GridCell,
    Preferences,
    QuickSelection,
    TimeRange,
    default_quick_selections,
    to_local_naive,
)

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a durable read or write fails (disk, serialization)."""


class WriteLaneBusy(PersistenceError):
    """Another app process held the write lane for longer than the timeout."""


def _ts(moment: datetime) -> str:
    # Fixed-width so text comparison in SQL matches time order
    return to_local_naive(moment).isoformat(timespec="microseconds")


def _prepare(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


class WriteLane:
    """Exclusive write lock shared by every process that opens the same log.

    Holding the lane means holding an EXCLUSIVE transaction on a small
    sidecar SQLite file next to the event log. Another holder waits up to
    `timeout` seconds and then gets WriteLaneBusy. The lane is not
    re-entrant: a holder must not ask for it again.
    """

    def __init__(self, lock_path: str, timeout: float) -> None:
        self._lock_path = lock_path
        self._timeout = timeout
        _prepare(lock_path)
        try:
            with sqlite3.connect(lock_path) as conn:
                conn.execute("CREATE TABLE IF NOT EXISTS lane (id INTEGER PRIMARY KEY)")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open write lane at {lock_path}: {exc}") from exc

    @contextmanager
    def hold(self) -> Iterator[None]:
        try:
            conn = sqlite3.connect(self._lock_path, timeout=self._timeout, isolation_level=None)
            conn.execute("BEGIN EXCLUSIVE")
        except sqlite3.OperationalError as exc:
            raise WriteLaneBusy(f"Write lane {self._lock_path} is busy: {exc}") from exc
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot take write lane {self._lock_path}: {exc}") from exc
        try:
            yield
        finally:
            try:
                conn.execute("ROLLBACK")
            finally:
                conn.close()


class EventStore:
    """SQLite-backed append-only log of drink events."""

    def __init__(self, db_path: str | None = None, lane_timeout: float | None = None) -> None:
        from hydrosync.config import settings

        if db_path is None:
            db_path = settings.DATABASE_PATH
        if lane_timeout is None:
            lane_timeout = settings.WRITE_LANE_TIMEOUT_SECONDS

        self._db_path = db_path
        _prepare(db_path)
        self._init_db()
        # In-memory logs are private to one connection, nothing to share
        self._lane = None if db_path == ":memory:" else WriteLane(f"{db_path}.lane", lane_timeout)

    def write_lane(self):
        """Context manager serializing writers across processes."""
        if self._lane is None:
            return nullcontext()
        return self._lane.hold()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS drink_events (
                        id            TEXT PRIMARY KEY,
                        timestamp     TEXT NOT NULL,
                        volume_ml     REAL NOT NULL,
                        beverage_kind TEXT NOT NULL DEFAULT 'water',
                        origin        TEXT NOT NULL DEFAULT 'manual_entry'
                    )
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_drink_events_timestamp "
                    "ON drink_events (timestamp)"
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open event store at {self._db_path}: {exc}") from exc
        logger.debug("Drink events table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> DrinkEvent:
        return DrinkEvent(
            id=row["id"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            volume_ml=row["volume_ml"],
            beverage_kind=BeverageKind(row["beverage_kind"]),
            origin=EventOrigin(row["origin"]),
        )

    def append(self, event: DrinkEvent) -> DrinkEvent:
        """Insert one event. Not idempotent: a repeated id is a PersistenceError."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO drink_events
                        (id, timestamp, volume_ml, beverage_kind, origin)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        event.id, _ts(event.timestamp), float(event.volume_ml),
                        event.beverage_kind.value, event.origin.value,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to append event {event.id}: {exc}") from exc

        logger.info(
            "Drink logged: %s %.0fml %s (%s)",
            event.id[:8], event.volume_ml, event.beverage_kind.value, event.origin.value,
        )
        return event

    def query(self, time_range: TimeRange) -> list[DrinkEvent]:
        """Return every event with start <= timestamp < end."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM drink_events WHERE timestamp >= ? AND timestamp < ?",
                    (_ts(time_range.start), _ts(time_range.end)),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to query events: {exc}") from exc
        return [self._row_to_event(r) for r in rows]

    def all_events(self) -> list[DrinkEvent]:
        """Return the whole history, oldest first."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM drink_events ORDER BY timestamp"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read events: {exc}") from exc
        return [self._row_to_event(r) for r in rows]

    def delete_all(self) -> int:
        """Remove every event. Only used by an explicit user reset."""
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM drink_events")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to clear events: {exc}") from exc
        logger.info("Event store cleared (%d events removed)", cursor.rowcount)
        return cursor.rowcount


class PreferenceDB:
    """SQLite-backed key/value storage for user preferences."""

    def __init__(self, db_path: str | None = None, default_goal_ml: int | None = None) -> None:
        from hydrosync.config import settings

        if db_path is None:
            db_path = settings.DATABASE_PATH
        if default_goal_ml is None:
            default_goal_ml = settings.DEFAULT_DAILY_GOAL_ML

        self._db_path = db_path
        self._default_goal_ml = default_goal_ml
        _prepare(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS preferences (
                        key   TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open preferences at {self._db_path}: {exc}") from exc
        logger.debug("Preferences table initialized at %s", self._db_path)

    def _get(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM preferences WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read preference {key!r}: {exc}") from exc
        return None if row is None else row["value"]

    def _set(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO preferences (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to write preference {key!r}: {exc}") from exc

    def _get_bool(self, key: str, default: bool) -> bool:
        raw = self._get(key)
        return default if raw is None else raw == "1"

    def _set_bool(self, key: str, value: bool) -> None:
        self._set(key, "1" if value else "0")

    @property
    def default_goal_ml(self) -> int:
        return self._default_goal_ml

    def get_goal(self) -> int:
        raw = self._get("daily_goal_ml")
        if raw is None:
            return self._default_goal_ml
        try:
            goal = int(raw)
        except ValueError:
            goal = 0
        if goal <= 0:
            logger.warning("Stored daily goal %r is unusable, using default", raw)
            return self._default_goal_ml
        return goal

    def set_goal(self, goal_ml: int) -> None:
        if goal_ml <= 0:
            raise ValueError(f"Daily goal must be positive, got {goal_ml!r}")
        self._set("daily_goal_ml", str(int(goal_ml)))
        logger.info("Daily goal set to %dml", goal_ml)

    def get_use_ounces(self) -> bool:
        return self._get_bool("use_ounces", False)

    def set_use_ounces(self, value: bool) -> None:
        self._set_bool("use_ounces", value)

    def get_notifications_enabled(self) -> bool:
        return self._get_bool("notifications_enabled", True)

    def set_notifications_enabled(self, value: bool) -> None:
        self._set_bool("notifications_enabled", value)

    def get_wave_animation_enabled(self) -> bool:
        return self._get_bool("wave_animation_enabled", True)

    def set_wave_animation_enabled(self, value: bool) -> None:
        self._set_bool("wave_animation_enabled", value)

    def get_has_shown_congratulations(self) -> bool:
        return self._get_bool("has_shown_congratulations", False)

    def set_has_shown_congratulations(self, value: bool) -> None:
        self._set_bool("has_shown_congratulations", value)

    def get_quick_selections(self) -> list[QuickSelection]:
        raw = self._get("quick_selections")
        if raw is None:
            return default_quick_selections()
        try:
            items = json.loads(raw)
            return [QuickSelection(**item) for item in items]
        except (ValueError, TypeError) as exc:
            logger.warning("Stored quick selections unreadable, using defaults: %s", exc)
            return default_quick_selections()

    def set_quick_selections(self, selections: list[QuickSelection]) -> None:
        payload = [
            {
                "icon": s.icon,
                "label": s.label,
                "volume_ml": s.volume_ml,
                "is_selected": s.is_selected,
            }
            for s in selections
        ]
        self._set("quick_selections", json.dumps(payload))

    def load(self) -> Preferences:
        return Preferences(
            daily_goal_ml=self.get_goal(),
            use_ounces=self.get_use_ounces(),
            notifications_enabled=self.get_notifications_enabled(),
            wave_animation_enabled=self.get_wave_animation_enabled(),
            has_shown_congratulations=self.get_has_shown_congratulations(),
            quick_selections=self.get_quick_selections(),
        )

    def reset(self) -> None:
        """Forget every stored preference; getters fall back to defaults."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM preferences")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to reset preferences: {exc}") from exc
        logger.info("Preferences reset to defaults")


class GridCacheDB:
    """Last rendered grid, kept only for render continuity across launches."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from hydrosync.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        _prepare(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS grid_cells (
                        cell_index INTEGER PRIMARY KEY,
                        fill_kind  TEXT
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS grid_cache_meta (
                        key   TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open grid cache at {self._db_path}: {exc}") from exc
        logger.debug("Grid cache table initialized at %s", self._db_path)

    def load(self) -> list[GridCell]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM grid_cells ORDER BY cell_index"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to load grid cache: {exc}") from exc
        return [
            GridCell(
                index=row["cell_index"],
                fill_kind=BeverageKind(row["fill_kind"]) if row["fill_kind"] else None,
            )
            for row in rows
        ]

    def cached_day(self) -> date | None:
        """Day the cached cells were rendered for, None if unknown."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM grid_cache_meta WHERE key = 'day'"
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to load grid cache: {exc}") from exc
        if row is None:
            return None
        try:
            return date.fromisoformat(row["value"])
        except ValueError:
            logger.warning("Ignoring malformed grid cache day %r", row["value"])
            return None

    def save(self, cells: list[GridCell], day: date | None = None) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM grid_cells")
                conn.executemany(
                    "INSERT INTO grid_cells (cell_index, fill_kind) VALUES (?, ?)",
                    [
                        (c.index, c.fill_kind.value if c.fill_kind else None)
                        for c in cells
                    ],
                )
                if day is None:
                    conn.execute("DELETE FROM grid_cache_meta WHERE key = 'day'")
                else:
                    conn.execute(
                        """
                        INSERT INTO grid_cache_meta (key, value) VALUES ('day', ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value
                        """,
                        (day.isoformat(),),
                    )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save grid cache: {exc}") from exc

    def clear(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM grid_cells")
                conn.execute("DELETE FROM grid_cache_meta")
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to clear grid cache: {exc}") from exc
