"""
HydroSync: Hydration Tracker (main app process).

The one place the app writes its event log. User taps, timer-driven saves
and sync corrections all come through here and are serialized twice: a
thread lock inside this process, and the event store's write lane across
every app process opened on the same log (`watch` next to a one-off `add`).
No two appends interleave their read-modify-write of totals and grid.
Reads take a copy of the events and compute from that snapshot.

The grid belongs to one day. A cached or in-memory grid from an earlier day
is re-rendered from today's total on the next read or write.

Each screen of the app talks to this service and renders the response
objects its own way.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from hydrosync.core import aggregator, grid
from hydrosync.core.grid import FillCountStrategy
from hydrosync.core.sync_bridge import ReconcileOutcome, ReconcileResult
from hydrosync.data.db import PersistenceError, WriteLaneBusy
from hydrosync.data.models import (
    BeverageKind,
    DrinkEvent,
    EventOrigin,
    GridCell,
    QuickSelection,
    daily_window,
)
from hydrosync.ports.shared_store_port import SharedStoreError

if TYPE_CHECKING:
    from hydrosync.core.sync_bridge import SyncBridge
    from hydrosync.data.db import EventStore, GridCacheDB, PreferenceDB

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


@dataclass
class AddResult:
    event: DrinkEvent
    today_total: float
    cells_filled: int
    published: bool


@dataclass
class ProgressSnapshot:
    today_total: float
    goal_ml: int
    percentage: float
    left_ml: float
    streak: int
    grid: list[GridCell] = field(default_factory=list)


@dataclass
class Statistics:
    window_days: int
    average_ml: float
    best_day_ml: float
    goal_rate: int
    streak: int
    drink_count: int
    average_drink_ml: float
    most_frequent_kind: BeverageKind | None
    totals_by_kind: dict[BeverageKind, float] = field(default_factory=dict)


class HydrationTracker:
    """Main-process owner of the event log, preferences and grid."""

    def __init__(
        self,
        events: EventStore,
        preferences: PreferenceDB,
        bridge: SyncBridge,
        grid_cache: GridCacheDB | None = None,
        grid_rows: int | None = None,
        grid_columns: int | None = None,
        fill_strategy: FillCountStrategy | None = None,
    ) -> None:
        from hydrosync.config import settings

        self._events = events
        self._preferences = preferences
        self._bridge = bridge
        self._grid_cache = grid_cache
        self._rows = grid_rows or settings.GRID_ROWS
        self._columns = grid_columns or settings.GRID_COLUMNS
        self._strategy = fill_strategy or FillCountStrategy(settings.FILL_COUNT_STRATEGY)
        self._lock = threading.RLock()
        self._grid_day: date | None = None
        self._cells = self._restore_grid(datetime.now())

    @property
    def preferences(self) -> PreferenceDB:
        return self._preferences

    @property
    def grid_columns(self) -> int:
        return self._columns

    @property
    def total_cells(self) -> int:
        return self._rows * self._columns

    # ------------------------------------------------------------------
    # Grid cache
    # ------------------------------------------------------------------

    def _restore_grid(self, now: datetime) -> list[GridCell]:
        """Cached cells when they were rendered today at this size, else a fresh render."""
        cached: list[GridCell] = []
        cached_day = None
        if self._grid_cache is not None:
            try:
                cached = self._grid_cache.load()
                cached_day = self._grid_cache.cached_day()
            except PersistenceError as exc:
                logger.warning("Grid cache unreadable, re-rendering: %s", exc)
        self._grid_day = now.date()
        if len(cached) == self.total_cells and cached_day == self._grid_day:
            return cached
        return self._render_from_totals(now)

    def _render_from_totals(self, now: datetime) -> list[GridCell]:
        total = aggregator.today_total(self._events.query(daily_window(now)), now)
        percentage = aggregator.percentage_of_goal(total, self._preferences.get_goal())
        return grid.render_percentage(percentage, self._rows, self._columns)

    def _store_grid(self) -> None:
        if self._grid_cache is None:
            return
        try:
            self._grid_cache.save(self._cells, self._grid_day)
        except PersistenceError as exc:
            # Cache only; the next launch re-renders from totals
            logger.warning("Failed to save grid cache: %s", exc)

    def _refresh_grid_locked(self, now: datetime) -> None:
        # Another app process may have painted cells since our last write
        if self._grid_cache is not None:
            self._cells = self._restore_grid(now)
        elif self._grid_day != now.date():
            self._cells = self._render_from_totals(now)
            self._grid_day = now.date()

    def _roll_day_locked(self, now: datetime) -> None:
        if self._grid_day == now.date():
            return
        logger.info("New day %s, re-rendering grid", now.date().isoformat())
        self._cells = self._render_from_totals(now)
        self._grid_day = now.date()
        self._store_grid()

    # ------------------------------------------------------------------
    # Writes (single lane)
    # ------------------------------------------------------------------

    def _append_locked(self, event: DrinkEvent) -> DrinkEvent:
        self._events.append(event)
        if event.timestamp.date() != self._grid_day:
            # Back-dated drinks count in history, not in today's grid
            return event
        count = grid.fill_count(
            event.volume_ml, self._preferences.get_goal(), self.total_cells, self._strategy,
        )
        self._cells = grid.fill_cells(self._cells, count, event.beverage_kind)
        self._store_grid()
        return event

    def _today_total_locked(self, now: datetime) -> float:
        return aggregator.today_total(self._events.query(daily_window(now)), now)

    def _publish_locked(self, now: datetime) -> bool:
        try:
            self._bridge.publish(
                self._today_total_locked(now), self._preferences.get_goal(), now.date(),
            )
        except SharedStoreError as exc:
            logger.warning("Could not publish progress to the widget: %s", exc)
            return False
        return True

    def _sync_locked(self, now: datetime) -> ReconcileResult:
        return self._bridge.reconcile(
            local_total=self._today_total_locked(now),
            daily_goal_ml=self._preferences.get_goal(),
            today=now.date(),
            append_correction=self._append_locked,
        )

    def add_drink(
        self,
        volume_ml: float,
        kind: BeverageKind = BeverageKind.WATER,
        origin: EventOrigin = EventOrigin.MANUAL_ENTRY,
        timestamp: datetime | None = None,
    ) -> AddResult:
        """Log a drink, then publish the new total for the widget.

        Any pending widget quick-add is absorbed first; otherwise the new
        drink would be mixed into the widget's difference. Raises
        PersistenceError if the append fails, or WriteLaneBusy if another
        app process kept the lane past the timeout; a failed publish is
        logged and retried by the next sync tick.
        """
        with self._lock, self._events.write_lane():
            now = datetime.now()
            self._refresh_grid_locked(now)
            self._sync_locked(now)

            before = grid.filled_count(self._cells)
            event = self._append_locked(
                DrinkEvent.create(volume_ml, kind, origin, timestamp)
            )
            published = self._publish_locked(now)
            total = self._today_total_locked(now)
            return AddResult(
                event=event,
                today_total=total,
                cells_filled=grid.filled_count(self._cells) - before,
                published=published,
            )

    def quick_add(
        self,
        selection: QuickSelection | int,
        kind: BeverageKind = BeverageKind.WATER,
    ) -> AddResult:
        volume = selection.volume_ml if isinstance(selection, QuickSelection) else selection
        return self.add_drink(volume, kind, origin=EventOrigin.QUICK_ADD)

    def sync_tick(self) -> ReconcileResult:
        """One scheduled look at the shared store."""
        with self._lock:
            now = datetime.now()
            try:
                with self._events.write_lane():
                    self._refresh_grid_locked(now)
                    result = self._sync_locked(now)
            except WriteLaneBusy as exc:
                logger.warning("Another app process is writing, skipping this tick: %s", exc)
                return ReconcileResult(ReconcileOutcome.SKIPPED, self._today_total_locked(now))
            if result.outcome is not ReconcileOutcome.SKIPPED:
                logger.debug("Sync tick: %s", result.outcome.value)
            return result

    def set_goal(self, goal_ml: int) -> None:
        with self._lock, self._events.write_lane():
            self._preferences.set_goal(goal_ml)
            now = datetime.now()
            self._grid_day = now.date()
            self._cells = grid.render_percentage(
                aggregator.percentage_of_goal(self._today_total_locked(now), goal_ml),
                self._rows, self._columns,
            )
            self._store_grid()
            self._publish_locked(now)

    def reset(self) -> None:
        """User-initiated wipe: events, grid and preferences."""
        with self._lock, self._events.write_lane():
            self._events.delete_all()
            self._preferences.reset()
            now = datetime.now()
            self._grid_day = now.date()
            self._cells = grid.empty_grid(self.total_cells)
            if self._grid_cache is not None:
                self._grid_cache.clear()
            self._publish_locked(now)
            self._bridge.clear_widget_flag()
            logger.info("Tracker reset")

    # ------------------------------------------------------------------
    # Reads (snapshots)
    # ------------------------------------------------------------------

    def _snapshot_events(self) -> list[DrinkEvent]:
        with self._lock:
            return list(self._events.all_events())

    def today_total(self, now: datetime | None = None) -> float:
        now = now or datetime.now()
        return aggregator.today_total(self._snapshot_events(), now)

    def grid(self, now: datetime | None = None) -> list[GridCell]:
        with self._lock:
            self._roll_day_locked(now or datetime.now())
            return [GridCell(c.index, c.fill_kind) for c in self._cells]

    def snapshot(self, now: datetime | None = None) -> ProgressSnapshot:
        now = now or datetime.now()
        events = self._snapshot_events()
        goal = self._preferences.get_goal()
        total = aggregator.today_total(events, now)
        return ProgressSnapshot(
            today_total=total,
            goal_ml=goal,
            percentage=aggregator.percentage_of_goal(total, goal),
            left_ml=aggregator.left_goal(total, goal),
            streak=aggregator.streak(events, now),
            grid=self.grid(now),
        )

    def statistics(
        self,
        timeframe: aggregator.Timeframe = aggregator.Timeframe.WEEK,
        now: datetime | None = None,
    ) -> Statistics:
        now = now or datetime.now()
        window = aggregator.timeframe_window(timeframe, now)
        events = self._snapshot_events()
        in_window = [e for e in events if window.contains(e.timestamp)]
        return Statistics(
            window_days=window.days,
            average_ml=aggregator.average(in_window, window),
            best_day_ml=aggregator.best_day(in_window, window),
            goal_rate=aggregator.goal_rate(in_window, window, self._preferences.get_goal()),
            streak=aggregator.streak(events, now),
            drink_count=len(in_window),
            average_drink_ml=aggregator.average_drink_size(in_window),
            most_frequent_kind=aggregator.most_frequent_kind(in_window),
            totals_by_kind=aggregator.totals_by_kind(in_window),
        )
