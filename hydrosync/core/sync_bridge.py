"""
HydroSync: Sync Bridge between the app and the widget.

The app and the widget run in separate processes on schedules neither of
them controls. The only thing they share is a key/value store (per-key last
write wins, no cross-key atomicity, no notifications), so this module treats
it as a message channel:

  publish    one side logged a drink, writes the new total for today and
             pokes the other side to refresh.
  observe    a non-blocking poll of what was last published.
  reconcile  the app compares the published total with its own event log.
             When the widget set the isWidgetUpdate flag, the difference is
             absorbed as one correction event and the flag is cleared; a
             second look with the same total then sees no difference.

Nothing outside this module knows the raw key names.

Write order matters because keys are not atomic together: the widget sets
the flag before the total, and readers fetch the total before the flag, so
anyone who sees a widget total also sees its flag.

Known limitation: if clearing the flag fails it stays set, and one later
difference (for example from a lost app publish) would be absorbed as if the
widget had made it. That bounded duplicate is logged and reported as
CORRECTED_FLAG_NOT_CLEARED rather than hidden.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from hydrosync.data.models import (
    BeverageKind,
    DrinkEvent,
    EventOrigin,
    SharedProgressState,
)
from hydrosync.ports.shared_store_port import SharedStoreError

if TYPE_CHECKING:
    from hydrosync.ports.refresh_port import RefreshPort
    from hydrosync.ports.shared_store_port import SharedStorePort

logger = logging.getLogger(__name__)

# Key names other collaborators read; do not rename
TODAY_WATER_AMOUNT_KEY = "todayWaterAmount"
DAILY_GOAL_KEY = "dailyGoal"
IS_WIDGET_UPDATE_KEY = "isWidgetUpdate"
PROGRESS_DAY_KEY = "progressDay"


class ReconcileOutcome(Enum):
    SKIPPED = "skipped"                                   # shared store unavailable
    STALE_DAY = "stale_day"                               # total belongs to another day
    IN_SYNC = "in_sync"
    CORRECTED = "corrected"
    CORRECTED_FLAG_NOT_CLEARED = "corrected_flag_not_cleared"
    REJECTED_NEGATIVE = "rejected_negative"
    REPUBLISHED = "republished"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    local_total: float
    shared: SharedProgressState | None = None
    difference: float = 0.0
    correction: DrinkEvent | None = None


class SyncBridge:
    """Typed publish/observe interface over the shared key/value store."""

    def __init__(
        self,
        store: SharedStorePort,
        counterpart: RefreshPort | None = None,
    ) -> None:
        self._store = store
        self._counterpart = counterpart

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(
        self,
        today_volume_ml: float,
        daily_goal_ml: int,
        today: date,
        from_widget: bool = False,
    ) -> None:
        """Write today's total and goal, then ask the counterpart to refresh.

        Raises SharedStoreError if a write fails. The flag is only ever set
        here, and only by the widget; the app leaves it for reconcile.
        """
        if from_widget:
            self._store.set_bool(IS_WIDGET_UPDATE_KEY, True)
        self._store.set_str(PROGRESS_DAY_KEY, today.isoformat())
        self._store.set_int(TODAY_WATER_AMOUNT_KEY, int(today_volume_ml))
        self._store.set_int(DAILY_GOAL_KEY, int(daily_goal_ml))
        logger.info(
            "Published %dml / %dml for %s%s",
            int(today_volume_ml), int(daily_goal_ml), today.isoformat(),
            " (from widget)" if from_widget else "",
        )
        self._request_refresh()

    def _request_refresh(self) -> None:
        if self._counterpart is None:
            return
        try:
            self._counterpart.request_refresh()
        except Exception as exc:
            # The counterpart will poll again on its own schedule
            logger.warning("Counterpart refresh request failed: %s", exc)

    # ------------------------------------------------------------------
    # Observing
    # ------------------------------------------------------------------

    def observe(self) -> SharedProgressState | None:
        """Read the shared state once. None when the store is unavailable."""
        try:
            volume = self._store.get_int(TODAY_WATER_AMOUNT_KEY)
            goal = self._store.get_int(DAILY_GOAL_KEY)
            flag = self._store.get_bool(IS_WIDGET_UPDATE_KEY)
            raw_day = self._store.get_str(PROGRESS_DAY_KEY)
        except SharedStoreError as exc:
            logger.warning("Shared store unavailable, skipping this tick: %s", exc)
            return None

        progress_day = None
        if raw_day:
            try:
                progress_day = date.fromisoformat(raw_day)
            except ValueError:
                logger.warning("Ignoring malformed %s value %r", PROGRESS_DAY_KEY, raw_day)

        return SharedProgressState(
            today_volume_ml=volume or 0,
            daily_goal_ml=goal or 0,
            originated_from_widget=bool(flag),
            progress_day=progress_day,
        )

    def display_state(self, today: date) -> SharedProgressState | None:
        """Widget-side read. A total left over from another day shows as 0."""
        state = self.observe()
        if state is None:
            return None
        if state.progress_day is not None and state.progress_day != today:
            state.today_volume_ml = 0
            state.progress_day = today
        return state

    def clear_widget_flag(self) -> bool:
        try:
            self._store.set_bool(IS_WIDGET_UPDATE_KEY, False)
        except SharedStoreError as exc:
            logger.warning("Could not clear %s: %s", IS_WIDGET_UPDATE_KEY, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Reconciling (app side)
    # ------------------------------------------------------------------

    def reconcile(
        self,
        local_total: float,
        daily_goal_ml: int,
        today: date,
        append_correction: Callable[[DrinkEvent], DrinkEvent],
    ) -> ReconcileResult:
        """Absorb a widget-published total into the app's event log.

        `append_correction` must write through the app's single write lane;
        a PersistenceError from it propagates and leaves the flag set so the
        next tick tries again.
        """
        shared = self.observe()
        if shared is None:
            return ReconcileResult(ReconcileOutcome.SKIPPED, local_total)

        if shared.progress_day is not None and shared.progress_day != today:
            logger.info(
                "Shared total is from %s, not %s; republishing local total",
                shared.progress_day, today,
            )
            self._republish(local_total, daily_goal_ml, today, clear_flag=True)
            return ReconcileResult(ReconcileOutcome.STALE_DAY, local_total, shared)

        difference = shared.today_volume_ml - int(local_total)

        if difference == 0:
            # A set flag here may belong to a widget publish still in flight
            return ReconcileResult(ReconcileOutcome.IN_SYNC, local_total, shared)

        if not shared.originated_from_widget:
            # The app's log is authoritative; the shared value is just behind
            self._republish(local_total, daily_goal_ml, today)
            return ReconcileResult(
                ReconcileOutcome.REPUBLISHED, local_total, shared, difference,
            )

        if difference < 0:
            logger.warning(
                "Widget total %dml is below local %dml; keeping local log",
                shared.today_volume_ml, int(local_total),
            )
            self._republish(local_total, daily_goal_ml, today, clear_flag=True)
            return ReconcileResult(
                ReconcileOutcome.REJECTED_NEGATIVE, local_total, shared, difference,
            )

        correction = append_correction(
            DrinkEvent.create(
                volume_ml=difference,
                beverage_kind=BeverageKind.WATER,
                origin=EventOrigin.SYNC_CORRECTION,
            )
        )
        logger.info("Absorbed widget quick-add of %dml", difference)

        if not self.clear_widget_flag():
            logger.warning(
                "Widget flag still set after correcting %dml; "
                "the next tick may apply it again",
                difference,
            )
            return ReconcileResult(
                ReconcileOutcome.CORRECTED_FLAG_NOT_CLEARED,
                local_total, shared, difference, correction,
            )
        return ReconcileResult(
            ReconcileOutcome.CORRECTED, local_total, shared, difference, correction,
        )

    def _republish(
        self, local_total: float, daily_goal_ml: int, today: date, clear_flag: bool = False,
    ) -> None:
        try:
            self.publish(local_total, daily_goal_ml, today)
        except SharedStoreError as exc:
            logger.warning("Republish failed, will retry next tick: %s", exc)
            return
        if clear_flag:
            self.clear_widget_flag()
