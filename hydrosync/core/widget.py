"""
HydroSync: Widget process.

The widget cannot touch the app's event log. Its quick-add button adds the
drink on top of the last published total, publishes the result with the
isWidgetUpdate flag and pokes the app; the app absorbs the difference on
its next tick. The widget can keep its own journal of what it added, which
the app never reads.

The timeline side only ever reads the shared store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from hydrosync.core import aggregator
from hydrosync.data.db import PersistenceError
from hydrosync.data.models import BeverageKind, DrinkEvent, EventOrigin
from hydrosync.ports.shared_store_port import SharedStoreError

if TYPE_CHECKING:
    from hydrosync.core.sync_bridge import SyncBridge
    from hydrosync.data.db import EventStore

logger = logging.getLogger(__name__)


@dataclass
class WidgetEntry:
    """What the widget draws at `date`."""

    date: datetime
    amount_ml: int
    goal_ml: int

    @property
    def percentage(self) -> float:
        return aggregator.percentage_of_goal(self.amount_ml, self.goal_ml)


@dataclass
class WidgetTimeline:
    entries: list[WidgetEntry]
    policy: str = "at_end"      # reload once the last entry is shown


class WidgetService:
    """Quick-add intent and timeline provider for the home-screen widget."""

    def __init__(
        self,
        bridge: SyncBridge,
        journal: EventStore | None = None,
        default_goal_ml: int | None = None,
        quick_add_ml: int | None = None,
    ) -> None:
        from hydrosync.config import settings

        self._bridge = bridge
        self._journal = journal
        self._default_goal_ml = default_goal_ml or settings.DEFAULT_DAILY_GOAL_ML
        self._quick_add_ml = quick_add_ml or settings.WIDGET_QUICK_ADD_ML

    def _current_entry(self, now: datetime) -> WidgetEntry:
        state = self._bridge.display_state(now.date())
        if state is None:
            return WidgetEntry(date=now, amount_ml=0, goal_ml=self._default_goal_ml)
        return WidgetEntry(
            date=now,
            amount_ml=state.today_volume_ml,
            goal_ml=state.daily_goal_ml or self._default_goal_ml,
        )

    def quick_add(
        self,
        kind: BeverageKind = BeverageKind.WATER,
        volume_ml: int | None = None,
    ) -> WidgetEntry:
        """Add a drink from the widget and publish the new total.

        Raises SharedStoreError when the shared store cannot be read or
        written; without it the app would never learn about the drink.
        """
        volume = volume_ml if volume_ml is not None else self._quick_add_ml
        now = datetime.now()
        event = DrinkEvent.create(volume, kind, EventOrigin.WIDGET_QUICK_ADD, now)

        state = self._bridge.display_state(now.date())
        if state is None:
            raise SharedStoreError("Shared store unavailable; quick-add not recorded")

        goal = state.daily_goal_ml or self._default_goal_ml
        new_total = state.today_volume_ml + int(volume)
        self._bridge.publish(new_total, goal, now.date(), from_widget=True)

        if self._journal is not None:
            try:
                self._journal.append(event)
            except PersistenceError as exc:
                # The journal is informational; the published total is what counts
                logger.warning("Widget journal write failed: %s", exc)

        logger.info("Widget quick-add: %dml %s, total now %dml", volume, kind.value, new_total)
        return WidgetEntry(date=now, amount_ml=new_total, goal_ml=goal)

    def placeholder(self) -> WidgetEntry:
        return WidgetEntry(date=datetime.now(), amount_ml=0, goal_ml=self._default_goal_ml)

    def snapshot(self, now: datetime | None = None) -> WidgetEntry:
        return self._current_entry(now or datetime.now())

    def timeline(self, now: datetime | None = None) -> WidgetTimeline:
        return WidgetTimeline(entries=[self._current_entry(now or datetime.now())])
