"""Progress aggregation: pure statistics over a snapshot of drink events.

Every function takes the events it works on, never a store, so callers can
hand over a stable copy and run these concurrently with a write.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from enum import Enum

from hydrosync.data.models import (
    BeverageKind,
    DrinkEvent,
    TimeRange,
    daily_window,
    start_of_day,
)


class Timeframe(Enum):
    """History screen ranges; the value is the number of days covered."""

    WEEK = 7
    MONTH = 30
    YEAR = 365


def timeframe_window(timeframe: Timeframe, now: datetime) -> TimeRange:
    """Return the window of `timeframe.value` days ending with today."""
    today = daily_window(now)
    return TimeRange(
        start=today.start - timedelta(days=timeframe.value - 1),
        end=today.end,
    )


def _in_window(events: Iterable[DrinkEvent], window: TimeRange) -> list[DrinkEvent]:
    return [e for e in events if window.contains(e.timestamp)]


def daily_totals(events: Iterable[DrinkEvent], window: TimeRange) -> dict[date, float]:
    """Sum volumes per calendar day. Days without events are absent."""
    totals: dict[date, float] = defaultdict(float)
    for event in _in_window(events, window):
        totals[event.timestamp.date()] += event.volume_ml
    return dict(totals)


def today_total(events: Iterable[DrinkEvent], now: datetime) -> float:
    """Total volume for the local calendar day containing `now`."""
    window = daily_window(now)
    return sum(e.volume_ml for e in events if window.contains(e.timestamp))


def average(events: Iterable[DrinkEvent], window: TimeRange) -> float:
    """Average daily volume; empty days count as zero."""
    days = window.days
    if days <= 0:
        return 0.0
    return sum(e.volume_ml for e in _in_window(events, window)) / days


def best_day(events: Iterable[DrinkEvent], window: TimeRange) -> float:
    """Largest single-day total within the window, 0 when there is none."""
    totals = daily_totals(events, window)
    return max(totals.values(), default=0.0)


def goal_rate(events: Iterable[DrinkEvent], window: TimeRange, goal: float) -> int:
    """Percentage of the window's days whose total reached `goal`.

    A non-positive goal returns 0 instead of raising, so display code can
    call this with whatever the settings currently hold.
    """
    days = window.days
    if goal <= 0 or days <= 0:
        return 0
    achieved = sum(1 for total in daily_totals(events, window).values() if total >= goal)
    return round(100 * achieved / days)


def streak(events: Iterable[DrinkEvent], now: datetime) -> int:
    """Consecutive days with at least one drink, counting back from today.

    Today must have an event for the count to start: a gap today means 0
    even if yesterday was logged.
    """
    logged_days = {e.timestamp.date() for e in events}
    day = start_of_day(now).date()
    count = 0
    while day in logged_days:
        count += 1
        day -= timedelta(days=1)
    return count


def totals_by_kind(events: Iterable[DrinkEvent]) -> dict[BeverageKind, float]:
    totals: dict[BeverageKind, float] = defaultdict(float)
    for event in events:
        totals[event.beverage_kind] += event.volume_ml
    return dict(totals)


def average_drink_size(events: Iterable[DrinkEvent]) -> float:
    volumes = [e.volume_ml for e in events]
    return sum(volumes) / len(volumes) if volumes else 0.0


def most_frequent_kind(events: Iterable[DrinkEvent]) -> BeverageKind | None:
    """Kind logged most often (by count, not volume); None without events."""
    counts = Counter(e.beverage_kind for e in events)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def percentage_of_goal(consumed: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return consumed / goal * 100


def left_goal(consumed: float, goal: float) -> float:
    """Volume still missing to reach the goal, never negative."""
    if goal <= 0:
        return 0.0
    return max(goal - consumed, 0.0)
