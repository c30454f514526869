"""
HydroSync: Data Models.

Drink events are the source of truth: every total, streak and grid cell is
derived from them. Events are immutable once created; the only way to remove
one is a full, user-initiated reset.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum


class BeverageKind(Enum):
    WATER = "water"
    COFFEE = "coffee"
    TEA = "tea"
    SODA = "soda"


class EventOrigin(Enum):
    """Where a drink event came from.

    SYNC_CORRECTION marks events the app appended to absorb a widget
    quick-add; the sync bridge relies on it to tell them apart.
    """

    MANUAL_ENTRY = "manual_entry"
    QUICK_ADD = "quick_add"
    WIDGET_QUICK_ADD = "widget_quick_add"
    SYNC_CORRECTION = "sync_correction"


def to_local_naive(moment: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive input is kept."""
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


@dataclass(frozen=True)
class DrinkEvent:
    """One logged drink."""

    id: str
    timestamp: datetime
    volume_ml: float
    beverage_kind: BeverageKind = BeverageKind.WATER
    origin: EventOrigin = EventOrigin.MANUAL_ENTRY

    def __post_init__(self) -> None:
        if self.volume_ml <= 0:
            raise ValueError(f"volume_ml must be positive, got {self.volume_ml!r}")
        object.__setattr__(self, "timestamp", to_local_naive(self.timestamp))

    @classmethod
    def create(
        cls,
        volume_ml: float,
        beverage_kind: BeverageKind = BeverageKind.WATER,
        origin: EventOrigin = EventOrigin.MANUAL_ENTRY,
        timestamp: datetime | None = None,
    ) -> DrinkEvent:
        """Build a new event with a fresh id, stamped now unless told otherwise."""
        return cls(
            id=uuid.uuid4().hex,
            timestamp=timestamp if timestamp is not None else datetime.now(),
            volume_ml=volume_ml,
            beverage_kind=beverage_kind,
            origin=origin,
        )


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    @property
    def days(self) -> int:
        """Number of calendar days the range spans."""
        if self.end <= self.start:
            return 0
        first = self.start.date()
        last = (self.end - timedelta(microseconds=1)).date()
        return (last - first).days + 1

    def dates(self) -> list[date]:
        first = self.start.date()
        return [first + timedelta(days=i) for i in range(self.days)]


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(to_local_naive(moment).date(), time.min)


def daily_window(now: datetime) -> TimeRange:
    """The local calendar day containing `now`.

    Always computed from the time passed in, so a long-running process
    moves to the next day on its first read after midnight.
    """
    start = start_of_day(now)
    return TimeRange(start=start, end=start + timedelta(days=1))


@dataclass
class GridCell:
    """One cell of the progress grid. fill_kind None means empty."""

    index: int
    fill_kind: BeverageKind | None = None

    @property
    def is_filled(self) -> bool:
        return self.fill_kind is not None


@dataclass
class SharedProgressState:
    """The progress values both processes exchange through the shared store."""

    today_volume_ml: int
    daily_goal_ml: int
    originated_from_widget: bool = False
    progress_day: date | None = None     # day the total belongs to, None if never written


@dataclass
class QuickSelection:
    """A one-tap preset on the add-drink sheet."""

    icon: str
    label: str
    volume_ml: int
    is_selected: bool = True


DEFAULT_QUICK_SELECTIONS: tuple[QuickSelection, ...] = (
    QuickSelection(icon="wineglass.fill", label="Half Glass", volume_ml=150),
    QuickSelection(icon="cup.and.saucer.fill", label="Cup", volume_ml=200),
    QuickSelection(icon="bubbles.and.sparkles.fill", label="Glass", volume_ml=250),
    QuickSelection(icon="waterbottle.fill", label="Bottle", volume_ml=500),
    QuickSelection(icon="drop.fill", label="Small Sip", volume_ml=50),
    QuickSelection(icon="drop.triangle.fill", label="Medium Sip", volume_ml=100),
    QuickSelection(icon="drop.circle.fill", label="Large Sip", volume_ml=350),
    QuickSelection(icon="flame.fill", label="Shot", volume_ml=30),
)


def default_quick_selections() -> list[QuickSelection]:
    return [
        QuickSelection(s.icon, s.label, s.volume_ml, s.is_selected)
        for s in DEFAULT_QUICK_SELECTIONS
    ]


@dataclass
class Preferences:
    """User-editable settings persisted on the device."""

    daily_goal_ml: int
    use_ounces: bool = False
    notifications_enabled: bool = True
    wave_animation_enabled: bool = True
    has_shown_congratulations: bool = False
    quick_selections: list[QuickSelection] = field(default_factory=default_quick_selections)
