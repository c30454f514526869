"""Tests for hydrosync.data.models: events, windows and grid cells."""

from datetime import datetime, timedelta, timezone

import pytest

from hydrosync.data.models import (
    BeverageKind,
    DrinkEvent,
    EventOrigin,
    GridCell,
    TimeRange,
    daily_window,
    default_quick_selections,
)


class TestDrinkEvent:
    def test_create_assigns_id_and_timestamp(self):
        event = DrinkEvent.create(250)
        assert len(event.id) == 32
        assert event.beverage_kind is BeverageKind.WATER
        assert event.origin is EventOrigin.MANUAL_ENTRY
        assert abs((datetime.now() - event.timestamp).total_seconds()) < 5

    def test_ids_are_unique(self):
        assert DrinkEvent.create(100).id != DrinkEvent.create(100).id

    def test_zero_volume_rejected(self):
        with pytest.raises(ValueError):
            DrinkEvent.create(0)

    def test_negative_volume_rejected(self):
        with pytest.raises(ValueError):
            DrinkEvent.create(-300)

    def test_events_are_immutable(self):
        event = DrinkEvent.create(250)
        with pytest.raises(AttributeError):
            event.volume_ml = 500

    def test_aware_timestamp_converted_to_local_naive(self):
        aware = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        event = DrinkEvent.create(250, timestamp=aware)
        assert event.timestamp.tzinfo is None
        assert event.timestamp == aware.astimezone().replace(tzinfo=None)


class TestDailyWindow:
    def test_window_covers_local_day(self):
        window = daily_window(datetime(2026, 5, 10, 15, 30))
        assert window.start == datetime(2026, 5, 10)
        assert window.end == datetime(2026, 5, 11)

    def test_window_is_half_open(self):
        window = daily_window(datetime(2026, 5, 10, 8, 0))
        assert window.contains(datetime(2026, 5, 10, 0, 0))
        assert window.contains(datetime(2026, 5, 10, 23, 59, 59))
        assert not window.contains(datetime(2026, 5, 11, 0, 0))

    def test_window_advances_after_midnight(self):
        before = daily_window(datetime(2026, 5, 10, 23, 59))
        after = daily_window(datetime(2026, 5, 11, 0, 1))
        assert after.start == before.end


class TestTimeRange:
    def test_days_counts_calendar_days(self):
        start = datetime(2026, 5, 4)
        assert TimeRange(start, start + timedelta(days=7)).days == 7

    def test_empty_range_has_no_days(self):
        start = datetime(2026, 5, 4)
        assert TimeRange(start, start).days == 0

    def test_dates_lists_each_day(self):
        start = datetime(2026, 5, 4)
        dates = TimeRange(start, start + timedelta(days=3)).dates()
        assert [d.day for d in dates] == [4, 5, 6]


class TestGridCell:
    def test_empty_by_default(self):
        assert GridCell(index=0).is_filled is False

    def test_filled_with_kind(self):
        assert GridCell(index=3, fill_kind=BeverageKind.TEA).is_filled is True


def test_default_quick_selections_are_fresh_copies():
    first = default_quick_selections()
    first[0].is_selected = False
    assert default_quick_selections()[0].is_selected is True
    assert [s.volume_ml for s in first] == [150, 200, 250, 500, 50, 100, 350, 30]
