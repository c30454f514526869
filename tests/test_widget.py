"""Tests for hydrosync.core.widget: the widget process."""

from datetime import date, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from hydrosync.core.sync_bridge import (
    DAILY_GOAL_KEY,
    IS_WIDGET_UPDATE_KEY,
    TODAY_WATER_AMOUNT_KEY,
    SyncBridge,
)
from hydrosync.core.widget import WidgetService
from hydrosync.data.db import PersistenceError
from hydrosync.data.models import BeverageKind, EventOrigin
from hydrosync.ports.shared_store_port import SharedStoreError


class TestQuickAdd:
    def test_default_button_on_empty_store(self, widget, shared_store):
        entry = widget.quick_add()
        assert entry.amount_ml == 250
        assert entry.goal_ml == 2000
        assert shared_store.get_int(TODAY_WATER_AMOUNT_KEY) == 250
        assert shared_store.get_int(DAILY_GOAL_KEY) == 2000
        assert shared_store.get_bool(IS_WIDGET_UPDATE_KEY) is True

    def test_adds_on_top_of_published_total(self, widget, widget_bridge, shared_store):
        widget_bridge.publish(600, 2500, date.today())
        entry = widget.quick_add(BeverageKind.TEA, 300)
        assert entry.amount_ml == 900
        assert entry.goal_ml == 2500
        assert shared_store.get_int(TODAY_WATER_AMOUNT_KEY) == 900

    def test_journals_its_own_adds(self, widget_bridge, tmp_path):
        from hydrosync.data.db import EventStore

        journal = EventStore(db_path=str(tmp_path / "journal.db"))
        service = WidgetService(widget_bridge, journal, default_goal_ml=2000, quick_add_ml=250)
        service.quick_add(BeverageKind.COFFEE)
        events = journal.all_events()
        assert len(events) == 1
        assert events[0].origin is EventOrigin.WIDGET_QUICK_ADD
        assert events[0].beverage_kind is BeverageKind.COFFEE

    def test_journal_failure_keeps_published_total(self, widget_bridge, shared_store):
        journal = MagicMock()
        journal.append.side_effect = PersistenceError("disk full")
        service = WidgetService(widget_bridge, journal, default_goal_ml=2000, quick_add_ml=250)
        entry = service.quick_add()
        assert entry.amount_ml == 250
        assert shared_store.get_int(TODAY_WATER_AMOUNT_KEY) == 250

    def test_unavailable_store_raises_and_skips_journal(self):
        store = MagicMock()
        store.get_int.side_effect = SharedStoreError("locked")
        journal = MagicMock()
        service = WidgetService(SyncBridge(store), journal, default_goal_ml=2000, quick_add_ml=250)
        with pytest.raises(SharedStoreError):
            service.quick_add()
        journal.append.assert_not_called()

    def test_failed_publish_skips_journal(self, widget_bridge):
        journal = MagicMock()
        service = WidgetService(widget_bridge, journal, default_goal_ml=2000, quick_add_ml=250)
        with patch(
            "hydrosync.adapters.sqlite_shared_store.SQLiteSharedStore.set_int",
            side_effect=SharedStoreError("read-only"),
        ):
            with pytest.raises(SharedStoreError):
                service.quick_add()
        journal.append.assert_not_called()

    def test_yesterdays_total_is_not_carried_over(self, widget, widget_bridge):
        widget_bridge.publish(1800, 2000, date.today() - timedelta(days=1))
        entry = widget.quick_add()
        assert entry.amount_ml == 250

    def test_invalid_volume_rejected(self, widget):
        with pytest.raises(ValueError):
            widget.quick_add(volume_ml=0)


class TestTimeline:
    def test_placeholder(self, widget):
        entry = widget.placeholder()
        assert (entry.amount_ml, entry.goal_ml) == (0, 2000)
        assert entry.percentage == 0

    def test_snapshot_reads_shared_store(self, widget, widget_bridge):
        widget_bridge.publish(1500, 2000, date.today())
        entry = widget.snapshot()
        assert entry.amount_ml == 1500
        assert entry.percentage == pytest.approx(75.0)

    def test_snapshot_on_stale_day(self, widget, widget_bridge):
        now = datetime(2026, 5, 10, 8, 0)
        widget_bridge.publish(1500, 2000, date(2026, 5, 9))
        assert widget.snapshot(now).amount_ml == 0

    def test_unavailable_store_shows_placeholder(self):
        store = MagicMock()
        store.get_int.side_effect = SharedStoreError("locked")
        service = WidgetService(SyncBridge(store), default_goal_ml=2000, quick_add_ml=250)
        entry = service.snapshot()
        assert (entry.amount_ml, entry.goal_ml) == (0, 2000)

    def test_timeline_has_single_entry(self, widget):
        now = datetime(2026, 5, 10, 8, 0)
        timeline = widget.timeline(now)
        assert len(timeline.entries) == 1
        assert timeline.entries[0].date == now
        assert timeline.policy == "at_end"

    def test_percentage_past_goal(self, widget, widget_bridge):
        widget_bridge.publish(5000, 2000, date.today())
        assert widget.snapshot().percentage == pytest.approx(250.0)
