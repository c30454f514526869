"""Tests for the shared store and signal file adapters."""

import sqlite3
from unittest.mock import patch

import pytest

from hydrosync.adapters.signal_file_refresher import SignalFileRefresher, SignalWatcher
from hydrosync.adapters.sqlite_shared_store import SQLiteSharedStore
from hydrosync.ports.shared_store_port import SharedStoreError


class TestSQLiteSharedStore:
    def test_missing_keys_read_as_none(self, shared_store):
        assert shared_store.get_int("todayWaterAmount") is None
        assert shared_store.get_bool("isWidgetUpdate") is None
        assert shared_store.get_str("progressDay") is None

    def test_typed_round_trips(self, shared_store):
        shared_store.set_int("todayWaterAmount", 800)
        shared_store.set_bool("isWidgetUpdate", True)
        shared_store.set_str("progressDay", "2026-05-10")
        assert shared_store.get_int("todayWaterAmount") == 800
        assert shared_store.get_bool("isWidgetUpdate") is True
        assert shared_store.get_str("progressDay") == "2026-05-10"

    def test_last_write_wins_per_key(self, shared_store):
        shared_store.set_int("dailyGoal", 2000)
        shared_store.set_int("dailyGoal", 2500)
        assert shared_store.get_int("dailyGoal") == 2500

    def test_second_handle_sees_writes(self, shared_store, tmp_path):
        shared_store.set_bool("isWidgetUpdate", False)
        other = SQLiteSharedStore(db_path=str(tmp_path / "test_shared.db"))
        assert other.get_bool("isWidgetUpdate") is False

    def test_non_numeric_value_raises(self, shared_store):
        shared_store.set_str("todayWaterAmount", "lots")
        with pytest.raises(SharedStoreError):
            shared_store.get_int("todayWaterAmount")

    def test_sqlite_errors_wrapped(self, shared_store):
        with patch.object(shared_store, "_connect", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(SharedStoreError, match="locked"):
                shared_store.get_int("todayWaterAmount")
            with pytest.raises(SharedStoreError):
                shared_store.set_int("todayWaterAmount", 1)


class TestSignalFile:
    def test_watcher_sees_each_signal_once(self, tmp_path):
        path = str(tmp_path / "signals" / "app.signal")
        watcher = SignalWatcher(path)
        assert watcher.poll() is False

        SignalFileRefresher(path).request_refresh()
        assert watcher.poll() is True
        assert watcher.poll() is False

    def test_existing_signal_is_not_replayed(self, tmp_path):
        path = str(tmp_path / "app.signal")
        SignalFileRefresher(path).request_refresh()
        assert SignalWatcher(path).poll() is False
