"""Shared test fixtures and configuration.

Points every configured path at a throwaway directory before any hydrosync
import, and provides fixtures wired the way each process wires itself.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="hydrosync-tests-")

# Patch env vars BEFORE any hydrosync imports
os.environ.setdefault("DATABASE_PATH", os.path.join(_TMP, "hydration.db"))
os.environ.setdefault("SHARED_STORE_PATH", os.path.join(_TMP, "shared.db"))
os.environ.setdefault("WIDGET_JOURNAL_PATH", os.path.join(_TMP, "journal.db"))
os.environ.setdefault("APP_SIGNAL_PATH", os.path.join(_TMP, "app.signal"))
os.environ.setdefault("WIDGET_SIGNAL_PATH", os.path.join(_TMP, "widget.signal"))
os.environ.setdefault("DEFAULT_DAILY_GOAL_ML", "3000")
os.environ.setdefault("GRID_ROWS", "23")
os.environ.setdefault("GRID_COLUMNS", "15")
os.environ.setdefault("FILL_COUNT_STRATEGY", "goal_relative")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path for the app's own data."""
    return str(tmp_path / "test_hydration.db")


@pytest.fixture
def event_store(tmp_db_path):
    from hydrosync.data.db import EventStore
    return EventStore(db_path=tmp_db_path)


@pytest.fixture
def preference_db(tmp_db_path):
    from hydrosync.data.db import PreferenceDB
    return PreferenceDB(db_path=tmp_db_path, default_goal_ml=2000)


@pytest.fixture
def grid_cache(tmp_db_path):
    from hydrosync.data.db import GridCacheDB
    return GridCacheDB(db_path=tmp_db_path)


@pytest.fixture
def shared_store(tmp_path):
    """The cross-process store, one file both sides open."""
    from hydrosync.adapters.sqlite_shared_store import SQLiteSharedStore
    return SQLiteSharedStore(db_path=str(tmp_path / "test_shared.db"))


@pytest.fixture
def app_bridge(shared_store, tmp_path):
    from hydrosync.adapters.signal_file_refresher import SignalFileRefresher
    from hydrosync.core.sync_bridge import SyncBridge
    return SyncBridge(shared_store, counterpart=SignalFileRefresher(str(tmp_path / "widget.signal")))


@pytest.fixture
def widget_bridge(tmp_path):
    """A second bridge on the same file, as the widget process would open it."""
    from hydrosync.adapters.signal_file_refresher import SignalFileRefresher
    from hydrosync.adapters.sqlite_shared_store import SQLiteSharedStore
    from hydrosync.core.sync_bridge import SyncBridge
    return SyncBridge(
        SQLiteSharedStore(db_path=str(tmp_path / "test_shared.db")),
        counterpart=SignalFileRefresher(str(tmp_path / "app.signal")),
    )


@pytest.fixture
def tracker(event_store, preference_db, app_bridge, grid_cache):
    """Main-process tracker with goal 2000 ml and a 10x10 grid."""
    from hydrosync.core.grid import FillCountStrategy
    from hydrosync.core.tracker import HydrationTracker
    return HydrationTracker(
        events=event_store,
        preferences=preference_db,
        bridge=app_bridge,
        grid_cache=grid_cache,
        grid_rows=10,
        grid_columns=10,
        fill_strategy=FillCountStrategy.GOAL_RELATIVE,
    )


@pytest.fixture
def widget(widget_bridge, tmp_path):
    from hydrosync.core.widget import WidgetService
    from hydrosync.data.db import EventStore
    return WidgetService(
        bridge=widget_bridge,
        journal=EventStore(db_path=str(tmp_path / "test_journal.db")),
        default_goal_ml=2000,
        quick_add_ml=250,
    )
