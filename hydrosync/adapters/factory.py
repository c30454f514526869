"""Process wiring: builds each process's services from config."""

from __future__ import annotations

from hydrosync.adapters.signal_file_refresher import SignalFileRefresher
from hydrosync.adapters.sqlite_shared_store import SQLiteSharedStore
from hydrosync.config import settings
from hydrosync.core.sync_bridge import SyncBridge
from hydrosync.core.tracker import HydrationTracker
from hydrosync.core.widget import WidgetService
from hydrosync.data.db import EventStore, GridCacheDB, PreferenceDB


def create_app_tracker() -> HydrationTracker:
    """Main app process: owns the event log and refreshes the widget."""
    bridge = SyncBridge(
        SQLiteSharedStore(settings.SHARED_STORE_PATH),
        counterpart=SignalFileRefresher(settings.WIDGET_SIGNAL_PATH),
    )
    return HydrationTracker(
        events=EventStore(settings.DATABASE_PATH),
        preferences=PreferenceDB(settings.DATABASE_PATH),
        bridge=bridge,
        grid_cache=GridCacheDB(settings.DATABASE_PATH),
    )


def create_widget_service() -> WidgetService:
    """Widget process: sees only the shared store and its own journal."""
    bridge = SyncBridge(
        SQLiteSharedStore(settings.SHARED_STORE_PATH),
        counterpart=SignalFileRefresher(settings.APP_SIGNAL_PATH),
    )
    return WidgetService(
        bridge=bridge,
        journal=EventStore(settings.WIDGET_JOURNAL_PATH),
    )
