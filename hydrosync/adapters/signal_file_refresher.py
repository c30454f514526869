"""Signal file refresher: implements RefreshPort.

Publishing touches a file; the counterpart process compares its
modification time on each tick and refreshes when it moved.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class SignalFileRefresher:
    """File-touch implementation of RefreshPort."""

    def __init__(self, signal_path: str) -> None:
        self._path = Path(signal_path)

    def request_refresh(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch()
        logger.debug("Refresh requested via %s", self._path)


class SignalWatcher:
    """Tells the polling side whether a refresh was requested since last look."""

    def __init__(self, signal_path: str) -> None:
        self._path = Path(signal_path)
        self._last_seen: int | None = self._mtime()

    def _mtime(self) -> int | None:
        try:
            return os.stat(self._path).st_mtime_ns
        except FileNotFoundError:
            return None

    def poll(self) -> bool:
        """Return True once per new signal."""
        current = self._mtime()
        if current is None or current == self._last_seen:
            return False
        self._last_seen = current
        return True
