"""Shared store port: the key/value channel both processes can see.

Only the sync bridge talks to this port. Semantics are those of an app
group defaults file: last write wins per key, no atomicity across keys and
no change notification, so readers have to poll.
"""

from __future__ import annotations

from typing import Protocol


class SharedStoreError(Exception):
    """Raised when the shared store cannot be read or written."""


class SharedStorePort(Protocol):
    """Abstract shared key/value interface used by the sync bridge."""

    def get_int(self, key: str) -> int | None: ...

    def get_bool(self, key: str) -> bool | None: ...

    def get_str(self, key: str) -> str | None: ...

    def set_int(self, key: str, value: int) -> None: ...

    def set_bool(self, key: str, value: bool) -> None: ...

    def set_str(self, key: str, value: str) -> None: ...
