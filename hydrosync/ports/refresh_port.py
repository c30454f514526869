"""Refresh port: asks the counterpart process to run its next tick soon.

The widget side corresponds to reloading all widget timelines; the app side
to the app's own refresh hook. Delivery is best effort.
"""

from __future__ import annotations

from typing import Protocol


class RefreshPort(Protocol):
    """Abstract refresh trigger used after publishing progress."""

    def request_refresh(self) -> None: ...
