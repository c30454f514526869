"""
HydroSync: Centralized configuration.

Loads all settings from .env and validates them.
Both the main app process and the widget process import this module, so
the paths below must point at the same files for the two to cooperate.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from hydrosync/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

FILL_COUNT_STRATEGIES = ("goal_relative", "per_liter")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite, owned by the main app process only
    DATABASE_PATH: str = "data/hydration.db"

    # Cross-process channel (the "app group" defaults)
    SHARED_STORE_PATH: str = "data/shared_progress.db"

    # Widget-local journal of its own quick-adds (never read by the app)
    WIDGET_JOURNAL_PATH: str = "data/widget_journal.db"

    # Refresh signals: each process touches the other's file after publishing
    APP_SIGNAL_PATH: str = "data/app.signal"
    WIDGET_SIGNAL_PATH: str = "data/widget.signal"

    # The one default goal owned by the core
    DEFAULT_DAILY_GOAL_ML: int = 3000

    # Progress grid geometry
    GRID_ROWS: int = 23
    GRID_COLUMNS: int = 15

    # "goal_relative" | "per_liter"
    FILL_COUNT_STRATEGY: str = "goal_relative"

    # Widget quick-add button
    WIDGET_QUICK_ADD_ML: int = 250

    # `hydrosync watch` tick interval
    POLL_INTERVAL_SECONDS: float = 5.0

    # How long an app process waits for another one to finish writing
    WRITE_LANE_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"

    @field_validator("FILL_COUNT_STRATEGY", mode="before")
    @classmethod
    def parse_strategy(cls, v: str) -> str:
        value = str(v).strip().lower()
        if value not in FILL_COUNT_STRATEGIES:
            raise ValueError(
                f"FILL_COUNT_STRATEGY must be one of {FILL_COUNT_STRATEGIES}, got {v!r}"
            )
        return value

    @field_validator(
        "DEFAULT_DAILY_GOAL_ML", "GRID_ROWS", "GRID_COLUMNS", "WIDGET_QUICK_ADD_ML",
        mode="before",
    )
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"Expected a positive integer, got {v!r}")
        return value

    @property
    def grid_size(self) -> int:
        return self.GRID_ROWS * self.GRID_COLUMNS


def _load_settings() -> Settings:
    """Load settings from environment, falling back to defaults."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/hydration.db"),
        SHARED_STORE_PATH=os.getenv("SHARED_STORE_PATH", "data/shared_progress.db"),
        WIDGET_JOURNAL_PATH=os.getenv("WIDGET_JOURNAL_PATH", "data/widget_journal.db"),
        APP_SIGNAL_PATH=os.getenv("APP_SIGNAL_PATH", "data/app.signal"),
        WIDGET_SIGNAL_PATH=os.getenv("WIDGET_SIGNAL_PATH", "data/widget.signal"),
        DEFAULT_DAILY_GOAL_ML=os.getenv("DEFAULT_DAILY_GOAL_ML", "3000"),
        GRID_ROWS=os.getenv("GRID_ROWS", "23"),
        GRID_COLUMNS=os.getenv("GRID_COLUMNS", "15"),
        FILL_COUNT_STRATEGY=os.getenv("FILL_COUNT_STRATEGY", "goal_relative"),
        WIDGET_QUICK_ADD_ML=os.getenv("WIDGET_QUICK_ADD_ML", "250"),
        POLL_INTERVAL_SECONDS=os.getenv("POLL_INTERVAL_SECONDS", "5"),
        WRITE_LANE_TIMEOUT_SECONDS=os.getenv("WRITE_LANE_TIMEOUT_SECONDS", "10"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by all other modules as:
#   from hydrosync.config import settings
settings = _load_settings()
