"""Tests for hydrosync.config settings validation."""

import pytest
from pydantic import ValidationError

from hydrosync.config import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.DEFAULT_DAILY_GOAL_ML == 3000
        assert s.FILL_COUNT_STRATEGY == "goal_relative"
        assert s.grid_size == 23 * 15

    def test_strategy_normalized(self):
        assert Settings(FILL_COUNT_STRATEGY=" Per_Liter ").FILL_COUNT_STRATEGY == "per_liter"

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError, match="FILL_COUNT_STRATEGY"):
            Settings(FILL_COUNT_STRATEGY="per_glass")

    @pytest.mark.parametrize("field", ["DEFAULT_DAILY_GOAL_ML", "GRID_ROWS", "GRID_COLUMNS", "WIDGET_QUICK_ADD_ML"])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: "0"})

    def test_string_numbers_accepted(self):
        s = Settings(GRID_ROWS="12", GRID_COLUMNS="8")
        assert s.grid_size == 96
