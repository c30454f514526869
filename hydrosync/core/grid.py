"""Grid allocation: turns progress into a fixed set of coloured cells.

Two ways to fill the grid:

- Percentage mode rebuilds the whole grid from a fill percentage. Cells fill
  from the bottom row upwards, left to right within a row. An optional wave
  moves the boundary per column for the animated look.
- Incremental mode tops up an existing grid for one new drink, painting the
  new cells with that drink's kind so the grid keeps a colour history.

The grid is a view of the totals, never a source of truth: overflowing it is
not an error, it simply stays full while totals keep growing.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from hydrosync.data.models import BeverageKind, GridCell


class FillCountStrategy(Enum):
    """How many cells one drink is worth.

    GOAL_RELATIVE scales the drink against the daily goal, so a full grid
    means the goal was reached. PER_LITER treats the grid as one litre,
    the way the first version of the add-drink screen counted.
    """

    GOAL_RELATIVE = "goal_relative"
    PER_LITER = "per_liter"


_LITER_ML = 1000


@dataclass(frozen=True)
class WaveParams:
    """Shape of the animated fill boundary."""

    height: float = 0.6        # in rows
    frequency: float = 0.5     # radians per column
    speed: float = 1.0


def advance_phase(phase: float, step: float) -> float:
    """Move the animation phase forward, wrapping at a full turn."""
    phase += step
    if phase >= 2 * math.pi:
        phase = 0.0
    return phase


# ---------------------------------------------------------------------------
# Percentage mode
# ---------------------------------------------------------------------------


def _clamp_percentage(percentage: float) -> float:
    return min(max(percentage, 0.0), 100.0)


def is_cell_filled(
    row: int, column: int, percentage: float, total_rows: int, total_columns: int,
) -> bool:
    """Whether (row, column) is inside the filled block; row 0 is the top."""
    total = total_rows * total_columns
    cells_to_fill = int(total * (_clamp_percentage(percentage) / 100))
    rank = (total_rows - row - 1) * total_columns + column
    return rank < cells_to_fill


def baseline_row(percentage: float, total_rows: int) -> float:
    """Row index of the flat fill line; rows at or below it are filled."""
    return total_rows * (1 - _clamp_percentage(percentage) / 100)


def adjusted_boundary(
    column: int,
    percentage: float,
    total_rows: int,
    wave: WaveParams,
    phase: float,
) -> float:
    return baseline_row(percentage, total_rows) + wave.height * math.sin(
        wave.frequency * column + phase * wave.speed
    )


def is_cell_filled_wave(
    row: int,
    column: int,
    percentage: float,
    total_rows: int,
    wave: WaveParams,
    phase: float,
) -> bool:
    """Wave variant of is_cell_filled. Empty and full grids ignore the wave."""
    percentage = _clamp_percentage(percentage)
    if percentage >= 100:
        return True
    if percentage <= 0:
        return False
    return row >= adjusted_boundary(column, percentage, total_rows, wave, phase)


def render_percentage(
    percentage: float,
    total_rows: int,
    total_columns: int,
    kind: BeverageKind = BeverageKind.WATER,
    wave: WaveParams | None = None,
    phase: float = 0.0,
) -> list[GridCell]:
    """Rebuild the whole grid for `percentage`, cells indexed row by row."""
    cells: list[GridCell] = []
    for row in range(total_rows):
        for column in range(total_columns):
            if wave is None:
                filled = is_cell_filled(row, column, percentage, total_rows, total_columns)
            else:
                filled = is_cell_filled_wave(row, column, percentage, total_rows, wave, phase)
            cells.append(
                GridCell(index=row * total_columns + column, fill_kind=kind if filled else None)
            )
    return cells


# ---------------------------------------------------------------------------
# Incremental mode
# ---------------------------------------------------------------------------


def empty_grid(total_cells: int) -> list[GridCell]:
    return [GridCell(index=i) for i in range(total_cells)]


def fill_count(
    volume_ml: float,
    goal_ml: float,
    total_cells: int,
    strategy: FillCountStrategy = FillCountStrategy.GOAL_RELATIVE,
) -> int:
    """Number of cells one drink of `volume_ml` should fill."""
    if volume_ml <= 0:
        return 0
    if strategy is FillCountStrategy.PER_LITER:
        return round(total_cells * volume_ml / _LITER_ML)
    if goal_ml <= 0:
        return 0
    return round(total_cells * volume_ml / goal_ml)


def fill_cells(cells: list[GridCell], count: int, kind: BeverageKind) -> list[GridCell]:
    """Return a copy of `cells` with `count` more cells painted `kind`.

    Filling starts at the last empty cell and walks towards index 0, skipping
    cells that are already painted. Asking for more cells than remain fills
    what is left.
    """
    updated = [GridCell(index=c.index, fill_kind=c.fill_kind) for c in cells]
    position = next(
        (i for i in range(len(updated) - 1, -1, -1) if not updated[i].is_filled),
        None,
    )
    if position is None or count <= 0:
        return updated

    remaining = count
    while position >= 0 and remaining > 0:
        if not updated[position].is_filled:
            updated[position].fill_kind = kind
            remaining -= 1
        position -= 1
    return updated


def filled_count(cells: list[GridCell]) -> int:
    return sum(1 for c in cells if c.is_filled)


def grid_percentage(cells: list[GridCell]) -> float:
    if not cells:
        return 0.0
    return filled_count(cells) / len(cells) * 100
