"""Step A: Read-only grid lookup built once per map load + cell value helpers."""

from __future__ import annotations

import re

from .models import Cell, GridMap, MergedCell

# Obstacle test: a plain integer in the cell text marks a stall
PLAIN_INTEGER_PATTERN = re.compile(r"^\d+$")
# Lenient leading-number parse for slot numbers ("12", "12.5", "12a", "1e2")
LEADING_NUMBER_PATTERN = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

MIN_SLOT_VALUE = 0.0
MAX_SLOT_VALUE = 100.0


def parse_number(value: str | int | float | None) -> float | None:
    """Parse the leading number of a cell value, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = LEADING_NUMBER_PATTERN.match(str(value))
    if not m:
        return None
    return float(m.group(1))


def slot_number(value: str | int | float | None) -> float | None:
    """Return the slot number of a cell value if it lies in (0, 100]."""
    num = parse_number(value)
    if num is None or num != num:  # NaN
        return None
    if MIN_SLOT_VALUE < num <= MAX_SLOT_VALUE:
        return num
    return None


def is_numeric_value(value: str | int | float | None) -> bool:
    """True if a value blocks movement: a number, or text of digits only."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return bool(PLAIN_INTEGER_PATTERN.match(str(value)))


class GridIndex:
    """Cell lookup for one GridMap.

    Built once per map load and passed explicitly to the detector,
    pathfinder and scans. Lookups resolve merge members to their origin.
    """

    def __init__(self, grid_map: GridMap):
        self.max_row = grid_map.max_row
        self.max_col = grid_map.max_col
        self.merged_cells: list[MergedCell] = list(grid_map.merged_cells)
        self._cells: dict[tuple[int, int], Cell] = {
            (c.row, c.col): c for c in grid_map.cells
        }
        self._origins: dict[tuple[int, int], tuple[int, int]] = {}
        for c in grid_map.cells:
            if c.merge_parent is not None:
                self._origins[(c.row, c.col)] = c.merge_parent.key()
        # Merge ranges are authoritative even when member cells were trimmed
        for m in self.merged_cells:
            for r in range(m.start_row, m.end_row + 1):
                for col in range(m.start_col, m.end_col + 1):
                    self._origins.setdefault((r, col), (m.start_row, m.start_col))

    def __len__(self) -> int:
        return len(self._cells)

    def in_bounds(self, row: int, col: int) -> bool:
        return 1 <= row <= self.max_row and 1 <= col <= self.max_col

    def cell(self, row: int, col: int) -> Cell | None:
        """The raw cell at (row, col), without merge resolution."""
        return self._cells.get((row, col))

    def origin_of(self, row: int, col: int) -> tuple[int, int]:
        return self._origins.get((row, col), (row, col))

    def effective(self, row: int, col: int) -> Cell | None:
        """The cell whose value and style apply at (row, col)."""
        origin = self.origin_of(row, col)
        cell = self._cells.get(origin)
        if cell is None and origin != (row, col):
            return self._cells.get((row, col))
        return cell

    def is_merge_member(self, row: int, col: int) -> bool:
        """True for cells covered by a merge other than its origin."""
        cell = self._cells.get((row, col))
        if cell is not None and cell.is_merged:
            return True
        origin = self._origins.get((row, col))
        return origin is not None and origin != (row, col)

    def is_in_merge(self, row: int, col: int) -> bool:
        return (row, col) in self._origins

    def is_obstacle(self, row: int, col: int) -> bool:
        """Numeric content or a non-white fill blocks movement."""
        cell = self.effective(row, col)
        if cell is None:
            return False
        if is_numeric_value(cell.value):
            return True
        return cell.style.is_filled

    def slot_value(self, row: int, col: int) -> float | None:
        cell = self._cells.get((row, col))
        if cell is None:
            return None
        return slot_number(cell.value)


def build_index(grid_map: GridMap) -> GridIndex:
    return GridIndex(grid_map)

