"""All Pydantic data models for the event map planner."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")
WHITE = "#FFFFFF"


def normalize_color(value: str | None) -> str | None:
    """Normalize a color to upper-case ``#RRGGBB``; unknown shapes become None."""
    if value is None:
        return None
    text = str(value).strip()
    # ARGB from spreadsheet styles: drop the alpha byte
    if len(text) == 8 and re.fullmatch(r"[0-9A-Fa-f]{8}", text):
        text = text[2:]
    m = HEX_COLOR_PATTERN.match(text)
    if not m:
        return None
    return "#" + m.group(1).upper()


# --- Coordinates ---


class GridPoint(BaseModel):
    """A cell coordinate. Rows and columns are 1-based."""

    row: int
    col: int

    def key(self) -> tuple[int, int]:
        return (self.row, self.col)


class PointLike(BaseModel):
    """A coordinate that may fall between cells (vertices, block centers)."""

    row: float
    col: float


# --- Grid Model (Step A) ---


class BorderWeight(str, Enum):
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"
    DOUBLE = "double"


class BorderStyle(BaseModel):
    style: BorderWeight = BorderWeight.THIN
    color: str = "#000000"

    @field_validator("color", mode="before")
    @classmethod
    def _normalize(cls, v):
        return normalize_color(v) or "#000000"

    @property
    def is_thick(self) -> bool:
        return self.style != BorderWeight.THIN


class CellBorders(BaseModel):
    top: BorderStyle | None = None
    right: BorderStyle | None = None
    bottom: BorderStyle | None = None
    left: BorderStyle | None = None


class CellStyle(BaseModel):
    """Validated presentation attributes of a cell, produced once at import."""

    background_color: str | None = None
    borders: CellBorders = Field(default_factory=CellBorders)

    @field_validator("background_color", mode="before")
    @classmethod
    def _normalize(cls, v):
        return normalize_color(v)

    @property
    def is_filled(self) -> bool:
        return self.background_color is not None and self.background_color != WHITE


class Cell(BaseModel):
    """A single grid cell as handed in by the spreadsheet importer."""

    row: int
    col: int
    value: str | int | float | None = None
    style: CellStyle = Field(default_factory=CellStyle)
    is_merged: bool = False  # True for non-origin members of a merge
    merge_parent: GridPoint | None = None  # Merge origin, set for every cell of a merge

    @field_validator("value", mode="before")
    @classmethod
    def _drop_booleans(cls, v):
        if isinstance(v, bool):
            return None
        return v

    @property
    def is_merge_origin(self) -> bool:
        return (
            self.merge_parent is not None
            and self.merge_parent.row == self.row
            and self.merge_parent.col == self.col
        )


class MergedCell(BaseModel):
    start_row: int
    start_col: int
    end_row: int
    end_col: int
    value: str | int | float | None = None

    @property
    def cell_count(self) -> int:
        return (self.end_row - self.start_row + 1) * (self.end_col - self.start_col + 1)

    def contains(self, row: int, col: int) -> bool:
        return self.start_row <= row <= self.end_row and self.start_col <= col <= self.end_col


class GridMap(BaseModel):
    """One day's map sheet: cells, merges and any saved block definitions."""

    sheet_name: str = ""
    max_row: int
    max_col: int
    cells: list[Cell] = Field(default_factory=list)
    merged_cells: list[MergedCell] = Field(default_factory=list)
    blocks: list[Block] = Field(default_factory=list)


# --- Blocks (Step B) ---


class NumberCell(BaseModel):
    row: int
    col: int
    value: float = Field(gt=0, le=100)


class CellGroupType(str, Enum):
    RANGE = "range"
    INDIVIDUAL = "individual"


class CellGroup(BaseModel):
    """One constituent of a composite block: a rectangle or a set of cells."""

    type: CellGroupType
    start_row: int | None = None
    start_col: int | None = None
    end_row: int | None = None
    end_col: int | None = None
    cells: list[GridPoint] = Field(default_factory=list)

    def extent(self) -> tuple[int, int, int, int] | None:
        """(min_row, min_col, max_row, max_col) covered by this group."""
        if self.type == CellGroupType.RANGE:
            if None in (self.start_row, self.start_col, self.end_row, self.end_col):
                return None
            return (
                min(self.start_row, self.end_row),
                min(self.start_col, self.end_col),
                max(self.start_row, self.end_row),
                max(self.start_col, self.end_col),
            )
        if not self.cells:
            return None
        rows = [c.row for c in self.cells]
        cols = [c.col for c in self.cells]
        return min(rows), min(cols), max(rows), max(cols)


class Block(BaseModel):
    name: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int
    number_cells: list[NumberCell] = Field(default_factory=list)
    color: str = "#E3F2FD"
    is_auto_detected: bool = False
    is_wall_block: bool = False
    cell_groups: list[CellGroup] = Field(default_factory=list)

    @property
    def center(self) -> PointLike:
        return PointLike(
            row=(self.start_row + self.end_row) / 2,
            col=(self.start_col + self.end_col) / 2,
        )

    def number_cell(self, value: float) -> NumberCell | None:
        for nc in self.number_cells:
            if nc.value == value:
                return nc
        return None


# --- Halls (Step C) ---


class Hall(BaseModel):
    """A user-drawn polygon that groups visit entries geographically."""

    id: str
    name: str
    vertices: list[PointLike] = Field(default_factory=list)
    color: str = "#6366F1"


# --- Items and visits (Step D) ---


class PurchaseStatus(str, Enum):
    NONE = "none"
    PURCHASED = "purchased"
    SOLD_OUT = "sold_out"
    ABSENT = "absent"
    POSTPONE = "postpone"
    LATE = "late"


class PriorityLevel(str, Enum):
    NONE = "none"
    PRIORITY = "priority"
    HIGHEST = "highest"


class ShoppingItem(BaseModel):
    id: str
    circle: str = ""
    event_date: str = ""
    block: str = ""
    number: str = ""
    title: str = ""
    price: int | None = None  # None = undetermined
    purchase_status: PurchaseStatus = PurchaseStatus.NONE
    quantity: int = 1
    remarks: str = ""
    priority_level: PriorityLevel = PriorityLevel.NONE
    url: str | None = None

    @field_validator("priority_level", mode="before")
    @classmethod
    def _empty_priority(cls, v):
        return v or PriorityLevel.NONE


class VisitPoint(BaseModel):
    id: str
    event_date: str = ""
    block_name: str = ""
    number: float | None = None
    row: int
    col: int
    item_ids: list[str] = Field(default_factory=list)
    order: int = 0


class VisitGroup(BaseModel):
    """A derived display group of visit entries (one hall + priority tier)."""

    group_id: str | None
    hall_id: str | None = None
    hall_name: str | None = None
    hall_color: str | None = None
    priority_level: PriorityLevel = PriorityLevel.NONE
    items: list[ShoppingItem] = Field(default_factory=list)


# --- Paths (Step E) ---


class PathResult(BaseModel):
    path: list[GridPoint]
    found: bool  # False when the path is the two-point fallback
    cost: float = 0.0
    iterations: int = 0


class RouteSegment(BaseModel):
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    path: list[GridPoint]
    found: bool = True
    simplified: list[GridPoint] = Field(default_factory=list)


# --- Quality (Step F) ---


class GateStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class QualityCheck(BaseModel):
    name: str
    status: GateStatus
    message: str
    detail: str | None = None


class QualityReport(BaseModel):
    overall: GateStatus
    checks: list[QualityCheck]


# --- Final Output (Step G) ---


class RoutePlan(BaseModel):
    sheet_name: str = ""
    event_date: str = ""
    blocks: list[Block]
    label_cells: list[GridPoint] = Field(default_factory=list)
    groups: list[VisitGroup] = Field(default_factory=list)
    ordered_items: list[ShoppingItem] = Field(default_factory=list)
    visit_points: list[VisitPoint] = Field(default_factory=list)
    segments: list[RouteSegment] = Field(default_factory=list)
    quality: QualityReport
    diagnostics: dict = Field(default_factory=dict)


GridMap.model_rebuild()
