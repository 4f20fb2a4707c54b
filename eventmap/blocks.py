"""Step B: Detect named blocks from merged label cells, and author blocks by hand.

Auto-detection looks for merges of at least 4 cells whose value is a short
katakana / hiragana / Latin label, then walks outward from each edge of the
merge collecting the runs of slot-number cells that touch it.

Manual authoring supports three shapes:
    corners     one rectangle from 4 picked corner cells
    multi       several rectangles, number cells unioned
    wall        up to 6 groups, each a rectangle or an explicit cell list
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from .config import DEFAULT_BLOCK_SEARCH_RADIUS
from .errors import MapValidationError
from .grid import GridIndex, slot_number
from .models import (
    Block,
    CellGroup,
    CellGroupType,
    GridPoint,
    MergedCell,
    NumberCell,
)

logger = logging.getLogger(__name__)

KATAKANA_PATTERN = re.compile(r"^[ァ-ヴー]+$")  # ァ..ヴ, ー
HIRAGANA_PATTERN = re.compile(r"^[ぁ-ゔー]+$")  # ぁ..ゔ, ー
LATIN_PATTERN = re.compile(r"^[A-Za-z]+$")

MAX_BLOCK_NAME_LENGTH = 3
MIN_LABEL_MERGE_CELLS = 4
MIN_CORNER_POINTS = 4
MAX_CELL_GROUPS = 6

BLOCK_COLORS = [
    "#E3F2FD",  # blue
    "#E8F5E9",  # green
    "#FFF3E0",  # orange
    "#F3E5F5",  # purple
    "#E0F7FA",  # cyan
    "#FBE9E7",  # deep orange
    "#F1F8E9",  # light green
    "#FCE4EC",  # pink
    "#E8EAF6",  # indigo
    "#FFFDE7",  # yellow
]

# (row step, col step) walked away from each edge of a label merge
_DIRECTIONS = [(-1, 0), (1, 0), (0, -1), (0, 1)]


def block_color(index: int) -> str:
    return BLOCK_COLORS[index % len(BLOCK_COLORS)]


def is_block_name(value: str | int | float | None) -> bool:
    """1-3 characters, all katakana, all hiragana or all Latin letters.

    Labels outside this pattern (e.g. "1A") are not auto-detected and
    must be authored by hand.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return False
    text = str(value).strip()
    if not text or len(text) > MAX_BLOCK_NAME_LENGTH:
        return False
    return bool(
        KATAKANA_PATTERN.match(text)
        or HIRAGANA_PATTERN.match(text)
        or LATIN_PATTERN.match(text)
    )


def _label_value(merge: MergedCell, index: GridIndex) -> str | int | float | None:
    if merge.value is not None:
        return merge.value
    cell = index.cell(merge.start_row, merge.start_col)
    return cell.value if cell else None


def label_merges(merged_cells: Iterable[MergedCell], index: GridIndex) -> list[MergedCell]:
    """Merges that carry a block name and span at least 4 cells."""
    return [
        m for m in merged_cells
        if m.cell_count >= MIN_LABEL_MERGE_CELLS and is_block_name(_label_value(m, index))
    ]


def block_label_cells(
    merged_cells: Iterable[MergedCell], index: GridIndex,
) -> set[tuple[int, int]]:
    """Every cell covered by a block-name merge. These stay walkable."""
    cells: set[tuple[int, int]] = set()
    for m in label_merges(merged_cells, index):
        for r in range(m.start_row, m.end_row + 1):
            for c in range(m.start_col, m.end_col + 1):
                cells.add((r, c))
    return cells


# ---------------------------------------------------------------------------
# Auto-detection
# ---------------------------------------------------------------------------


def detect_blocks(
    merged_cells: Sequence[MergedCell],
    index: GridIndex,
    max_row: int | None = None,
    max_col: int | None = None,
    search_radius: int = DEFAULT_BLOCK_SEARCH_RADIUS,
) -> list[Block]:
    """Detect blocks from block-name merges and their adjacent number cells.

    Merges sharing a label are unioned into one block. A number cell is
    claimed by the first block that reaches it. Blocks without any number
    cell are dropped. Colors follow detection order.
    """
    max_row = index.max_row if max_row is None else max_row
    max_col = index.max_col if max_col is None else max_col

    claimed: set[tuple[int, int]] = set()
    blocks: list[Block] = []
    by_name: dict[str, Block] = {}

    for merge in label_merges(merged_cells, index):
        name = str(_label_value(merge, index)).strip()
        found = _scan_around_merge(merge, index, max_row, max_col, search_radius)
        fresh = [nc for nc in found if (nc.row, nc.col) not in claimed]
        for nc in fresh:
            claimed.add((nc.row, nc.col))

        existing = by_name.get(name)
        if existing is not None:
            existing.number_cells = _sorted_unique(existing.number_cells + fresh)
            _extend_bounds(existing, merge.start_row, merge.start_col, merge.end_row, merge.end_col)
            for nc in fresh:
                _extend_bounds(existing, nc.row, nc.col, nc.row, nc.col)
            continue

        if not fresh:
            logger.debug("Label merge %r at (%d, %d) has no number cells",
                         name, merge.start_row, merge.start_col)
            continue

        block = Block(
            name=name,
            start_row=merge.start_row,
            start_col=merge.start_col,
            end_row=merge.end_row,
            end_col=merge.end_col,
            number_cells=_sorted_unique(fresh),
            color=block_color(len(blocks)),
            is_auto_detected=True,
        )
        for nc in fresh:
            _extend_bounds(block, nc.row, nc.col, nc.row, nc.col)
        blocks.append(block)
        by_name[name] = block

    logger.info("Detected %d blocks from %d merges", len(blocks), len(merged_cells))
    return blocks


def _scan_around_merge(
    merge: MergedCell,
    index: GridIndex,
    max_row: int,
    max_col: int,
    radius: int,
) -> list[NumberCell]:
    found: dict[tuple[int, int], NumberCell] = {}
    for dr, dc in _DIRECTIONS:
        for nc in _scan_direction(merge, dr, dc, index, max_row, max_col, radius):
            found.setdefault((nc.row, nc.col), nc)
    return list(found.values())


def _scan_direction(
    merge: MergedCell,
    dr: int,
    dc: int,
    index: GridIndex,
    max_row: int,
    max_col: int,
    radius: int,
) -> list[NumberCell]:
    """Walk lines parallel to one merge edge until the run of numbers ends.

    The line right next to the edge must hold a number; scanning stops at
    the first line without one, or after ``radius`` lines.
    """
    hits: list[NumberCell] = []
    for step in range(1, radius + 1):
        if dr:
            row = merge.start_row - step if dr < 0 else merge.end_row + step
            line = [(row, c) for c in range(merge.start_col, merge.end_col + 1)]
        else:
            col = merge.start_col - step if dc < 0 else merge.end_col + step
            line = [(r, col) for r in range(merge.start_row, merge.end_row + 1)]
        line = [(r, c) for r, c in line if 1 <= r <= max_row and 1 <= c <= max_col]
        if not line:
            break

        line_hits: list[NumberCell] = []
        for r, c in line:
            if index.is_in_merge(r, c):
                continue
            value = index.slot_value(r, c)
            if value is not None:
                line_hits.append(NumberCell(row=r, col=c, value=value))
        if not line_hits:
            break
        hits.extend(line_hits)
    return hits


def _extend_bounds(block: Block, r0: int, c0: int, r1: int, c1: int) -> None:
    block.start_row = min(block.start_row, r0)
    block.start_col = min(block.start_col, c0)
    block.end_row = max(block.end_row, r1)
    block.end_col = max(block.end_col, c1)


def _sorted_unique(cells: Iterable[NumberCell]) -> list[NumberCell]:
    unique: dict[tuple[int, int], NumberCell] = {}
    for nc in cells:
        unique.setdefault((nc.row, nc.col), nc)
    return sorted(unique.values(), key=lambda nc: (nc.value, nc.row, nc.col))


# ---------------------------------------------------------------------------
# Manual authoring
# ---------------------------------------------------------------------------


def scan_number_cells(
    index: GridIndex,
    start_row: int,
    start_col: int,
    end_row: int,
    end_col: int,
) -> list[NumberCell]:
    """Slot-number cells in a rectangle (corners in any order), by value.

    Non-origin members of a merge never count.
    """
    r0, r1 = sorted((start_row, end_row))
    c0, c1 = sorted((start_col, end_col))
    cells: list[NumberCell] = []
    for r in range(r0, r1 + 1):
        for c in range(c0, c1 + 1):
            if index.is_merge_member(r, c):
                continue
            value = index.slot_value(r, c)
            if value is not None:
                cells.append(NumberCell(row=r, col=c, value=value))
    return _sorted_unique(cells)


def range_from_corners(corners: Sequence[GridPoint]) -> CellGroup:
    """Rectangle spanned by picked corner cells (min/max row and col)."""
    if len(corners) < MIN_CORNER_POINTS:
        raise MapValidationError(
            f"Pick {MIN_CORNER_POINTS} corners on the map, got {len(corners)}"
        )
    rows = [p.row for p in corners]
    cols = [p.col for p in corners]
    return CellGroup(
        type=CellGroupType.RANGE,
        start_row=min(rows),
        start_col=min(cols),
        end_row=max(rows),
        end_col=max(cols),
    )


def _clean_name(name: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise MapValidationError("Block name is required")
    return clean


def block_from_corners(
    name: str,
    corners: Sequence[GridPoint],
    index: GridIndex,
    color: str = BLOCK_COLORS[0],
) -> Block:
    """Single-rectangle block from 4 picked corners."""
    clean = _clean_name(name)
    rect = range_from_corners(corners)
    return Block(
        name=clean,
        start_row=rect.start_row,
        start_col=rect.start_col,
        end_row=rect.end_row,
        end_col=rect.end_col,
        number_cells=scan_number_cells(
            index, rect.start_row, rect.start_col, rect.end_row, rect.end_col,
        ),
        color=color,
    )


def block_from_ranges(
    name: str,
    ranges: Sequence[CellGroup],
    index: GridIndex,
    color: str = BLOCK_COLORS[0],
) -> Block:
    """Multi-range block: the union of several independent rectangles."""
    clean = _clean_name(name)
    groups = [g for g in ranges if g.type == CellGroupType.RANGE and g.extent()]
    if not groups:
        raise MapValidationError("Define at least one range")

    block = Block(
        name=clean,
        start_row=0, start_col=0, end_row=0, end_col=0,
        color=color,
        cell_groups=list(groups),
    )
    return recompute_number_cells(block, index)


def wall_block(
    name: str,
    groups: Sequence[CellGroup],
    index: GridIndex,
    color: str = BLOCK_COLORS[0],
) -> Block:
    """Wall block: up to 6 range or individual-cell groups."""
    clean = _clean_name(name)
    usable = [g for g in groups if g.extent()]
    if not usable:
        raise MapValidationError("Define at least one cell group")
    if len(usable) > MAX_CELL_GROUPS:
        raise MapValidationError(
            f"A wall block holds at most {MAX_CELL_GROUPS} cell groups, got {len(usable)}"
        )

    block = Block(
        name=clean,
        start_row=0, start_col=0, end_row=0, end_col=0,
        color=color,
        is_wall_block=True,
        cell_groups=list(usable),
    )
    return recompute_number_cells(block, index)


def _group_number_cells(group: CellGroup, index: GridIndex) -> list[NumberCell]:
    if group.type == CellGroupType.RANGE:
        ext = group.extent()
        if ext is None:
            return []
        return scan_number_cells(index, *ext)
    cells: list[NumberCell] = []
    for p in group.cells:
        cell = index.cell(p.row, p.col)
        value = slot_number(cell.value) if cell else None
        if value is not None:
            cells.append(NumberCell(row=p.row, col=p.col, value=value))
    return cells


def recompute_number_cells(block: Block, index: GridIndex) -> Block:
    """Rebuild bounds and number cells from the block's geometry.

    Composite blocks take their bounds from the union of their groups;
    plain blocks rescan their rectangle.
    """
    if not block.cell_groups:
        return block.model_copy(update={
            "number_cells": scan_number_cells(
                index, block.start_row, block.start_col, block.end_row, block.end_col,
            ),
        })

    extents = [g.extent() for g in block.cell_groups]
    extents = [e for e in extents if e is not None]
    if not extents:
        raise MapValidationError(f"Block '{block.name}' has no geometry")

    number_cells: list[NumberCell] = []
    for g in block.cell_groups:
        number_cells.extend(_group_number_cells(g, index))

    return block.model_copy(update={
        "start_row": min(e[0] for e in extents),
        "start_col": min(e[1] for e in extents),
        "end_row": max(e[2] for e in extents),
        "end_col": max(e[3] for e in extents),
        "number_cells": _sorted_unique(number_cells),
    })
