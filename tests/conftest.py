import pytest

from eventmap.grid import build_index
from eventmap.models import (
    Block,
    Cell,
    CellStyle,
    GridMap,
    GridPoint,
    Hall,
    MergedCell,
    NumberCell,
    PointLike,
    PriorityLevel,
    ShoppingItem,
)
from eventmap.visit_list import GroupingContext

STALL_FILL = "#FFCC80"


def make_grid(rows, cols, values=None, fills=(), merges=(), sheet_name="Day1"):
    """Build a GridMap from sparse values, filled cells and merges.

    ``merges`` holds ``(start_row, start_col, end_row, end_col, value)``.
    """
    cells: dict[tuple[int, int], Cell] = {}
    merged: list[MergedCell] = []

    for r0, c0, r1, c1, value in merges:
        for r in range(r0, r1 + 1):
            for c in range(c0, c1 + 1):
                origin = (r, c) == (r0, c0)
                cells[(r, c)] = Cell(
                    row=r,
                    col=c,
                    value=value if origin else None,
                    is_merged=not origin,
                    merge_parent=GridPoint(row=r0, col=c0),
                )
        merged.append(MergedCell(start_row=r0, start_col=c0, end_row=r1, end_col=c1, value=value))

    for (r, c), value in (values or {}).items():
        cells[(r, c)] = Cell(row=r, col=c, value=value)

    for r, c in fills:
        existing = cells.get((r, c)) or Cell(row=r, col=c)
        cells[(r, c)] = existing.model_copy(
            update={"style": CellStyle(background_color=STALL_FILL)}
        )

    return GridMap(
        sheet_name=sheet_name,
        max_row=rows,
        max_col=cols,
        cells=list(cells.values()),
        merged_cells=merged,
    )


@pytest.fixture
def grid_factory():
    return make_grid


@pytest.fixture
def a_block_grid():
    """6x6 sheet: a 2x2 "ア" merge with numbers 1-5 on three of its sides."""
    return make_grid(
        6, 6,
        values={
            (2, 4): 1, (3, 4): 2,      # right
            (4, 2): 3, (4, 3): 4,      # below
            (2, 1): 5,                 # left
        },
        merges=[(2, 2, 3, 3, "ア")],
    )


@pytest.fixture
def two_block_grid():
    """8x12 sheet with blocks ア (rows 2-3) and イ (rows 6-7), two numbers each."""
    return make_grid(
        8, 12,
        values={(2, 4): 1, (3, 4): 2, (6, 10): 1, (7, 10): 2},
        merges=[(2, 2, 3, 3, "ア"), (6, 8, 7, 9, "イ")],
    )


@pytest.fixture
def open_index():
    return build_index(make_grid(3, 8))


@pytest.fixture
def blocks():
    return [
        Block(
            name="A", start_row=2, start_col=2, end_row=3, end_col=4,
            number_cells=[NumberCell(row=2, col=4, value=1), NumberCell(row=3, col=4, value=2)],
        ),
        Block(
            name="B", start_row=2, start_col=12, end_row=3, end_col=14,
            number_cells=[NumberCell(row=2, col=14, value=1), NumberCell(row=3, col=14, value=2)],
        ),
    ]


@pytest.fixture
def halls():
    return [
        Hall(
            id="east", name="East",
            vertices=[PointLike(row=0, col=0), PointLike(row=0, col=10),
                      PointLike(row=10, col=10), PointLike(row=10, col=0)],
        ),
        Hall(
            id="west", name="West",
            vertices=[PointLike(row=0, col=11), PointLike(row=0, col=20),
                      PointLike(row=10, col=20), PointLike(row=10, col=11)],
        ),
    ]


@pytest.fixture
def items():
    """Entries across both halls, two priority tiers and one unplaceable entry."""
    return [
        ShoppingItem(id="i1", block="A", number="1", event_date="day1"),
        ShoppingItem(id="i2", block="B", number="1", event_date="day1"),
        ShoppingItem(id="i3", block="A", number="2", event_date="day1"),
        ShoppingItem(id="i4", block="B", number="2a", event_date="day1",
                     priority_level=PriorityLevel.PRIORITY),
        ShoppingItem(id="i5", block="Z", number="9", event_date="day1"),
        ShoppingItem(id="i6", block="A", number="1", event_date="day1",
                     priority_level=PriorityLevel.HIGHEST),
        ShoppingItem(id="i7", block="a", number="1", event_date="day1"),
    ]


@pytest.fixture
def context(blocks, halls):
    return GroupingContext(blocks=blocks, halls=halls)
