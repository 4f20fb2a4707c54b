"""Step C: Point-in-polygon classification of cells, blocks and items into halls."""

from __future__ import annotations

from typing import Iterable, Sequence

from .models import Block, Hall

MIN_HALL_VERTICES = 4
MAX_HALL_VERTICES = 6


def _row_col(v) -> tuple[float, float]:
    if isinstance(v, dict):
        return float(v["row"]), float(v["col"])
    if isinstance(v, (tuple, list)):
        return float(v[0]), float(v[1])
    return float(v.row), float(v.col)


def point_in_polygon(row: float, col: float, vertices: Sequence) -> bool:
    """Ray-casting membership test in grid coordinates.

    Vertices may be PointLike/GridPoint models, ``{"row", "col"}`` dicts or
    ``(row, col)`` tuples. Fewer than 3 vertices never match. A point that
    coincides with a vertex is inside.
    """
    n = len(vertices)
    if n < 3:
        return False

    pts = [_row_col(v) for v in vertices]
    for vr, vc in pts:
        if vr == row and vc == col:
            return True

    inside = False
    j = n - 1
    for i in range(n):
        ri, ci = pts[i]
        rj, cj = pts[j]
        if (ci > col) != (cj > col):
            cross_row = (rj - ri) * (col - ci) / (cj - ci) + ri
            if row < cross_row:
                inside = not inside
        j = i
    return inside


def is_usable_hall(hall: Hall) -> bool:
    """Halls with fewer than 4 vertices are skipped by classification."""
    return len(hall.vertices) >= MIN_HALL_VERTICES


def hall_for_point(row: float, col: float, halls: Iterable[Hall]) -> Hall | None:
    """First hall (definition order) containing the point."""
    for hall in halls:
        if not is_usable_hall(hall):
            continue
        if point_in_polygon(row, col, hall.vertices):
            return hall
    return None


def hall_for_block(block: Block, halls: Iterable[Hall]) -> Hall | None:
    c = block.center
    return hall_for_point(c.row, c.col, halls)
