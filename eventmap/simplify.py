"""Douglas-Peucker reduction of grid paths for storage and drawing."""

from __future__ import annotations

import math
from typing import Sequence

from .config import DEFAULT_SIMPLIFY_TOLERANCE
from .models import GridPoint


def point_to_segment_distance(
    pr: float, pc: float,
    r1: float, c1: float,
    r2: float, c2: float,
) -> float:
    """Distance from a point to the segment (r1, c1)-(r2, c2)."""
    dr = r2 - r1
    dc = c2 - c1
    length_sq = dr * dr + dc * dc
    if length_sq == 0:
        return math.hypot(pr - r1, pc - c1)
    t = ((pr - r1) * dr + (pc - c1) * dc) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(pr - (r1 + t * dr), pc - (c1 + t * dc))


def simplify_path(
    path: Sequence[GridPoint],
    tolerance: float = DEFAULT_SIMPLIFY_TOLERANCE,
) -> list[GridPoint]:
    """Drop points closer than ``tolerance`` to the chord between kept points."""
    if len(path) <= 2:
        return list(path)

    start = path[0]
    end = path[-1]
    max_distance = 0.0
    max_index = 0
    for i in range(1, len(path) - 1):
        d = point_to_segment_distance(
            path[i].row, path[i].col, start.row, start.col, end.row, end.col,
        )
        if d > max_distance:
            max_distance = d
            max_index = i

    if max_distance > tolerance:
        left = simplify_path(path[: max_index + 1], tolerance)
        right = simplify_path(path[max_index:], tolerance)
        return left[:-1] + right

    return [start, end]
