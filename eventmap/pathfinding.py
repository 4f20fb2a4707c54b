"""Step E: A* search over the map grid and route segments between visit points."""

from __future__ import annotations

import heapq
import logging
from typing import Iterable, Sequence

from .config import DEFAULT_DIAGONAL_COST
from .grid import GridIndex
from .models import GridPoint, PathResult, RouteSegment, VisitPoint
from .simplify import simplify_path

logger = logging.getLogger(__name__)

ORTHOGONAL_COST = 1.0

# (row step, col step, is diagonal)
_DIRECTIONS = [
    (-1, 0, False),  # up
    (1, 0, False),   # down
    (0, -1, False),  # left
    (0, 1, False),   # right
    (-1, -1, True),  # up-left
    (-1, 1, True),   # up-right
    (1, -1, True),   # down-left
    (1, 1, True),    # down-right
]


def is_passable(
    index: GridIndex,
    row: int,
    col: int,
    label_cells: set[tuple[int, int]] | frozenset = frozenset(),
) -> bool:
    """Whether a route may step onto (row, col).

    Off-map cells are blocked. Block-label cells and cells missing from the
    index are open. Otherwise numeric content or a fill blocks the cell.
    """
    if not index.in_bounds(row, col):
        return False
    if (row, col) in label_cells:
        return True
    return not index.is_obstacle(row, col)


def _heuristic(row: int, col: int, end_row: int, end_col: int) -> int:
    """Manhattan distance."""
    return abs(row - end_row) + abs(col - end_col)


def search_path(
    index: GridIndex,
    start_row: int,
    start_col: int,
    end_row: int,
    end_col: int,
    label_cells: Iterable[tuple[int, int]] = (),
    diagonal_cost: float = DEFAULT_DIAGONAL_COST,
) -> PathResult:
    """Find a walkable path from start to end.

    8-directional moves; a diagonal step needs both orthogonal corner cells
    to be passable. The goal cell itself is always enterable. The search
    is bounded to ``2 * rows * cols`` expansions; when it gives up, the
    result is the straight ``[start, end]`` line with ``found=False``.
    """
    labels = label_cells if isinstance(label_cells, (set, frozenset)) else set(label_cells)
    start = (start_row, start_col)
    goal = (end_row, end_col)

    if start == goal:
        return PathResult(path=[GridPoint(row=start_row, col=start_col)], found=True)

    max_iterations = max(index.max_row * index.max_col * 2, 1)
    iterations = 0

    # Open set entries: (f, insertion counter, g, row, col); stale entries are skipped
    counter = 0
    open_heap: list[tuple[float, int, float, int, int]] = []
    heapq.heappush(open_heap, (_heuristic(*start, *goal), counter, 0.0, start_row, start_col))
    best_g: dict[tuple[int, int], float] = {start: 0.0}
    came_from: dict[tuple[int, int], tuple[int, int] | None] = {start: None}
    closed: set[tuple[int, int]] = set()

    while open_heap and iterations < max_iterations:
        _, _, g, row, col = heapq.heappop(open_heap)
        key = (row, col)
        if key in closed or g > best_g.get(key, float("inf")):
            continue
        iterations += 1

        if key == goal:
            return PathResult(
                path=_reconstruct(came_from, key),
                found=True,
                cost=round(g, 6),
                iterations=iterations,
            )

        closed.add(key)

        for dr, dc, diagonal in _DIRECTIONS:
            nr, nc = row + dr, col + dc
            nkey = (nr, nc)
            if nkey in closed:
                continue
            if nkey != goal and not is_passable(index, nr, nc, labels):
                continue
            if diagonal and not (
                is_passable(index, row + dr, col, labels)
                and is_passable(index, row, col + dc, labels)
            ):
                continue

            new_g = g + (diagonal_cost if diagonal else ORTHOGONAL_COST)
            if new_g < best_g.get(nkey, float("inf")):
                best_g[nkey] = new_g
                came_from[nkey] = key
                counter += 1
                heapq.heappush(
                    open_heap,
                    (new_g + _heuristic(nr, nc, *goal), counter, new_g, nr, nc),
                )

    logger.debug(
        "No path from %s to %s after %d iterations; using straight line",
        start, goal, iterations,
    )
    return PathResult(
        path=[GridPoint(row=start_row, col=start_col), GridPoint(row=end_row, col=end_col)],
        found=False,
        iterations=iterations,
    )


def find_path(
    index: GridIndex,
    start_row: int,
    start_col: int,
    end_row: int,
    end_col: int,
    label_cells: Iterable[tuple[int, int]] = (),
    diagonal_cost: float = DEFAULT_DIAGONAL_COST,
) -> list[GridPoint]:
    """Coordinates from start to end; ``[start, end]`` when no path exists."""
    return search_path(
        index, start_row, start_col, end_row, end_col, label_cells, diagonal_cost,
    ).path


def _reconstruct(
    came_from: dict[tuple[int, int], tuple[int, int] | None],
    key: tuple[int, int],
) -> list[GridPoint]:
    path: list[GridPoint] = []
    cur: tuple[int, int] | None = key
    while cur is not None:
        path.append(GridPoint(row=cur[0], col=cur[1]))
        cur = came_from[cur]
    path.reverse()
    return path


def generate_route_segments(
    index: GridIndex,
    visit_points: Sequence[VisitPoint | GridPoint],
    label_cells: Iterable[tuple[int, int]] = (),
    diagonal_cost: float = DEFAULT_DIAGONAL_COST,
    simplify_tolerance: float | None = None,
) -> list[RouteSegment]:
    """One segment per consecutive pair of visit points, in the given order."""
    if len(visit_points) < 2:
        return []

    labels = set(label_cells)
    segments: list[RouteSegment] = []
    for a, b in zip(visit_points, visit_points[1:]):
        result = search_path(index, a.row, a.col, b.row, b.col, labels, diagonal_cost)
        simplified = (
            simplify_path(result.path, simplify_tolerance)
            if simplify_tolerance is not None else []
        )
        segments.append(RouteSegment(
            from_row=a.row,
            from_col=a.col,
            to_row=b.row,
            to_col=b.col,
            path=result.path,
            found=result.found,
            simplified=simplified,
        ))

    missing = sum(1 for s in segments if not s.found)
    if missing:
        logger.info("%d of %d route segments fell back to straight lines",
                    missing, len(segments))
    return segments
