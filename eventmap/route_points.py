"""Visit point lists: dense ordering operations and derivation from items.

Functions take and return plain lists; persisting them is the caller's
concern. After every operation ``order`` runs 0, 1, 2, ... in list order.
"""

from __future__ import annotations

from typing import Sequence

from .items import match_item_to_cell
from .models import Block, ShoppingItem, VisitPoint


def _renumber(points: list[VisitPoint]) -> list[VisitPoint]:
    return [p.model_copy(update={"order": i}) for i, p in enumerate(points)]


def sorted_route_points(points: Sequence[VisitPoint]) -> list[VisitPoint]:
    return sorted(points, key=lambda p: p.order)


def add_route_point(points: Sequence[VisitPoint], point: VisitPoint) -> list[VisitPoint]:
    """Insert ``point`` at its ``order``, replacing any point with the same id."""
    kept = [p for p in points if p.id != point.id]
    # Ties go to the new point so it lands at the requested slot
    ranked = sorted(
        [(p.order, 1, p) for p in kept] + [(point.order, 0, point)],
        key=lambda t: (t[0], t[1]),
    )
    return _renumber([p for _, _, p in ranked])


def remove_route_point(points: Sequence[VisitPoint], point_id: str) -> list[VisitPoint]:
    return _renumber([p for p in sorted_route_points(points) if p.id != point_id])


def reorder_route_points(points: Sequence[VisitPoint], point_ids: Sequence[str]) -> list[VisitPoint]:
    """Order points by ``point_ids``; unknown ids are skipped, unlisted points dropped."""
    by_id = {p.id: p for p in points}
    ordered = [by_id[i] for i in point_ids if i in by_id]
    return _renumber(ordered)


def update_route_point(points: Sequence[VisitPoint], point: VisitPoint) -> list[VisitPoint]:
    """Replace the point with the same id in place, keeping its position."""
    result = list(points)
    for n, p in enumerate(result):
        if p.id == point.id:
            result[n] = point.model_copy(update={"order": p.order})
            break
    return result


def visit_points_from_items(
    items: Sequence[ShoppingItem],
    item_ids: Sequence[str],
    blocks: Sequence[Block],
    event_date: str | None = None,
) -> list[VisitPoint]:
    """One visit point per distinct cell, in the order the ids are visited.

    Items that cannot be placed on a number cell are left out.
    """
    by_id = {i.id: i for i in items}
    points: list[VisitPoint] = []
    by_cell: dict[tuple[int, int], VisitPoint] = {}

    for item_id in item_ids:
        item = by_id.get(item_id)
        if item is None:
            continue
        match = match_item_to_cell(item, blocks, event_date)
        if match is None:
            continue
        block, cell = match
        key = (cell.row, cell.col)
        point = by_cell.get(key)
        if point is None:
            point = VisitPoint(
                id=f"{item.event_date}-{block.name}-{cell.row}-{cell.col}",
                event_date=item.event_date,
                block_name=block.name,
                number=cell.value,
                row=cell.row,
                col=cell.col,
                order=len(points),
            )
            by_cell[key] = point
            points.append(point)
        if item.id not in point.item_ids:
            point.item_ids.append(item.id)
    return points
