"""Main planning pipeline orchestrator. Runs steps A through G."""

from __future__ import annotations

import logging
from typing import Sequence

from .blocks import block_label_cells, detect_blocks
from .config import Settings
from .grid import build_index
from .models import GridMap, GridPoint, Hall, RoutePlan, ShoppingItem
from .pathfinding import generate_route_segments
from .polygon import is_usable_hall
from .quality import run_map_checks
from .route_points import visit_points_from_items
from .visit_list import GroupingContext, flatten_groups, group_items

logger = logging.getLogger(__name__)


def plan_route(
    grid_map: GridMap,
    items: Sequence[ShoppingItem],
    halls: Sequence[Hall] = (),
    event_date: str | None = None,
    group_order: Sequence[str] = (),
    settings: Settings | None = None,
) -> RoutePlan:
    """
    Full planning pipeline.

    Args:
        grid_map: The day's map sheet. Saved ``blocks`` are used as-is;
            without them blocks are auto-detected from the merges.
        items: Visit entries in their current flat order.
        halls: Hall polygons in definition order.
        event_date: Only items for this date are planned when given.
        group_order: Explicit group ids to put first.
        settings: Tuning values; defaults when omitted.

    Returns:
        RoutePlan with grouped entries, visit points, routed segments and
        a quality report.
    """
    settings = settings or Settings()
    diagnostics: dict = {}

    # Step A: Index the grid
    index = build_index(grid_map)
    diagnostics["cell_count"] = len(index)
    diagnostics["merge_count"] = len(grid_map.merged_cells)
    diagnostics["grid_size"] = [grid_map.max_row, grid_map.max_col]

    # Step B: Blocks and walkable label cells
    if grid_map.blocks:
        blocks = list(grid_map.blocks)
        diagnostics["block_source"] = "saved"
    else:
        blocks = detect_blocks(
            grid_map.merged_cells, index,
            search_radius=settings.block_search_radius,
        )
        diagnostics["block_source"] = "detected"
    labels = block_label_cells(grid_map.merged_cells, index)
    diagnostics["block_names"] = [b.name for b in blocks]
    diagnostics["label_cell_count"] = len(labels)

    # Step C: Halls
    usable_halls = [h for h in halls if is_usable_hall(h)]
    diagnostics["hall_count"] = len(usable_halls)
    if len(usable_halls) < len(halls):
        diagnostics["ignored_halls"] = [h.name for h in halls if not is_usable_hall(h)]

    # Step D: Group and order the visit entries
    if event_date is not None:
        items = [i for i in items if i.event_date == event_date]
    context = GroupingContext(blocks=blocks, halls=usable_halls, group_order=list(group_order))
    groups = group_items(items, context)
    ordered = flatten_groups(groups)
    visit_points = visit_points_from_items(ordered, [i.id for i in ordered], blocks, event_date)
    diagnostics["groups"] = [
        {"group_id": g.group_id, "count": len(g.items)} for g in groups
    ]
    diagnostics["visit_point_count"] = len(visit_points)

    # Step E: Route segments between consecutive visit points
    segments = generate_route_segments(
        index,
        visit_points,
        labels,
        diagonal_cost=settings.diagonal_cost,
        simplify_tolerance=settings.simplify_tolerance,
    )
    diagnostics["segment_count"] = len(segments)
    diagnostics["fallback_segments"] = sum(1 for s in segments if not s.found)
    diagnostics["path_cells"] = sum(len(s.path) for s in segments)
    diagnostics["simplified_points"] = sum(len(s.simplified) for s in segments)

    # Step F: Quality gates
    quality = run_map_checks(blocks, usable_halls, items, segments)

    logger.info(
        "Planned %d items into %d visit points (%d segments, quality=%s)",
        len(ordered), len(visit_points), len(segments), quality.overall.value,
    )

    # Step G: Assemble result
    return RoutePlan(
        sheet_name=grid_map.sheet_name,
        event_date=event_date or "",
        blocks=blocks,
        label_cells=[GridPoint(row=r, col=c) for r, c in sorted(labels)],
        groups=groups,
        ordered_items=ordered,
        visit_points=visit_points,
        segments=segments,
        quality=quality,
        diagnostics=diagnostics,
    )
