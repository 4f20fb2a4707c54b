"""Step F: Quality gates for a loaded map, its halls and the visit items."""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from .items import match_item_to_cell
from .models import (
    Block,
    GateStatus,
    Hall,
    QualityCheck,
    QualityReport,
    RouteSegment,
    ShoppingItem,
)
from .polygon import is_usable_hall
from .visit_list import item_hall_id


def run_map_checks(
    blocks: list[Block],
    halls: list[Hall],
    items: Sequence[ShoppingItem] = (),
    segments: Sequence[RouteSegment] | None = None,
) -> QualityReport:
    """Run all map checks and return a QualityReport."""
    checks = [
        _check_blocks_detected(blocks),
        _check_block_number_cells(blocks),
        _check_unique_block_names(blocks),
        _check_halls_defined(halls),
        _check_items_placed(items, blocks),
        _check_items_in_halls(items, blocks, halls),
    ]
    if segments is not None:
        checks.append(_check_route_segments(segments))

    if any(c.status == GateStatus.FAIL for c in checks):
        overall = GateStatus.FAIL
    elif any(c.status == GateStatus.WARN for c in checks):
        overall = GateStatus.WARN
    else:
        overall = GateStatus.PASS

    return QualityReport(overall=overall, checks=checks)


def _check_blocks_detected(blocks: list[Block]) -> QualityCheck:
    if blocks:
        auto = sum(1 for b in blocks if b.is_auto_detected)
        return QualityCheck(
            name="Blocks detected",
            status=GateStatus.PASS,
            message=f"{len(blocks)} blocks ({auto} auto-detected)",
        )
    return QualityCheck(
        name="Blocks detected",
        status=GateStatus.FAIL,
        message="No blocks defined",
        detail="Expected merged block-name labels (ア, あ, A) or hand-authored blocks",
    )


def _check_block_number_cells(blocks: list[Block]) -> QualityCheck:
    empty = [b.name for b in blocks if not b.number_cells]
    if not empty:
        total = sum(len(b.number_cells) for b in blocks)
        return QualityCheck(
            name="Block number cells",
            status=GateStatus.PASS,
            message=f"{total} number cells",
        )
    return QualityCheck(
        name="Block number cells",
        status=GateStatus.WARN,
        message=f"{len(empty)} blocks have no number cells",
        detail=", ".join(empty),
    )


def _check_unique_block_names(blocks: list[Block]) -> QualityCheck:
    dupes = sorted(name for name, n in Counter(b.name for b in blocks).items() if n > 1)
    if not dupes:
        return QualityCheck(
            name="Unique block names",
            status=GateStatus.PASS,
            message="All block names are unique",
        )
    return QualityCheck(
        name="Unique block names",
        status=GateStatus.WARN,
        message=f"{len(dupes)} duplicate block names",
        detail=", ".join(dupes),
    )


def _check_halls_defined(halls: list[Hall]) -> QualityCheck:
    if not halls:
        return QualityCheck(
            name="Halls defined",
            status=GateStatus.WARN,
            message="No halls defined",
            detail="All visit entries fall into one unregioned group",
        )
    unusable = [h.name for h in halls if not is_usable_hall(h)]
    if unusable:
        return QualityCheck(
            name="Halls defined",
            status=GateStatus.WARN,
            message=f"{len(unusable)} halls have fewer than 4 vertices and are ignored",
            detail=", ".join(unusable),
        )
    return QualityCheck(
        name="Halls defined",
        status=GateStatus.PASS,
        message=f"{len(halls)} halls",
    )


def _check_items_placed(items: Sequence[ShoppingItem], blocks: list[Block]) -> QualityCheck:
    total = len(items)
    if not total:
        return QualityCheck(
            name="Items placed",
            status=GateStatus.PASS,
            message="No items to place",
        )
    missing = [i for i in items if match_item_to_cell(i, blocks) is None]
    placed = total - len(missing)
    ratio = placed / total
    if ratio >= 0.8:
        return QualityCheck(
            name="Items placed",
            status=GateStatus.PASS,
            message=f"{placed}/{total} items matched to a number cell",
        )
    return QualityCheck(
        name="Items placed",
        status=GateStatus.WARN if placed else GateStatus.FAIL,
        message=f"Only {placed}/{total} items matched to a number cell",
        detail=", ".join(f"{i.block}-{i.number}" for i in missing[:10]),
    )


def _check_items_in_halls(
    items: Sequence[ShoppingItem],
    blocks: list[Block],
    halls: list[Hall],
) -> QualityCheck:
    if not items or not halls:
        return QualityCheck(
            name="Items in halls",
            status=GateStatus.PASS,
            message="Nothing to classify",
        )
    outside = [i for i in items if item_hall_id(i, blocks, halls) is None]
    if not outside:
        return QualityCheck(
            name="Items in halls",
            status=GateStatus.PASS,
            message=f"All {len(items)} items fall inside a hall",
        )
    return QualityCheck(
        name="Items in halls",
        status=GateStatus.WARN,
        message=f"{len(outside)}/{len(items)} items are outside every hall",
    )


def _check_route_segments(segments: Sequence[RouteSegment]) -> QualityCheck:
    fallback = [s for s in segments if not s.found]
    if not fallback:
        return QualityCheck(
            name="Route segments",
            status=GateStatus.PASS,
            message=f"{len(segments)} segments routed",
        )
    return QualityCheck(
        name="Route segments",
        status=GateStatus.WARN,
        message=f"{len(fallback)}/{len(segments)} segments have no walkable path",
        detail=", ".join(
            f"({s.from_row},{s.from_col})->({s.to_row},{s.to_col})" for s in fallback[:10]
        ),
    )
