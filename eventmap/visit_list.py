"""Visit list engine: hall/priority grouping, reordering and an undo log.

The flat visit order is the source of truth. Groups are derived from it on
every operation: each entry's hall comes from its number cell (or block
center) and the hall polygons, and the group id is ``hall_id`` or
``hall_id:tier`` for priority entries. Every mutation regroups, edits one
group and flattens the groups back into the new flat order.

Entries move between the visit list and a candidate list of entries not
scheduled yet; a dropped entry always lands in its own hall group.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, Field

from .config import DEFAULT_HISTORY_LIMIT
from .errors import GroupMismatchError, IndexOutOfGroupError
from .items import match_item_to_cell, resolve_block
from .models import Block, Hall, PriorityLevel, ShoppingItem, VisitGroup
from .polygon import hall_for_block, hall_for_point

logger = logging.getLogger(__name__)

END_OF_LIST = "__END_OF_LIST__"

_TIER_ORDER = {
    PriorityLevel.HIGHEST: 0,
    PriorityLevel.PRIORITY: 1,
    PriorityLevel.NONE: 2,
}


class DropPosition(str, Enum):
    BEFORE = "before"  # Dropped on the upper half of the target
    AFTER = "after"    # Dropped on the lower half of the target


class ListColumn(str, Enum):
    VISIT = "visit"
    CANDIDATE = "candidate"  # Entries not scheduled for a visit yet


class GroupingContext(BaseModel):
    """Spatial definitions the grouping is derived from."""

    blocks: list[Block] = Field(default_factory=list)
    halls: list[Hall] = Field(default_factory=list)
    group_order: list[str] = Field(default_factory=list)  # Explicit group id order


def group_id_for(hall_id: str | None, priority: PriorityLevel) -> str | None:
    """``hall_id`` for normal entries, ``hall_id:tier`` for priority tiers."""
    if hall_id is None:
        return None
    if priority == PriorityLevel.NONE:
        return hall_id
    return f"{hall_id}:{priority.value}"


def item_hall_id(
    item: ShoppingItem,
    blocks: Sequence[Block],
    halls: Sequence[Hall],
) -> str | None:
    """Hall containing the item's number cell, or its block center as fallback."""
    if not halls:
        return None
    match = match_item_to_cell(item, blocks)
    if match is not None:
        _, cell = match
        hall = hall_for_point(cell.row, cell.col, halls)
    else:
        block = resolve_block(item.block, blocks)
        if block is None:
            return None
        hall = hall_for_block(block, halls)
    return hall.id if hall else None


def group_items(
    items: Sequence[ShoppingItem],
    context: GroupingContext,
) -> list[VisitGroup]:
    """Group entries for display, keeping their flat order inside each group.

    Group order:
      1. ids listed in ``context.group_order``
      2. plain hall groups, in hall definition order
      3. remaining priority groups, highest tier first, then hall order
      4. the unregioned group
    """
    halls_by_id = {h.id: h for h in context.halls}
    hall_rank = {h.id: i for i, h in enumerate(context.halls)}

    buckets: dict[str | None, VisitGroup] = {}
    for item in items:
        hall_id = item_hall_id(item, context.blocks, context.halls)
        tier = item.priority_level if hall_id is not None else PriorityLevel.NONE
        gid = group_id_for(hall_id, tier)
        group = buckets.get(gid)
        if group is None:
            hall = halls_by_id.get(hall_id) if hall_id else None
            group = VisitGroup(
                group_id=gid,
                hall_id=hall_id,
                hall_name=hall.name if hall else None,
                hall_color=hall.color if hall else None,
                priority_level=tier,
            )
            buckets[gid] = group
        group.items.append(item)

    result: list[VisitGroup] = []

    def take(gid: str | None) -> None:
        group = buckets.pop(gid, None)
        if group is not None:
            result.append(group)

    for gid in context.group_order:
        if gid is not None:
            take(gid)

    for hall in context.halls:
        take(hall.id)

    remaining = [g for gid, g in buckets.items() if gid is not None]
    remaining.sort(key=lambda g: (
        _TIER_ORDER[g.priority_level],
        hall_rank.get(g.hall_id, len(hall_rank)),
    ))
    for g in remaining:
        take(g.group_id)

    take(None)
    return result


def flatten_groups(groups: Sequence[VisitGroup]) -> list[ShoppingItem]:
    return [item for g in groups for item in g.items]


def _find_group(groups: list[VisitGroup], group_id: str | None) -> VisitGroup:
    for g in groups:
        if g.group_id == group_id:
            return g
    raise IndexOutOfGroupError(f"No visit group '{group_id}'")


def _check_index(group: VisitGroup, index: int) -> None:
    if not 0 <= index < len(group.items):
        raise IndexOutOfGroupError(
            f"Index {index} is outside group '{group.group_id}' ({len(group.items)} entries)"
        )


def move_within_group(
    items: Sequence[ShoppingItem],
    context: GroupingContext,
    group_id: str | None,
    from_index: int,
    to_index: int,
) -> list[ShoppingItem]:
    """Take the entry at ``from_index`` out of its group and reinsert it at ``to_index``."""
    groups = group_items(items, context)
    group = _find_group(groups, group_id)
    _check_index(group, from_index)
    _check_index(group, to_index)
    moved = group.items.pop(from_index)
    group.items.insert(to_index, moved)
    return flatten_groups(groups)


def swap_within_group(
    items: Sequence[ShoppingItem],
    context: GroupingContext,
    group_id: str | None,
    index1: int,
    index2: int,
) -> list[ShoppingItem]:
    groups = group_items(items, context)
    group = _find_group(groups, group_id)
    _check_index(group, index1)
    _check_index(group, index2)
    group.items[index1], group.items[index2] = group.items[index2], group.items[index1]
    return flatten_groups(groups)


def reverse_range(
    items: Sequence[ShoppingItem],
    context: GroupingContext,
    group_id: str | None,
    start: int,
    end: int,
) -> list[ShoppingItem]:
    """Reverse the entries between two group indices, both inclusive, in either order."""
    lo, hi = sorted((start, end))
    groups = group_items(items, context)
    group = _find_group(groups, group_id)
    _check_index(group, lo)
    _check_index(group, hi)
    group.items[lo:hi + 1] = group.items[lo:hi + 1][::-1]
    return flatten_groups(groups)


def drop_position(pointer_offset: float, target_height: float) -> DropPosition:
    """Upper half of the target inserts before it, lower half after it."""
    if pointer_offset < target_height / 2:
        return DropPosition.BEFORE
    return DropPosition.AFTER


def _insert_at(
    items: list[ShoppingItem],
    moved: list[ShoppingItem],
    target_id: str,
    position: DropPosition,
) -> list[ShoppingItem]:
    target_index = next((n for n, i in enumerate(items) if i.id == target_id), None)
    if target_id == END_OF_LIST or target_index is None:
        return items + moved
    if position == DropPosition.AFTER:
        target_index += 1
    return items[:target_index] + moved + items[target_index:]


def move_across_groups(
    visit_items: Sequence[ShoppingItem],
    candidate_items: Sequence[ShoppingItem],
    context: GroupingContext,
    moved_ids: Sequence[str],
    target_id: str,
    target_column: ListColumn = ListColumn.VISIT,
    position: DropPosition = DropPosition.BEFORE,
) -> tuple[list[ShoppingItem], list[ShoppingItem]]:
    """Drop entries next to ``target_id`` in the visit list or the candidate list.

    Moved entries may come from either column and keep their current
    relative order, visit entries first. ``END_OF_LIST`` or a target that is
    not in the target column appends them. The visit list is regrouped
    afterwards, so a dropped entry joins its own hall group at the place
    the drop gives it among that group's entries.

    Returns the new ``(visit_items, candidate_items)``.
    """
    moving = set(moved_ids)
    if target_id in moving:
        return list(visit_items), list(candidate_items)

    moved: list[ShoppingItem] = []
    seen: set[str] = set()
    for item in [*visit_items, *candidate_items]:
        if item.id in moving and item.id not in seen:
            moved.append(item)
            seen.add(item.id)
    if not moved:
        return list(visit_items), list(candidate_items)

    visit_rest = [i for i in visit_items if i.id not in moving]
    candidate_rest = [i for i in candidate_items if i.id not in moving]
    if target_column == ListColumn.VISIT:
        visit_rest = _insert_at(visit_rest, moved, target_id, position)
    else:
        candidate_rest = _insert_at(candidate_rest, moved, target_id, position)
    return flatten_groups(group_items(visit_rest, context)), candidate_rest


def reorder_by_hall_order(
    items: Sequence[ShoppingItem],
    context: GroupingContext,
    hall_order: Sequence[str],
    preferred: dict[str, list[str]] | None = None,
) -> list[ShoppingItem]:
    """Regroup a flat list hall by hall.

    Halls follow ``hall_order`` first, then first appearance; unregioned
    entries come last. Inside a hall, ids listed in ``preferred[hall_id]``
    come first in that order, the rest keep their current order.
    """
    preferred = preferred or {}
    by_hall: dict[str | None, list[ShoppingItem]] = {}
    for item in items:
        hall_id = item_hall_id(item, context.blocks, context.halls)
        by_hall.setdefault(hall_id, []).append(item)

    def sort_hall(hall_id: str | None, hall_items: list[ShoppingItem]) -> list[ShoppingItem]:
        rank = {item_id: n for n, item_id in enumerate(preferred.get(hall_id, []))} if hall_id else {}
        position = {item.id: n for n, item in enumerate(hall_items)}
        return sorted(hall_items, key=lambda i: (
            0 if i.id in rank else 1,
            rank.get(i.id, position[i.id]),
        ))

    result: list[ShoppingItem] = []
    for hall_id in hall_order:
        if hall_id in by_hall:
            result.extend(sort_hall(hall_id, by_hall.pop(hall_id)))
    for hall_id in [h for h in by_hall if h is not None]:
        result.extend(sort_hall(hall_id, by_hall.pop(hall_id)))
    if None in by_hall:
        result.extend(by_hall.pop(None))
    return result


class VisitListSession:
    """One editing session over a visit list, with a bounded undo log.

    The session also holds the candidate list: entries that can be dropped
    into the visit list and entries returned from it. Each log snapshot
    covers both lists.

    The log starts with the lists as opened. Each mutation truncates any
    redo tail, appends the new state and drops the oldest snapshot past
    ``history_limit``. ``confirm`` collapses the log to the current state;
    ``cancel`` restores the state the session was opened with.
    """

    def __init__(
        self,
        items: Sequence[ShoppingItem],
        context: GroupingContext | None = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        candidates: Sequence[ShoppingItem] = (),
    ):
        self.context = context or GroupingContext()
        self.history_limit = history_limit
        self._items: list[ShoppingItem] = list(items)
        self._candidates: list[ShoppingItem] = list(candidates)
        self._baseline = (list(items), list(candidates))
        self._history: list[tuple[list[ShoppingItem], list[ShoppingItem]]] = [self._baseline]
        self._cursor = 0
        self._range_group: str | None = None
        self._range_start: int | None = None
        self._range_end: int | None = None
        self._swap_first: tuple[str | None, int] | None = None

    # --- state ---

    @property
    def items(self) -> list[ShoppingItem]:
        return list(self._items)

    @property
    def candidates(self) -> list[ShoppingItem]:
        return list(self._candidates)

    @property
    def groups(self) -> list[VisitGroup]:
        return group_items(self._items, self.context)

    @property
    def history(self) -> list[list[ShoppingItem]]:
        """Visit list snapshots, oldest first."""
        return [list(visit) for visit, _ in self._history]

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._history) - 1

    @property
    def range_selection(self) -> tuple[str | None, int | None, int | None]:
        return self._range_group, self._range_start, self._range_end

    def _commit(
        self,
        new_items: list[ShoppingItem],
        new_candidates: list[ShoppingItem] | None = None,
    ) -> list[ShoppingItem]:
        if new_candidates is None:
            new_candidates = self._candidates
        del self._history[self._cursor + 1:]
        self._history.append((list(new_items), list(new_candidates)))
        if len(self._history) > self.history_limit:
            del self._history[: len(self._history) - self.history_limit]
        self._cursor = len(self._history) - 1
        self._items = list(new_items)
        self._candidates = list(new_candidates)
        return self.items

    def _restore(self, state: tuple[list[ShoppingItem], list[ShoppingItem]]) -> None:
        visit, candidates = state
        self._items = list(visit)
        self._candidates = list(candidates)

    # --- mutations ---

    def move_within_group(self, group_id: str | None, from_index: int, to_index: int) -> list[ShoppingItem]:
        if from_index == to_index:
            return self.items
        new_items = move_within_group(self._items, self.context, group_id, from_index, to_index)
        logger.debug("Moved %s[%d] -> %d", group_id, from_index, to_index)
        return self._commit(new_items)

    def swap_within_group(self, group_id: str | None, index1: int, index2: int) -> list[ShoppingItem]:
        if index1 == index2:
            return self.items
        new_items = swap_within_group(self._items, self.context, group_id, index1, index2)
        logger.debug("Swapped %s[%d] <-> [%d]", group_id, index1, index2)
        return self._commit(new_items)

    def reverse_range(self, group_id: str | None, start: int, end: int) -> list[ShoppingItem]:
        new_items = reverse_range(self._items, self.context, group_id, start, end)
        self.clear_range_selection()
        logger.debug("Reversed %s[%d..%d]", group_id, start, end)
        return self._commit(new_items)

    def move_across_groups(
        self,
        moved_ids: Sequence[str],
        target_id: str,
        target_column: ListColumn = ListColumn.VISIT,
        position: DropPosition = DropPosition.BEFORE,
    ) -> list[ShoppingItem]:
        new_items, new_candidates = move_across_groups(
            self._items, self._candidates, self.context,
            moved_ids, target_id, target_column, position,
        )
        unchanged = (
            [i.id for i in new_items] == [i.id for i in self._items]
            and [i.id for i in new_candidates] == [i.id for i in self._candidates]
        )
        if unchanged:
            return self.items
        logger.debug("Dropped %s at %s in %s list", list(moved_ids), target_id, target_column.value)
        return self._commit(new_items, new_candidates)

    def reorder_by_hall_order(
        self,
        hall_order: Sequence[str],
        preferred: dict[str, list[str]] | None = None,
    ) -> list[ShoppingItem]:
        new_items = reorder_by_hall_order(self._items, self.context, hall_order, preferred)
        return self._commit(new_items)

    # --- two-click selections ---

    def select_range(self, group_id: str | None, index: int) -> tuple[str | None, int | None, int | None]:
        """Pick the start, then the end of a range inside one group.

        A third pick starts a new range. An end pick in another group is
        rejected and leaves the selection as it was.
        """
        if self._range_start is None or self._range_end is not None:
            self._range_group = group_id
            self._range_start = index
            self._range_end = None
        elif self._range_group != group_id:
            raise GroupMismatchError("A range cannot span two halls")
        else:
            self._range_end = index
        return self.range_selection

    def reverse_selected_range(self) -> list[ShoppingItem]:
        if self._range_start is None or self._range_end is None:
            return self.items
        return self.reverse_range(self._range_group, self._range_start, self._range_end)

    def clear_range_selection(self) -> None:
        self._range_group = None
        self._range_start = None
        self._range_end = None

    def select_for_swap(self, group_id: str | None, index: int) -> list[ShoppingItem]:
        """First pick marks an entry, second pick in the same group swaps."""
        if self._swap_first is None:
            self._swap_first = (group_id, index)
            return self.items
        first_group, first_index = self._swap_first
        self._swap_first = None
        if first_group != group_id:
            raise GroupMismatchError("Entries from different halls cannot be swapped")
        return self.swap_within_group(group_id, first_index, index)

    # --- history ---

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._cursor -= 1
        self._restore(self._history[self._cursor])
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._cursor += 1
        self._restore(self._history[self._cursor])
        return True

    def confirm(self) -> list[ShoppingItem]:
        self._baseline = (list(self._items), list(self._candidates))
        self._history = [self._baseline]
        self._cursor = 0
        return self.items

    def cancel(self) -> list[ShoppingItem]:
        self._restore(self._baseline)
        self._history = [self._baseline]
        self._cursor = 0
        self.clear_range_selection()
        self._swap_first = None
        return self.items
