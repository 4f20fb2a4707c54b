"""Shopping item helpers: status cycling and item -> block -> cell matching."""

from __future__ import annotations

import re
from typing import Sequence

from .models import Block, NumberCell, PurchaseStatus, ShoppingItem

ITEM_NUMBER_PATTERN = re.compile(r"^\s*(\d+)")

# Fixed cycle used by the status tap / swipe gestures
STATUS_CYCLE = [
    PurchaseStatus.NONE,
    PurchaseStatus.PURCHASED,
    PurchaseStatus.SOLD_OUT,
    PurchaseStatus.ABSENT,
    PurchaseStatus.POSTPONE,
    PurchaseStatus.LATE,
]


def next_status(status: PurchaseStatus) -> PurchaseStatus:
    i = STATUS_CYCLE.index(status)
    return STATUS_CYCLE[(i + 1) % len(STATUS_CYCLE)]


def previous_status(status: PurchaseStatus) -> PurchaseStatus:
    i = STATUS_CYCLE.index(status)
    return STATUS_CYCLE[(i - 1) % len(STATUS_CYCLE)]


def extract_item_number(number: str | None) -> int | None:
    """Leading digits of an item number: "26a" -> 26, "26b1" -> 26."""
    if not number:
        return None
    m = ITEM_NUMBER_PATTERN.match(number)
    return int(m.group(1)) if m else None


def resolve_block(name: str | None, blocks: Sequence[Block]) -> Block | None:
    """Exact name match, else a unique case-insensitive match."""
    clean = (name or "").strip()
    if not clean:
        return None
    for b in blocks:
        if b.name == clean:
            return b
    candidates = [b for b in blocks if b.name.lower() == clean.lower()]
    if len(candidates) == 1:
        return candidates[0]
    return None


def match_item_to_cell(
    item: ShoppingItem,
    blocks: Sequence[Block],
    event_date: str | None = None,
) -> tuple[Block, NumberCell] | None:
    """The block and number cell an item sits at, if it can be resolved."""
    if event_date is not None and item.event_date != event_date:
        return None
    block = resolve_block(item.block, blocks)
    if block is None:
        return None
    num = extract_item_number(item.number)
    if num is None:
        return None
    cell = block.number_cell(num)
    if cell is None:
        return None
    return block, cell
