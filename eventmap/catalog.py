"""Block and hall catalogs: validation and replace-or-abort on duplicate names.

A replace decision is passed in as ``confirm_replace(name) -> bool``. With
no callback a duplicate raises ``DuplicateNameError`` so the caller can ask
the user and retry.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Sequence

from .blocks import block_color, recompute_number_cells
from .errors import DuplicateNameError, MapValidationError
from .grid import GridIndex
from .models import Block, Hall, PointLike
from .polygon import MAX_HALL_VERTICES, MIN_HALL_VERTICES

logger = logging.getLogger(__name__)

HALL_COLORS = [
    "#FFE0B2", "#FFCCBC", "#D7CCC8", "#CFD8DC", "#B2DFDB",
    "#C8E6C9", "#DCEDC8", "#F0F4C3", "#FFF9C4", "#FFECB3",
    "#E1BEE7", "#D1C4E9",
]

ConfirmReplace = Callable[[str], bool]


def hall_color(index: int) -> str:
    return HALL_COLORS[index % len(HALL_COLORS)]


def validate_block(block: Block) -> None:
    if not block.name.strip():
        raise MapValidationError("Block name is required")
    if block.cell_groups:
        if not any(g.extent() for g in block.cell_groups):
            raise MapValidationError(f"Block '{block.name}' has no geometry")
    elif block.start_row < 1 or block.start_col < 1 or block.end_row < 1 or block.end_col < 1:
        raise MapValidationError(f"Block '{block.name}' has no geometry")


def validate_hall(hall: Hall) -> None:
    if not hall.name.strip():
        raise MapValidationError("Hall name is required")
    n = len(hall.vertices)
    if not MIN_HALL_VERTICES <= n <= MAX_HALL_VERTICES:
        raise MapValidationError(
            f"A hall needs {MIN_HALL_VERTICES}-{MAX_HALL_VERTICES} vertices, got {n}"
        )


def _resolve_duplicate(kind: str, name: str, confirm_replace: ConfirmReplace | None) -> bool:
    if confirm_replace is None:
        raise DuplicateNameError(kind, name)
    return bool(confirm_replace(name))


class BlockCatalog:
    """Ordered block definitions for one map sheet."""

    def __init__(self, blocks: Sequence[Block] = ()):
        self._blocks: list[Block] = list(blocks)

    @property
    def blocks(self) -> list[Block]:
        return list(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def get(self, name: str) -> Block | None:
        clean = name.strip()
        return next((b for b in self._blocks if b.name == clean), None)

    def next_color(self) -> str:
        return block_color(len(self._blocks))

    def add(self, block: Block, confirm_replace: ConfirmReplace | None = None) -> bool:
        """Add a new block. Returns False when the user declines a replace."""
        block = block.model_copy(update={"name": block.name.strip()})
        validate_block(block)
        if self.get(block.name) is not None:
            if not _resolve_duplicate("Block", block.name, confirm_replace):
                return False
            self._blocks = [b for b in self._blocks if b.name != block.name]
            logger.info("Replacing block %r", block.name)
        self._blocks.append(block)
        return True

    def update(self, name: str, block: Block) -> Block:
        """Save an edited block in place of ``name``."""
        block = block.model_copy(update={"name": block.name.strip()})
        validate_block(block)
        if block.name != name and self.get(block.name) is not None:
            raise DuplicateNameError("Block", block.name)
        for i, b in enumerate(self._blocks):
            if b.name == name:
                self._blocks[i] = block
                return block
        raise MapValidationError(f"No block named '{name}'")

    def remove(self, name: str) -> bool:
        before = len(self._blocks)
        self._blocks = [b for b in self._blocks if b.name != name]
        return len(self._blocks) < before

    def clear(self) -> None:
        self._blocks = []

    def recompute(self, index: GridIndex) -> list[Block]:
        """Rebuild every block's number cells against a freshly loaded grid."""
        self._blocks = [recompute_number_cells(b, index) for b in self._blocks]
        return self.blocks


class HallCatalog:
    """Ordered hall polygons; definition order decides classification ties."""

    def __init__(self, halls: Sequence[Hall] = ()):
        self._halls: list[Hall] = list(halls)

    @property
    def halls(self) -> list[Hall]:
        return list(self._halls)

    def __len__(self) -> int:
        return len(self._halls)

    def get(self, hall_id: str) -> Hall | None:
        return next((h for h in self._halls if h.id == hall_id), None)

    def find_by_name(self, name: str) -> Hall | None:
        clean = name.strip()
        return next((h for h in self._halls if h.name == clean), None)

    def create(
        self,
        name: str,
        vertices: Sequence[PointLike],
        color: str | None = None,
        hall_id: str | None = None,
        confirm_replace: ConfirmReplace | None = None,
    ) -> Hall | None:
        """Define a new hall. Returns None when the user declines a replace."""
        hall = Hall(
            id=hall_id or f"hall-{uuid.uuid4().hex[:12]}",
            name=name.strip(),
            vertices=list(vertices),
            color=color or hall_color(len(self._halls)),
        )
        validate_hall(hall)
        if self.find_by_name(hall.name) is not None:
            if not _resolve_duplicate("Hall", hall.name, confirm_replace):
                return None
            self._halls = [h for h in self._halls if h.name != hall.name]
            logger.info("Replacing hall %r", hall.name)
        self._halls.append(hall)
        return hall

    def update(self, hall: Hall) -> Hall:
        hall = hall.model_copy(update={"name": hall.name.strip()})
        validate_hall(hall)
        other = self.find_by_name(hall.name)
        if other is not None and other.id != hall.id:
            raise DuplicateNameError("Hall", hall.name)
        for i, h in enumerate(self._halls):
            if h.id == hall.id:
                self._halls[i] = hall
                return hall
        raise MapValidationError(f"No hall with id '{hall.id}'")

    def remove(self, hall_id: str) -> bool:
        before = len(self._halls)
        self._halls = [h for h in self._halls if h.id != hall_id]
        return len(self._halls) < before

    def clear(self) -> None:
        self._halls = []
