"""
Placement validation for multi-cell items.

Items occupy a square footprint anchored at their top-left cell. A position
is legal when the whole footprint is on the grid, every footprint cell is
unlocked and no other item covers any of those cells. Validation runs on
every pointer move during a drag, so failures are plain return values and
each check is O(size^2 + placements).

The collection helpers never modify the list they are given; they return
a new list alongside the validation outcome so the owner of the grid state
decides when to swap it in.
"""

import itertools
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import AbstractSet, Callable, Iterable, List, Optional, Sequence, Tuple

import structlog

from .grid import GRID_SIZE, Coord, footprint_cells

logger = structlog.get_logger()


class PlacementErrorKind(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    LOCKED_CELL = "locked_cell"
    OVERLAP = "overlap"
    NOT_FOUND = "not_found"


MESSAGES = {
    PlacementErrorKind.OUT_OF_BOUNDS: "Placement would be outside the grid",
    PlacementErrorKind.LOCKED_CELL: "Placement requires unlocked cells",
    PlacementErrorKind.OVERLAP: "Position is occupied by another placement",
    PlacementErrorKind.NOT_FOUND: "Placement not found",
}


@dataclass(frozen=True)
class Placement:
    """An item placed on the grid."""
    id: str
    item_type: str
    position: Coord
    size: int = 1

    @property
    def cells(self) -> List[Coord]:
        return footprint_cells(self.position, self.size)

    def covers(self, cell: Coord) -> bool:
        row, col = self.position
        return row <= cell[0] < row + self.size and col <= cell[1] < col + self.size


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[PlacementErrorKind] = None

    @property
    def message(self) -> Optional[str]:
        return MESSAGES[self.reason] if self.reason else None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return _OK

    @classmethod
    def fail(cls, reason: PlacementErrorKind) -> "ValidationResult":
        return cls(valid=False, reason=reason)

    def __bool__(self) -> bool:
        return self.valid


_OK = ValidationResult(valid=True)

_id_counter = itertools.count(1)


def generate_placement_id(prefix: str = "placement") -> str:
    """Unique id of the form ``<prefix>-<millis>-<counter>``."""
    return f"{prefix}-{int(time.time() * 1000)}-{next(_id_counter)}"


def squares_overlap(pos_a: Coord, size_a: int, pos_b: Coord, size_b: int) -> bool:
    return not (
        pos_a[0] + size_a <= pos_b[0]
        or pos_b[0] + size_b <= pos_a[0]
        or pos_a[1] + size_a <= pos_b[1]
        or pos_b[1] + size_b <= pos_a[1]
    )


def placements_overlap(a: Placement, b: Placement) -> bool:
    return squares_overlap(a.position, a.size, b.position, b.size)


def find_overlapping_placements(
    position: Coord,
    size: int,
    placements: Iterable[Placement],
    exclude_id: Optional[str] = None,
) -> List[Placement]:
    """All placements (except ``exclude_id``) whose footprint meets the given square."""
    return [
        p for p in placements
        if p.id != exclude_id and squares_overlap(position, size, p.position, p.size)
    ]


def placement_at_cell(cell: Coord, placements: Iterable[Placement]) -> Optional[Placement]:
    for placement in placements:
        if placement.covers(cell):
            return placement
    return None


def validate_placement(
    position: Coord,
    size: int,
    unlocked: AbstractSet[Coord],
    placements: Iterable[Placement] = (),
    exclude_id: Optional[str] = None,
    grid_size: int = GRID_SIZE,
) -> ValidationResult:
    """
    Check whether an item of ``size`` may sit at ``position``.

    Checks run in order and stop at the first failure:
    1. bounds - the footprint lies inside the grid
    2. unlock coverage - every footprint cell is unlocked
    3. overlap - no other placement covers a footprint cell; the placement
       whose id is ``exclude_id`` is ignored so a moved item does not
       collide with itself

    Args:
        position: Top-left anchor (row, col)
        size: Footprint edge length
        unlocked: Unlocked cells
        placements: Existing placements
        exclude_id: Id of the placement being moved, if any
        grid_size: Grid dimension

    Returns:
        ValidationResult; never raises for an illegal position
    """
    if size < 1:
        raise ValueError(f"Placement size must be at least 1, got {size}")

    row, col = position
    if row < 0 or col < 0 or row + size > grid_size or col + size > grid_size:
        return ValidationResult.fail(PlacementErrorKind.OUT_OF_BOUNDS)

    for cell in footprint_cells(position, size):
        if cell not in unlocked:
            return ValidationResult.fail(PlacementErrorKind.LOCKED_CELL)

    for placement in placements:
        if placement.id == exclude_id:
            continue
        if squares_overlap(position, size, placement.position, placement.size):
            return ValidationResult.fail(PlacementErrorKind.OVERLAP)

    return ValidationResult.ok()


def find_nearest_valid_position(
    target: Coord,
    size: int,
    is_valid: Callable[[Coord, int], ValidationResult],
    grid_size: int = GRID_SIZE,
) -> Optional[Coord]:
    """
    Snap a placement to the closest legal anchor.

    Tries ``target`` first, then walks the perimeter of ever larger squares
    around it (row-major within a ring) until ``is_valid`` accepts one.

    Returns:
        The first valid anchor found, or ``None`` if there is none
    """
    if is_valid(target, size).valid:
        return target

    for radius in range(1, grid_size + 1):
        for dr in range(-radius, radius + 1):
            for dc in range(-radius, radius + 1):
                if abs(dr) != radius and abs(dc) != radius:
                    continue
                row, col = target[0] + dr, target[1] + dc
                if row < 0 or col < 0 or row + size > grid_size or col + size > grid_size:
                    continue
                if is_valid((row, col), size).valid:
                    return row, col
    return None


def add_placement(
    placements: Sequence[Placement],
    item_type: str,
    position: Coord,
    size: int,
    unlocked: AbstractSet[Coord],
    grid_size: int = GRID_SIZE,
) -> Tuple[List[Placement], ValidationResult]:
    """Validate and append a new placement; the input list is left alone."""
    result = validate_placement(position, size, unlocked, placements, grid_size=grid_size)
    if not result.valid:
        return list(placements), result
    placement = Placement(
        id=generate_placement_id(), item_type=item_type, position=tuple(position), size=size
    )
    return list(placements) + [placement], result


def move_placement(
    placements: Sequence[Placement],
    placement_id: str,
    position: Coord,
    unlocked: AbstractSet[Coord],
    grid_size: int = GRID_SIZE,
) -> Tuple[List[Placement], ValidationResult]:
    """Validate a move with the moved placement excluded, then apply it."""
    target = next((p for p in placements if p.id == placement_id), None)
    if target is None:
        return list(placements), ValidationResult.fail(PlacementErrorKind.NOT_FOUND)

    result = validate_placement(
        position, target.size, unlocked, placements, exclude_id=placement_id, grid_size=grid_size
    )
    if not result.valid:
        return list(placements), result

    moved = replace(target, position=tuple(position))
    return [moved if p.id == placement_id else p for p in placements], result


def remove_placement(placements: Sequence[Placement], placement_id: str) -> List[Placement]:
    return [p for p in placements if p.id != placement_id]


def prune_invalid_placements(
    placements: Sequence[Placement], unlocked: AbstractSet[Coord]
) -> Tuple[List[Placement], List[Placement]]:
    """
    Split placements after the unlocked area shrank.

    Returns:
        (kept, removed) where removed holds every placement with a footprint
        cell that is no longer unlocked
    """
    kept, removed = [], []
    for placement in placements:
        if all(cell in unlocked for cell in placement.cells):
            kept.append(placement)
        else:
            removed.append(placement)
    if removed:
        logger.info("Removed placements on locked cells",
                    removed=[p.id for p in removed])
    return kept, removed


class DragSession:
    """
    Validation state for dragging an existing placement.

    Every hover re-validates against the current placement list with the
    dragged item excluded. Nothing is committed until ``commit``, which
    validates once more against the list it is given so a stale hover
    result can never be applied.
    """

    def __init__(self, placement: Placement, grid_size: int = GRID_SIZE):
        self.placement = placement
        self.grid_size = grid_size
        self.last_position: Optional[Coord] = None
        self.last_result: Optional[ValidationResult] = None

    def hover(
        self,
        position: Coord,
        placements: Iterable[Placement],
        unlocked: AbstractSet[Coord],
    ) -> ValidationResult:
        self.last_position = tuple(position)
        self.last_result = validate_placement(
            position,
            self.placement.size,
            unlocked,
            placements,
            exclude_id=self.placement.id,
            grid_size=self.grid_size,
        )
        return self.last_result

    def commit(
        self,
        position: Coord,
        placements: Sequence[Placement],
        unlocked: AbstractSet[Coord],
    ) -> Tuple[List[Placement], ValidationResult]:
        return move_placement(
            placements, self.placement.id, position, unlocked, grid_size=self.grid_size
        )
