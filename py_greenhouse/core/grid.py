"""
Greenhouse grid coordinate model.

The grid is a fixed N x N square addressed by (row, col) with the origin in
the top-left corner and rows growing downwards. It has no stored state of
its own: every function here works on plain sets of coordinates and returns
new values, so the caller keeps ownership of its collections.

Two adjacency notions are used:
- 4-way (edges only) decides which locked cells may be unlocked next
- 8-way (edges and corners) is what mutation requirements are scored on
"""

from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

GRID_SIZE = 10

Coord = Tuple[int, int]

DIRECTIONS_4: Tuple[Coord, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
DIRECTIONS_8: Tuple[Coord, ...] = (
    (-1, 0), (-1, 1), (0, 1), (1, 1),
    (1, 0), (1, -1), (0, -1), (-1, -1),
)


class CellNotUnlockable(ValueError):
    """Raised when a cell is unlocked without touching the unlocked area."""

    def __init__(self, cell: Coord):
        self.cell = cell
        super().__init__(
            f"Cell {cell_key(cell)} is not adjacent to an unlocked cell"
        )


class CellOffset(NamedTuple):
    """A grid cell plus the cursor position inside it (0-1 on each axis)."""
    cell: Coord
    offset_x: float
    offset_y: float


def cell_key(cell: Coord) -> str:
    """Format a cell as the ``"row,col"`` key used by the web client."""
    return f"{cell[0]},{cell[1]}"


def parse_cell_key(key: str) -> Coord:
    """Parse a ``"row,col"`` key back into a coordinate tuple."""
    row, col = key.split(",")
    return int(row), int(col)


def in_bounds(cell: Coord, grid_size: int = GRID_SIZE) -> bool:
    row, col = cell
    return 0 <= row < grid_size and 0 <= col < grid_size


def is_adjacent(a: Coord, b: Coord) -> bool:
    """
    Check 4-directional adjacency.

    True iff the cells differ by exactly one step along exactly one axis,
    so diagonal neighbours and identical cells are not adjacent.
    """
    return abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1


def neighbors(
    cell: Coord, grid_size: Optional[int] = None, diagonal: bool = False
) -> List[Coord]:
    """
    List the neighbours of a cell.

    Args:
        cell: Cell to inspect
        grid_size: Clip neighbours to this grid; ``None`` keeps them all
        diagonal: Use 8-way instead of 4-way adjacency

    Returns:
        Neighbour coordinates in direction order
    """
    row, col = cell
    result = []
    for dr, dc in DIRECTIONS_8 if diagonal else DIRECTIONS_4:
        candidate = (row + dr, col + dc)
        if grid_size is None or in_bounds(candidate, grid_size):
            result.append(candidate)
    return result


def is_adjacent_to_unlocked(cell: Coord, unlocked: Iterable[Coord]) -> bool:
    unlocked = unlocked if isinstance(unlocked, (set, frozenset)) else set(unlocked)
    return any(n in unlocked for n in neighbors(cell))


def footprint_cells(position: Coord, size: int) -> List[Coord]:
    """
    Enumerate the size x size cells covered by an item anchored at position.

    The footprint extends right and down from the top-left anchor and is
    returned in row-major order.
    """
    row, col = position
    return [(row + dr, col + dc) for dr in range(size) for dc in range(size)]


def pixel_position(row: int, col: int, cell_size: float, gap: float) -> Tuple[float, float]:
    """Map a grid cell to its (top, left) rendering offset."""
    unit = cell_size + gap
    return row * unit, col * unit


def grid_dimensions(cell_size: float, gap: float, grid_size: int = GRID_SIZE) -> Tuple[float, float]:
    """Total (width, height) of the rendered grid."""
    extent = grid_size * cell_size + (grid_size - 1) * gap
    return extent, extent


def cell_at_pixel(
    x: float,
    y: float,
    cell_size: float,
    gap: float,
    grid_size: int = GRID_SIZE,
    clamp: bool = False,
) -> Optional[CellOffset]:
    """
    Convert a position relative to the grid's top-left corner into a cell.

    Args:
        x: Horizontal offset in pixels
        y: Vertical offset in pixels
        cell_size: Rendered cell size
        gap: Gap between cells
        grid_size: Grid dimension
        clamp: Snap positions outside the grid to the nearest edge cell
            instead of returning ``None`` (document-level drag events)

    Returns:
        The cell and the cursor offset inside it, or ``None`` when outside
    """
    unit = cell_size + gap
    col = int(np.floor(x / unit))
    row = int(np.floor(y / unit))

    if clamp:
        row = min(max(row, 0), grid_size - 1)
        col = min(max(col, 0), grid_size - 1)
    elif not in_bounds((row, col), grid_size):
        return None

    offset_x = min(1.0, max(0.0, (x - col * unit) / cell_size))
    offset_y = min(1.0, max(0.0, (y - row * unit) / cell_size))
    return CellOffset((row, col), offset_x, offset_y)


def anchor_for_cursor(
    cursor_cell: Coord,
    offset_x: float,
    offset_y: float,
    size: int,
    grid_size: int = GRID_SIZE,
) -> Coord:
    """
    Pick the top-left anchor of a footprint being placed under the cursor.

    - 1x1: the cell under the cursor
    - 2x2: the quadrant under the cursor decides which corner the cell
      becomes (top-left quadrant makes it the bottom-right cell)
    - 3x3 and larger: centred on the cursor cell

    The anchor is clamped so the whole footprint stays on the grid.
    """
    if size == 1:
        return cursor_cell

    if size == 2:
        row = cursor_cell[0] - 1 if offset_y < 0.5 else cursor_cell[0]
        col = cursor_cell[1] - 1 if offset_x < 0.5 else cursor_cell[1]
    else:
        half = size // 2
        row = cursor_cell[0] - half
        col = cursor_cell[1] - half

    row = max(0, min(grid_size - size, row))
    col = max(0, min(grid_size - size, col))
    return row, col


def all_cells(grid_size: int = GRID_SIZE) -> List[Coord]:
    return [(r, c) for r in range(grid_size) for c in range(grid_size)]


def locked_cells(unlocked: Iterable[Coord], grid_size: int = GRID_SIZE) -> List[Coord]:
    """Every cell not in ``unlocked``, row-major."""
    unlocked = set(unlocked)
    return [cell for cell in all_cells(grid_size) if cell not in unlocked]


def expandable_cells(unlocked: Iterable[Coord], grid_size: int = GRID_SIZE) -> FrozenSet[Coord]:
    """Locked in-bounds cells that touch the unlocked area along an edge."""
    unlocked = set(unlocked)
    expandable = set()
    for cell in unlocked:
        for n in neighbors(cell, grid_size):
            if n not in unlocked:
                expandable.add(n)
    return frozenset(expandable)


def default_unlocked_cells(grid_size: int = GRID_SIZE) -> FrozenSet[Coord]:
    """
    Starting layout of a fresh greenhouse.

    A 4x4 block centred on the grid with its four corners removed, which
    leaves 12 unlocked cells on the standard 10x10 grid.
    """
    start = (grid_size - 4) // 2
    corners = {(0, 0), (0, 3), (3, 0), (3, 3)}
    return frozenset(
        (start + r, start + c)
        for r in range(4)
        for c in range(4)
        if (r, c) not in corners
    )


def can_unlock(cell: Coord, unlocked: Iterable[Coord], grid_size: int = GRID_SIZE) -> bool:
    """
    Check the growth rule for a single unlock.

    The first cell of an empty grid is a free seed; after that a cell needs
    an unlocked edge neighbour. Cells already unlocked or off the grid can
    never be unlocked.
    """
    unlocked = set(unlocked)
    if not in_bounds(cell, grid_size) or cell in unlocked:
        return False
    if not unlocked:
        return True
    return is_adjacent_to_unlocked(cell, unlocked)


def unlock_cell(
    unlocked: Iterable[Coord], cell: Coord, grid_size: int = GRID_SIZE
) -> FrozenSet[Coord]:
    """Return a new unlocked set with ``cell`` added, enforcing the growth rule."""
    current = frozenset(unlocked)
    if cell in current:
        return current
    if not can_unlock(cell, current, grid_size):
        raise CellNotUnlockable(cell)
    return current | {cell}


def lock_cell(unlocked: Iterable[Coord], cell: Coord) -> FrozenSet[Coord]:
    """Return a new unlocked set without ``cell``."""
    return frozenset(unlocked) - {cell}


def cells_to_mask(
    cells: Iterable[Coord],
    grid_size: int = GRID_SIZE,
    origin: Coord = (0, 0),
    shape: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Build a boolean occupancy mask for a set of cells.

    Args:
        cells: Cells to mark
        grid_size: Grid dimension, the default mask shape
        origin: Cell that maps to mask index (0, 0)
        shape: Mask shape when only a window of the grid is needed

    Returns:
        Boolean array; cells falling outside the mask are ignored
    """
    height, width = shape or (grid_size, grid_size)
    mask = np.zeros((height, width), dtype=bool)
    for row, col in cells:
        r, c = row - origin[0], col - origin[1]
        if 0 <= r < height and 0 <= c < width:
            mask[r, c] = True
    return mask


def row_major(cells: Iterable[Coord]) -> List[Coord]:
    """Sort cells top-to-bottom, left-to-right."""
    return sorted(cells)
