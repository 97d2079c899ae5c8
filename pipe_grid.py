"""
Playing grid: cells, neighbour lookup and random generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from random import Random
from typing import Iterator

from pipe_types import CellPosition, Direction, TileType

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class GridCell:
    """
    One grid position holding a tile type and its connection state.

    open_connections is the subset of the tile type's connections that water
    has not yet used. locked is set once the water commits to entering the
    cell, after which the player can no longer replace it.
    """

    x: int
    y: int
    tile_type: TileType = TileType.EMPTY
    open_connections: set[Direction] = field(default_factory=set)
    locked: bool = False

    @property
    def position(self) -> CellPosition:
        return CellPosition(self.x, self.y)

    def can_connect_to(self, direction: Direction) -> bool:
        """Check whether water may still pass through the given side."""
        return direction in self.open_connections


# Direction deltas: (x_delta, y_delta)
_DELTAS = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}


class Grid:
    """A fixed-size rectangular array of grid cells, indexed [y][x]."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.cells: list[list[GridCell]] = [
            [GridCell(x, y) for x in range(width)] for y in range(height)
        ]

    def __iter__(self) -> Iterator[GridCell]:
        """Iterate over all cells in row-major order."""
        for row in self.cells:
            yield from row

    def in_bounds(self, position: CellPosition) -> bool:
        return 0 <= position.x < self.width and 0 <= position.y < self.height

    def get_cell(self, position: CellPosition) -> GridCell:
        """
        Get the cell at a given position.

        Raises:
            IndexError: If the position lies outside the grid
        """
        if not self.in_bounds(position):
            raise IndexError(
                f"Position ({position.x}, {position.y}) outside {self.width}x{self.height} grid"
            )
        return self.cells[position.y][position.x]

    def get_neighbor(self, cell: GridCell, direction: Direction) -> GridCell | None:
        """Get the adjacent cell in a direction, or None at the grid edge."""
        dx, dy = _DELTAS[direction]
        x, y = cell.x + dx, cell.y + dy
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.cells[y][x]
        return None

    def set_type(self, cell: GridCell, tile_type: TileType) -> None:
        """Replace a cell's type and reopen all of the new type's connections."""
        cell.tile_type = tile_type
        cell.open_connections = set(tile_type.connections)

    def close_connection(self, cell: GridCell, direction: Direction) -> None:
        """Forbid further water passage through one side of a cell."""
        cell.open_connections.discard(direction)

    @property
    def start_cell(self) -> GridCell:
        """The cell holding the Start tile."""
        for cell in self:
            if cell.tile_type is TileType.START:
                return cell
        raise ValueError("Grid has no start cell")


def generate_grid(width: int, height: int, max_blocked: int, rng: Random) -> Grid:
    """
    Build a grid with one random start cell and up to max_blocked blocked cells.

    The start cell is never placed on the bottom row, so it always has a cell
    below it to flow into. Each of the max_blocked attempts picks a random
    cell and blocks it unless it is the start cell, sits on the top row, or
    sits directly below the start cell. Rejected attempts are not retried, so
    fewer than max_blocked cells may end up blocked.

    Args:
        width: Number of cells per row
        height: Number of cells per column (at least 2)
        max_blocked: Number of blocking attempts
        rng: Random source

    Returns:
        The generated Grid
    """
    if height < 2:
        raise ValueError(f"Grid height must be at least 2 to leave room below the start, got {height}")

    grid = Grid(width, height)

    start = grid.cells[rng.randrange(height - 1)][rng.randrange(width)]
    grid.set_type(start, TileType.START)

    blocked = 0
    for _ in range(max_blocked):
        cell = grid.cells[rng.randrange(height)][rng.randrange(width)]
        if cell is start:
            continue
        up = grid.get_neighbor(cell, Direction.UP)
        if up is None or up is start:
            continue
        if cell.tile_type is not TileType.BLOCKED:
            blocked += 1
        grid.set_type(cell, TileType.BLOCKED)

    logger.debug(
        "generate_grid: %dx%d, start=(%d, %d), blocked=%d of %d attempts",
        width,
        height,
        start.x,
        start.y,
        blocked,
        max_blocked,
    )
    return grid
