"""
Grid layout parsing utilities for pipeflow.

Layouts use one glyph per cell with rows separated by |, for example:

    "_S_|_I_|_L-"

builds a 3x3 grid (rows padded with Empty cells) whose start at (1, 0)
drains into a vertical pipe and then a curve turning right.
"""

from __future__ import annotations

from pipe_grid import Grid
from pipe_types import TILE_CATALOG, TileType

__all__ = ["parse_grid", "format_grid"]


def parse_grid(layout: str) -> Grid:
    """
    Parse a grid from the concise layout format.

    Format:
    - Rows separated by |
    - One character per cell (no separators), leading/trailing whitespace ignored
    - Cell glyphs:
      * S: Start (exactly one required)
      * #: Blocked
      * _: Empty
      * +: Cross
      * - / I: Straight horizontal / vertical
      * J / L / 7 / F: Curved up-left / up-right / down-left / down-right
    - Short rows are padded with Empty cells to the longest row

    Args:
        layout: Layout string

    Returns:
        Grid with every cell's open connections set from its type

    Raises:
        ValueError: On unknown glyphs, an empty layout, or not exactly one start
    """
    row_strings = [row.strip() for row in layout.strip().split("|")]
    if not any(row_strings):
        raise ValueError("Empty grid layout")

    rows: list[list[TileType]] = []

    for row_idx, row_str in enumerate(row_strings):
        row: list[TileType] = []
        for col_idx, char in enumerate(row_str):
            try:
                row.append(TileType.from_glyph(char))
            except ValueError as exc:
                valid = " ".join(spec.glyph for spec in TILE_CATALOG.values())
                raise ValueError(
                    f"Invalid character '{char}' in grid layout\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid characters: {valid}"
                ) from exc
        rows.append(row)

    starts = [
        (x, y)
        for y, row in enumerate(rows)
        for x, tile_type in enumerate(row)
        if tile_type is TileType.START
    ]
    if len(starts) != 1:
        raise ValueError(
            f"Grid layout must contain exactly one start cell 'S', found {len(starts)}\n"
            f"  Layout: \"{layout.strip()}\""
        )

    width = max(len(row) for row in rows)
    grid = Grid(width, len(rows))
    for y, row in enumerate(rows):
        for x, tile_type in enumerate(row):
            grid.set_type(grid.cells[y][x], tile_type)
    return grid


def format_grid(grid: Grid) -> str:
    """Format a grid's tile types back into the concise layout format."""
    return "|".join(
        "".join(cell.tile_type.glyph for cell in row) for row in grid.cells
    )
