"""
ASCII rendering for pipeflow sessions.

Draws a SessionSnapshot as a bordered character grid, one glyph per cell,
with water-filled cells coloured and the player's cursor highlighted.
"""

from __future__ import annotations

from typing import Callable

from simple_chalk import chalk  # type: ignore[import-untyped]

from pipe_types import CellPosition, Direction, TileType
from pipeflow import CellSnapshot, SessionSnapshot

Colorizer = Callable[[str], str]

TILE_GLYPHS: dict[TileType, str] = {
    TileType.START: "S",
    TileType.BLOCKED: "▓",
    TileType.EMPTY: "·",
    TileType.CROSS: "╋",
    TileType.STRAIGHT_H: "━",
    TileType.STRAIGHT_V: "┃",
    TileType.CURVED_UL: "┛",
    TileType.CURVED_UR: "┗",
    TileType.CURVED_DL: "┓",
    TileType.CURVED_DR: "┏",
}


def cell_text(cell: CellSnapshot, cell_width: int = 3) -> str:
    """
    Render one cell as cell_width characters without colour.

    Padding on either side of the glyph continues the pipe when the tile
    connects left or right, so neighbouring pipes join up visually.
    """
    glyph = TILE_GLYPHS[cell.tile_type]
    if cell_width == 1:
        return glyph
    left_pad = (cell_width - 1) // 2
    right_pad = cell_width - 1 - left_pad
    connections = cell.tile_type.connections
    left = ("━" if Direction.LEFT in connections else " ") * left_pad
    right = ("━" if Direction.RIGHT in connections else " ") * right_pad
    return left + glyph + right


def _cell_colorizer(cell: CellSnapshot, is_head: bool) -> Colorizer:
    if cell.tile_type is TileType.BLOCKED:
        return chalk.red
    if cell.tile_type is TileType.START or is_head:
        return chalk.cyan
    if cell.water_center:
        return chalk.blueBright
    if cell.water_sides:
        return chalk.blue
    if cell.locked:
        return chalk.yellow
    return chalk.white


def render_grid(
    snapshot: SessionSnapshot,
    cursor: CellPosition | None = None,
    cell_width: int = 3,
    colour: bool = True,
) -> list[str]:
    """
    Render the grid as bordered lines.

    Args:
        snapshot: Session to draw
        cursor: Optional position to highlight
        cell_width: Characters per cell (default 3)
        colour: Apply ANSI colours; plain text when False

    Returns:
        List of strings, one per line
    """
    inner_width = snapshot.width * cell_width
    lines = ["┌" + "─" * inner_width + "┐"]

    for row in snapshot.cells:
        parts = ["│"]
        for cell in row:
            content = cell_text(cell, cell_width)
            if colour:
                if cursor is not None and cell.position == cursor:
                    content = chalk.bgWhite.black(content)
                else:
                    content = _cell_colorizer(cell, cell.position == snapshot.head)(content)
            elif cursor is not None and cell.position == cursor:
                # Brackets stand in for the highlight
                content = "[" + content[1:-1] + "]" if cell_width >= 3 else content
            parts.append(content)
        parts.append("│")
        lines.append("".join(parts))

    lines.append("└" + "─" * inner_width + "┘")
    return lines


def render_queue(snapshot: SessionSnapshot, colour: bool = True) -> str:
    """Render the upcoming pipes, next one first."""
    glyphs = [TILE_GLYPHS[tile_type] for tile_type in snapshot.queue]
    head = chalk.bgWhite.black(f" {glyphs[0]} ") if colour else f"[{glyphs[0]}]"
    return "Next: " + head + " " + " ".join(glyphs[1:])


def status_line(snapshot: SessionSnapshot) -> str:
    """Goal, progress and flow status as a single line of text."""
    parts = [f"Goal: {snapshot.goal_length}", f"Length: {snapshot.path_length}"]
    if snapshot.won:
        parts.append("You Win!")
    elif snapshot.lost:
        parts.append("You Lose!")
    elif snapshot.init_countdown_ms > 0:
        parts.append(f"Water in: {snapshot.init_countdown_ms / 1000:.2f}")
    else:
        parts.append("Water flowing!")
    return "  ".join(parts)


def render_session(
    snapshot: SessionSnapshot,
    cursor: CellPosition | None = None,
    colour: bool = True,
) -> str:
    """Render grid, queue and status as one block of text."""
    lines = render_grid(snapshot, cursor, colour=colour)
    lines.append(render_queue(snapshot, colour=colour))
    lines.append(status_line(snapshot))
    return "\n".join(lines)
