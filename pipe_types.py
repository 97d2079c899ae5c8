"""
Shared type definitions for the pipeflow system.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from random import Random


class Direction(Enum):
    """Cardinal direction between neighbouring cells.

    Definition order (UP, RIGHT, DOWN, LEFT) is the order in which the water
    flow considers candidate exits.
    """

    UP = "up"  # Decreasing y
    RIGHT = "right"  # Increasing x
    DOWN = "down"  # Increasing y
    LEFT = "left"  # Decreasing x


_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.RIGHT: Direction.LEFT,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
}


def opposite(direction: Direction) -> Direction:
    """Return the direction pointing the other way."""
    return _OPPOSITES[direction]


@dataclass(frozen=True)
class CellPosition:
    """A position within the grid."""

    x: int  # Column
    y: int  # Row


# =============================================================================
# Tile-Type Catalog
# =============================================================================


@dataclass(frozen=True)
class TileSpec:
    """Fixed per-type data for a tile type."""

    connections: frozenset[Direction]
    angle: int  # Sprite rotation in degrees
    replaceable: bool
    glyph: str  # Layout character used by grid_parser


class TileType(Enum):
    """Closed set of tile types a grid cell can hold."""

    START = "start"
    BLOCKED = "blocked"
    EMPTY = "empty"
    CROSS = "cross"
    STRAIGHT_H = "straight_h"
    STRAIGHT_V = "straight_v"
    CURVED_UL = "curved_ul"
    CURVED_UR = "curved_ur"
    CURVED_DL = "curved_dl"
    CURVED_DR = "curved_dr"

    @property
    def connections(self) -> frozenset[Direction]:
        return TILE_CATALOG[self].connections

    @property
    def angle(self) -> int:
        return TILE_CATALOG[self].angle

    @property
    def replaceable(self) -> bool:
        return TILE_CATALOG[self].replaceable

    @property
    def glyph(self) -> str:
        return TILE_CATALOG[self].glyph

    @classmethod
    def from_glyph(cls, glyph: str) -> TileType:
        """Look up a tile type by its layout character."""
        for tile_type, spec in TILE_CATALOG.items():
            if spec.glyph == glyph:
                return tile_type
        valid = ", ".join(repr(spec.glyph) for spec in TILE_CATALOG.values())
        raise ValueError(f"Unknown tile glyph: {glyph!r} (valid glyphs: {valid})")


_U, _R, _D, _L = Direction.UP, Direction.RIGHT, Direction.DOWN, Direction.LEFT

TILE_CATALOG: dict[TileType, TileSpec] = {
    TileType.START: TileSpec(frozenset({_D}), 0, False, "S"),
    TileType.BLOCKED: TileSpec(frozenset(), 0, False, "#"),
    TileType.EMPTY: TileSpec(frozenset(), 0, True, "_"),
    TileType.CROSS: TileSpec(frozenset({_U, _R, _D, _L}), 0, True, "+"),
    TileType.STRAIGHT_H: TileSpec(frozenset({_L, _R}), 0, True, "-"),
    TileType.STRAIGHT_V: TileSpec(frozenset({_U, _D}), 90, True, "I"),
    TileType.CURVED_UL: TileSpec(frozenset({_U, _L}), 0, True, "J"),
    TileType.CURVED_UR: TileSpec(frozenset({_U, _R}), 90, True, "L"),
    TileType.CURVED_DL: TileSpec(frozenset({_D, _L}), 270, True, "7"),
    TileType.CURVED_DR: TileSpec(frozenset({_D, _R}), 180, True, "F"),
}

# Pipe shapes the player can be dealt
PLACEABLE_TYPES: tuple[TileType, ...] = (
    TileType.CROSS,
    TileType.STRAIGHT_H,
    TileType.STRAIGHT_V,
    TileType.CURVED_UL,
    TileType.CURVED_UR,
    TileType.CURVED_DL,
    TileType.CURVED_DR,
)


def random_placeable_type(rng: Random) -> TileType:
    """Draw one of the placeable pipe shapes uniformly at random."""
    return rng.choice(PLACEABLE_TYPES)
