"""
Pipe placement puzzle with a timed water flow.
Water leaves the start cell after an initial delay and advances one cell
every three ticks; the player races it by placing pipes from a queue.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from random import Random
from typing import Iterator

from pipe_grid import Grid, GridCell, generate_grid
from pipe_types import CellPosition, Direction, TileType, opposite, random_placeable_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameConfig:
    """Session settings, fixed once a session starts."""

    grid_width: int = 9
    grid_height: int = 7
    tile_size: int = 32  # Pixels per tile, presentation only
    max_blocked: int = 8
    queue_length: int = 5
    min_goal_length: int = 5
    max_goal_length: int = 10  # Exclusive
    init_delay_ms: float = 10000.0
    tick_interval_ms: float = 1000.0

    def __post_init__(self) -> None:
        problems: list[str] = []
        if self.grid_width <= 0:
            problems.append(f"grid_width must be positive, got {self.grid_width}")
        if self.grid_height < 2:
            problems.append(f"grid_height must be at least 2, got {self.grid_height}")
        if self.tile_size <= 0:
            problems.append(f"tile_size must be positive, got {self.tile_size}")
        if self.max_blocked < 0:
            problems.append(f"max_blocked must not be negative, got {self.max_blocked}")
        if self.queue_length < 1:
            problems.append(f"queue_length must be at least 1, got {self.queue_length}")
        if self.min_goal_length < 1:
            problems.append(f"min_goal_length must be at least 1, got {self.min_goal_length}")
        if self.min_goal_length >= self.max_goal_length:
            problems.append(
                f"min_goal_length ({self.min_goal_length}) must be below "
                f"max_goal_length ({self.max_goal_length})"
            )
        if self.init_delay_ms < 0:
            problems.append(f"init_delay_ms must not be negative, got {self.init_delay_ms}")
        if self.tick_interval_ms <= 0:
            problems.append(f"tick_interval_ms must be positive, got {self.tick_interval_ms}")
        if problems:
            raise ValueError("Invalid game configuration:\n  " + "\n  ".join(problems))


# =============================================================================
# Tile Queue
# =============================================================================


class TileQueue:
    """Fixed-length lookahead of the pipe types the player will be dealt."""

    def __init__(self, length: int, rng: Random) -> None:
        if length < 1:
            raise ValueError(f"Queue length must be at least 1, got {length}")
        self._rng = rng
        self._types: deque[TileType] = deque(random_placeable_type(rng) for _ in range(length))

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[TileType]:
        return iter(self._types)

    @property
    def contents(self) -> tuple[TileType, ...]:
        """Pending types, head first."""
        return tuple(self._types)

    def peek_head(self) -> TileType:
        return self._types[0]

    def advance(self) -> TileType:
        """Drop the head and append a fresh random type, returning the new one."""
        self._types.popleft()
        new_type = random_placeable_type(self._rng)
        self._types.append(new_type)
        return new_type


# =============================================================================
# Flow Events
# =============================================================================


@dataclass(frozen=True)
class FlowStarted:
    """The initial countdown ran out and water starts to move."""

    pass


@dataclass(frozen=True)
class WaterSideReached:
    """Water filled one side of a cell (leaving the head or entering the goal)."""

    position: CellPosition
    direction: Direction


@dataclass(frozen=True)
class WaterCenterReached:
    """Water filled the centre of a cell, which is now the head."""

    position: CellPosition
    path_length: int


@dataclass(frozen=True)
class FlowWon:
    """Path length reached the goal."""

    path_length: int


@dataclass(frozen=True)
class FlowLost:
    """The head had no connected neighbour to flow into."""

    position: CellPosition
    path_length: int


@dataclass(frozen=True)
class TilePlaced:
    """The player placed a pipe from the queue."""

    position: CellPosition
    tile_type: TileType


FlowEvent = FlowStarted | WaterSideReached | WaterCenterReached | FlowWon | FlowLost | TilePlaced


# =============================================================================
# Water Flow State Machine
# =============================================================================


class FlowState(Enum):
    """Coarse state of the water flow."""

    IDLE = "idle"  # Initial countdown still running
    FLOWING = "flowing"
    WON = "won"  # Goal reached; flow keeps advancing
    LOST = "lost"  # Dead end reached; flow halted for good


class WaterFlow:
    """
    Advances the water head through the grid as time passes.

    Nothing moves until init_delay_ms has elapsed. After that every
    tick_interval_ms runs one phase of a three-phase cycle:
    1. pick the next cell and close the connection between it and the head
    2. water enters the picked cell's side
    3. the head moves into the picked cell

    Only a loss stops the flow; after a win it keeps going until it reaches a
    dead end.
    """

    def __init__(
        self,
        grid: Grid,
        head: GridCell,
        goal_length: int,
        init_delay_ms: float,
        tick_interval_ms: float,
    ) -> None:
        self.grid = grid
        self.head = head
        self.goal_length = goal_length
        self.path_length = 0
        self.tick_interval_ms = tick_interval_ms
        self.init_countdown = init_delay_ms
        self.tick_countdown = tick_interval_ms
        self.phase = 0
        self.goal_cell: GridCell | None = None
        self.goal_direction: Direction | None = None
        self.won = False
        self.lost = False
        # Water overlay drawn so far
        self.water_sides: dict[CellPosition, set[Direction]] = {}
        self.water_centers: set[CellPosition] = set()

    @property
    def state(self) -> FlowState:
        if self.lost:
            return FlowState.LOST
        if self.won:
            return FlowState.WON
        if self.init_countdown > 0:
            return FlowState.IDLE
        return FlowState.FLOWING

    def on_frame(self, delta_ms: float) -> list[FlowEvent]:
        """
        Advance timers by one frame and run every phase that falls due.

        Time left over from the frame that ends the initial countdown counts
        towards the first tick, and a long frame may run several phases, so
        phase k always runs once init_delay_ms + k * tick_interval_ms has
        elapsed in total.

        Args:
            delta_ms: Milliseconds since the previous frame

        Returns:
            Events produced during this frame, in order
        """
        if not delta_ms >= 0:  # Also catches NaN
            raise ValueError(f"Frame delta must not be negative or NaN, got {delta_ms}")

        events: list[FlowEvent] = []
        if self.lost:
            return events

        if self.init_countdown > 0:
            self.init_countdown -= delta_ms
            if self.init_countdown > 0:
                return events
            delta_ms = -self.init_countdown
            self.init_countdown = 0
            logger.info("Water flowing from (%d, %d)", self.head.x, self.head.y)
            events.append(FlowStarted())

        self.tick_countdown -= delta_ms
        while self.tick_countdown <= 0 and not self.lost:
            self._run_phase(events)
            self.tick_countdown += self.tick_interval_ms
        return events

    def _run_phase(self, events: list[FlowEvent]) -> None:
        self.phase += 1
        if self.phase == 1:
            self.pick_water_goal(events)
        elif self.phase == 2:
            assert self.goal_cell is not None and self.goal_direction is not None
            self._mark_side(self.goal_cell, opposite(self.goal_direction), events)
        else:
            self.finish_water_tick(events)
            self.phase = 0

    def pick_water_goal(self, events: list[FlowEvent]) -> None:
        """
        Choose the neighbour the water flows into next, or lose if there is none.

        A neighbour qualifies when the head's side towards it and its side
        towards the head are both still open. The first qualifying direction
        in UP, RIGHT, DOWN, LEFT order wins. The link is closed on both cells
        and the neighbour is locked against replacement.
        """
        candidates: list[tuple[Direction, GridCell]] = []
        for direction in Direction:
            if not self.head.can_connect_to(direction):
                continue
            neighbor = self.grid.get_neighbor(self.head, direction)
            if neighbor is None:
                continue
            if neighbor.can_connect_to(opposite(direction)):
                candidates.append((direction, neighbor))

        if not candidates:
            self.goal_cell = None
            self.goal_direction = None
            self.lost = True
            logger.info(
                "Water reached a dead end at (%d, %d) after %d cells",
                self.head.x,
                self.head.y,
                self.path_length,
            )
            events.append(FlowLost(self.head.position, self.path_length))
            return

        direction, neighbor = candidates[0]
        self.grid.close_connection(self.head, direction)
        self.grid.close_connection(neighbor, opposite(direction))
        neighbor.locked = True
        self.goal_cell = neighbor
        self.goal_direction = direction
        logger.debug(
            "Water heading %s from (%d, %d) to (%d, %d), %d candidate(s)",
            direction.value,
            self.head.x,
            self.head.y,
            neighbor.x,
            neighbor.y,
            len(candidates),
        )
        self._mark_side(self.head, direction, events)

    def finish_water_tick(self, events: list[FlowEvent]) -> None:
        """Move the head into the goal cell and check for victory."""
        assert self.goal_cell is not None
        self.head = self.goal_cell
        self.path_length += 1
        self.water_centers.add(self.head.position)
        events.append(WaterCenterReached(self.head.position, self.path_length))

        if self.path_length == self.goal_length and not self.won:
            self.won = True
            logger.info("Goal of %d cells reached", self.goal_length)
            events.append(FlowWon(self.path_length))

    def _mark_side(self, cell: GridCell, direction: Direction, events: list[FlowEvent]) -> None:
        self.water_sides.setdefault(cell.position, set()).add(direction)
        events.append(WaterSideReached(cell.position, direction))


# =============================================================================
# Placement
# =============================================================================


class RejectionReason(Enum):
    """Why a placement request was refused."""

    NOT_REPLACEABLE = "not_replaceable"  # Start or blocked cell
    CELL_LOCKED = "cell_locked"  # Water is committed to this cell
    GAME_OVER = "game_over"  # The flow has been lost


@dataclass(frozen=True)
class PlacementRejected:
    """A placement request that left the grid and queue untouched."""

    reason: RejectionReason
    position: CellPosition
    details: str | None = None


def place_tile(
    grid: Grid, cell: GridCell, queue: TileQueue, flow: WaterFlow
) -> PlacementRejected | None:
    """
    Put the queue's head type on a cell and advance the queue.

    A win does not block placement; a loss does.

    Returns:
        None on success, PlacementRejected otherwise
    """
    if flow.lost:
        return PlacementRejected(RejectionReason.GAME_OVER, cell.position)
    if not cell.tile_type.replaceable:
        return PlacementRejected(
            RejectionReason.NOT_REPLACEABLE, cell.position, f"{cell.tile_type.value} tile"
        )
    if cell.locked:
        return PlacementRejected(RejectionReason.CELL_LOCKED, cell.position)

    grid.set_type(cell, queue.peek_head())
    queue.advance()
    logger.debug("Placed %s at (%d, %d)", cell.tile_type.value, cell.x, cell.y)
    return None


# =============================================================================
# Session
# =============================================================================


@dataclass(frozen=True)
class CellSnapshot:
    """Read-only view of one cell for presentation."""

    position: CellPosition
    tile_type: TileType
    angle: int
    open_connections: frozenset[Direction]
    locked: bool
    water_sides: frozenset[Direction]
    water_center: bool


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a whole session for presentation."""

    width: int
    height: int
    cells: tuple[tuple[CellSnapshot, ...], ...]  # Indexed [y][x]
    head: CellPosition
    path_length: int
    goal_length: int
    init_countdown_ms: float
    state: FlowState
    won: bool
    lost: bool
    queue: tuple[TileType, ...]

    def cell(self, position: CellPosition) -> CellSnapshot:
        return self.cells[position.y][position.x]


class GameSession:
    """
    One game from generation to win or loss.

    The presentation layer drives it through two entry points: on_frame with
    the elapsed time of every rendered frame, and on_cell_activated when the
    player targets a cell. Everything it needs to draw comes from snapshot().
    """

    def __init__(
        self,
        config: GameConfig | None = None,
        rng: Random | None = None,
        *,
        grid: Grid | None = None,
        queue: TileQueue | None = None,
        goal_length: int | None = None,
    ) -> None:
        self._config = config if config is not None else GameConfig()
        self._rng = rng if rng is not None else Random()
        cfg = self._config

        self._grid = grid if grid is not None else generate_grid(
            cfg.grid_width, cfg.grid_height, cfg.max_blocked, self._rng
        )
        self._queue = queue if queue is not None else TileQueue(cfg.queue_length, self._rng)
        if goal_length is None:
            goal_length = self._rng.randrange(cfg.min_goal_length, cfg.max_goal_length)
        self._flow = WaterFlow(
            self._grid,
            self._grid.start_cell,
            goal_length,
            cfg.init_delay_ms,
            cfg.tick_interval_ms,
        )
        self._pending: list[FlowEvent] = []
        logger.info(
            "New session: %dx%d grid, goal %d, start at (%d, %d)",
            self._grid.width,
            self._grid.height,
            goal_length,
            self._flow.head.x,
            self._flow.head.y,
        )

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def queue(self) -> TileQueue:
        return self._queue

    @property
    def flow(self) -> WaterFlow:
        return self._flow

    @property
    def won(self) -> bool:
        return self._flow.won

    @property
    def lost(self) -> bool:
        return self._flow.lost

    def on_frame(self, delta_ms: float) -> list[FlowEvent]:
        """Advance the water flow by one frame's worth of time."""
        events = self._flow.on_frame(delta_ms)
        self._pending.extend(events)
        return events

    def on_cell_activated(self, position: CellPosition) -> PlacementRejected | None:
        """Try to place the queue's head on the cell at position."""
        cell = self._grid.get_cell(position)
        rejection = place_tile(self._grid, cell, self._queue, self._flow)
        if rejection is not None:
            logger.debug(
                "Placement at (%d, %d) rejected: %s",
                position.x,
                position.y,
                rejection.reason.value,
            )
            return rejection
        self._pending.append(TilePlaced(position, cell.tile_type))
        return None

    def drain_events(self) -> list[FlowEvent]:
        """Return and forget every event produced since the last drain."""
        events, self._pending = self._pending, []
        return events

    def snapshot(self) -> SessionSnapshot:
        flow = self._flow
        cells = tuple(
            tuple(
                CellSnapshot(
                    position=cell.position,
                    tile_type=cell.tile_type,
                    angle=cell.tile_type.angle,
                    open_connections=frozenset(cell.open_connections),
                    locked=cell.locked,
                    water_sides=frozenset(flow.water_sides.get(cell.position, ())),
                    water_center=cell.position in flow.water_centers,
                )
                for cell in row
            )
            for row in self._grid.cells
        )
        return SessionSnapshot(
            width=self._grid.width,
            height=self._grid.height,
            cells=cells,
            head=flow.head.position,
            path_length=flow.path_length,
            goal_length=flow.goal_length,
            init_countdown_ms=max(flow.init_countdown, 0.0),
            state=flow.state,
            won=flow.won,
            lost=flow.lost,
            queue=self._queue.contents,
        )
