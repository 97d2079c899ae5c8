"""
Interactive terminal front end for pipeflow.
Move a cursor over the grid and drop pipes from the queue before the water
catches up.
"""

import logging
import select
import sys
import termios
import time
import tty
from random import Random

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ascii_render import render_session
from pipe_types import Direction
from pipeflow import GameConfig, GameSession

FRAME_RATE = 20

MOVE_KEYS = {
    "w": Direction.UP,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "d": Direction.RIGHT,
}

QUIT_KEYS = ("q", readchar.key.CTRL_C)


def key_ready(timeout: float) -> bool:
    """Wait up to timeout seconds for a key press on stdin."""
    readable, _, _ = select.select([sys.stdin], [], [], timeout)
    return bool(readable)


class InteractiveDemo:
    """Keyboard-driven game loop around a GameSession."""

    def __init__(self, config: GameConfig | None = None, seed: int | None = None) -> None:
        self.config = config if config is not None else GameConfig()
        self.rng = Random(seed)
        self.console = Console()
        self.session = GameSession(self.config, self.rng)
        self.cursor = self.session.grid.start_cell.position
        self.status_message = "Ready"

    def generate_display(self) -> Panel:
        """Generate the current display with grid, queue and status."""
        text = Text.from_ansi(render_session(self.session.snapshot(), cursor=self.cursor))
        text.append("\n\n")
        text.append("Keys:\n", style="bold cyan")
        text.append("  W/A/S/D - Move cursor\n")
        text.append("  Space   - Place next pipe\n")
        text.append("  R       - New game\n")
        text.append("  Q       - Quit\n\n")
        text.append("─" * 40 + "\n", style="dim")
        text.append("Status: ", style="bold")
        text.append(self.status_message)

        border = "red" if self.session.lost else "green" if self.session.won else "blue"
        return Panel(text, title="Pipeflow", border_style=border, width=60)

    def move_cursor(self, direction: Direction) -> None:
        grid = self.session.grid
        neighbor = grid.get_neighbor(grid.get_cell(self.cursor), direction)
        if neighbor is not None:
            self.cursor = neighbor.position

    def place(self) -> None:
        """Place the queue's head under the cursor."""
        next_type = self.session.queue.peek_head()
        rejection = self.session.on_cell_activated(self.cursor)
        if rejection is None:
            self.status_message = f"✓ Placed {next_type.value} at ({self.cursor.x}, {self.cursor.y})"
        else:
            self.status_message = f"✗ Can't place here: {rejection.reason.value}"
            if rejection.details:
                self.status_message += f" ({rejection.details})"

    def new_game(self) -> None:
        self.session = GameSession(self.config, self.rng)
        self.cursor = self.session.grid.start_cell.position
        self.status_message = "New game"

    def handle_key(self, key: str) -> bool:
        """Apply one key press. Returns False when the player quits."""
        key = key.lower()
        if key in QUIT_KEYS:
            self.status_message = "Quitting..."
            return False
        if key == "r":
            self.new_game()
        elif key in MOVE_KEYS:
            self.move_cursor(MOVE_KEYS[key])
        elif key in (" ", readchar.key.ENTER):
            self.place()
        else:
            self.status_message = f"Unknown key: {key!r}"
        return True

    def run(self) -> None:
        """Run the game loop until the player quits."""
        fd = sys.stdin.fileno()
        saved_attrs = termios.tcgetattr(fd)
        try:
            # Unbuffered input so single key presses show up in select()
            tty.setcbreak(fd)
            with Live(self.generate_display(), console=self.console, refresh_per_second=FRAME_RATE) as live:
                last = time.monotonic()
                try:
                    while True:
                        key = readchar.readkey() if key_ready(1 / FRAME_RATE) else None

                        now = time.monotonic()
                        self.session.on_frame((now - last) * 1000)
                        last = now

                        if key is not None and not self.handle_key(key):
                            live.update(self.generate_display())
                            break
                        live.update(self.generate_display())

                except KeyboardInterrupt:
                    self.status_message = "Interrupted by user"
                    live.update(self.generate_display())
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, saved_attrs)


def main(seed: int | None = None) -> None:
    """Run the interactive game."""
    InteractiveDemo(seed=seed).run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "print":
        # Non-interactive: log the generation and print the opening position
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")
        seed = int(sys.argv[2]) if len(sys.argv) > 2 else None
        session = GameSession(GameConfig(), Random(seed))
        print(render_session(session.snapshot()))
    else:
        main(int(sys.argv[1]) if len(sys.argv) > 1 else None)
