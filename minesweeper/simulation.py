"""Autoplay driver for the Minesweeper engine.

The driver is a proof-of-concept automated player used for demonstrations and
tests. It picks uniformly at random among the cells that are neither revealed
nor flagged; select_random_cell() is the place to plug in smarter logic.

The driver never touches the board directly. It reads the game through
get_current_state() and acts through the same click handler used for manual
play, so manual moves and new games can interleave between its steps.
"""
import asyncio
import inspect
import logging
import random
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from minesweeper.board import is_valid_board
from minesweeper.types import Cell, GameBoard, GameStatus, HistoryEntry

logger = logging.getLogger(__name__)

INTERVAL_TIME_MS = 2000

Coordinate = Tuple[int, int]
StateGetter = Callable[[], Tuple[GameStatus, Optional[GameBoard]]]
ClickHandler = Callable[[int, int, bool], Optional[Awaitable[object]]]
Sleep = Callable[[float], Awaitable[object]]


def get_unrevealed_cells(board: Optional[GameBoard]) -> List[Coordinate]:
    """Get all unrevealed, unflagged cells available for simulation."""
    if not is_valid_board(board):
        logger.error("Invalid board in get_unrevealed_cells: %r", board)
        return []
    return [
        (cell.row, cell.col)
        for row in board.cells
        for cell in row
        if not cell.is_revealed and not cell.is_flagged
    ]


def select_random_cell(cells: List[Coordinate], rng: Optional[random.Random] = None) -> Optional[Coordinate]:
    """Select a random cell from available unrevealed cells."""
    if not cells:
        return None
    return (rng or random).choice(cells)


def should_continue_simulation(status: GameStatus, board: Optional[GameBoard]) -> Tuple[bool, str]:
    """Check if simulation should continue, with a human readable reason."""
    if status.is_terminal:
        return False, f"Game ended with state: {status.value}"

    remaining = len(get_unrevealed_cells(board))
    if remaining == 0:
        return False, "No more cells to reveal"
    return True, f"{remaining} cells remaining"


def describe_cell(cell: Cell) -> str:
    if cell.is_mine:
        return 'mine'
    if cell.neighbor_mines == 0:
        return 'empty'
    return f'number-{cell.neighbor_mines}'


def create_history_entry(row: int, col: int, cell: Cell, now: Optional[datetime] = None) -> HistoryEntry:
    """Create a simulation history entry from the cell state before the click."""
    now = now or datetime.now()
    return HistoryEntry(
        timestamp=now.strftime('%H:%M:%S'),
        row=row,
        col=col,
        cell_type=describe_cell(cell),
        result='BOOM!' if cell.is_mine else 'safe',
    )


class AutoplayDriver:
    """Cooperative asyncio loop that clicks random cells at a fixed pace.

    Only one run can be active at a time. Stopping is cooperative: stop()
    sets a flag that the loop observes at its next check, and the loop also
    ends by itself once the game reaches a terminal state or no candidate
    cells are left.
    """

    def __init__(
        self,
        get_current_state: StateGetter,
        handle_cell_click: ClickHandler,
        set_highlighted_cell: Callable[[Optional[Coordinate]], None] = lambda cell: None,
        set_is_simulating: Callable[[bool], None] = lambda value: None,
        rng: Optional[random.Random] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._get_current_state = get_current_state
        self._handle_cell_click = handle_cell_click
        self._set_highlighted_cell = set_highlighted_cell
        self._set_is_simulating = set_is_simulating
        self._rng = rng or random.Random()
        self._sleep = sleep

        self.should_stop = False
        self.selected_cell: Optional[Coordinate] = None
        self._task: Optional[asyncio.Task] = None
        self._pending_start: Optional[Tuple[int, Optional[int], Optional[int]]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(
        self,
        step_interval_ms: int = INTERVAL_TIME_MS,
        highlight_ms: Optional[int] = None,
        dead_ms: Optional[int] = None,
    ) -> bool:
        """Start the loop on the running event loop.

        Returns False when the game cannot be simulated, and True when the
        loop was started or is already running.
        """
        status, board = self._get_current_state()

        if not is_valid_board(board):
            logger.error("Cannot start simulation - invalid board: %r", board)
            return False

        if status.is_terminal:
            logger.info("Cannot start simulation - game already ended")
            return False

        if self._task is not None:
            if self.should_stop:
                # The current run is winding down; start again once it has cleaned up
                logger.info("Simulation stopping - will restart when the current run ends")
                self._pending_start = (step_interval_ms, highlight_ms, dead_ms)
            else:
                logger.info("Simulation already running")
            return True

        highlight = highlight_ms if highlight_ms is not None else step_interval_ms // 2
        dead = dead_ms if dead_ms is not None else step_interval_ms - highlight
        logger.info(
            "Starting simulation with %dms steps (highlight=%dms, dead=%dms)",
            step_interval_ms, highlight, dead,
        )

        self.should_stop = False
        self.selected_cell = None
        self._set_is_simulating(True)
        self._task = asyncio.get_running_loop().create_task(self._run(highlight, dead))
        return True

    def stop(self) -> None:
        """Ask the loop to stop at its next check."""
        if self._task is not None:
            logger.info("Manual stop - stopping simulation")
        self.should_stop = True
        self._pending_start = None

    def stop_on_game_end(self, status: GameStatus) -> None:
        logger.info("Game ended (%s) - stopping simulation", status.value)
        self.should_stop = True

    async def wait(self) -> None:
        """Wait for the active run, and any restart queued while it stopped, to finish."""
        while self._task is not None:
            await self._task

    async def _run(self, highlight_ms: int, dead_ms: int) -> None:
        try:
            while not self.should_stop:
                # State is fetched fresh each step; manual play may have changed it
                status, board = self._get_current_state()
                if not is_valid_board(board) or status.is_terminal:
                    break

                cell = select_random_cell(get_unrevealed_cells(board), self._rng)
                if cell is None:
                    logger.info("No more cells to reveal")
                    break
                row, col = cell
                logger.info("Selected cell: (%d, %d)", row, col)

                self.selected_cell = cell
                self._set_highlighted_cell(cell)
                await self._sleep(highlight_ms / 1000)
                self._set_highlighted_cell(None)
                self.selected_cell = None

                # A new game may have been started while the cell was highlighted
                if self.should_stop:
                    break

                result = self._handle_cell_click(row, col, True)
                if inspect.isawaitable(result):
                    await result

                await self._sleep(dead_ms / 1000)
        finally:
            self._set_is_simulating(False)
            self._set_highlighted_cell(None)
            self.selected_cell = None
            self._task = None
            logger.info("Simulation cleanup complete")

            pending, self._pending_start = self._pending_start, None
            if pending is not None:
                self.start(*pending)
