"""Temporal workflows for Minesweeper game."""
import asyncio
from datetime import timedelta
from typing import List, Optional
from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from minesweeper.activities import MOVE_ACTIONS, create_game_board, apply_move
    from minesweeper.board import InvalidBoardError
    from minesweeper.simulation import AutoplayDriver
    from minesweeper.types import AutoplayRequest, GameConfig, GameState, GameStatus, MoveRequest

ACTIVITY_TIMEOUT = timedelta(seconds=60)
# A board that cannot be built for a config will never succeed on retry
BOARD_RETRY_POLICY = RetryPolicy(non_retryable_error_types=[InvalidBoardError.__name__])
MOVE_RETRY_POLICY = RetryPolicy(maximum_attempts=3, non_retryable_error_types=["InvalidMoveError"])


@workflow.defn
class MinesweeperWorkflow:
    """Workflow that manages a single Minesweeper game."""

    def __init__(self):
        self.game_id: str = ""
        self.game_state: GameState | None = None
        self.last_activity_time: float = 0
        self.should_close: bool = False
        self.highlighted_cell: Optional[List[int]] = None
        self.is_simulating: bool = False
        # Moves run one at a time, whether they come from a player or autoplay
        self._move_lock = asyncio.Lock()
        self._autoplay: AutoplayDriver | None = None

    @workflow.run
    async def run(self, game_id: str, initial_config: GameConfig) -> None:
        """Main workflow entry point."""
        # Store game_id immediately so queries can access it during initialization
        self.game_id = game_id
        self.last_activity_time = workflow.time()

        self.game_state = await self._new_game_state(initial_config)

        # Auto-close workflow after 24 hours of inactivity
        inactivity_timeout = timedelta(hours=24)
        check_interval = timedelta(minutes=1)

        try:
            while not self.should_close:
                await workflow.wait_condition(
                    lambda: self.should_close or
                           (workflow.time() - self.last_activity_time) >= inactivity_timeout.total_seconds(),
                    timeout=check_interval.total_seconds()
                )

                if self.should_close:
                    break

                if (workflow.time() - self.last_activity_time) >= inactivity_timeout.total_seconds():
                    workflow.logger.info(f"Game {game_id} auto-closing due to 24 hours of inactivity")
                    break

        except Exception as error:
            workflow.logger.error(f"Error in workflow loop: {error}")

        if self._autoplay:
            self._autoplay.stop()
            await self._autoplay.wait()

        workflow.logger.info(f"Minesweeper workflow {game_id} completed")

    async def _new_game_state(self, config: GameConfig) -> GameState:
        board = await workflow.execute_activity(
            create_game_board,
            config,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=BOARD_RETRY_POLICY,
        )
        return GameState(id=self.game_id, board=board, mine_count=config.mines)

    async def _apply_move(self, move_request: MoveRequest) -> None:
        if move_request.action not in MOVE_ACTIONS:
            workflow.logger.warning(f"Ignoring move with unknown action {move_request.action!r}")
            return

        async with self._move_lock:
            if not self.game_state or self.game_state.status.is_terminal:
                return  # Game not ready or game is over, ignore moves

            self.last_activity_time = workflow.time()
            try:
                self.game_state = await workflow.execute_activity(
                    apply_move,
                    args=[self.game_state, move_request],
                    start_to_close_timeout=ACTIVITY_TIMEOUT,
                    retry_policy=MOVE_RETRY_POLICY,
                )
            except Exception as error:
                workflow.logger.error(f"Error processing move: {error}")
                return

            if self.game_state.status.is_terminal and self._autoplay:
                self._autoplay.stop_on_game_end(self.game_state.status)

    @workflow.signal
    async def make_move_signal(self, move_request: MoveRequest) -> None:
        """Signal to make a move (fire-and-forget)."""
        await self._apply_move(move_request)

    @workflow.update
    async def make_move_update(self, move_request: MoveRequest) -> GameState:
        """Update to make a move and return the updated state."""
        if not self.game_state:
            raise ValueError("Game state not initialized")
        await self._apply_move(move_request)
        return self.game_state

    @workflow.update
    async def restart_game_update(self, config: GameConfig) -> GameState:
        """Update to restart the game and return the new state."""
        # Autoplay must not keep clicking on the discarded board
        if self._autoplay:
            self._autoplay.stop()

        self.last_activity_time = workflow.time()
        new_state = await self._new_game_state(config)
        async with self._move_lock:
            self.game_state = new_state
        return self.game_state

    @workflow.update
    async def start_autoplay_update(self, request: AutoplayRequest) -> bool:
        """Start the random autoplay loop; a no-op if it is already running."""
        if not self.game_state:
            raise ValueError("Game state not initialized")

        self.last_activity_time = workflow.time()
        if self._autoplay is None:
            self._autoplay = AutoplayDriver(
                get_current_state=self._current_state,
                handle_cell_click=self._simulated_click,
                set_highlighted_cell=self._set_highlighted_cell,
                set_is_simulating=self._set_is_simulating,
                rng=workflow.random(),
                sleep=asyncio.sleep,
            )
        return self._autoplay.start(request.step_interval_ms, request.highlight_ms, request.dead_ms)

    @workflow.update
    async def stop_autoplay_update(self) -> bool:
        """Ask the autoplay loop to stop at its next step boundary."""
        if self._autoplay is None:
            return False
        self._autoplay.stop()
        return True

    @workflow.signal
    def close_game_signal(self) -> None:
        """Signal to close the game."""
        self.should_close = True

    @workflow.query
    def get_game_state_query(self) -> Optional[GameState]:
        """Query to get the current game state, or None while initializing."""
        return self.game_state

    @workflow.query
    def get_autoplay_query(self) -> dict:
        """Query the autoplay status and the highlighted cell."""
        return {'isSimulating': self.is_simulating, 'highlightedCell': self.highlighted_cell}

    def _current_state(self):
        if not self.game_state:
            return GameStatus.READY, None
        return self.game_state.status, self.game_state.board

    async def _simulated_click(self, row: int, col: int, simulated: bool) -> None:
        await self._apply_move(MoveRequest(row=row, col=col, action='reveal', simulated=simulated))

    def _set_highlighted_cell(self, cell) -> None:
        self.highlighted_cell = list(cell) if cell else None

    def _set_is_simulating(self, value: bool) -> None:
        self.is_simulating = value
