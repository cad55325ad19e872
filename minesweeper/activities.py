"""Temporal activities for game logic."""
import copy
from temporalio import activity
from temporalio.exceptions import ApplicationError

from minesweeper.board import create_board
from minesweeper.session import EffectDispatcher, GameTimer, apply_action
from minesweeper.types import (
    Action,
    DoubleClick,
    GameBoard,
    GameConfig,
    GameState,
    LeftClick,
    MoveRequest,
    RightClick,
)

MOVE_ACTIONS = ('reveal', 'flag', 'chord')


def action_from_move(move: MoveRequest) -> Action:
    """Translate a wire-level move into a session action."""
    if move.action == 'reveal':
        return LeftClick(move.row, move.col, move.simulated)
    if move.action == 'flag':
        return RightClick(move.row, move.col)
    if move.action == 'chord':
        return DoubleClick(move.row, move.col)
    raise ValueError(f"Unknown move action: {move.action!r}")


@activity.defn
async def create_game_board(config: GameConfig) -> GameBoard:
    """Create a new game board with randomly placed mines."""
    board = create_board(config.rows, config.cols, config.mines)
    activity.logger.info(f"Created {config.rows}x{config.cols} board with {config.mines} mines")
    return board


@activity.defn
async def apply_move(game_state: GameState, move: MoveRequest) -> GameState:
    """Run one move through the session state machine and apply its effects."""
    try:
        action = action_from_move(move)
    except ValueError as error:
        # Retrying cannot fix a malformed move
        raise ApplicationError(str(error), type="InvalidMoveError", non_retryable=True) from error

    effects = apply_action(game_state, action)
    if not effects:
        return game_state

    new_game_state = copy.copy(game_state)
    new_game_state.history = list(game_state.history)
    dispatcher = EffectDispatcher(GameTimer.from_state(game_state))
    dispatcher.apply(new_game_state, effects)

    activity.logger.debug(f"Move {move.action} at ({move.row}, {move.col}) -> {[e.type for e in effects]}")
    return new_game_state
