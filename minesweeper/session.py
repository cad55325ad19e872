"""Game session state machine.

apply_action() is the pure decision step: it inspects a GameState and an
action and returns the ordered list of effects to apply. EffectDispatcher is
the consumer side that applies those effects to observable state and drives
the timer. GameSession ties both together for in-process play.
"""
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from minesweeper import engine
from minesweeper.board import at, create_board, get_difficulty_settings, is_valid_board
from minesweeper.simulation import AutoplayDriver, INTERVAL_TIME_MS, create_history_entry
from minesweeper.types import (
    Action,
    AddSimulationHistory,
    DifficultySettings,
    DoubleClick,
    Effect,
    GameState,
    GameStatus,
    HistoryEntry,
    LeftClick,
    RightClick,
    SetBoard,
    SetFlagCount,
    SetGameState,
    StartTimer,
    StopTimer,
)

logger = logging.getLogger(__name__)

# Allowed transitions; terminal states have none
TRANSITIONS = {
    GameStatus.READY: {GameStatus.PLAYING},
    GameStatus.PLAYING: {GameStatus.WON, GameStatus.LOST},
    GameStatus.WON: set(),
    GameStatus.LOST: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _outcome_effects(outcome: Optional[GameStatus]) -> List[Effect]:
    if outcome is None:
        return []
    return [SetGameState(outcome), StopTimer()]


def apply_action(state: GameState, action: Action) -> List[Effect]:
    """Decide which effects an action produces, without applying them."""
    if state.status.is_terminal:
        return []

    board = state.board
    if not is_valid_board(board):
        logger.error("Invalid board for action %r, board: %r", action, board)
        return []

    row, col = action.row, action.col
    cell = at(board, row, col)
    if cell is None:
        logger.warning("Invalid board access at (%d, %d) on %dx%d board", row, col, board.rows, board.cols)
        return []

    effects: List[Effect] = []

    if isinstance(action, RightClick):
        result = engine.toggle_flag(board, row, col)
        if result.board is not board:
            effects.append(SetBoard(result.board))
        if result.flag_count is not None:
            effects.append(SetFlagCount(result.flag_count))
        return effects

    if isinstance(action, DoubleClick):
        result = engine.chord_reveal(board, row, col)
        if result.board is not board:
            effects.append(SetBoard(result.board))
        effects.extend(_outcome_effects(result.outcome))
        return effects

    if isinstance(action, LeftClick):
        if action.simulated:
            effects.append(AddSimulationHistory(create_history_entry(row, col, cell)))

        # Timer starts before the reveal so the elapsed baseline includes it
        if state.status == GameStatus.READY:
            effects.append(SetGameState(GameStatus.PLAYING))
            effects.append(StartTimer())

        result = engine.reveal_single(board, row, col)
        effects.append(SetBoard(result.board))

        if result.outcome is not None:
            if action.simulated:
                if result.outcome == GameStatus.LOST:
                    logger.info("Fatal move at (%d, %d) - game over", row, col)
                else:
                    logger.info("Game won by simulation")
            logger.info("Game ended with state: %s", result.outcome.value)
        effects.extend(_outcome_effects(result.outcome))
        return effects

    logger.warning("Unknown action: %r", action)
    return []


class GameTimer:
    """Wall-clock game timer driven by StartTimer/StopTimer effects."""

    def __init__(self, now: Callable[[], datetime] = _utcnow):
        self._now = now
        self.started_at: Optional[datetime] = None
        self.stopped_at: Optional[datetime] = None

    @classmethod
    def from_state(cls, state: GameState, now: Callable[[], datetime] = _utcnow) -> "GameTimer":
        timer = cls(now)
        timer.started_at = state.start_time
        timer.stopped_at = state.end_time
        return timer

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.stopped_at is None

    def start(self) -> datetime:
        if self.started_at is None:
            self.started_at = self._now()
        return self.started_at

    def stop(self) -> datetime:
        if self.stopped_at is None:
            self.stopped_at = self._now()
        return self.stopped_at

    def reset(self) -> None:
        self.started_at = None
        self.stopped_at = None

    @property
    def elapsed_seconds(self) -> int:
        if self.started_at is None:
            return 0
        end = self.stopped_at or self._now()
        return max(0, int((end - self.started_at).total_seconds()))


EffectListener = Callable[[GameState, Effect], None]


class EffectDispatcher:
    """Applies effects to a GameState in emission order."""

    def __init__(self, timer: Optional[GameTimer] = None):
        self.timer = timer or GameTimer()
        self._listeners: List[EffectListener] = []
        self._handlers: Dict[str, Callable[[GameState, Effect], None]] = {
            'setBoard': self._set_board,
            'setFlagCount': self._set_flag_count,
            'setGameState': self._set_game_state,
            'startTimer': self._start_timer,
            'stopTimer': self._stop_timer,
            'addSimulationHistory': self._add_history,
        }

    def subscribe(self, listener: EffectListener) -> None:
        self._listeners.append(listener)

    def apply(self, state: GameState, effects: List[Effect]) -> GameState:
        for effect in effects:
            handler = self._handlers.get(effect.type)
            if handler is None:
                logger.warning("Unknown effect type: %s", effect.type)
                continue
            handler(state, effect)
            for listener in self._listeners:
                listener(state, effect)
        return state

    def _set_board(self, state: GameState, effect: SetBoard) -> None:
        state.board = effect.board

    def _set_flag_count(self, state: GameState, effect: SetFlagCount) -> None:
        state.flag_count = effect.count

    def _set_game_state(self, state: GameState, effect: SetGameState) -> None:
        if effect.state not in TRANSITIONS[state.status]:
            logger.error("Refusing game state transition %s -> %s", state.status.value, effect.state.value)
            return
        state.status = effect.state

    def _start_timer(self, state: GameState, effect: StartTimer) -> None:
        state.start_time = self.timer.start()

    def _stop_timer(self, state: GameState, effect: StopTimer) -> None:
        state.end_time = self.timer.stop()
        state.elapsed_seconds = self.timer.elapsed_seconds

    def _add_history(self, state: GameState, effect: AddSimulationHistory) -> None:
        state.history.append(effect.entry)


def new_game_state(
    settings: DifficultySettings,
    game_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    board = create_board(settings.rows, settings.cols, settings.mines, rng=rng)
    return GameState(id=game_id or str(uuid.uuid4()), board=board, mine_count=settings.mines)


class GameSession:
    """In-process game: current state, timer and autoplay driver.

    This is the boundary a renderer talks to. It exposes a read-only view of
    the board and scalars, and accepts reveal/flag/chord, new_game and
    autoplay start/stop.
    """

    def __init__(
        self,
        state: GameState,
        now: Callable[[], datetime] = _utcnow,
        rng: Optional[random.Random] = None,
        sleep=None,
    ):
        self.state = state
        self._now = now
        self._rng = rng
        self.dispatcher = EffectDispatcher(GameTimer.from_state(state, now))
        self.dispatcher.subscribe(self._on_effect)
        self.highlighted_cell: Optional[Tuple[int, int]] = None
        self.is_simulating = False

        driver_kwargs = {} if sleep is None else {'sleep': sleep}
        self.autoplay = AutoplayDriver(
            get_current_state=lambda: (self.state.status, self.state.board),
            handle_cell_click=lambda row, col, simulated: self.apply(LeftClick(row, col, simulated)),
            set_highlighted_cell=self._set_highlighted_cell,
            set_is_simulating=self._set_is_simulating,
            rng=rng,
            **driver_kwargs,
        )

    @classmethod
    def create(
        cls,
        difficulty: str = 'easy',
        custom_rows: int = 10,
        custom_cols: int = 10,
        rng: Optional[random.Random] = None,
        **kwargs,
    ) -> "GameSession":
        settings = get_difficulty_settings(difficulty, custom_rows, custom_cols)
        return cls(new_game_state(settings, rng=rng), rng=rng, **kwargs)

    @property
    def board(self):
        return self.state.board

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def mine_count(self) -> int:
        return self.state.mine_count

    @property
    def flag_count(self) -> int:
        return self.state.flag_count

    @property
    def history(self) -> List[HistoryEntry]:
        return self.state.history

    @property
    def elapsed_seconds(self) -> int:
        if self.dispatcher.timer.running:
            return self.dispatcher.timer.elapsed_seconds
        return self.state.elapsed_seconds

    def apply(self, action: Action) -> List[Effect]:
        effects = apply_action(self.state, action)
        self.dispatcher.apply(self.state, effects)
        return effects

    def reveal(self, row: int, col: int, simulated: bool = False) -> List[Effect]:
        return self.apply(LeftClick(row, col, simulated))

    def toggle_flag(self, row: int, col: int) -> List[Effect]:
        return self.apply(RightClick(row, col))

    def chord(self, row: int, col: int) -> List[Effect]:
        return self.apply(DoubleClick(row, col))

    def new_game(
        self,
        difficulty: str = 'easy',
        custom_rows: int = 10,
        custom_cols: int = 10,
        settings: Optional[DifficultySettings] = None,
    ) -> GameState:
        """Stop autoplay, then replace the board, timer and history."""
        self.autoplay.stop()
        settings = settings or get_difficulty_settings(difficulty, custom_rows, custom_cols)
        self.state = new_game_state(settings, game_id=self.state.id, rng=self._rng)
        self.dispatcher.timer.reset()
        self.highlighted_cell = None
        return self.state

    def start_autoplay(
        self,
        step_interval_ms: int = INTERVAL_TIME_MS,
        highlight_ms: Optional[int] = None,
        dead_ms: Optional[int] = None,
    ) -> bool:
        return self.autoplay.start(step_interval_ms, highlight_ms, dead_ms)

    def stop_autoplay(self) -> None:
        self.autoplay.stop()

    def _on_effect(self, state: GameState, effect: Effect) -> None:
        if isinstance(effect, SetGameState) and state.status.is_terminal:
            self.autoplay.stop_on_game_end(state.status)

    def _set_highlighted_cell(self, cell: Optional[Tuple[int, int]]) -> None:
        self.highlighted_cell = cell

    def _set_is_simulating(self, value: bool) -> None:
        self.is_simulating = value
