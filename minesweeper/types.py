"""Type definitions for the Minesweeper engine."""
from dataclasses import dataclass, field
from typing import List, Optional, Union
from datetime import datetime
from enum import Enum


@dataclass
class Cell:
    """Represents a single cell on the minesweeper board."""
    row: int
    col: int
    is_mine: bool = False
    is_revealed: bool = False
    is_flagged: bool = False
    neighbor_mines: int = 0


@dataclass
class GameBoard:
    """Represents the game board."""
    cells: List[List[Cell]]
    rows: int
    cols: int
    mine_count: int


class GameStatus(str, Enum):
    """Possible game states."""
    READY = 'ready'
    PLAYING = 'playing'
    WON = 'won'
    LOST = 'lost'

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.WON, GameStatus.LOST)


@dataclass(frozen=True)
class DifficultySettings:
    """Board dimensions and mine count for a difficulty level."""
    rows: int
    cols: int
    mines: int


@dataclass
class GameConfig:
    """Configuration for creating a new game."""
    rows: int
    cols: int
    mines: int


@dataclass
class HistoryEntry:
    """One simulated click, recorded from the cell state before the click."""
    timestamp: str
    row: int
    col: int
    cell_type: str  # 'mine', 'empty' or 'number-N'
    result: str  # 'BOOM!' or 'safe'


@dataclass
class GameState:
    """Current state of the game."""
    id: str
    board: GameBoard
    status: GameStatus = GameStatus.READY
    mine_count: int = 0
    flag_count: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    elapsed_seconds: int = 0
    history: List[HistoryEntry] = field(default_factory=list)


# Actions accepted by the session state machine

@dataclass(frozen=True)
class LeftClick:
    row: int
    col: int
    simulated: bool = False


@dataclass(frozen=True)
class RightClick:
    row: int
    col: int


@dataclass(frozen=True)
class DoubleClick:
    row: int
    col: int


Action = Union[LeftClick, RightClick, DoubleClick]


@dataclass
class MoveRequest:
    """Request to make a move."""
    row: int
    col: int
    action: str  # 'reveal', 'flag', 'chord'
    simulated: bool = False


# Effects emitted by the session state machine, applied in order by the caller

@dataclass(frozen=True)
class SetBoard:
    board: GameBoard
    type: str = 'setBoard'


@dataclass(frozen=True)
class SetFlagCount:
    count: int
    type: str = 'setFlagCount'


@dataclass(frozen=True)
class SetGameState:
    state: GameStatus
    type: str = 'setGameState'


@dataclass(frozen=True)
class StartTimer:
    type: str = 'startTimer'


@dataclass(frozen=True)
class StopTimer:
    type: str = 'stopTimer'


@dataclass(frozen=True)
class AddSimulationHistory:
    entry: HistoryEntry
    type: str = 'addSimulationHistory'


Effect = Union[SetBoard, SetFlagCount, SetGameState, StartTimer, StopTimer, AddSimulationHistory]


@dataclass
class AutoplayRequest:
    """Timing for an autoplay run, in milliseconds."""
    step_interval_ms: int = 2000
    highlight_ms: Optional[int] = None
    dead_ms: Optional[int] = None


@dataclass
class ScoreRecord:
    """A persisted leaderboard entry."""
    id: int
    name: str
    mines: int
    size: str
    time: int
    created_at: str
