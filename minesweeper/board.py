"""Board generation and read accessors."""
import logging
import random
from typing import Iterator, List, Optional, Sequence, Tuple

from minesweeper.types import Cell, DifficultySettings, GameBoard

logger = logging.getLogger(__name__)

DIFFICULTY_SETTINGS = {
    'easy': DifficultySettings(rows=9, cols=9, mines=10),
    'medium': DifficultySettings(rows=16, cols=16, mines=40),
    'hard': DifficultySettings(rows=16, cols=30, mines=99),
}

CUSTOM_MINE_RATIO = 0.2

NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = tuple(
    (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)
)


class InvalidBoardError(ValueError):
    """Raised when a board cannot be built with the requested shape."""


def get_difficulty_settings(difficulty: str, custom_rows: int = 10, custom_cols: int = 10) -> DifficultySettings:
    """Get difficulty settings for 'easy', 'medium', 'hard' or 'custom'."""
    if difficulty == 'custom':
        mines = int(custom_rows * custom_cols * CUSTOM_MINE_RATIO)
        return DifficultySettings(rows=custom_rows, cols=custom_cols, mines=mines)
    try:
        return DIFFICULTY_SETTINGS[difficulty]
    except KeyError:
        raise ValueError(f"Unknown difficulty: {difficulty!r}") from None


def in_bounds(board: GameBoard, row: int, col: int) -> bool:
    return 0 <= row < board.rows and 0 <= col < board.cols


def at(board: GameBoard, row: int, col: int) -> Optional[Cell]:
    """Return the cell at (row, col), or None when out of range."""
    if not in_bounds(board, row, col):
        return None
    return board.cells[row][col]


def neighbors(board: GameBoard, row: int, col: int) -> Iterator[Tuple[int, int]]:
    """Yield in-bounds coordinates of the 8 cells around (row, col)."""
    for dr, dc in NEIGHBOR_OFFSETS:
        new_row, new_col = row + dr, col + dc
        if in_bounds(board, new_row, new_col):
            yield new_row, new_col


def count_neighbor_mines(board: GameBoard, row: int, col: int) -> int:
    """Count the number of mines in neighboring cells."""
    return sum(1 for r, c in neighbors(board, row, col) if board.cells[r][c].is_mine)


def _empty_cells(rows: int, cols: int) -> List[List[Cell]]:
    return [[Cell(row=row, col=col) for col in range(cols)] for row in range(rows)]


def _fill_neighbor_counts(board: GameBoard) -> None:
    for row in board.cells:
        for cell in row:
            if not cell.is_mine:
                cell.neighbor_mines = count_neighbor_mines(board, cell.row, cell.col)


def create_board(rows: int, cols: int, mines: int, rng: Optional[random.Random] = None) -> GameBoard:
    """Create a new game board with randomly placed mines.

    Mines are placed by rejection sampling: a coordinate is drawn uniformly
    and redrawn whenever it already holds a mine.
    """
    if rows < 1 or cols < 1:
        raise InvalidBoardError(f"Board must have at least one row and column, got {rows}x{cols}")
    if mines < 0:
        raise InvalidBoardError(f"Mine count cannot be negative, got {mines}")
    if mines >= rows * cols:
        raise InvalidBoardError(f"Too many mines for the board size: {mines} >= {rows * cols}")

    rng = rng or random.Random()
    board = GameBoard(cells=_empty_cells(rows, cols), rows=rows, cols=cols, mine_count=mines)

    mines_placed = 0
    while mines_placed < mines:
        cell = board.cells[rng.randrange(rows)][rng.randrange(cols)]
        if not cell.is_mine:
            cell.is_mine = True
            mines_placed += 1

    _fill_neighbor_counts(board)
    logger.debug("Created %dx%d board with %d mines", rows, cols, mines)
    return board


def board_from_layout(layout: Sequence[str]) -> GameBoard:
    """Build a board from rows of text where '*' marks a mine.

    Used for fixed, reproducible mine layouts.
    """
    if not layout or not layout[0]:
        raise InvalidBoardError("Layout must contain at least one row and column")
    rows, cols = len(layout), len(layout[0])
    if any(len(line) != cols for line in layout):
        raise InvalidBoardError("Layout rows must all have the same length")

    cells = _empty_cells(rows, cols)
    for row, line in enumerate(layout):
        for col, char in enumerate(line):
            cells[row][col].is_mine = char == '*'
    mines = sum(line.count('*') for line in layout)
    if mines >= rows * cols:
        raise InvalidBoardError(f"Too many mines for the board size: {mines} >= {rows * cols}")

    board = GameBoard(cells=cells, rows=rows, cols=cols, mine_count=mines)
    _fill_neighbor_counts(board)
    return board


def is_valid_board(board: Optional[GameBoard]) -> bool:
    """Check that a board is non-empty and rectangular with the declared dimensions."""
    if board is None or not board.cells or board.rows < 1 or board.cols < 1:
        return False
    if len(board.cells) != board.rows:
        return False
    return all(isinstance(row, list) and len(row) == board.cols for row in board.cells)


def count_revealed(board: GameBoard) -> int:
    return sum(1 for row in board.cells for cell in row if cell.is_revealed)


def count_flagged(board: GameBoard) -> int:
    return sum(1 for row in board.cells for cell in row if cell.is_flagged)
