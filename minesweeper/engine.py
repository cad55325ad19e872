"""Reveal engine: flood fill, chord reveal, flags and win detection.

Every operation takes a board snapshot and returns a result holding either the
same snapshot (nothing changed) or a deep copy with the changes applied. The
input board is never mutated.
"""
import copy
from dataclasses import dataclass
from typing import List, Optional, Tuple

from minesweeper.board import at, count_flagged, count_revealed, neighbors
from minesweeper.types import GameBoard, GameStatus


@dataclass
class RevealResult:
    board: GameBoard
    outcome: Optional[GameStatus] = None


@dataclass
class FlagResult:
    board: GameBoard
    flag_count: Optional[int] = None


def reveal_all_mines(board: GameBoard) -> None:
    """Reveal every mine on the board in place."""
    for row in board.cells:
        for cell in row:
            if cell.is_mine:
                cell.is_revealed = True


def flood_fill(board: GameBoard, row: int, col: int) -> int:
    """Reveal (row, col) in place and cascade through zero cells.

    Uses an explicit stack so large custom boards cannot exhaust the
    interpreter's recursion limit. Returns the number of cells revealed.
    """
    revealed = 0
    stack: List[Tuple[int, int]] = [(row, col)]
    while stack:
        r, c = stack.pop()
        cell = at(board, r, c)
        if cell is None or cell.is_revealed or cell.is_flagged or cell.is_mine:
            continue

        cell.is_revealed = True
        revealed += 1

        # If this cell has no neighboring mines, reveal all neighbors
        if cell.neighbor_mines == 0:
            for nr, nc in neighbors(board, r, c):
                if not board.cells[nr][nc].is_revealed:
                    stack.append((nr, nc))
    return revealed


def check_win(board: GameBoard) -> Optional[GameStatus]:
    total_cells = board.rows * board.cols
    if count_revealed(board) == total_cells - board.mine_count:
        return GameStatus.WON
    return None


def reveal_single(board: GameBoard, row: int, col: int) -> RevealResult:
    """Reveal a cell and potentially cascade to neighbors."""
    cell = board.cells[row][col]

    if cell.is_revealed or cell.is_flagged:
        return RevealResult(board)

    new_board = copy.deepcopy(board)

    if cell.is_mine:
        reveal_all_mines(new_board)
        return RevealResult(new_board, GameStatus.LOST)

    flood_fill(new_board, row, col)
    return RevealResult(new_board, check_win(new_board))


def chord_reveal(board: GameBoard, row: int, col: int) -> RevealResult:
    """Mass open adjacent cells when flags match the cell's number."""
    cell = board.cells[row][col]

    # Can only chord on revealed cells with numbers
    if not cell.is_revealed or cell.is_mine or cell.neighbor_mines == 0:
        return RevealResult(board)

    flagged_count = 0
    neighbors_to_reveal = []
    for nr, nc in neighbors(board, row, col):
        neighbor = board.cells[nr][nc]
        if neighbor.is_flagged:
            flagged_count += 1
        elif not neighbor.is_revealed:
            neighbors_to_reveal.append((nr, nc))

    if flagged_count != cell.neighbor_mines or not neighbors_to_reveal:
        return RevealResult(board)

    new_board = copy.deepcopy(board)
    for nr, nc in neighbors_to_reveal:
        if new_board.cells[nr][nc].is_mine:
            # Stop at the first mine; later neighbors stay hidden
            reveal_all_mines(new_board)
            return RevealResult(new_board, GameStatus.LOST)
        flood_fill(new_board, nr, nc)

    return RevealResult(new_board, check_win(new_board))


def toggle_flag(board: GameBoard, row: int, col: int) -> FlagResult:
    """Toggle flag on a cell."""
    if board.cells[row][col].is_revealed:
        return FlagResult(board)

    new_board = copy.deepcopy(board)
    new_cell = new_board.cells[row][col]
    new_cell.is_flagged = not new_cell.is_flagged

    return FlagResult(new_board, count_flagged(new_board))
