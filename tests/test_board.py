import random

import pytest

from minesweeper.board import (
    InvalidBoardError,
    at,
    board_from_layout,
    count_flagged,
    count_neighbor_mines,
    count_revealed,
    create_board,
    get_difficulty_settings,
    is_valid_board,
    neighbors,
)
from minesweeper.types import DifficultySettings, GameBoard

from conftest import NINE_BY_NINE


def brute_force_count(board, row, col):
    count = 0
    for r in range(row - 1, row + 2):
        for c in range(col - 1, col + 2):
            if (r, c) == (row, col):
                continue
            if 0 <= r < board.rows and 0 <= c < board.cols and board.cells[r][c].is_mine:
                count += 1
    return count


@pytest.mark.parametrize("rows,cols,mines", [(9, 9, 10), (16, 16, 40), (16, 30, 99), (1, 2, 1), (5, 5, 24), (4, 7, 0)])
def test_create_board_places_exact_mine_count(rows, cols, mines):
    for seed in range(5):
        board = create_board(rows, cols, mines, rng=random.Random(seed))
        assert board.rows == rows and board.cols == cols
        assert board.mine_count == mines
        assert sum(cell.is_mine for row in board.cells for cell in row) == mines


def test_create_board_starts_hidden_and_unflagged():
    board = create_board(9, 9, 10, rng=random.Random(3))
    assert count_revealed(board) == 0
    assert count_flagged(board) == 0
    for r, row in enumerate(board.cells):
        for c, cell in enumerate(row):
            assert (cell.row, cell.col) == (r, c)


def test_neighbor_counts_match_clipped_neighbourhood():
    for seed in range(10):
        board = create_board(8, 11, 20, rng=random.Random(seed))
        for row in board.cells:
            for cell in row:
                if cell.is_mine:
                    assert cell.neighbor_mines == 0
                else:
                    assert cell.neighbor_mines == brute_force_count(board, cell.row, cell.col)


@pytest.mark.parametrize("rows,cols,mines", [(3, 3, 9), (3, 3, 10), (2, 2, -1), (0, 5, 0), (5, 0, 0)])
def test_create_board_rejects_impossible_shapes(rows, cols, mines):
    with pytest.raises(InvalidBoardError):
        create_board(rows, cols, mines)


def test_invalid_board_error_is_a_value_error():
    with pytest.raises(ValueError):
        create_board(2, 2, 4)


def test_same_seed_gives_same_layout():
    first = create_board(9, 9, 10, rng=random.Random(42))
    second = create_board(9, 9, 10, rng=random.Random(42))
    assert [[c.is_mine for c in row] for row in first.cells] == [[c.is_mine for c in row] for row in second.cells]


def test_at_returns_none_out_of_range():
    board = board_from_layout(NINE_BY_NINE)
    assert at(board, 0, 1).is_mine
    assert at(board, -1, 0) is None
    assert at(board, 0, -1) is None
    assert at(board, 9, 0) is None
    assert at(board, 0, 9) is None


def test_neighbors_are_clipped_to_the_grid():
    board = board_from_layout(NINE_BY_NINE)
    assert sorted(neighbors(board, 0, 0)) == [(0, 1), (1, 0), (1, 1)]
    assert len(list(neighbors(board, 4, 4))) == 8
    assert len(list(neighbors(board, 8, 4))) == 5


def test_board_from_layout_counts():
    board = board_from_layout(NINE_BY_NINE)
    assert board.mine_count == 10
    assert board.cells[0][0].neighbor_mines == 3
    assert board.cells[2][5].neighbor_mines == 0
    assert count_neighbor_mines(board, 7, 7) == 4


def test_board_from_layout_rejects_ragged_rows():
    with pytest.raises(InvalidBoardError):
        board_from_layout(["...", ".."])
    with pytest.raises(InvalidBoardError):
        board_from_layout([])
    with pytest.raises(InvalidBoardError):
        board_from_layout(["**", "**"])


def test_is_valid_board():
    assert is_valid_board(board_from_layout(NINE_BY_NINE))
    assert not is_valid_board(None)
    assert not is_valid_board(GameBoard(cells=[], rows=0, cols=0, mine_count=0))
    board = board_from_layout(NINE_BY_NINE)
    board.cells[3] = board.cells[3][:4]
    assert not is_valid_board(board)


def test_difficulty_presets():
    assert get_difficulty_settings('easy') == DifficultySettings(9, 9, 10)
    assert get_difficulty_settings('medium') == DifficultySettings(16, 16, 40)
    assert get_difficulty_settings('hard') == DifficultySettings(16, 30, 99)


def test_custom_difficulty_uses_twenty_percent_mines():
    assert get_difficulty_settings('custom', 12, 15) == DifficultySettings(12, 15, 36)
    assert get_difficulty_settings('custom', 7, 7) == DifficultySettings(7, 7, 9)
    assert get_difficulty_settings('custom') == DifficultySettings(10, 10, 20)


def test_unknown_difficulty():
    with pytest.raises(ValueError):
        get_difficulty_settings('impossible')
