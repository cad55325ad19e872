"""Shared fixtures: fixed mine layouts and deterministic clocks."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from minesweeper.board import board_from_layout
from minesweeper.types import GameState

# 9x9, 10 mines. (2, 5) has no neighbouring mines; (0, 0) is walled in by
# mines so a flood fill can never reach it.
NINE_BY_NINE = [
    ".*.......",
    "**.......",
    ".........",
    "*........",
    "....*....",
    ".........",
    "......*..",
    "........*",
    "*.....*.*",
]

# Corner mines: the centre shows 2 and is the chord target
CHORD_LAYOUT = [
    "*..",
    "...",
    "..*",
]

# Single centre mine: no cell is zero, so nothing cascades
CENTRE_MINE = [
    "...",
    ".*.",
    "...",
]


class FakeClock:
    """Callable clock that advances a fixed step on every read."""

    def __init__(self, step_seconds: int = 1):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step_seconds)

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def make_state(layout, game_id: str = "test-game") -> GameState:
    board = board_from_layout(layout)
    return GameState(id=game_id, board=board, mine_count=board.mine_count)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def nine_by_nine_state() -> GameState:
    return make_state(NINE_BY_NINE)


@pytest.fixture
def chord_state() -> GameState:
    return make_state(CHORD_LAYOUT)


@pytest.fixture
def centre_mine_state() -> GameState:
    return make_state(CENTRE_MINE)
