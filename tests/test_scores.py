import math
import sqlite3

import pytest

from minesweeper.scores import (
    ScoreStore,
    ScoreValidationError,
    board_size,
    clamp_limit,
    validate_score_payload,
)


@pytest.fixture
def store(tmp_path):
    score_store = ScoreStore(str(tmp_path / "data" / "scores.sqlite"))
    yield score_store
    score_store.close()


def test_submit_then_query_by_size(store):
    score_id = store.insert_score(name="A", mines=10, size="9x9", time=42)
    assert score_id

    top = store.get_top_scores(size="9x9", limit=10)
    assert [(s.id, s.name, s.mines, s.size, s.time) for s in top] == [(score_id, "A", 10, "9x9", 42)]
    assert top[0].created_at

    assert store.get_top_scores(size="16x16") == []


def test_scores_ordered_by_time_then_most_recent(store):
    store.insert_score(name="slow", mines=10, size="9x9", time=90)
    first = store.insert_score(name="tie-old", mines=10, size="9x9", time=30)
    second = store.insert_score(name="tie-new", mines=10, size="9x9", time=30)
    store.insert_score(name="fast", mines=10, size="9x9", time=12)

    names = [s.name for s in store.get_top_scores(size="9x9")]
    assert names == ["fast", "tie-new", "tie-old", "slow"]
    assert second > first


def test_query_without_size_returns_all(store):
    store.insert_score(name="A", mines=10, size="9x9", time=5)
    store.insert_score(name="B", mines=40, size="16x16", time=3)
    assert [s.name for s in store.get_top_scores()] == ["B", "A"]
    assert [s.name for s in store.get_recent_scores()] == ["B", "A"]


def test_limit_is_clamped(store):
    for i in range(12):
        store.insert_score(name=f"p{i}", mines=10, size="9x9", time=i)
    assert len(store.get_top_scores(limit=0)) == 1
    assert len(store.get_top_scores()) == 10
    assert len(store.get_top_scores(limit=500)) == 12
    assert clamp_limit(None) == 10
    assert clamp_limit(-3) == 1
    assert clamp_limit(1000) == 100


def test_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "scores.sqlite"
    ScoreStore(str(path)).close()
    assert path.exists()


def test_closed_store_raises_storage_error(store):
    store.close()
    with pytest.raises(sqlite3.Error):
        store.insert_score(name="A", mines=10, size="9x9", time=1)


def test_validate_trims_and_converts():
    score = validate_score_payload({"name": "  Ann ", "mines": "10", "size": " 9x9 ", "time": 41.7})
    assert score == {"name": "Ann", "mines": 10, "size": "9x9", "time": 41}


@pytest.mark.parametrize("payload", [
    {"mines": 10, "size": "9x9", "time": 1},
    {"name": "   ", "mines": 10, "size": "9x9", "time": 1},
    {"name": "A", "mines": 10, "size": "", "time": 1},
    {"name": "A", "mines": "ten", "size": "9x9", "time": 1},
    {"name": "A", "mines": 10, "size": "9x9", "time": math.inf},
    {"name": "A", "mines": 10, "size": "9x9", "time": None},
    {"name": "A", "mines": True, "size": "9x9", "time": 1},
    ["not", "an", "object"],
    None,
])
def test_validate_rejects_bad_payloads(payload):
    with pytest.raises(ScoreValidationError):
        validate_score_payload(payload)


def test_board_size():
    assert board_size(16, 30) == "16x30"
