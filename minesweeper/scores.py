"""SQLite-backed leaderboard storage."""
import logging
import math
import pathlib
import sqlite3
import threading
from typing import List, Optional

from minesweeper.types import ScoreRecord

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class ScoreValidationError(ValueError):
    """Raised when a score submission is missing or has malformed fields."""


def _to_finite_number(value, field_name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ScoreValidationError(f"'{field_name}' must be a finite number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ScoreValidationError(f"'{field_name}' must be a finite number") from None
    if not math.isfinite(number):
        raise ScoreValidationError(f"'{field_name}' must be a finite number")
    return number


def validate_score_payload(payload) -> dict:
    """Normalise a score submission or raise ScoreValidationError."""
    if not isinstance(payload, dict):
        raise ScoreValidationError("Score payload must be a JSON object")

    name = payload.get('name')
    size = payload.get('size')
    name = name.strip() if isinstance(name, str) else ''
    size = size.strip() if isinstance(size, str) else ''
    if not name:
        raise ScoreValidationError("'name' is required")
    if not size:
        raise ScoreValidationError("'size' is required")

    mines = _to_finite_number(payload.get('mines'), 'mines')
    time = _to_finite_number(payload.get('time'), 'time')

    return {'name': name, 'mines': int(mines), 'size': size, 'time': int(time)}


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    if limit is None:
        return default
    return max(1, min(MAX_LIMIT, limit))


def board_size(rows: int, cols: int) -> str:
    """Format board dimensions the way scores are keyed, e.g. '9x9'."""
    return f"{rows}x{cols}"


class ScoreStore:
    """Scores table keyed by board size and ordered by completion time."""

    def __init__(self, path: str):
        self.path = path
        if path != ':memory:':
            pathlib.Path(path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS scores (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    mines INTEGER NOT NULL,
                    size TEXT NOT NULL,
                    time INTEGER NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            # Index to speed up leaderboard queries
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_scores_leaderboard ON scores (size, time ASC, created_at DESC)"
            )
        logger.info("Score store ready at %s", path)

    def close(self) -> None:
        self._conn.close()

    def insert_score(self, name: str, mines: int, size: str, time: int) -> int:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "INSERT INTO scores (name, mines, size, time) VALUES (:name, :mines, :size, :time)",
                {'name': name, 'mines': mines, 'size': size, 'time': time},
            )
        return cursor.lastrowid

    def get_top_scores(self, limit: Optional[int] = DEFAULT_LIMIT, size: Optional[str] = None) -> List[ScoreRecord]:
        params = {'limit': clamp_limit(limit)}
        where = ''
        if size:
            where = 'WHERE size = :size'
            params['size'] = size
        query = (
            "SELECT id, name, mines, size, time, created_at FROM scores "
            f"{where} ORDER BY time ASC, created_at DESC, id DESC LIMIT :limit"
        )
        return self._fetch(query, params)

    def get_recent_scores(self, limit: Optional[int] = 20) -> List[ScoreRecord]:
        return self._fetch(
            "SELECT id, name, mines, size, time, created_at FROM scores "
            "ORDER BY created_at DESC, id DESC LIMIT :limit",
            {'limit': clamp_limit(limit, default=20)},
        )

    def _fetch(self, query: str, params: dict) -> List[ScoreRecord]:
        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [ScoreRecord(**dict(row)) for row in rows]
