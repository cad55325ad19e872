"""Environment-driven settings for the worker and server."""
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    port: int = 3000
    temporal_address: str = "localhost:7233"
    temporal_namespace: str = "default"
    task_queue: str = "minesweeper-task-queue"
    scores_db_path: str = "data/scores.sqlite"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            port=int(os.getenv("PORT", 3000)),
            temporal_address=os.getenv("TEMPORAL_ADDRESS", "localhost:7233"),
            temporal_namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
            task_queue=os.getenv("TEMPORAL_TASK_QUEUE", "minesweeper-task-queue"),
            scores_db_path=os.getenv("SCORES_DB_PATH", "data/scores.sqlite"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
