"""Temporal worker for Minesweeper game."""
import asyncio
import logging
from temporalio.worker import Worker
from minesweeper.workflows import MinesweeperWorkflow
from minesweeper import activities
from minesweeper.client_provider import get_temporal_client
from minesweeper.config import Settings

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def build_worker(client, task_queue: str = settings.task_queue) -> Worker:
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[MinesweeperWorkflow],
        activities=[
            activities.create_game_board,
            activities.apply_move,
        ],
    )


async def main():
    """Start the Temporal worker."""
    client = await get_temporal_client(settings)
    worker = build_worker(client)

    logger.info("Worker started, connected to Temporal")
    logger.info(f"Listening on task queue: {settings.task_queue}")

    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
