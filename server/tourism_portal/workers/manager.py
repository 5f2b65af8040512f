"""Worker manager for coordinating background tasks."""

import asyncio
import logging
from typing import Dict, Iterable

from ..core.config import Settings
from ..services.notification_service import NotificationDispatcher
from .base import BaseWorker
from .notification_worker import NotificationWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """
    Manages background workers for the application.

    Built in the application lifespan and stored on ``app.state``; it owns
    starting and stopping every worker.
    """

    def __init__(self, workers: Iterable[BaseWorker] = ()):
        self.workers: Dict[str, BaseWorker] = {worker.name: worker for worker in workers}

    @classmethod
    def for_application(cls, config: Settings, dispatcher: NotificationDispatcher) -> "WorkerManager":
        """Build the standard worker set."""
        return cls([
            NotificationWorker(dispatcher, interval_seconds=config.notification_interval_seconds),
        ])

    async def start_all(self) -> None:
        """Start all workers."""
        for name, worker in self.workers.items():
            try:
                await worker.start()
            except Exception:
                logger.error("Failed to start worker", exc_info=True, extra={"worker": name})

        logger.info("Workers started", extra={"workers": sorted(self.workers)})

    async def stop_all(self) -> None:
        """Stop all workers gracefully."""
        names = list(self.workers)
        results = await asyncio.gather(
            *(self.workers[name].stop() for name in names),
            return_exceptions=True,
        )

        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(
                    "Error stopping worker",
                    extra={"worker": name, "error": str(result)}
                )

        logger.info("Workers stopped", extra={"workers": names})

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> Dict[str, bool]:
        """Map worker names to whether they are running."""
        return {name: worker.is_running for name, worker in self.workers.items()}
