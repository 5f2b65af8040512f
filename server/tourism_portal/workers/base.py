"""Periodic background worker run inside the application's event loop."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Calls :meth:`process` every ``interval_seconds`` until stopped.

    The wait between iterations is interruptible, so :meth:`stop` returns as
    soon as the running iteration ends. An iteration still running after
    ``stop_timeout`` seconds is cancelled. A failing iteration is logged and
    counted, and the loop carries on at the next interval.
    """

    def __init__(self, name: str, interval_seconds: float = 60, stop_timeout: float = 10):
        self.name = name
        self.interval_seconds = interval_seconds
        self.stop_timeout = stop_timeout
        self.iterations = 0
        self.failures = 0
        self.last_error: Optional[str] = None
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @abstractmethod
    async def process(self) -> None:
        """Do one unit of work."""

    async def run_once(self) -> bool:
        """Run a single iteration; returns False if it raised."""
        started = time.monotonic()
        self.iterations += 1
        try:
            await self.process()
        except Exception as e:
            self.failures += 1
            self.last_error = f"{type(e).__name__}: {e}"
            logger.error(
                "Worker iteration failed",
                exc_info=True,
                extra={"worker": self.name, "failures": self.failures},
            )
            return False

        logger.debug(
            "Worker iteration completed",
            extra={"worker": self.name, "duration_seconds": time.monotonic() - started},
        )
        return True

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Worker is already running", extra={"worker": self.name})
            return

        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name=f"worker:{self.name}")
        logger.info(
            "Worker started",
            extra={"worker": self.name, "interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Ask the loop to exit and wait for it."""
        if not self.is_running:
            logger.warning("Worker is not running", extra={"worker": self.name})
            return

        self._stopping.set()
        task, self._task = self._task, None
        try:
            await asyncio.wait_for(task, timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            # wait_for has already cancelled the iteration
            logger.warning("Worker iteration cancelled on stop", extra={"worker": self.name})

        logger.info("Worker stopped", extra={"worker": self.name, "iterations": self.iterations})

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            started = time.monotonic()
            await self.run_once()

            remaining = self.interval_seconds - (time.monotonic() - started)
            if remaining <= 0:
                continue
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass
