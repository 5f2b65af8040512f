"""Background worker that delivers queued email notifications."""

import logging

from ..services.notification_service import NotificationDispatcher
from .base import BaseWorker

logger = logging.getLogger(__name__)


class NotificationWorker(BaseWorker):
    """
    Drains the notification dispatcher's queue.

    Each iteration attempts every notification that is due; failed sends
    are rescheduled by the dispatcher until they run out of attempts.
    """

    def __init__(self, dispatcher: NotificationDispatcher, interval_seconds: float = 5):
        super().__init__(name="Notifications", interval_seconds=interval_seconds)
        self.dispatcher = dispatcher

    async def process(self) -> None:
        """Deliver due notifications."""
        if not self.dispatcher.pending:
            return

        delivered = await self.dispatcher.drain()
        if delivered:
            logger.info(
                "Notifications delivered",
                extra={"delivered": delivered, "pending": self.dispatcher.pending, "worker": self.name}
            )

    async def stop(self) -> None:
        """Stop the loop, then make one last delivery pass."""
        await super().stop()
        if self.dispatcher.pending:
            await self.dispatcher.drain()
