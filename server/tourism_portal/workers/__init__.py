"""Background workers for the tourism portal."""

from .base import BaseWorker
from .manager import WorkerManager
from .notification_worker import NotificationWorker

__all__ = ["BaseWorker", "NotificationWorker", "WorkerManager"]
