"""Templated email notifications and the outbound delivery queue."""

import asyncio
import logging
import smtplib
import time
from collections import deque
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path
from typing import Deque, Optional, Protocol, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..core.config import Settings, settings
from ..core.observability import metrics_collector

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Only .html templates are escaped; the .txt bodies go out as plain text
templates = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)

# Permanently failed notifications kept for inspection
FAILED_HISTORY_LIMIT = 100


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str


@dataclass
class Notification:
    """A queued email and its delivery bookkeeping."""

    template: str
    email: OutgoingEmail
    attempts: int = 0
    not_before: float = field(default_factory=time.monotonic)
    last_error: Optional[str] = None


def render_email(name: str, **context) -> Tuple[str, str]:
    """Render the ``email/<name>.html`` and ``email/<name>.txt`` pair."""
    body_html = templates.get_template(f"email/{name}.html").render(**context)
    body_text = templates.get_template(f"email/{name}.txt").render(**context)
    return body_html, body_text


def render_booking_confirmation(booking, customer, package) -> OutgoingEmail:
    """Render the booking confirmation sent after a booking is created."""
    body_html, body_text = render_email(
        "booking_confirmation",
        booking=booking,
        customer=customer,
        package=package,
        departure=booking.departure_date.strftime("%a %b %d %Y"),
        amount=f"{booking.currency} {booking.total_amount:,.2f}",
    )
    return OutgoingEmail(
        to=customer.email,
        subject=f"Booking Confirmation - {booking.booking_reference}",
        html=body_html,
        text=body_text,
    )


def render_password_reset(account, token: str, client_url: str, ttl_minutes: int) -> OutgoingEmail:
    """Render the password reset email carrying the one-time token link."""
    body_html, body_text = render_email(
        "password_reset",
        account=account,
        reset_url=f"{client_url.rstrip('/')}/reset-password?token={token}",
        expiry="1 hour" if ttl_minutes == 60 else f"{ttl_minutes} minutes",
    )
    return OutgoingEmail(
        to=account.email,
        subject="Password Reset Request",
        html=body_html,
        text=body_text,
    )


class EmailBackend(Protocol):
    async def send(self, email: OutgoingEmail) -> None:
        ...


class SMTPEmailBackend:
    """
    Deliver email over SMTP.

    ``smtplib`` is blocking, so each send runs in a worker thread with
    the configured socket timeout.
    """

    def __init__(self, config: Settings):
        self.host = config.email_host
        self.port = config.email_port
        self.username = config.email_user
        self.password = config.email_password
        self.sender = config.email_from
        self.use_tls = config.email_use_tls
        self.timeout = config.email_timeout

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = email.subject
        message["From"] = self.sender
        message["To"] = email.to
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")
        return message

    def _send_sync(self, email: OutgoingEmail) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(self._build_message(email))

    async def send(self, email: OutgoingEmail) -> None:
        await asyncio.to_thread(self._send_sync, email)


class NotificationDispatcher:
    """
    In-process outbound email queue.

    Request handlers call :meth:`enqueue` (or one of the template helpers)
    and return immediately; :class:`~..workers.notification_worker.NotificationWorker`
    drains the queue with bounded retries and linear backoff. A failed send
    is logged and counted, and never reaches the request that triggered it.
    """

    def __init__(
        self,
        backend: Optional[EmailBackend] = None,
        max_attempts: int = 3,
        retry_delay_seconds: float = 30,
        client_url: str = "http://localhost:3000",
        password_reset_ttl_minutes: int = 60,
        failed_history: int = FAILED_HISTORY_LIMIT,
    ):
        self.backend = backend
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.client_url = client_url
        self.password_reset_ttl_minutes = password_reset_ttl_minutes
        self._queue: Deque[Notification] = deque()
        self.failed: Deque[Notification] = deque(maxlen=failed_history)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "NotificationDispatcher":
        backend = SMTPEmailBackend(config) if config.email_enabled else None
        if backend is None:
            logger.info("SMTP not configured, outgoing email will be skipped")
        return cls(
            backend=backend,
            max_attempts=config.notification_max_attempts,
            retry_delay_seconds=config.notification_retry_delay_seconds,
            client_url=config.client_url,
            password_reset_ttl_minutes=config.password_reset_ttl_minutes,
        )

    @property
    def pending(self) -> int:
        return len(self._queue)

    def enqueue(self, template: str, email: OutgoingEmail) -> Notification:
        notification = Notification(template=template, email=email)
        self._queue.append(notification)
        metrics_collector.set_notification_queue_size(len(self._queue))
        logger.debug("Notification queued", extra={"template": template, "to": email.to})
        return notification

    def booking_confirmation(self, booking, customer, package) -> Notification:
        return self.enqueue("booking_confirmation", render_booking_confirmation(booking, customer, package))

    def password_reset(self, account, token: str) -> Notification:
        email = render_password_reset(account, token, self.client_url, self.password_reset_ttl_minutes)
        return self.enqueue("password_reset", email)

    async def drain(self, now: Optional[float] = None) -> int:
        """
        Attempt delivery of every notification that is due.

        Notifications that are not yet due, or that failed and will be
        retried, go back on the queue even if the drain itself is cancelled.

        Args:
            now: Monotonic clock reading, injectable for tests

        Returns:
            int: Number of notifications delivered
        """
        now = time.monotonic() if now is None else now
        delivered = 0
        deferred: Deque[Notification] = deque()

        try:
            while self._queue:
                notification = self._queue.popleft()
                if notification.not_before > now:
                    deferred.append(notification)
                    continue

                if self.backend is None:
                    logger.info(
                        "Email skipped, SMTP not configured",
                        extra={"template": notification.template, "to": notification.email.to},
                    )
                    metrics_collector.record_notification(notification.template, "skipped")
                    continue

                if await self._deliver(notification, deferred, now):
                    delivered += 1
        finally:
            self._queue.extend(deferred)
            metrics_collector.set_notification_queue_size(len(self._queue))

        return delivered

    async def _deliver(self, notification: Notification, deferred: Deque[Notification], now: float) -> bool:
        notification.attempts += 1
        try:
            await self.backend.send(notification.email)
        except asyncio.CancelledError:
            # Shutdown mid-send; keep it for the next drain
            deferred.append(notification)
            raise
        except (smtplib.SMTPException, OSError) as e:
            notification.last_error = str(e)
            self._handle_failure(notification, deferred, now)
            return False
        except Exception as e:
            # Bad headers or encoding; counted as a failed attempt
            notification.last_error = f"{type(e).__name__}: {e}"
            logger.exception("Unexpected error sending email", extra={"template": notification.template})
            self._handle_failure(notification, deferred, now)
            return False

        metrics_collector.record_notification(notification.template, "sent")
        logger.info(
            "Email sent",
            extra={
                "template": notification.template,
                "to": notification.email.to,
                "attempts": notification.attempts,
            },
        )
        return True

    def _handle_failure(self, notification: Notification, deferred: Deque[Notification], now: float) -> None:
        log_extra = {
            "template": notification.template,
            "to": notification.email.to,
            "attempts": notification.attempts,
            "error": notification.last_error,
        }

        if notification.attempts >= self.max_attempts:
            self.failed.append(notification)
            metrics_collector.record_notification(notification.template, "failed")
            logger.error("Email delivery failed permanently", extra=log_extra)
            return

        notification.not_before = now + self.retry_delay_seconds * notification.attempts
        deferred.append(notification)
        metrics_collector.record_notification(notification.template, "retry")
        logger.warning("Email delivery failed, will retry", extra=log_extra)
