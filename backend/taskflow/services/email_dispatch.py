"""Isolated best-effort email dispatch.

Each message is handed off on its own: in ``queue`` mode as one Celery task
per recipient, in ``inline`` mode as one guarded call. ``dispatch`` never
raises, so one recipient's failure cannot reach the caller or other recipients.
"""
from __future__ import annotations

import logging
from typing import Callable

from ..config import settings
from .email import EmailMessage, send_email

logger = logging.getLogger(__name__)

DISPATCH_QUEUE = "queue"
DISPATCH_INLINE = "inline"

Sender = Callable[[EmailMessage], tuple]
Enqueuer = Callable[[EmailMessage], None]


def _enqueue_with_celery(message: EmailMessage) -> None:
    from ..celery_app import deliver_email

    deliver_email.delay(message.to, message.subject, message.html, message.text)


class EmailDispatcher:
    """Supervises every outgoing email so its failure stays local."""

    def __init__(
        self,
        *,
        mode: str | None = None,
        sender: Sender = send_email,
        enqueuer: Enqueuer = _enqueue_with_celery,
    ) -> None:
        self.mode = mode or settings.EMAIL_DISPATCH_MODE
        if self.mode not in (DISPATCH_QUEUE, DISPATCH_INLINE):
            raise ValueError(f"Unknown email dispatch mode: {self.mode}")
        self._sender = sender
        self._enqueuer = enqueuer

    def dispatch(self, message: EmailMessage) -> bool:
        """Hand off one message; True if it was queued or sent."""
        try:
            if self.mode == DISPATCH_QUEUE:
                self._enqueuer(message)
                return True
            ok, error = self._sender(message)
        except Exception:
            logger.exception("Email dispatch to %s failed", message.to)
            return False
        if not ok:
            logger.warning("Email to %s not sent: %s", message.to, error)
        return ok

    def send_now(self, message: EmailMessage) -> tuple[bool, str | None]:
        """Synchronous send for flows that must know the outcome (invitations)."""
        try:
            return self._sender(message)
        except Exception as e:
            logger.exception("Email send to %s failed", message.to)
            return False, f"EXCEPTION: {e}"


def get_email_dispatcher() -> EmailDispatcher:
    """FastAPI dependency."""
    return EmailDispatcher()
