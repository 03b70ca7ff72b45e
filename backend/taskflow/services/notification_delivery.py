"""Two-stage per-recipient delivery: in-app rows in the transaction, emails after commit."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError
from ..models import User
from .email import EmailMessage
from .email_dispatch import EmailDispatcher
from .notification_preferences import get_channel_flags
from .notification_writer import NotificationSubject, RenderedNotification, notify

logger = logging.getLogger(__name__)

EmailBuilder = Callable[[User], Optional[EmailMessage]]


@dataclass
class DeliveryPlan:
    """Outcome of the in-transaction stage plus the emails still to send."""

    notified_user_ids: list[UUID] = field(default_factory=list)
    skipped_user_ids: list[UUID] = field(default_factory=list)
    emails: list[EmailMessage] = field(default_factory=list)


def app_url(path: str = "") -> str:
    base = settings.APP_BASE_URL.rstrip("/")
    if not path:
        return base
    return f"{base}/{path.lstrip('/')}"


def subject_url(subject: NotificationSubject) -> str:
    if subject.job_id:
        return app_url(f"/jobs/{subject.job_id}")
    if subject.task_id:
        return app_url("/tasks")
    return app_url()


def load_recipients(db: Session, recipient_ids: Iterable[UUID]) -> list[User]:
    ids = sorted(set(recipient_ids), key=str)
    if not ids:
        return []
    users = db.query(User).filter(User.id.in_(ids)).all()
    return sorted(users, key=lambda u: str(u.id))


def plan_delivery(
    db: Session,
    *,
    kind: str,
    recipients: Iterable[User],
    rendered: RenderedNotification,
    actor_id: UUID | None,
    subject: NotificationSubject,
    build_email: EmailBuilder,
) -> DeliveryPlan:
    """
    Gate and write in-app notifications, collecting emails for later.

    Per recipient the in-app row is written before its email is queued.
    """
    plan = DeliveryPlan()
    for recipient in recipients:
        flags = get_channel_flags(db, recipient.id, kind)

        if flags.in_app:
            try:
                notify(
                    db,
                    kind=kind,
                    recipient_id=recipient.id,
                    rendered=rendered,
                    actor_id=actor_id,
                    subject=subject,
                )
            except DomainError:
                logger.warning("Skipping %s notification for missing user %s", kind, recipient.id)
                plan.skipped_user_ids.append(recipient.id)
                continue
            plan.notified_user_ids.append(recipient.id)

        if flags.email:
            if not recipient.email:
                logger.info("No email address for user %s; skipping %s email", recipient.id, kind)
                continue
            message = build_email(recipient)
            if message is not None:
                plan.emails.append(message)
    return plan


def dispatch_emails(dispatcher: EmailDispatcher, emails: Iterable[EmailMessage]) -> int:
    """Hand each email off independently; returns how many were accepted."""
    accepted = 0
    for message in emails:
        if dispatcher.dispatch(message):
            accepted += 1
    return accepted
