"""In-app notification rows and their rendered titles/messages."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import NOTIFICATION_TYPES, Notification, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationSubject:
    """Weak references stored on the row for display lookups."""

    task_id: UUID | None = None
    job_id: UUID | None = None
    comment_id: UUID | None = None


@dataclass(frozen=True)
class RenderedNotification:
    title: str
    message: str


def _with_job_context(task_title: str, job_title: str | None) -> str:
    return f"{task_title} on {job_title}" if job_title else task_title


def render_task_assigned(*, task_title: str, job_title: str | None = None) -> RenderedNotification:
    return RenderedNotification(
        title="You've been assigned to a task",
        message=_with_job_context(task_title, job_title),
    )


def render_job_assigned(*, job_title: str) -> RenderedNotification:
    return RenderedNotification(title="You've been added to a job", message=job_title)


def render_task_completed(*, task_title: str, job_title: str | None = None) -> RenderedNotification:
    return RenderedNotification(
        title="Task completed",
        message=_with_job_context(task_title, job_title),
    )


def render_comment_mention(
    *,
    actor_name: str | None,
    task_title: str | None = None,
    job_title: str | None = None,
) -> RenderedNotification:
    return RenderedNotification(
        title=f"{actor_name or 'Someone'} mentioned you in a comment",
        message=task_title or job_title or "a task",
    )


def notify(
    db: Session,
    *,
    kind: str,
    recipient_id: UUID,
    rendered: RenderedNotification,
    actor_id: UUID | None = None,
    subject: NotificationSubject | None = None,
) -> Notification:
    """
    Add exactly one notification row for the recipient.

    Never deduplicates and never touches email. The row is flushed, not
    committed: the caller owns the transaction.
    """
    if kind not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification kind: {kind}")

    recipient = db.query(User.id).filter(User.id == recipient_id).first()
    if recipient is None:
        raise DomainError(
            code="NOTIFICATION_RECIPIENT_NOT_FOUND",
            http_status=404,
            message="Notification recipient not found",
        )

    subject = subject or NotificationSubject()
    notification = Notification(
        user_id=recipient_id,
        type=kind,
        title=rendered.title,
        message=rendered.message,
        read=False,
        actor_id=actor_id,
        task_id=subject.task_id,
        job_id=subject.job_id,
        comment_id=subject.comment_id,
    )
    db.add(notification)
    db.flush()
    logger.debug("Created %s notification for user %s", kind, recipient_id)
    return notification
