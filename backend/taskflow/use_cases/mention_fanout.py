"""Comment creation and @mention fanout."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import Comment, Job, Task, User
from ..services.email import MentionEmailContext, build_mention_email
from ..services.email_dispatch import EmailDispatcher
from ..services.mention_parser import parse_mentions
from ..services.mention_resolver import resolve_mentions
from ..services.notification_delivery import (
    dispatch_emails,
    load_recipients,
    plan_delivery,
    subject_url,
)
from ..services.notification_writer import NotificationSubject, render_comment_mention

logger = logging.getLogger(__name__)

COMMENT_MENTION = "COMMENT_MENTION"


@dataclass
class FanoutResult:
    tokens: list[str] = field(default_factory=list)
    recipient_ids: list[UUID] = field(default_factory=list)
    notified_user_ids: list[UUID] = field(default_factory=list)
    emails_dispatched: int = 0


def _load_task(db: Session, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise DomainError(code="TASK_NOT_FOUND", http_status=404, message="Task not found")
    return task


def _load_job(db: Session, job_id: UUID | None) -> Job | None:
    if not job_id:
        return None
    return db.query(Job).filter(Job.id == job_id).first()


def fan_out_comment_mentions(
    *,
    db: Session,
    comment: Comment,
    author: User,
    task: Task | None,
    dispatcher: EmailDispatcher,
) -> FanoutResult:
    """
    Notify everyone the comment mentions, at most once each, never the author.

    In-app rows are committed together with the comment; emails are handed
    to the dispatcher only after that commit succeeded.
    """
    result = FanoutResult(tokens=parse_mentions(comment.body))
    recipient_ids = resolve_mentions(db, result.tokens) if result.tokens else set()
    recipient_ids.discard(author.id)
    result.recipient_ids = sorted(recipient_ids, key=str)

    job = _load_job(db, task.job_id) if task is not None else None
    subject = NotificationSubject(
        task_id=task.id if task is not None else None,
        job_id=job.id if job is not None else None,
        comment_id=comment.id,
    )
    rendered = render_comment_mention(
        actor_name=author.display_name,
        task_title=task.title if task is not None else None,
        job_title=job.title if job is not None else None,
    )
    url = subject_url(subject)

    def build_email(recipient: User):
        return build_mention_email(
            recipient.email,
            MentionEmailContext(
                commenter_name=author.display_name,
                url=url,
                task_title=task.title if task is not None else None,
                job_title=job.title if job is not None else None,
                job_number=job.job_number if job is not None else None,
                comment_body=comment.body,
            ),
        )

    plan = plan_delivery(
        db,
        kind=COMMENT_MENTION,
        recipients=load_recipients(db, recipient_ids),
        rendered=rendered,
        actor_id=author.id,
        subject=subject,
        build_email=build_email,
    )

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    result.notified_user_ids = plan.notified_user_ids
    result.emails_dispatched = dispatch_emails(dispatcher, plan.emails)
    if result.tokens:
        logger.info(
            "Comment %s: %d mention token(s), %d recipient(s), %d email(s) dispatched",
            comment.id,
            len(result.tokens),
            len(result.recipient_ids),
            result.emails_dispatched,
        )
    return result


def create_comment_use_case(
    *,
    db: Session,
    body: str,
    author: User,
    task_id: UUID | None,
    dispatcher: EmailDispatcher,
) -> tuple[Comment, FanoutResult]:
    """Persist a comment and fan its mentions out."""
    if body is None or not body.strip():
        raise DomainError(
            code="COMMENT_BODY_REQUIRED",
            http_status=400,
            message="Comment body is required",
        )

    task = _load_task(db, task_id) if task_id else None

    comment = Comment(body=body, author_id=author.id, task_id=task.id if task is not None else None)
    db.add(comment)
    db.flush()

    result = fan_out_comment_mentions(
        db=db,
        comment=comment,
        author=author,
        task=task,
        dispatcher=dispatcher,
    )
    return comment, result
