"""Assignment changes that notify the affected users."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import AuditEvent, Job, JobCollaborator, Task, TaskAssignee, User
from ..security import can_manage_job, can_work_on_task
from ..services.email import build_notification_email
from ..services.email_dispatch import EmailDispatcher
from ..services.notification_delivery import (
    DeliveryPlan,
    dispatch_emails,
    load_recipients,
    plan_delivery,
    subject_url,
)
from ..services.notification_writer import (
    NotificationSubject,
    RenderedNotification,
    render_job_assigned,
    render_task_assigned,
    render_task_completed,
)


@dataclass
class AssignmentResult:
    changed: bool
    notified_user_ids: list[UUID] = field(default_factory=list)
    emails_dispatched: int = 0


def _get_task_or_404(db: Session, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise DomainError(code="TASK_NOT_FOUND", http_status=404, message="Task not found")
    return task


def _get_job_or_404(db: Session, job_id: UUID) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise DomainError(code="JOB_NOT_FOUND", http_status=404, message="Job not found")
    return job


def _get_active_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise DomainError(code="USER_NOT_FOUND", http_status=404, message="User not found")
    if user.is_paused:
        raise DomainError(code="USER_PAUSED", http_status=400, message="User is paused")
    return user


def _job_for_task(db: Session, task: Task) -> Job | None:
    if not task.job_id:
        return None
    return db.query(Job).filter(Job.id == task.job_id).first()


def _plan_for(
    db: Session,
    *,
    kind: str,
    recipient_ids: set[UUID],
    rendered: RenderedNotification,
    actor: User,
    subject: NotificationSubject,
) -> DeliveryPlan:
    url = subject_url(subject)
    return plan_delivery(
        db,
        kind=kind,
        recipients=load_recipients(db, recipient_ids),
        rendered=rendered,
        actor_id=actor.id,
        subject=subject,
        build_email=lambda recipient: build_notification_email(recipient.email, rendered, url),
    )


def _commit_and_dispatch(db: Session, plan: DeliveryPlan, dispatcher: EmailDispatcher) -> AssignmentResult:
    db.commit()
    return AssignmentResult(
        changed=True,
        notified_user_ids=plan.notified_user_ids,
        emails_dispatched=dispatch_emails(dispatcher, plan.emails),
    )


def assign_user_to_task_use_case(
    *,
    db: Session,
    task_id: UUID,
    user_id: UUID,
    actor: User,
    dispatcher: EmailDispatcher,
) -> AssignmentResult:
    """Add a TaskAssignee row; already assigned is a silent no-op."""
    task = _get_task_or_404(db, task_id)
    if not can_manage_job(db, actor, task.job_id):
        raise DomainError(code="TASK_ASSIGN_FORBIDDEN", http_status=403, message="Access denied")
    assignee = _get_active_user_or_404(db, user_id)

    existing = db.query(TaskAssignee).filter(
        TaskAssignee.task_id == task.id,
        TaskAssignee.user_id == assignee.id,
    ).first()
    if existing:
        return AssignmentResult(changed=False)

    db.add(TaskAssignee(task_id=task.id, user_id=assignee.id))
    db.add(
        AuditEvent(
            action="task_assignee_added",
            entity_type="task",
            entity_id=task.id,
            user_id=actor.id,
            details={"assigneeId": str(assignee.id)},
        )
    )

    plan = DeliveryPlan()
    if assignee.id != actor.id:
        job = _job_for_task(db, task)
        plan = _plan_for(
            db,
            kind="TASK_ASSIGNED",
            recipient_ids={assignee.id},
            rendered=render_task_assigned(task_title=task.title, job_title=job.title if job else None),
            actor=actor,
            subject=NotificationSubject(task_id=task.id, job_id=task.job_id),
        )
    return _commit_and_dispatch(db, plan, dispatcher)


def add_job_collaborator_use_case(
    *,
    db: Session,
    job_id: UUID,
    user_id: UUID,
    actor: User,
    dispatcher: EmailDispatcher,
) -> AssignmentResult:
    """Grant a user access to a job; an existing grant is a silent no-op."""
    job = _get_job_or_404(db, job_id)
    if not can_manage_job(db, actor, job.id):
        raise DomainError(code="JOB_COLLABORATOR_FORBIDDEN", http_status=403, message="Access denied")
    collaborator = _get_active_user_or_404(db, user_id)

    existing = db.query(JobCollaborator).filter(
        JobCollaborator.job_id == job.id,
        JobCollaborator.user_id == collaborator.id,
    ).first()
    if existing:
        return AssignmentResult(changed=False)

    db.add(JobCollaborator(job_id=job.id, user_id=collaborator.id))
    db.add(
        AuditEvent(
            action="job_collaborator_added",
            entity_type="job",
            entity_id=job.id,
            user_id=actor.id,
            details={"collaboratorId": str(collaborator.id)},
        )
    )

    plan = DeliveryPlan()
    if collaborator.id != actor.id:
        plan = _plan_for(
            db,
            kind="JOB_ASSIGNED",
            recipient_ids={collaborator.id},
            rendered=render_job_assigned(job_title=job.title),
            actor=actor,
            subject=NotificationSubject(job_id=job.id),
        )
    return _commit_and_dispatch(db, plan, dispatcher)


def complete_task_use_case(
    *,
    db: Session,
    task_id: UUID,
    actor: User,
    dispatcher: EmailDispatcher,
) -> AssignmentResult:
    """Mark a task DONE and tell its assignees and creator, except the actor."""
    task = _get_task_or_404(db, task_id)
    if not can_work_on_task(db, actor, task):
        raise DomainError(code="TASK_COMPLETE_FORBIDDEN", http_status=403, message="Access denied")

    # Idempotent.
    if task.status == "DONE":
        return AssignmentResult(changed=False)

    old_status = task.status
    task.status = "DONE"
    task.completed_at = datetime.now(timezone.utc)
    db.add(
        AuditEvent(
            action="task_completed",
            entity_type="task",
            entity_id=task.id,
            user_id=actor.id,
            details={"oldStatus": old_status, "newStatus": "DONE"},
        )
    )

    recipient_ids = {
        row[0] for row in db.query(TaskAssignee.user_id).filter(TaskAssignee.task_id == task.id).all()
    }
    if task.created_by_id:
        recipient_ids.add(task.created_by_id)
    recipient_ids.discard(actor.id)

    job = _job_for_task(db, task)
    plan = _plan_for(
        db,
        kind="TASK_COMPLETED",
        recipient_ids=recipient_ids,
        rendered=render_task_completed(task_title=task.title, job_title=job.title if job else None),
        actor=actor,
        subject=NotificationSubject(task_id=task.id, job_id=task.job_id),
    )
    return _commit_and_dispatch(db, plan, dispatcher)
