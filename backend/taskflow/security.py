"""Access checks over the collaboration graph."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from .models import JobCollaborator, Task, TaskAssignee, User


def is_job_collaborator(db: Session, *, user_id: UUID, job_id: UUID) -> bool:
    return db.query(JobCollaborator.id).filter(
        JobCollaborator.job_id == job_id,
        JobCollaborator.user_id == user_id,
    ).first() is not None


def is_task_assignee(db: Session, *, user_id: UUID, task_id: UUID) -> bool:
    return db.query(TaskAssignee.id).filter(
        TaskAssignee.task_id == task_id,
        TaskAssignee.user_id == user_id,
    ).first() is not None


def can_manage_job(db: Session, user: User, job_id: UUID | None) -> bool:
    """Admins manage every job; other users only jobs they collaborate on."""
    if user.is_admin:
        return True
    if job_id is None:
        return False
    return is_job_collaborator(db, user_id=user.id, job_id=job_id)


def can_work_on_task(db: Session, user: User, task: Task) -> bool:
    if can_manage_job(db, user, task.job_id):
        return True
    return is_task_assignee(db, user_id=user.id, task_id=task.id)
