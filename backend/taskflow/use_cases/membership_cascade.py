"""Irreversible removal of a user's collaboration and assignment footprint."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import AuditEvent, JobCollaborator, TaskAssignee, User
from ..services.view_cache import ViewCacheInvalidator

logger = logging.getLogger(__name__)

CASCADE_VIEW_PATHS: tuple[str, ...] = ("/admin/collaborators", "/jobs", "/tasks", "/my-tasks")


@dataclass(frozen=True)
class CascadeResult:
    target_user_id: UUID
    affected_job_ids: list[UUID] = field(default_factory=list)
    removed_assignments: int = 0
    removed_collaborations: int = 0


def view_paths_for_cascade(result: CascadeResult) -> list[str]:
    """General views plus one detail page per job the user collaborated on."""
    return list(CASCADE_VIEW_PATHS) + [f"/jobs/{job_id}" for job_id in result.affected_job_ids]


@dataclass(frozen=True)
class MembershipCascade:
    """
    Delete every TaskAssignee and JobCollaborator row of one user.

    Both deletes and the audit entry commit together or not at all. A second
    run against the same user removes nothing and still succeeds.
    """

    target_user_id: UUID
    requested_by: User

    def authorize(self, db: Session) -> User:
        if not self.requested_by.is_admin:
            raise DomainError(
                code="CASCADE_FORBIDDEN",
                http_status=403,
                message="Only administrators can remove users from jobs",
            )
        if self.target_user_id == self.requested_by.id:
            raise DomainError(
                code="CASCADE_SELF_REMOVAL",
                http_status=400,
                message="You cannot remove yourself",
            )
        target = db.query(User).filter(User.id == self.target_user_id).first()
        if not target:
            raise DomainError(code="USER_NOT_FOUND", http_status=404, message="User not found")
        return target

    def _delete_collaborations(self, db: Session) -> list[UUID]:
        """Delete the user's collaborator rows; returns the job id of each removed row."""
        statement = (
            delete(JobCollaborator)
            .where(JobCollaborator.user_id == self.target_user_id)
            .returning(JobCollaborator.job_id)
            .execution_options(synchronize_session=False)
        )
        return list(db.execute(statement).scalars().all())

    def execute(self, db: Session) -> CascadeResult:
        target = self.authorize(db)

        try:
            removed_assignments = db.query(TaskAssignee).filter(
                TaskAssignee.user_id == self.target_user_id,
            ).delete(synchronize_session=False)
            removed_job_ids = self._delete_collaborations(db)
            removed_collaborations = len(removed_job_ids)
            job_ids = sorted(set(removed_job_ids), key=str)
            db.add(
                AuditEvent(
                    action="membership_revoked",
                    entity_type="user",
                    entity_id=target.id,
                    user_id=self.requested_by.id,
                    details={
                        "email": target.email,
                        "jobIds": [str(job_id) for job_id in job_ids],
                        "removedAssignments": removed_assignments,
                        "removedCollaborations": removed_collaborations,
                    },
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Membership cascade for user %s rolled back", self.target_user_id)
            raise

        logger.info(
            "Removed user %s from %d job(s) and %d task assignment(s)",
            self.target_user_id,
            removed_collaborations,
            removed_assignments,
        )
        return CascadeResult(
            target_user_id=self.target_user_id,
            affected_job_ids=job_ids,
            removed_assignments=removed_assignments,
            removed_collaborations=removed_collaborations,
        )


def remove_user_from_all_access_use_case(
    *,
    db: Session,
    target_user_id: UUID,
    requested_by: User,
    invalidator: ViewCacheInvalidator | None = None,
) -> CascadeResult:
    result = MembershipCascade(target_user_id=target_user_id, requested_by=requested_by).execute(db)
    if invalidator is not None:
        invalidator.invalidate(view_paths_for_cascade(result))
    return result
