"""SQLAlchemy models for the collaboration graph, notifications and invitations."""
from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


USER_ROLES = ("OWNER", "ADMIN", "USER")
ADMIN_ROLES = ("OWNER", "ADMIN")
INVITABLE_ROLES = ("ADMIN", "USER")
TASK_STATUSES = ("TODO", "IN_PROGRESS", "DONE")
NOTIFICATION_TYPES = ("TASK_ASSIGNED", "JOB_ASSIGNED", "TASK_COMPLETED", "COMMENT_MENTION")
INVITATION_STATUSES = ("PENDING", "ACCEPTED", "CANCELLED")


class User(Base):
    """User model."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="USER", index=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    # Monotonically increasing version used to revoke previously issued tokens.
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name="chk_user_role"),
    )

    # Relationships
    notification_preferences = relationship(
        "NotificationPreferences",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.name or self.email


class NotificationPreferences(Base):
    """
    Per-user channel flags, one column per (notification kind x channel).

    NULL means "never set" and is read as enabled.
    """
    __tablename__ = "user_notification_preferences"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    task_assigned_in_app = Column(Boolean, nullable=True)
    task_assigned_email = Column(Boolean, nullable=True)
    job_assigned_in_app = Column(Boolean, nullable=True)
    job_assigned_email = Column(Boolean, nullable=True)
    task_completed_in_app = Column(Boolean, nullable=True)
    task_completed_email = Column(Boolean, nullable=True)
    comment_mention_in_app = Column(Boolean, nullable=True)
    comment_mention_email = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="notification_preferences")


class Job(Base):
    """Job model (only the fields the collaboration core reads)."""
    __tablename__ = "jobs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_number = Column(String(50), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    collaborators = relationship("JobCollaborator", back_populates="job", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="job")


class Task(Base):
    """Task model."""
    __tablename__ = "tasks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    status = Column(String(20), nullable=False, default="TODO", index=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(TASK_STATUSES), name="chk_task_status"),
    )

    job = relationship("Job", back_populates="tasks")
    assignees = relationship("TaskAssignee", back_populates="task", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="task", cascade="all, delete-orphan")


class Comment(Base):
    """Comment model. Body is immutable once mentions were parsed."""
    __tablename__ = "comments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    body = Column(Text, nullable=False)
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    task = relationship("Task", back_populates="comments")
    author = relationship("User")


class JobCollaborator(Base):
    """Access grant: user may see and work on a job."""
    __tablename__ = "job_collaborators"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("job_id", "user_id", name="uq_job_collaborator"),
    )

    job = relationship("Job", back_populates="collaborators")


class TaskAssignee(Base):
    """Assignment: user is responsible for a task."""
    __tablename__ = "task_assignees"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id = Column(UUID(as_uuid=True), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignee"),
    )

    task = relationship("Task", back_populates="assignees")


class Notification(Base):
    """
    In-app inbox item, one row per recipient.

    actor/task/job/comment ids are lookup-only references without foreign
    keys: the referenced entity may be gone by the time the row is shown.
    """
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    actor_id = Column(UUID(as_uuid=True), nullable=True)
    task_id = Column(UUID(as_uuid=True), nullable=True)
    job_id = Column(UUID(as_uuid=True), nullable=True)
    comment_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(type.in_(NOTIFICATION_TYPES), name="chk_notification_type"),
        Index("idx_notifications_user_read", "user_id", "read"),
        Index("idx_notifications_read_created", "read", "created_at", postgresql_where=(read == True)),
    )


class Invitation(Base):
    """Invitation token; PENDING -> ACCEPTED | CANCELLED, terminal states are final."""
    __tablename__ = "invitations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="USER")
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    invited_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(INVITABLE_ROLES), name="chk_invitation_role"),
        CheckConstraint(status.in_(INVITATION_STATUSES), name="chk_invitation_status"),
    )


class AuditEvent(Base):
    """Audit trail for irreversible membership and invitation changes."""
    __tablename__ = "audit_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    details = Column(JSONB, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(
            action.in_([
                'membership_revoked', 'invitation_created', 'invitation_cancelled',
                'invitation_accepted', 'task_assignee_added', 'job_collaborator_added',
                'task_completed',
            ]),
            name='chk_audit_action'
        ),
        Index('idx_audit_events_entity', 'entity_type', 'entity_id'),
    )
