"""Initial schema: users, jobs, tasks, comments and the collaboration graph.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="USER"),
        sa.Column("is_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('OWNER', 'ADMIN', 'USER')", name="chk_user_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "jobs",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("job_number", sa.String(length=50), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        _uuid("created_by_id", sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_jobs_job_number", "jobs", ["job_number"])

    op.create_table(
        "tasks",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("job_id", sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="TODO"),
        _uuid("created_by_id", sa.ForeignKey("users.id"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('TODO', 'IN_PROGRESS', 'DONE')", name="chk_task_status"),
    )
    op.create_index("ix_tasks_job_id", "tasks", ["job_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])

    op.create_table(
        "comments",
        _uuid("id", primary_key=True, nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        _uuid("author_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("task_id", sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True),
        _created_at(),
    )
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_task_id", "comments", ["task_id"])

    op.create_table(
        "job_collaborators",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("job_id", sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("job_id", "user_id", name="uq_job_collaborator"),
    )
    op.create_index("ix_job_collaborators_job_id", "job_collaborators", ["job_id"])
    op.create_index("ix_job_collaborators_user_id", "job_collaborators", ["user_id"])

    op.create_table(
        "task_assignees",
        _uuid("id", primary_key=True, nullable=False),
        _uuid("task_id", sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        _uuid("user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _created_at(),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_assignee"),
    )
    op.create_index("ix_task_assignees_task_id", "task_assignees", ["task_id"])
    op.create_index("ix_task_assignees_user_id", "task_assignees", ["user_id"])


def downgrade() -> None:
    op.drop_table("task_assignees")
    op.drop_table("job_collaborators")
    op.drop_table("comments")
    op.drop_table("tasks")
    op.drop_table("jobs")
    op.drop_table("users")
