"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from uuid import UUID


class UserBrief(BaseModel):
    """Brief user info for nested responses."""
    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    model_config = ConfigDict(from_attributes=True)


# Comments
class CommentCreate(BaseModel):
    body: str
    task_id: Optional[UUID] = None


class CommentResponse(BaseModel):
    id: UUID
    body: str
    author_id: UUID
    task_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class MentionFanoutResponse(BaseModel):
    tokens: list[str]
    notified_user_ids: list[UUID]
    emails_dispatched: int


class CommentCreateResponse(BaseModel):
    comment: CommentResponse
    mentions: MentionFanoutResponse


# Membership cascade
class CascadeResponse(BaseModel):
    success: bool = True
    user_id: UUID
    affected_job_ids: list[UUID]
    removed_assignments: int
    removed_collaborations: int


# Assignments
class AssignUserRequest(BaseModel):
    user_id: UUID


class AssignmentResponse(BaseModel):
    changed: bool
    notified_user_ids: list[UUID] = Field(default_factory=list)
    emails_dispatched: int = 0


# Invitations
class InvitationCreate(BaseModel):
    email: str
    role: str = "USER"


class InvitationResponse(BaseModel):
    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    invited_by_id: Optional[UUID] = None
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class InvitationAcceptRequest(BaseModel):
    token: str
    name: str
    password: str


class InvitationAcceptResponse(BaseModel):
    success: bool = True
    user: UserBrief


# Notifications
class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    read: bool
    actor_id: Optional[UUID] = None
    task_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    comment_id: Optional[UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    success: bool
    updated: int = 0


class PreferencesResponse(BaseModel):
    task_assigned_in_app: bool = True
    task_assigned_email: bool = True
    job_assigned_in_app: bool = True
    job_assigned_email: bool = True
    task_completed_in_app: bool = True
    task_completed_email: bool = True
    comment_mention_in_app: bool = True
    comment_mention_email: bool = True


class PreferencesUpdate(BaseModel):
    """Only the fields present in the request are changed."""
    task_assigned_in_app: Optional[bool] = None
    task_assigned_email: Optional[bool] = None
    job_assigned_in_app: Optional[bool] = None
    job_assigned_email: Optional[bool] = None
    task_completed_in_app: Optional[bool] = None
    task_completed_email: Optional[bool] = None
    comment_mention_in_app: Optional[bool] = None
    comment_mention_email: Optional[bool] = None


# Retention sweep
class SweepResponse(BaseModel):
    success: bool = True
    deleted_count: int
    cutoff_date: datetime
