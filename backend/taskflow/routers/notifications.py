"""Notification inbox and preference endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain_errors import DomainError
from ..models import User
from ..schemas import (
    MarkReadResponse,
    NotificationResponse,
    PreferencesResponse,
    PreferencesUpdate,
    UnreadCountResponse,
)
from ..services.notification_preferences import effective_preferences, load_preferences, update_preferences
from ..use_cases.notification_inbox import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    list_notifications_use_case,
    mark_all_read_use_case,
    mark_read_use_case,
    unread_count_use_case,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_notifications_use_case(
        db=db,
        user_id=current_user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )


@router.get("/count", response_model=UnreadCountResponse)
def unread_count(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UnreadCountResponse(count=unread_count_use_case(db=db, user_id=current_user.id))


@router.post("/read-all", response_model=MarkReadResponse)
def mark_all_read(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    updated = mark_all_read_use_case(db=db, user_id=current_user.id)
    return MarkReadResponse(success=True, updated=updated)


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = mark_read_use_case(db=db, user_id=current_user.id, notification_id=notification_id)
    return MarkReadResponse(success=updated, updated=1 if updated else 0)


@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return PreferencesResponse(**effective_preferences(load_preferences(db, current_user.id)))


@router.put("/preferences", response_model=PreferencesResponse)
def put_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    try:
        record = update_preferences(db, current_user.id, changes)
    except ValueError as e:
        raise DomainError(code="PREFERENCES_INVALID", http_status=400, message=str(e))
    return PreferencesResponse(**effective_preferences(record))
