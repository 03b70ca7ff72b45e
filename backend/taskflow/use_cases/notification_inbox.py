"""Reading side of in-app notifications."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ..models import Notification

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def list_notifications_use_case(
    *,
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> list[Notification]:
    """Unread first, then newest first."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    return (
        query.order_by(Notification.read.asc(), Notification.created_at.desc())
        .offset(max(0, offset))
        .limit(limit)
        .all()
    )


def unread_count_use_case(*, db: Session, user_id: UUID) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    ).count()


def mark_read_use_case(*, db: Session, user_id: UUID, notification_id: UUID) -> bool:
    """
    Mark one notification read.

    Scoped to the owner: someone else's id (or an unknown one) updates nothing
    and reports False rather than revealing that the row exists.
    """
    updated = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).update({Notification.read: True}, synchronize_session=False)
    db.commit()
    return updated > 0


def mark_all_read_use_case(*, db: Session, user_id: UUID) -> int:
    updated = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    ).update({Notification.read: True}, synchronize_session=False)
    db.commit()
    return updated
