"""Periodic purge of old, already-read notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..models import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    deleted_count: int
    cutoff: datetime


def retention_cutoff(now: datetime | None = None, days: int | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days if days is not None else settings.NOTIFICATION_RETENTION_DAYS)


def purge_read_notifications(db: Session, now: datetime | None = None) -> SweepResult:
    """
    Delete read notifications created before the retention cutoff.

    Single DELETE statement: unread rows never match, and rows already
    removed by a concurrent sweep simply do not count.
    """
    cutoff = retention_cutoff(now)
    try:
        deleted = db.query(Notification).filter(
            Notification.read.is_(True),
            Notification.created_at < cutoff,
        ).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Purged %d read notification(s) older than %s", deleted, cutoff.isoformat())
    return SweepResult(deleted_count=deleted, cutoff=cutoff)
