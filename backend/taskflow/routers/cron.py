"""Scheduler-triggered maintenance endpoints."""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..schemas import SweepResponse
from ..use_cases.notification_retention import purge_read_notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Bearer CRON_SECRET check; skipped entirely when no secret is configured."""
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/cleanup-read-notifications", response_model=SweepResponse)
def cleanup_read_notifications(
    _: None = Depends(verify_cron_secret),
    db: Session = Depends(get_db),
):
    try:
        result = purge_read_notifications(db)
    except Exception:
        logger.exception("Notification cleanup failed")
        raise HTTPException(status_code=500, detail="Failed to cleanup notifications")
    return SweepResponse(deleted_count=result.deleted_count, cutoff_date=result.cutoff)
