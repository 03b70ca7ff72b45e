"""
Celery worker: per-recipient email delivery and the daily notification sweep.
"""
from celery import Celery
from celery.schedules import crontab
import logging
from .config import settings
from .database import SessionLocal
from .services.email import EmailMessage, send_email
from .use_cases.notification_retention import purge_read_notifications

logger = logging.getLogger(__name__)

celery_app = Celery(
    "taskflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)

# Errors that another attempt will not fix.
PERMANENT_ERRORS = ("EMAIL_NOT_CONFIGURED", "HTTP_4")


def retry_delay_seconds(error: str | None, attempt: int) -> int | None:
    """Seconds until the next attempt, or None when the failure is final."""
    if not error or error.startswith(PERMANENT_ERRORS):
        return None
    if error.startswith("RATE_LIMIT:"):
        try:
            return max(1, int(error.split(":", 1)[1]))
        except ValueError:
            return 60
    return 2 ** attempt * 60  # 1min, 2min, 4min


@celery_app.task(name="deliver_email", bind=True, max_retries=settings.EMAIL_MAX_RETRIES)
def deliver_email(self, to: str, subject: str, html: str, text: str):
    """Send one email to one recipient; retries stay within this task."""
    ok, error = send_email(EmailMessage(to=to, subject=subject, html=html, text=text))
    if ok:
        logger.info(f"Sent email to {to}")
        return {"sent": True}

    delay = retry_delay_seconds(error, self.request.retries)
    if delay is None or self.request.retries >= self.max_retries:
        logger.error(f"Email to {to} failed permanently: {error}")
        return {"sent": False, "error": error}

    logger.warning(f"Email to {to} failed ({error}), retry {self.request.retries + 1} in {delay}s")
    raise self.retry(countdown=delay)


@celery_app.task(name="purge_read_notifications")
def purge_read_notifications_task():
    db = SessionLocal()
    try:
        result = purge_read_notifications(db)
    finally:
        db.close()
    return {"deleted_count": result.deleted_count, "cutoff": result.cutoff.isoformat()}


celery_app.conf.beat_schedule = {
    'purge-read-notifications-daily': {
        'task': 'purge_read_notifications',
        'schedule': crontab(hour=settings.NOTIFICATION_SWEEP_HOUR_UTC, minute=0),
    },
}
