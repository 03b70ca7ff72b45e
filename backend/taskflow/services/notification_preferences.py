"""Per-user notification channel gate with fail-open defaults."""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from ..models import NOTIFICATION_TYPES, NotificationPreferences

CHANNEL_IN_APP = "in_app"
CHANNEL_EMAIL = "email"
CHANNELS: tuple[str, ...] = (CHANNEL_IN_APP, CHANNEL_EMAIL)

_KIND_FIELD_PREFIX: dict[str, str] = {
    "TASK_ASSIGNED": "task_assigned",
    "JOB_ASSIGNED": "job_assigned",
    "TASK_COMPLETED": "task_completed",
    "COMMENT_MENTION": "comment_mention",
}

# Every (kind, channel) is enabled unless the user explicitly stored False.
PREFERENCE_DEFAULTS: dict[tuple[str, str], bool] = {
    (kind, channel): True for kind in NOTIFICATION_TYPES for channel in CHANNELS
}


@dataclass(frozen=True)
class ChannelFlags:
    in_app: bool
    email: bool


def preference_field(kind: str, channel: str) -> str:
    try:
        prefix = _KIND_FIELD_PREFIX[kind]
    except KeyError:
        raise ValueError(f"Unknown notification kind: {kind}") from None
    if channel not in CHANNELS:
        raise ValueError(f"Unknown notification channel: {channel}")
    return f"{prefix}_{channel}"


def preference_fields() -> list[str]:
    return [preference_field(kind, channel) for kind in NOTIFICATION_TYPES for channel in CHANNELS]


def channel_enabled(record: NotificationPreferences | None, kind: str, channel: str) -> bool:
    """Total function over (record, kind, channel); only a stored False disables."""
    field = preference_field(kind, channel)
    if record is None:
        return PREFERENCE_DEFAULTS[(kind, channel)]
    stored = getattr(record, field, None)
    if stored is False:
        return False
    return PREFERENCE_DEFAULTS[(kind, channel)]


def load_preferences(db: Session, user_id: UUID) -> NotificationPreferences | None:
    return db.query(NotificationPreferences).filter(
        NotificationPreferences.user_id == user_id
    ).first()


def get_channel_flags(db: Session, user_id: UUID, kind: str) -> ChannelFlags:
    """Read the recipient's current record and decide both channels."""
    record = load_preferences(db, user_id)
    return ChannelFlags(
        in_app=channel_enabled(record, kind, CHANNEL_IN_APP),
        email=channel_enabled(record, kind, CHANNEL_EMAIL),
    )


def effective_preferences(record: NotificationPreferences | None) -> dict[str, bool]:
    return {
        preference_field(kind, channel): channel_enabled(record, kind, channel)
        for kind in NOTIFICATION_TYPES
        for channel in CHANNELS
    }


def update_preferences(db: Session, user_id: UUID, changes: dict[str, bool | None]) -> NotificationPreferences:
    """Upsert the user's record; unknown field names are rejected."""
    allowed = set(preference_fields())
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

    record = load_preferences(db, user_id)
    if record is None:
        record = NotificationPreferences(user_id=user_id)
        db.add(record)
    for field, value in changes.items():
        setattr(record, field, value)
    db.commit()
    return record
