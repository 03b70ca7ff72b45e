"""Invitation token lifecycle: PENDING -> ACCEPTED | CANCELLED."""
from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_password_hash
from ..config import settings
from ..domain_errors import DomainError
from ..models import INVITABLE_ROLES, AuditEvent, Invitation, User
from ..services.email import build_invitation_email
from ..services.email_dispatch import EmailDispatcher

logger = logging.getLogger(__name__)

PENDING = "PENDING"
ACCEPTED = "ACCEPTED"
CANCELLED = "CANCELLED"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def generate_invitation_token() -> str:
    return secrets.token_hex(32)


def is_expired(invitation: Invitation, now: datetime) -> bool:
    return _as_utc(invitation.expires_at) <= now


def _require_admin(user: User, message: str) -> None:
    if not user.is_admin:
        raise DomainError(code="INVITATION_FORBIDDEN", http_status=403, message=message)


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(func.lower(User.email) == email.lower()).first() is not None


def _get_invitation_for_update(db: Session, invitation_id: UUID) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.id == invitation_id).with_for_update().first()
    if not invitation:
        raise DomainError(code="INVITATION_NOT_FOUND", http_status=404, message="Invitation not found")
    return invitation


def _reject_if_not_pending(invitation: Invitation) -> None:
    if invitation.status == ACCEPTED:
        raise DomainError(
            code="INVITATION_ALREADY_ACCEPTED",
            http_status=400,
            message="Invitation has already been used",
        )
    if invitation.status == CANCELLED:
        raise DomainError(
            code="INVITATION_CANCELLED",
            http_status=400,
            message="Invitation has been cancelled",
        )


def _send_or_fail(dispatcher: EmailDispatcher, *, invitation: Invitation, inviter: User) -> None:
    ok, error = dispatcher.send_now(
        build_invitation_email(
            email=invitation.email,
            token=invitation.token,
            inviter_name=inviter.display_name,
        )
    )
    if not ok:
        logger.error("Invitation email to %s failed: %s", invitation.email, error)
        raise DomainError(
            code="INVITATION_EMAIL_FAILED",
            http_status=502,
            message="Failed to send invitation email. Please check your email configuration.",
            details={"error": error},
        )


def create_invitation_use_case(
    *,
    db: Session,
    inviter: User,
    email: str,
    role: str,
    dispatcher: EmailDispatcher,
    now: datetime | None = None,
) -> Invitation:
    """Create a PENDING invitation and email its link; nothing is kept if the email fails."""
    _require_admin(inviter, "Only administrators can send invitations")
    now = now or _utc_now()

    normalized = (email or "").strip().lower()
    if not normalized:
        raise DomainError(code="INVITATION_EMAIL_REQUIRED", http_status=400, message="Email is required")
    if not _EMAIL_RE.match(normalized):
        raise DomainError(code="INVITATION_INVALID_EMAIL", http_status=400, message="Invalid email address")
    if role not in INVITABLE_ROLES:
        raise DomainError(code="INVITATION_INVALID_ROLE", http_status=400, message="Invalid role")
    if _email_taken(db, normalized):
        raise DomainError(
            code="INVITATION_EMAIL_TAKEN",
            http_status=400,
            message="A user with this email already exists",
        )

    pending = db.query(Invitation).filter(
        Invitation.email == normalized,
        Invitation.status == PENDING,
        Invitation.expires_at > now,
    ).first()
    if pending:
        raise DomainError(
            code="INVITATION_ALREADY_PENDING",
            http_status=400,
            message="A pending invitation already exists for this email",
        )

    invitation = Invitation(
        email=normalized,
        token=generate_invitation_token(),
        role=role,
        status=PENDING,
        expires_at=now + timedelta(days=settings.INVITATION_TTL_DAYS),
        invited_by_id=inviter.id,
    )
    db.add(invitation)
    db.flush()
    db.add(
        AuditEvent(
            action="invitation_created",
            entity_type="invitation",
            entity_id=invitation.id,
            user_id=inviter.id,
            details={"email": normalized, "role": role},
        )
    )

    try:
        _send_or_fail(dispatcher, invitation=invitation, inviter=inviter)
    except DomainError:
        db.rollback()
        raise

    db.commit()
    return invitation


def resend_invitation_use_case(
    *,
    db: Session,
    invitation_id: UUID,
    requested_by: User,
    dispatcher: EmailDispatcher,
    now: datetime | None = None,
) -> Invitation:
    _require_admin(requested_by, "Only administrators can resend invitations")
    now = now or _utc_now()

    invitation = db.query(Invitation).filter(Invitation.id == invitation_id).first()
    if not invitation:
        raise DomainError(code="INVITATION_NOT_FOUND", http_status=404, message="Invitation not found")
    if invitation.status != PENDING:
        raise DomainError(
            code="INVITATION_NOT_PENDING",
            http_status=400,
            message="Can only resend pending invitations",
        )
    if is_expired(invitation, now):
        raise DomainError(code="INVITATION_EXPIRED", http_status=400, message="Invitation has expired")

    _send_or_fail(dispatcher, invitation=invitation, inviter=requested_by)
    return invitation


def cancel_invitation_use_case(*, db: Session, invitation_id: UUID, requested_by: User) -> Invitation:
    """PENDING -> CANCELLED; terminal invitations are left untouched."""
    _require_admin(requested_by, "Only administrators can cancel invitations")

    invitation = _get_invitation_for_update(db, invitation_id)
    if invitation.status != PENDING:
        raise DomainError(
            code="INVITATION_NOT_PENDING",
            http_status=400,
            message="Only pending invitations can be cancelled",
        )

    invitation.status = CANCELLED
    db.add(
        AuditEvent(
            action="invitation_cancelled",
            entity_type="invitation",
            entity_id=invitation.id,
            user_id=requested_by.id,
            details={"email": invitation.email},
        )
    )
    db.commit()
    return invitation


def accept_invitation_use_case(
    *,
    db: Session,
    token: str,
    name: str,
    password: str,
    now: datetime | None = None,
) -> User:
    """
    Create the invited user and mark the invitation ACCEPTED in one commit.

    The invitation row is locked for the duration, so a concurrent second
    acceptance waits and then sees ACCEPTED.
    """
    if not token or not name or not name.strip() or not password:
        raise DomainError(
            code="INVITATION_FIELDS_REQUIRED",
            http_status=400,
            message="Token, name, and password are required",
        )
    if len(password) < settings.INVITATION_PASSWORD_MIN_LENGTH:
        raise DomainError(
            code="PASSWORD_TOO_SHORT",
            http_status=400,
            message=f"Password must be at least {settings.INVITATION_PASSWORD_MIN_LENGTH} characters",
        )
    now = now or _utc_now()

    invitation = db.query(Invitation).filter(Invitation.token == token).with_for_update().first()
    if not invitation:
        raise DomainError(code="INVITATION_NOT_FOUND", http_status=404, message="Invalid invitation token")

    _reject_if_not_pending(invitation)
    if is_expired(invitation, now):
        raise DomainError(code="INVITATION_EXPIRED", http_status=400, message="Invitation has expired")
    if _email_taken(db, invitation.email):
        raise DomainError(
            code="INVITATION_EMAIL_TAKEN",
            http_status=400,
            message="A user with this email already exists",
        )

    user = User(
        email=invitation.email.lower(),
        name=name.strip(),
        password_hash=get_password_hash(password),
        role=invitation.role,
        is_paused=False,
    )
    db.add(user)
    invitation.status = ACCEPTED
    invitation.accepted_at = now

    try:
        db.flush()
        db.add(
            AuditEvent(
                action="invitation_accepted",
                entity_type="invitation",
                entity_id=invitation.id,
                user_id=user.id,
                details={"email": invitation.email, "role": invitation.role},
            )
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DomainError(
            code="INVITATION_EMAIL_TAKEN",
            http_status=400,
            message="A user with this email already exists",
        ) from e

    logger.info("Invitation %s accepted by new user %s", invitation.id, user.id)
    return user
