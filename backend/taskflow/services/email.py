"""Outgoing email: Jinja2-rendered messages and the Resend HTTP call."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings
from .notification_writer import RenderedNotification

logger = logging.getLogger(__name__)

# Template directory path
TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class MentionEmailContext:
    """Everything the mention email needs besides the recipient address."""

    commenter_name: str
    url: str
    task_title: str | None = None
    job_title: str | None = None
    job_number: str | None = None
    comment_body: str | None = None


@lru_cache
def get_template_env() -> Environment:
    # .html templates are escaped, .txt bodies go out verbatim.
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html",), default=False),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_email(template_name: str, context: dict[str, Any]) -> tuple[str, str]:
    """Render the ``.html`` and ``.txt`` variants of one template."""
    env = get_template_env()
    full_context = {"app_name": settings.APP_NAME, **context}
    html = env.get_template(f"{template_name}.html").render(**full_context)
    text = env.get_template(f"{template_name}.txt").render(**full_context)
    return html, text


def _subject_context(context: MentionEmailContext) -> str:
    if context.task_title:
        return context.task_title
    if context.job_title:
        prefix = f"{context.job_number} " if context.job_number else ""
        return f"{prefix}{context.job_title}"
    return "a task"


def build_mention_email(recipient_email: str, context: MentionEmailContext) -> EmailMessage:
    where = _subject_context(context)
    html, text = render_email(
        "mention",
        {
            "commenter_name": context.commenter_name,
            "where": where,
            "comment_body": context.comment_body,
            "action_url": context.url,
            "action_label": "View comment",
        },
    )
    return EmailMessage(
        to=recipient_email,
        subject=f"{context.commenter_name} mentioned you on {where}",
        html=html,
        text=text,
    )


def build_notification_email(recipient_email: str, rendered: RenderedNotification, url: str) -> EmailMessage:
    html, text = render_email(
        "notification",
        {
            "title": rendered.title,
            "message": rendered.message,
            "action_url": url,
            "action_label": f"Open {settings.APP_NAME}",
        },
    )
    return EmailMessage(to=recipient_email, subject=rendered.title, html=html, text=text)


def invitation_url(token: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/invite/accept?token={token}"


def build_invitation_email(*, email: str, token: str, inviter_name: str) -> EmailMessage:
    html, text = render_email(
        "invitation",
        {
            "inviter_name": inviter_name,
            "ttl_days": settings.INVITATION_TTL_DAYS,
            "action_url": invitation_url(token),
            "action_label": "Accept Invitation",
        },
    )
    return EmailMessage(
        to=email,
        subject=f"You've been invited to join {settings.APP_NAME}",
        html=html,
        text=text,
    )


def send_email(message: EmailMessage) -> tuple[bool, str | None]:
    """Send via the Resend HTTP API. Never raises; returns (ok, error)."""
    if not settings.email_configured:
        return False, "EMAIL_NOT_CONFIGURED"

    try:
        response = requests.post(
            settings.RESEND_API_URL,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            json={
                "from": settings.RESEND_FROM_EMAIL,
                "to": [message.to],
                "subject": message.subject,
                "html": message.html,
                "text": message.text,
            },
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        return False, f"EXCEPTION: {e}"

    if response.status_code in (200, 201, 202):
        return True, None
    if response.status_code == 429:
        retry_after = response.headers.get("retry-after", "60")
        return False, f"RATE_LIMIT:{retry_after}"
    return False, f"HTTP_{response.status_code}: {response.text[:200]}"
