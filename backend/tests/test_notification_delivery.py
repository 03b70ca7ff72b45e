from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from taskflow.domain_errors import DomainError
from taskflow.services import notification_delivery as delivery
from taskflow.services.email import EmailMessage
from taskflow.services.notification_preferences import ChannelFlags
from taskflow.services.notification_writer import NotificationSubject, RenderedNotification

_RENDERED = RenderedNotification(title="Task completed", message="Fix login")


def _user(email: str | None = "user@example.com"):
    return SimpleNamespace(id=uuid4(), email=email, name="User")


def _email_for(recipient) -> EmailMessage:
    return EmailMessage(to=recipient.email, subject="s", html="<p>h</p>", text="t")


def _plan(recipients):
    return delivery.plan_delivery(
        object(),
        kind="TASK_COMPLETED",
        recipients=recipients,
        rendered=_RENDERED,
        actor_id=uuid4(),
        subject=NotificationSubject(task_id=uuid4()),
        build_email=_email_for,
    )


@pytest.fixture
def written(monkeypatch: pytest.MonkeyPatch) -> list:
    calls: list = []
    monkeypatch.setattr(delivery, "notify", lambda _db, **kwargs: calls.append(kwargs["recipient_id"]))
    return calls


def test_each_channel_follows_its_own_flag(monkeypatch: pytest.MonkeyPatch, written: list) -> None:
    in_app_only, email_only, both = _user(), _user(), _user()
    flags = {
        in_app_only.id: ChannelFlags(in_app=True, email=False),
        email_only.id: ChannelFlags(in_app=False, email=True),
        both.id: ChannelFlags(in_app=True, email=True),
    }
    monkeypatch.setattr(delivery, "get_channel_flags", lambda _db, user_id, _kind: flags[user_id])

    plan = _plan([in_app_only, email_only, both])

    assert written == [in_app_only.id, both.id]
    assert plan.notified_user_ids == [in_app_only.id, both.id]
    assert [message.to for message in plan.emails] == [email_only.email, both.email]


def test_recipient_without_email_address_gets_in_app_only(monkeypatch: pytest.MonkeyPatch, written: list) -> None:
    user = _user(email=None)
    monkeypatch.setattr(delivery, "get_channel_flags", lambda *_args: ChannelFlags(in_app=True, email=True))

    plan = _plan([user])

    assert written == [user.id]
    assert plan.emails == []


def test_vanished_recipient_is_skipped_without_email(monkeypatch: pytest.MonkeyPatch) -> None:
    gone, present = _user(), _user()
    monkeypatch.setattr(delivery, "get_channel_flags", lambda *_args: ChannelFlags(in_app=True, email=True))

    def _notify(_db, **kwargs):
        if kwargs["recipient_id"] == gone.id:
            raise DomainError(code="NOTIFICATION_RECIPIENT_NOT_FOUND", http_status=404, message="gone")

    monkeypatch.setattr(delivery, "notify", _notify)

    plan = _plan([gone, present])

    assert plan.skipped_user_ids == [gone.id]
    assert plan.notified_user_ids == [present.id]
    assert [message.to for message in plan.emails] == [present.email]


def test_dispatch_emails_counts_only_accepted_messages() -> None:
    outcomes = iter([True, False, True])
    dispatcher = SimpleNamespace(dispatch=lambda _message: next(outcomes))
    messages = [EmailMessage(to=f"u{i}@example.com", subject="s", html="h", text="t") for i in range(3)]

    assert delivery.dispatch_emails(dispatcher, messages) == 2


def test_subject_url_prefers_job_page(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(delivery.settings, "APP_BASE_URL", "https://app.example.com/")
    job_id = uuid4()

    assert delivery.subject_url(NotificationSubject(job_id=job_id)) == f"https://app.example.com/jobs/{job_id}"
    assert delivery.subject_url(NotificationSubject(task_id=uuid4())) == "https://app.example.com/tasks"
    assert delivery.subject_url(NotificationSubject()) == "https://app.example.com"


def test_load_recipients_skips_query_for_empty_set() -> None:
    class _NoQuery:
        def query(self, *_args):
            raise AssertionError("no query expected")

    assert delivery.load_recipients(_NoQuery(), set()) == []
