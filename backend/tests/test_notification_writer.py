from __future__ import annotations

from uuid import uuid4

import pytest

from taskflow.domain_errors import DomainError
from taskflow.models import Notification
from taskflow.services.notification_writer import (
    NotificationSubject,
    RenderedNotification,
    notify,
    render_comment_mention,
    render_task_assigned,
)


class _QueryStub:
    def __init__(self, *, first_result=None):
        self._first_result = first_result

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result


class _SessionStub:
    def __init__(self, *, recipient_exists: bool):
        self._recipient_exists = recipient_exists
        self.added = []
        self.flush_calls = 0

    def query(self, *_entities):
        return _QueryStub(first_result=(uuid4(),) if self._recipient_exists else None)

    def add(self, obj):
        self.added.append(obj)

    def flush(self):
        self.flush_calls += 1


_RENDERED = RenderedNotification(title="Ana mentioned you in a comment", message="Fix login")


def test_notify_adds_one_unread_row_with_subject_references() -> None:
    db = _SessionStub(recipient_exists=True)
    recipient_id, actor_id, task_id, comment_id = uuid4(), uuid4(), uuid4(), uuid4()

    notification = notify(
        db,
        kind="COMMENT_MENTION",
        recipient_id=recipient_id,
        rendered=_RENDERED,
        actor_id=actor_id,
        subject=NotificationSubject(task_id=task_id, comment_id=comment_id),
    )

    assert db.added == [notification]
    assert isinstance(notification, Notification)
    assert notification.user_id == recipient_id
    assert notification.read is False
    assert notification.actor_id == actor_id
    assert notification.task_id == task_id
    assert notification.job_id is None
    assert notification.comment_id == comment_id
    assert db.flush_calls == 1


def test_notify_missing_recipient_raises_not_found() -> None:
    db = _SessionStub(recipient_exists=False)

    with pytest.raises(DomainError) as exc:
        notify(db, kind="COMMENT_MENTION", recipient_id=uuid4(), rendered=_RENDERED)

    assert exc.value.code == "NOTIFICATION_RECIPIENT_NOT_FOUND"
    assert exc.value.http_status == 404
    assert db.added == []


def test_notify_rejects_unknown_kind() -> None:
    db = _SessionStub(recipient_exists=True)

    with pytest.raises(ValueError):
        notify(db, kind="BROADCAST", recipient_id=uuid4(), rendered=_RENDERED)


def test_mention_title_falls_back_to_someone() -> None:
    rendered = render_comment_mention(actor_name=None)

    assert rendered.title == "Someone mentioned you in a comment"
    assert rendered.message == "a task"


def test_mention_message_prefers_task_then_job() -> None:
    assert render_comment_mention(actor_name="Ana", task_title="T", job_title="J").message == "T"
    assert render_comment_mention(actor_name="Ana", job_title="J").message == "J"


def test_task_assigned_message_includes_job_title() -> None:
    assert render_task_assigned(task_title="Wire up", job_title="Kitchen").message == "Wire up on Kitchen"
    assert render_task_assigned(task_title="Wire up").message == "Wire up"
