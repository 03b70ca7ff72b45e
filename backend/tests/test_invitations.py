from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from taskflow.domain_errors import DomainError
from taskflow.models import AuditEvent, Invitation, User
from taskflow.use_cases import invitations as use_case

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class _QueryStub:
    def __init__(self, *, first_result=None):
        self._first_result = first_result
        self.locked = False

    def filter(self, *_args, **_kwargs):
        return self

    def with_for_update(self):
        self.locked = True
        return self

    def first(self):
        return self._first_result


class _SessionStub:
    def __init__(self, *, invitation=None, email_taken=False, commit_error=None):
        self._invitation = invitation
        self._email_taken = email_taken
        self._commit_error = commit_error
        self.added = []
        self.commit_calls = 0
        self.rollback_calls = 0
        self.invitation_queries: list[_QueryStub] = []

    def query(self, model):
        if model is User.id:
            return _QueryStub(first_result=(uuid4(),) if self._email_taken else None)
        if model is Invitation:
            query = _QueryStub(first_result=self._invitation)
            self.invitation_queries.append(query)
            return query
        raise AssertionError(f"Unexpected query model: {model}")

    def add(self, obj):
        self.added.append(obj)

    def flush(self):
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = uuid4()

    def commit(self):
        if self._commit_error is not None:
            raise self._commit_error
        self.commit_calls += 1

    def rollback(self):
        self.rollback_calls += 1


class _DispatcherStub:
    def __init__(self, outcome=(True, None)):
        self._outcome = outcome
        self.sent = []

    def send_now(self, message):
        self.sent.append(message)
        return self._outcome


@pytest.fixture(autouse=True)
def _fast_hash(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(use_case, "get_password_hash", lambda password: f"hashed:{password}")


def _admin():
    return SimpleNamespace(id=uuid4(), role="ADMIN", is_admin=True, display_name="Admin")


def _invitation(*, status="PENDING", expires_in=timedelta(days=3)):
    return SimpleNamespace(
        id=uuid4(),
        email="new@example.com",
        token="t" * 64,
        role="USER",
        status=status,
        expires_at=NOW + expires_in,
        accepted_at=None,
    )


def test_create_invitation_sends_link_and_commits() -> None:
    db = _SessionStub()
    dispatcher = _DispatcherStub()

    invitation = use_case.create_invitation_use_case(
        db=db,
        inviter=_admin(),
        email="  New@Example.com ",
        role="USER",
        dispatcher=dispatcher,
        now=NOW,
    )

    assert invitation.email == "new@example.com"
    assert invitation.status == "PENDING"
    assert invitation.expires_at == NOW + timedelta(days=7)
    assert len(invitation.token) == 64
    assert dispatcher.sent[0].to == "new@example.com"
    assert invitation.token in dispatcher.sent[0].text
    assert db.commit_calls == 1
    assert any(isinstance(item, AuditEvent) and item.action == "invitation_created" for item in db.added)


def test_create_invitation_is_discarded_when_email_fails() -> None:
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        use_case.create_invitation_use_case(
            db=db,
            inviter=_admin(),
            email="new@example.com",
            role="USER",
            dispatcher=_DispatcherStub(outcome=(False, "HTTP_500: boom")),
            now=NOW,
        )

    assert exc.value.code == "INVITATION_EMAIL_FAILED"
    assert db.rollback_calls == 1
    assert db.commit_calls == 0


@pytest.mark.parametrize(
    ("email", "role", "code"),
    [
        ("", "USER", "INVITATION_EMAIL_REQUIRED"),
        ("not-an-email", "USER", "INVITATION_INVALID_EMAIL"),
        ("new@example.com", "OWNER", "INVITATION_INVALID_ROLE"),
    ],
)
def test_create_invitation_validates_input(email: str, role: str, code: str) -> None:
    with pytest.raises(DomainError) as exc:
        use_case.create_invitation_use_case(
            db=_SessionStub(),
            inviter=_admin(),
            email=email,
            role=role,
            dispatcher=_DispatcherStub(),
            now=NOW,
        )

    assert exc.value.code == code


def test_create_invitation_requires_admin() -> None:
    inviter = SimpleNamespace(id=uuid4(), role="USER", is_admin=False, display_name="User")

    with pytest.raises(DomainError) as exc:
        use_case.create_invitation_use_case(
            db=_SessionStub(),
            inviter=inviter,
            email="new@example.com",
            role="USER",
            dispatcher=_DispatcherStub(),
        )

    assert exc.value.http_status == 403


def test_create_invitation_rejects_existing_user_and_live_invitation() -> None:
    with pytest.raises(DomainError, match="already exists") as taken:
        use_case.create_invitation_use_case(
            db=_SessionStub(email_taken=True),
            inviter=_admin(),
            email="new@example.com",
            role="USER",
            dispatcher=_DispatcherStub(),
            now=NOW,
        )
    assert taken.value.code == "INVITATION_EMAIL_TAKEN"

    with pytest.raises(DomainError) as pending:
        use_case.create_invitation_use_case(
            db=_SessionStub(invitation=_invitation()),
            inviter=_admin(),
            email="new@example.com",
            role="USER",
            dispatcher=_DispatcherStub(),
            now=NOW,
        )
    assert pending.value.code == "INVITATION_ALREADY_PENDING"


def test_accept_creates_user_and_flips_status_in_one_commit() -> None:
    invitation = _invitation()
    db = _SessionStub(invitation=invitation)

    user = use_case.accept_invitation_use_case(
        db=db,
        token=invitation.token,
        name="  New Person ",
        password="secret1",
        now=NOW,
    )

    assert isinstance(user, User)
    assert user.email == "new@example.com"
    assert user.name == "New Person"
    assert user.role == "USER"
    assert user.password_hash == "hashed:secret1"
    assert invitation.status == "ACCEPTED"
    assert invitation.accepted_at == NOW
    assert db.commit_calls == 1
    assert db.invitation_queries[0].locked is True


def test_second_acceptance_of_same_invitation_creates_no_second_user() -> None:
    invitation = _invitation()
    first_db, second_db = _SessionStub(invitation=invitation), _SessionStub(invitation=invitation)

    use_case.accept_invitation_use_case(
        db=first_db, token=invitation.token, name="First", password="secret1", now=NOW
    )

    # The second caller reads the row only after the first one committed.
    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(
            db=second_db, token=invitation.token, name="Second", password="secret2", now=NOW
        )

    assert exc.value.code == "INVITATION_ALREADY_ACCEPTED"
    assert invitation.status == "ACCEPTED"
    assert invitation.accepted_at == NOW
    users = [item for db in (first_db, second_db) for item in db.added if isinstance(item, User)]
    assert [user.name for user in users] == ["First"]
    assert second_db.invitation_queries[0].locked is True
    assert second_db.commit_calls == 0


def test_accept_expired_invitation_is_rejected_without_user() -> None:
    invitation = _invitation(expires_in=timedelta(seconds=-1))
    db = _SessionStub(invitation=invitation)

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(db=db, token=invitation.token, name="N", password="secret1", now=NOW)

    assert exc.value.code == "INVITATION_EXPIRED"
    assert invitation.status == "PENDING"
    assert not any(isinstance(item, User) for item in db.added)


def test_accept_at_exact_expiry_instant_is_expired() -> None:
    invitation = _invitation(expires_in=timedelta(0))

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(
            db=_SessionStub(invitation=invitation),
            token=invitation.token,
            name="N",
            password="secret1",
            now=NOW,
        )

    assert exc.value.code == "INVITATION_EXPIRED"


@pytest.mark.parametrize(
    ("status", "code"),
    [("ACCEPTED", "INVITATION_ALREADY_ACCEPTED"), ("CANCELLED", "INVITATION_CANCELLED")],
)
def test_accept_terminal_invitation_reports_distinct_reason(status: str, code: str) -> None:
    invitation = _invitation(status=status, expires_in=timedelta(days=-30))

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(
            db=_SessionStub(invitation=invitation),
            token=invitation.token,
            name="N",
            password="secret1",
            now=NOW,
        )

    assert exc.value.code == code
    assert invitation.status == status


def test_accept_unknown_token_is_not_found() -> None:
    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(db=_SessionStub(), token="nope", name="N", password="secret1", now=NOW)

    assert exc.value.http_status == 404


def test_accept_short_password_is_rejected_before_lookup() -> None:
    db = _SessionStub(invitation=_invitation())

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(db=db, token="t", name="N", password="12345", now=NOW)

    assert exc.value.code == "PASSWORD_TOO_SHORT"
    assert db.invitation_queries == []


def test_accept_when_email_already_registered_is_rejected() -> None:
    invitation = _invitation()

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(
            db=_SessionStub(invitation=invitation, email_taken=True),
            token=invitation.token,
            name="N",
            password="secret1",
            now=NOW,
        )

    assert exc.value.code == "INVITATION_EMAIL_TAKEN"
    assert invitation.status == "PENDING"


def test_accept_losing_unique_email_race_rolls_back() -> None:
    invitation = _invitation()
    db = _SessionStub(
        invitation=invitation,
        commit_error=IntegrityError("INSERT INTO users", {}, Exception("duplicate key")),
    )

    with pytest.raises(DomainError) as exc:
        use_case.accept_invitation_use_case(db=db, token=invitation.token, name="N", password="secret1", now=NOW)

    assert exc.value.code == "INVITATION_EMAIL_TAKEN"
    assert db.rollback_calls == 1


def test_cancel_moves_pending_to_cancelled_once() -> None:
    invitation = _invitation()
    db = _SessionStub(invitation=invitation)

    use_case.cancel_invitation_use_case(db=db, invitation_id=invitation.id, requested_by=_admin())

    assert invitation.status == "CANCELLED"
    assert db.commit_calls == 1
    with pytest.raises(DomainError) as exc:
        use_case.cancel_invitation_use_case(db=db, invitation_id=invitation.id, requested_by=_admin())
    assert exc.value.code == "INVITATION_NOT_PENDING"


def test_resend_rejects_expired_invitation() -> None:
    invitation = _invitation(expires_in=timedelta(days=-1))
    dispatcher = _DispatcherStub()

    with pytest.raises(DomainError) as exc:
        use_case.resend_invitation_use_case(
            db=_SessionStub(invitation=invitation),
            invitation_id=invitation.id,
            requested_by=_admin(),
            dispatcher=dispatcher,
            now=NOW,
        )

    assert exc.value.code == "INVITATION_EXPIRED"
    assert dispatcher.sent == []
