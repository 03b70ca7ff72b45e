from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from taskflow.auth import create_access_token, decode_token, get_current_user
from taskflow.models import User


class _QueryStub:
    def __init__(self, *, first_result=None):
        self._first_result = first_result

    def filter(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._first_result


class _SessionStub:
    def __init__(self, user):
        self._user = user

    def query(self, model):
        if model is User:
            return _QueryStub(first_result=self._user)
        raise AssertionError(f"Unexpected query model: {model}")


def _credentials(user, **extra) -> SimpleNamespace:
    claims = {"sub": str(user.id), "ver": user.token_version, **extra}
    return SimpleNamespace(credentials=create_access_token(claims))


def _user(**overrides):
    values = {"id": uuid4(), "token_version": 0, "is_paused": False}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_current_user_resolves_from_token() -> None:
    user = _user()

    assert get_current_user(credentials=_credentials(user), db=_SessionStub(user)) is user


def test_paused_user_is_forbidden() -> None:
    user = _user(is_paused=True)

    with pytest.raises(HTTPException) as exc:
        get_current_user(credentials=_credentials(user), db=_SessionStub(user))

    assert exc.value.status_code == 403


def test_revoked_token_version_is_rejected() -> None:
    user = _user(token_version=2)
    stale = SimpleNamespace(credentials=create_access_token({"sub": str(user.id), "ver": 1}))

    with pytest.raises(HTTPException) as exc:
        get_current_user(credentials=stale, db=_SessionStub(user))

    assert exc.value.detail == "Token has been revoked"


def test_expired_token_is_rejected() -> None:
    token = create_access_token({"sub": str(uuid4())}, expires_delta=timedelta(minutes=-10))

    with pytest.raises(HTTPException) as exc:
        decode_token(token)

    assert exc.value.detail == "Token expired"


def test_garbage_token_is_rejected() -> None:
    with pytest.raises(HTTPException) as exc:
        decode_token("not-a-jwt")

    assert exc.value.status_code == 401
