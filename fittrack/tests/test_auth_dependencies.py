import pathlib
import sys
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from fastapi import HTTPException


ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import fittrack.main as fittrack_main
from fittrack.app.routes.dependencies import require_admin


def test_get_current_user_missing_cookie_is_unauthorized():
    with pytest.raises(HTTPException) as exc:
        fittrack_main.get_current_user(None)

    assert exc.value.status_code == 401


def test_get_current_user_invalid_token_is_unauthorized():
    with pytest.raises(HTTPException) as exc:
        fittrack_main.get_current_user("not-a-valid-token")

    assert exc.value.status_code == 401


def test_get_current_user_expired_token_is_unauthorized(monkeypatch):
    expired_token = fittrack_main.create_access_token(
        subject="42", expires_delta=timedelta(minutes=-5)
    )

    def _unexpected_get_user_by_id(_uid: int):
        raise AssertionError("get_user_by_id should not be called for expired tokens")

    monkeypatch.setattr(fittrack_main, "get_user_by_id", _unexpected_get_user_by_id)

    with pytest.raises(HTTPException) as exc:
        fittrack_main.get_current_user(expired_token)

    assert exc.value.status_code == 401


def test_get_current_user_valid_token_returns_user(monkeypatch):
    user = fittrack_main.UserOut(
        id=123,
        username="alice",
        role="user",
        created_at=datetime.utcnow(),
    )

    monkeypatch.setattr(fittrack_main, "get_user_by_id", lambda uid: user if uid == 123 else None)

    token = fittrack_main.create_access_token(subject=str(user.id))

    assert fittrack_main.get_current_user(token) is user


def test_get_current_user_for_deleted_account_is_unauthorized(monkeypatch):
    monkeypatch.setattr(fittrack_main, "get_user_by_id", lambda uid: None)
    token = fittrack_main.create_access_token(subject="7")

    with pytest.raises(HTTPException) as exc:
        fittrack_main.get_current_user(token)

    assert exc.value.status_code == 401


def test_require_admin_rejects_regular_users():
    with pytest.raises(HTTPException) as exc:
        require_admin(SimpleNamespace(id=1, role="user"))

    assert exc.value.status_code == 403


def test_require_admin_allows_admins():
    admin = SimpleNamespace(id=1, role="admin")

    assert require_admin(admin) is admin
