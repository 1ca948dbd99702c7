"""Tests for server-side sessions and the flash channel."""
from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

from starlette.responses import Response

from bookpub import models
from bookpub.auth import get_password_hash
from bookpub.config import settings
from bookpub.sessions import WebSession, load_web_session, purge_expired


def _request(token: str | None = None):
    cookies = {settings.SESSION_COOKIE_NAME: token} if token else {}
    return SimpleNamespace(cookies=cookies)


def _user(db, username="alice"):
    user = models.User(username=username, email=f"{username}@x.com", password_hash=get_password_hash("pw1"))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_login_persists_record_with_only_user_id(db):
    user = _user(db)
    web = WebSession(db)

    web.login(user)

    record = db.get(models.WebSessionRecord, web.token)
    assert record is not None
    assert record.user_id == user.id
    assert record.expires_at > datetime.utcnow() + timedelta(hours=23)


def test_login_issues_http_only_cookie(db):
    web = WebSession(db)
    web.login(_user(db))

    response = web.apply(Response())

    header = response.headers["set-cookie"]
    assert header.startswith(f"{settings.SESSION_COOKIE_NAME}={web.token}")
    assert "httponly" in header.lower()
    assert "max-age=86400" in header.lower()


def test_login_replaces_previous_token(db):
    web = WebSession(db)
    web.flash("error", "Please login")
    anonymous_token = web.token

    web.login(_user(db))

    assert web.token != anonymous_token
    assert db.get(models.WebSessionRecord, anonymous_token) is None


def test_load_rehydrates_user_from_store(db):
    user = _user(db)
    web = WebSession(db)
    web.login(user)
    user.bio = "fresh bio"
    db.commit()

    loaded = load_web_session(db, _request(web.token))

    assert loaded.is_authenticated
    assert loaded.user.id == user.id
    assert loaded.user.bio == "fresh bio"


def test_unknown_or_missing_token_is_anonymous(db):
    assert not load_web_session(db, _request()).is_authenticated
    assert not load_web_session(db, _request("forged-token")).is_authenticated


def test_expired_record_is_anonymous_and_removed(db):
    web = WebSession(db)
    web.login(_user(db))
    web.record.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()
    token = web.token

    loaded = load_web_session(db, _request(token))

    assert not loaded.is_authenticated
    assert db.get(models.WebSessionRecord, token) is None


def test_purge_expired_keeps_live_sessions(db):
    live = WebSession(db)
    live.login(_user(db))
    stale = models.WebSessionRecord(token="stale", user_id=None,
                                    expires_at=datetime.utcnow() - timedelta(days=1))
    db.add(stale)
    db.commit()

    removed = purge_expired(db)
    db.commit()

    assert removed == 1
    assert db.get(models.WebSessionRecord, live.token) is not None


def test_logout_removes_record_and_clears_cookie(db):
    web = WebSession(db)
    web.login(_user(db))
    token = web.token

    web.logout()
    response = web.apply(Response())

    assert db.get(models.WebSessionRecord, token) is None
    assert not web.is_authenticated
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_flash_is_read_once(db):
    web = WebSession(db)
    web.flash("success", "Saved")
    web.flash("error", "But something else failed")

    first = load_web_session(db, _request(web.token)).pop_flashes()
    second = load_web_session(db, _request(web.token)).pop_flashes()

    assert first == {"success": "Saved", "error": "But something else failed"}
    assert second == {"success": None, "error": None}


def test_anonymous_flash_creates_session_cookie(db):
    web = WebSession(db)

    web.flash("error", "Please login")
    response = web.apply(Response())

    assert web.record.user_id is None
    assert settings.SESSION_COOKIE_NAME in response.headers["set-cookie"]
