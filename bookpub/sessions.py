"""Server-side web sessions.

The browser only ever holds an opaque random token. The token maps to a
``WebSessionRecord`` row; the user is rehydrated from the ``users`` table on
every request, so nothing about the identity is trusted from the client.

The record also carries the flash channel: one success and one error slot,
written by one request and cleared by the first request that reads them.
"""
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import get_db
from .errors import FlashRedirect
from .utils.logging import get_logger

logger = get_logger("bookpub.sessions")


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _expiry() -> datetime:
    return datetime.utcnow() + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)


class WebSession:
    def __init__(self, db: Session, record: Optional[models.WebSessionRecord] = None,
                 user: Optional[models.User] = None):
        self.db = db
        self.record = record
        self.user = user
        # Cookie changes to apply on the way out: ("set", token) or ("delete", None)
        self._cookie_op = None

    @property
    def token(self) -> Optional[str]:
        return self.record.token if self.record is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _create_record(self, user_id: Optional[int]) -> models.WebSessionRecord:
        record = models.WebSessionRecord(
            token=_new_token(),
            user_id=user_id,
            expires_at=_expiry(),
        )
        self.db.add(record)
        self.record = record
        self._cookie_op = ("set", record.token)
        return record

    def login(self, user: models.User) -> None:
        """Bind a brand new session token to ``user``.

        Any previous record is discarded so a token issued before login
        cannot be reused after it.
        """
        if self.record is not None:
            self.db.delete(self.record)
        purge_expired(self.db)
        self._create_record(user.id)
        self.db.commit()
        self.user = user
        logger.info("Session opened for user id=%s", user.id)

    def logout(self) -> None:
        if self.record is not None:
            self.db.delete(self.record)
            self.db.commit()
            if self.user is not None:
                logger.info("Session closed for user id=%s", self.user.id)
        self.record = None
        self.user = None
        self._cookie_op = ("delete", None)

    def flash(self, category: str, message: str) -> None:
        if self.record is None:
            self._create_record(None)
        if category == "success":
            self.record.flash_success = message
        else:
            self.record.flash_error = message
        self.db.commit()

    def pop_flashes(self) -> dict:
        """Return pending flash messages and clear them in the same commit."""
        if self.record is None:
            return {"success": None, "error": None}
        flashes = {
            "success": self.record.flash_success,
            "error": self.record.flash_error,
        }
        if flashes["success"] is not None or flashes["error"] is not None:
            self.record.flash_success = None
            self.record.flash_error = None
            self.db.commit()
        return flashes

    def fail(self, url: str, message: str) -> FlashRedirect:
        """Flash ``message`` as an error and build the redirect to raise."""
        self.flash("error", message)
        return FlashRedirect(self, url)

    def apply(self, response):
        if self._cookie_op is None:
            return response
        op, token = self._cookie_op
        if op == "set":
            response.set_cookie(
                key=settings.SESSION_COOKIE_NAME,
                value=token,
                httponly=True,
                max_age=settings.SESSION_EXPIRE_MINUTES * 60,
                samesite="lax",
                secure=settings.COOKIE_SECURE,
            )
        else:
            response.delete_cookie(settings.SESSION_COOKIE_NAME)
        return response


def purge_expired(db: Session) -> int:
    return (
        db.query(models.WebSessionRecord)
        .filter(models.WebSessionRecord.expires_at < datetime.utcnow())
        .delete(synchronize_session=False)
    )


def load_web_session(db: Session, request: Request) -> WebSession:
    """
    Resolve the session cookie to a WebSession.

    Missing, unknown or expired tokens all resolve to an anonymous session.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return WebSession(db)

    record = db.get(models.WebSessionRecord, token)
    if record is None:
        return WebSession(db)

    if record.expires_at <= datetime.utcnow():
        db.delete(record)
        db.commit()
        return WebSession(db)

    user = None
    if record.user_id is not None:
        user = db.get(models.User, record.user_id)
    return WebSession(db, record=record, user=user)


def get_web_session(request: Request, db: Session = Depends(get_db)) -> WebSession:
    """
    Dependency resolving the current WebSession (authenticated or not).
    """
    return load_web_session(db, request)
