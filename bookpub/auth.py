from typing import Optional
from fastapi import Depends
import bcrypt
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from . import models
from .sessions import WebSession, get_web_session
from .utils.logging import get_logger

logger = get_logger("bookpub.auth")

LOGIN_REQUIRED = "Please login to access this page"
UNAUTHORIZED = "Unauthorized access"

# Password hashing
# Direct bcrypt usage, no passlib wrapper

def verify_password(plain_password, hashed_password):
    if isinstance(plain_password, str):
        plain_password = plain_password.encode('utf-8')
    if isinstance(hashed_password, str):
        hashed_password = hashed_password.encode('utf-8')
    try:
        return bcrypt.checkpw(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a bcrypt hash
        return False

def get_password_hash(password):
    if isinstance(password, str):
        password = password.encode('utf-8')
    # gensalt default rounds is 12
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password, salt).decode('utf-8')

def find_user_by_identifier(db: Session, identifier: str) -> Optional[models.User]:
    return db.query(models.User).filter(
        or_(models.User.username == identifier, func.lower(models.User.email) == identifier.lower())
    ).first()

def authenticate_user(db: Session, identifier: str, password: str) -> Optional[models.User]:
    """
    Check a username-or-email and password pair.

    Returns the user on success and None otherwise; callers must not tell an
    unknown identifier apart from a wrong password.
    """
    if not identifier or not password:
        return None
    user = find_user_by_identifier(db, identifier.strip())
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for identifier=%r", identifier)
        return None
    return user

def require_user(web: WebSession = Depends(get_web_session)) -> WebSession:
    """
    Dependency that sends anonymous visitors to /login with a flash message.
    """
    if not web.is_authenticated:
        raise web.fail("/login", LOGIN_REQUIRED)
    return web

def ensure_owner(web: WebSession, book: models.Book, redirect_to: str = "/userprofile") -> None:
    if book.owner_id != web.user.id:
        logger.warning("User id=%s denied access to book id=%s", web.user.id, book.id)
        raise web.fail(redirect_to, UNAUTHORIZED)
