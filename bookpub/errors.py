from urllib.parse import urlsplit, urlunsplit

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import SessionLocal
from .templating import render
from .utils.logging import get_logger

logger = get_logger("bookpub.errors")

GENERIC_ERROR = "Something went wrong, please try again"


class FlashRedirect(Exception):
    """
    Abandon the current request and redirect.

    The flash message is already stored on the session by the time this is
    raised; the handler only has to emit the redirect and the cookie.
    """

    def __init__(self, web, url: str):
        super().__init__(url)
        self.web = web
        self.url = url


class UploadError(Exception):
    pass


class UploadTooLarge(UploadError):
    def __init__(self, limit_mb: int):
        super().__init__(f"File too large. Maximum size is {limit_mb}MB.")
        self.limit_mb = limit_mb


class UnsupportedFileType(UploadError):
    def __init__(self, filename: str):
        super().__init__("Images only (jpeg, jpg, png, gif, webp)!")
        self.filename = filename


async def flash_redirect_handler(request: Request, exc: FlashRedirect):
    return exc.web.apply(RedirectResponse(url=exc.url, status_code=status.HTTP_303_SEE_OTHER))


def safe_referer(request: Request) -> str:
    """
    Path of the Referer when it points back at this site, otherwise "/".
    """
    referer = request.headers.get("referer")
    if not referer:
        return "/"
    parts = urlsplit(referer)
    if parts.scheme not in ("", "http", "https"):
        return "/"
    if parts.netloc and parts.netloc != request.url.netloc:
        return "/"
    # "//host/..." is protocol-relative and would leave the site
    if not parts.path.startswith("/") or parts.path.startswith("//"):
        return "/"
    return urlunsplit(("", "", parts.path, parts.query, ""))


def _redirect_back(request: Request):
    # Deferred: sessions imports this module.
    from .sessions import load_web_session

    with SessionLocal() as db:
        web = load_web_session(db, request)
        web.flash("error", GENERIC_ERROR)
        return web.apply(RedirectResponse(url=safe_referer(request), status_code=status.HTTP_303_SEE_OTHER))


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return _redirect_back(request)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _redirect_back(request)


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code != status.HTTP_404_NOT_FOUND:
        return await http_exception_handler(request, exc)

    from .sessions import load_web_session

    with SessionLocal() as db:
        web = load_web_session(db, request)
        return render(request, web, "404.html", {"title": "Page Not Found"},
                      status_code=status.HTTP_404_NOT_FOUND)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FlashRedirect, flash_redirect_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
