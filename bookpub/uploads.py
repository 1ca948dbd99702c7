"""Storage of uploaded book files, covers and profile pictures.

Files live under ``<PUBLIC_DIR>/uploads/<category>/`` and the database keeps
the root-relative path (``/uploads/books/...``), which the static mount serves
as-is.
"""
import enum
import os
import random
import time

from fastapi import UploadFile

from .config import settings
from .errors import UnsupportedFileType, UploadTooLarge
from .utils.logging import get_logger

logger = get_logger("bookpub.uploads")

CHUNK_SIZE = 1024 * 1024
IMAGE_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

DEFAULT_AVATAR_SVG = """<svg width="100" height="100" xmlns="http://www.w3.org/2000/svg">
    <circle cx="50" cy="50" r="45" fill="#4f46e5"/>
    <text x="50" y="58" text-anchor="middle" fill="white" font-size="36" font-family="Arial">U</text>
</svg>
"""

DEFAULT_COVER_SVG = """<svg width="200" height="300" xmlns="http://www.w3.org/2000/svg">
    <rect width="200" height="300" fill="#e5e7eb"/>
    <text x="100" y="155" text-anchor="middle" fill="#6b7280" font-size="20" font-family="Arial">No cover</text>
</svg>
"""


class UploadKind(enum.Enum):
    BOOK = "books"
    COVER = "covers"
    PROFILE = "profiles"

    @property
    def directory(self) -> str:
        return os.path.join(settings.UPLOAD_DIR, self.value)

    @property
    def limit_mb(self) -> int:
        if self is UploadKind.PROFILE:
            return settings.MAX_PROFILE_PIC_MB
        return settings.MAX_BOOK_FILE_MB

    @property
    def images_only(self) -> bool:
        return self is not UploadKind.BOOK

    @property
    def prefix(self) -> str:
        return "profile-" if self is UploadKind.PROFILE else ""


def init_storage():
    """Create the upload tree and the default avatar and cover images."""
    for kind in UploadKind:
        if not os.path.isdir(kind.directory):
            os.makedirs(kind.directory, exist_ok=True)
            logger.info("Created directory: %s", kind.directory)

    defaults = (
        (settings.DEFAULT_AVATAR, DEFAULT_AVATAR_SVG),
        (settings.DEFAULT_COVER, DEFAULT_COVER_SVG),
    )
    for public_path, content in defaults:
        disk_path = resolve_public_path(public_path)
        if not os.path.exists(disk_path):
            with open(disk_path, "w", encoding="utf-8") as f:
                f.write(content)
            logger.info("Created default image: %s", public_path)


def has_file(upload) -> bool:
    # Browsers submit an empty part when the file input is left blank
    return upload is not None and hasattr(upload, "filename") and bool(upload.filename)


def is_allowed_image(filename: str, content_type: str) -> bool:
    ext = os.path.splitext(filename or "")[1].lower()
    return ext in IMAGE_EXTENSIONS and (content_type or "").lower() in IMAGE_CONTENT_TYPES


def unique_filename(original: str, prefix: str = "") -> str:
    ext = os.path.splitext(original or "")[1].lower()
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1):09d}"
    return f"{prefix}{suffix}{ext}"


def resolve_public_path(public_path: str) -> str:
    """
    Map a stored root-relative path back onto the disk.

    Raises ValueError when the path escapes the public directory.
    """
    root = os.path.realpath(settings.PUBLIC_DIR)
    disk_path = os.path.realpath(os.path.join(root, public_path.lstrip("/")))
    if os.path.commonpath([root, disk_path]) != root:
        raise ValueError(f"Path outside public directory: {public_path}")
    return disk_path


async def save_upload(upload: UploadFile, kind: UploadKind) -> str:
    """
    Write ``upload`` under the directory for ``kind`` and return its public path.

    The type check happens before anything is written. The size limit is
    enforced while streaming; a partial file is removed when it trips.
    """
    if kind.images_only and not is_allowed_image(upload.filename, upload.content_type):
        logger.warning("Rejected %s upload %r (%s)", kind.value, upload.filename, upload.content_type)
        raise UnsupportedFileType(upload.filename)

    os.makedirs(kind.directory, exist_ok=True)
    filename = unique_filename(upload.filename, kind.prefix)
    file_path = os.path.join(kind.directory, filename)
    limit = kind.limit_mb * 1024 * 1024

    written = 0
    try:
        with open(file_path, "wb") as f:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    raise UploadTooLarge(kind.limit_mb)
                f.write(chunk)
    except Exception:
        if os.path.exists(file_path):
            os.remove(file_path)
        raise
    finally:
        await upload.close()

    logger.info("Stored %s upload %s (%d bytes)", kind.value, filename, written)
    return f"/uploads/{kind.value}/{filename}"


def remove_upload(public_path: str) -> None:
    """Best-effort removal of a stored file; defaults and URLs are left alone."""
    if not public_path or not public_path.startswith("/uploads/"):
        return
    if public_path in (settings.DEFAULT_AVATAR, settings.DEFAULT_COVER):
        return
    try:
        disk_path = resolve_public_path(public_path)
    except ValueError:
        return
    if os.path.exists(disk_path):
        os.remove(disk_path)
