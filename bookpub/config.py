import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Sessions
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "bookpub_session")
    SESSION_EXPIRE_MINUTES = int(os.getenv("SESSION_EXPIRE_MINUTES", 1440))
    COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

    # Upload limits
    MAX_BOOK_FILE_MB = int(os.getenv("MAX_BOOK_FILE_MB", 50))
    MAX_PROFILE_PIC_MB = int(os.getenv("MAX_PROFILE_PIC_MB", 5))

    # Paths
    BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    PUBLIC_DIR = os.getenv("PUBLIC_DIR", os.path.join(BASE_DIR, "public"))
    UPLOAD_DIR = os.path.join(PUBLIC_DIR, "uploads")
    TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")

    DEFAULT_AVATAR = "/uploads/default-avatar.svg"
    DEFAULT_COVER = "/uploads/default-cover.svg"

settings = Settings()
