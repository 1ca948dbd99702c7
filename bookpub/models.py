import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .config import settings
from .database import Base


class Category(str, enum.Enum):
    BUSINESS = "Business"
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    TECHNOLOGY = "Technology"
    SCIENCE = "Science"
    ARTS = "Arts"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    SELF_HELP = "Self-Help"
    OTHER = "Other"

    @classmethod
    def values(cls):
        return [c.value for c in cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    bio = Column(String(50), nullable=False, default="")
    profile_picture = Column(String(500), nullable=False, default=settings.DEFAULT_AVATAR)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    books = relationship("Book", back_populates="owner")


class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    publisher = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(
        Enum(Category, name="book_category", values_callable=lambda e: [c.value for c in e]),
        nullable=False,
    )
    cover_image = Column(String(500), nullable=False, default=settings.DEFAULT_COVER)
    book_file = Column(String(500), nullable=False)
    downloads = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="books")


class WebSessionRecord(Base):
    """Server-side session keyed by the opaque cookie token.

    ``user_id`` is NULL for anonymous sessions that only carry a flash message.
    """
    __tablename__ = "web_sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)
    flash_success = Column(Text, nullable=True)
    flash_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, index=True, nullable=False)
