from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from .models import Category

class RegisterForm(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=1)
    confirm: str

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v

class BookForm(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    publisher: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    category: Category

    @field_validator("title", "publisher", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

class ProfileForm(BaseModel):
    bio: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("bio")
    @classmethod
    def truncate_bio(cls, v: Optional[str]) -> Optional[str]:
        return v[:50] if v else v

    @field_validator("profile_picture")
    @classmethod
    def blank_picture_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

class UserOut(BaseModel):
    id: int
    username: str
    email: EmailStr
    bio: str
    profile_picture: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BookOut(BaseModel):
    id: int
    title: str
    owner_id: int
    owner_username: str
    publisher: str
    description: str
    category: Category
    cover_image: str
    book_file: str
    downloads: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_book(cls, book) -> "BookOut":
        return cls(
            id=book.id,
            title=book.title,
            owner_id=book.owner_id,
            owner_username=book.owner.username,
            publisher=book.publisher,
            description=book.description,
            category=book.category,
            cover_image=book.cover_image,
            book_file=book.book_file,
            downloads=book.downloads,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


def first_error(exc) -> str:
    """Human readable message for the first error of a pydantic ValidationError."""
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "form"
    msg = err.get("msg", "Invalid value")
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    return f"{field.replace('_', ' ').capitalize()}: {msg}"
