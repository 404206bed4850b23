import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from services.isbn_utils import clean_isbn, is_isbn13

PUBLICATION_DATE_RX = re.compile(r"^[A-Za-z]+ \d{1,2}, \d{4}$")
EMAIL_RX = re.compile(r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$")


def _required_text(value: str, max_length: int) -> str:
    if not value.strip():
        raise ValueError("must be provided")
    if len(value) > max_length:
        raise ValueError(f"must not be more than {max_length} characters long")
    return value


def _isbn(value: str) -> str:
    cleaned = clean_isbn(value)
    if not cleaned:
        raise ValueError("must be provided")
    if not is_isbn13(cleaned):
        raise ValueError("must be 13 digits long")
    return cleaned


def _publication_date(value: str) -> str:
    _required_text(value, 200)
    if not PUBLICATION_DATE_RX.match(value):
        raise ValueError("must be in the format 'July 12, 2020'")
    return value


# ─────────────────────── BOOKS ───────────────────────
class BookBase(BaseModel):
    title: str
    authors: str
    isbn: str
    publication_date: str
    genre: str
    description: str

    @field_validator("title", "authors", "genre", "description")
    @classmethod
    def check_text(cls, v):
        return _required_text(v, 200)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v):
        return _isbn(v)

    @field_validator("publication_date")
    @classmethod
    def check_publication_date(cls, v):
        return _publication_date(v)


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    """Partial update; ``version`` is the last version the client saw."""
    title: Optional[str] = None
    authors: Optional[str] = None
    isbn: Optional[str] = None
    publication_date: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None
    version: Optional[int] = None

    @field_validator("title", "authors", "genre", "description")
    @classmethod
    def check_text(cls, v):
        return v if v is None else _required_text(v, 200)

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v):
        return v if v is None else _isbn(v)

    @field_validator("publication_date")
    @classmethod
    def check_publication_date(cls, v):
        return v if v is None else _publication_date(v)


class Book(BookBase):
    id: int
    average_rating: float
    version: int

    class Config:
        from_attributes = True


# ─────────────────────── READING LISTS ───────────────────────
class ReadingListBase(BaseModel):
    name: str
    description: str
    created_by: int

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _required_text(v, 100)

    @field_validator("description")
    @classmethod
    def check_description(cls, v):
        return _required_text(v, 200)

    @field_validator("created_by")
    @classmethod
    def check_created_by(cls, v):
        if v < 1:
            raise ValueError("must be a valid user ID")
        return v


class ReadingListCreate(ReadingListBase):
    pass


class ReadingListUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[int] = None
    version: Optional[int] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return v if v is None else _required_text(v, 100)

    @field_validator("description")
    @classmethod
    def check_description(cls, v):
        return v if v is None else _required_text(v, 200)

    @field_validator("created_by")
    @classmethod
    def check_created_by(cls, v):
        if v is not None and v < 1:
            raise ValueError("must be a valid user ID")
        return v


class ReadingList(ReadingListBase):
    id: int
    version: int

    class Config:
        from_attributes = True


# ─────────────────────── MEMBERSHIPS ───────────────────────
class MembershipCreate(BaseModel):
    book_id: int
    status: str


class MembershipUpdate(BaseModel):
    status: str
    version: Optional[int] = None


class Membership(BaseModel):
    reading_list_id: int
    book_id: int
    status: str
    added_at: datetime
    version: int

    class Config:
        from_attributes = True


# ─────────────────────── REVIEWS ───────────────────────
class ReviewCreate(BaseModel):
    user_id: int
    rating: int
    review_text: str

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, v):
        if v < 1:
            raise ValueError("must be provided")
        return v

    @field_validator("rating")
    @classmethod
    def check_rating(cls, v):
        if not 1 <= v <= 5:
            raise ValueError("must be between 1 and 5")
        return v

    @field_validator("review_text")
    @classmethod
    def check_review_text(cls, v):
        if not v.strip():
            raise ValueError("must be provided")
        return v


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    review_text: Optional[str] = None
    version: Optional[int] = None

    @field_validator("rating")
    @classmethod
    def check_rating(cls, v):
        if v is not None and not 1 <= v <= 5:
            raise ValueError("must be between 1 and 5")
        return v

    @field_validator("review_text")
    @classmethod
    def check_review_text(cls, v):
        if v is not None and not v.strip():
            raise ValueError("must be provided")
        return v


class Review(BaseModel):
    id: int
    book_id: int
    user_id: int
    rating: int
    review_text: str
    review_date: datetime
    version: int

    class Config:
        from_attributes = True


# ─────────────────────── USERS ───────────────────────
class UserCreate(BaseModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return _required_text(v, 500)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v.strip():
            raise ValueError("must be provided")
        if not EMAIL_RX.match(v):
            raise ValueError("must be a valid email address")
        return v


class User(BaseModel):
    id: int
    name: str
    email: str
    activated: bool
    created_at: datetime
    version: int

    class Config:
        from_attributes = True
