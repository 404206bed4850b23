# models.py
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer,
    String, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String(500), nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    activated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False, index=True)
    authors = Column(String(200), nullable=False, index=True)
    isbn = Column(String(13), nullable=False)
    publication_date = Column(String(200), nullable=False)
    genre = Column(String(200), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    average_rating = Column(Float, nullable=False, default=0.0)
    version = Column(Integer, nullable=False, default=1)

    memberships = relationship("ListMembership", back_populates="book", passive_deletes=True)
    reviews = relationship("Review", back_populates="book", passive_deletes=True)


class ReadingList(Base):
    __tablename__ = "readinglists"
    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(200), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    memberships = relationship("ListMembership", back_populates="reading_list", passive_deletes=True)


class ListMembership(Base):
    """A book inside a reading list. One row per (list, book) pair."""
    __tablename__ = "readinglist_books"
    __table_args__ = (
        UniqueConstraint("reading_list_id", "book_id", name="uq_readinglist_book"),
        CheckConstraint("status IN ('currently reading', 'completed')", name="ck_membership_status"),
    )
    id = Column(Integer, primary_key=True)
    reading_list_id = Column(Integer, ForeignKey("readinglists.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    reading_list = relationship("ReadingList", back_populates="memberships")
    book = relationship("Book", back_populates="memberships")


class Review(Base):
    __tablename__ = "bookreviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
    )
    id = Column(Integer, primary_key=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    review_text = Column(String, nullable=False)
    review_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    book = relationship("Book", back_populates="reviews")
