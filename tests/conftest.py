"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database.
"""

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from crud.book import create_book
from crud.reading_list import create_reading_list
from crud.user import create_user
from database import Base, enable_sqlite_foreign_keys, get_db
from main import app
from schemas import BookCreate, ReadingListCreate, UserCreate


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the app, with one database session per request."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


def book_payload(**overrides):
    data = {
        "title": "Dune",
        "authors": "Frank Herbert",
        "isbn": "9780441172719",
        "publication_date": "August 1, 1965",
        "genre": "Sci-Fi",
        "description": "Spice, sandworms and politics on Arrakis.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_book(db):
    async def _make(**overrides):
        return await create_book(db, BookCreate(**book_payload(**overrides)))
    return _make


@pytest_asyncio.fixture
async def user(db):
    return await create_user(db, UserCreate(name="Ada Reader", email="ada@example.com"))


@pytest.fixture
def make_list(db, user):
    async def _make(name="Summer reading", description="Books for the beach"):
        return await create_reading_list(
            db, ReadingListCreate(name=name, description=description, created_by=user.id)
        )
    return _make
