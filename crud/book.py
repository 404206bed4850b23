# crud/book.py — book repository, every statement bounded by the query timeout
import structlog
from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database import run
from errors import EditConflict, RecordNotFound
from models import Book
from schemas import BookCreate, BookUpdate

logger = structlog.get_logger(__name__)


async def create_book(db: AsyncSession, book_data: BookCreate) -> Book:
    new_book = Book(**book_data.model_dump(), version=1)
    db.add(new_book)
    await run(db.commit())
    await run(db.refresh(new_book))
    logger.info("Book created", book_id=new_book.id)
    return new_book


async def get_book(db: AsyncSession, book_id: int) -> Book:
    if book_id < 1:
        raise RecordNotFound()
    stmt = select(Book).where(Book.id == book_id).execution_options(populate_existing=True)
    result = await run(db.execute(stmt))
    book = result.scalar_one_or_none()
    if book is None:
        raise RecordNotFound()
    return book


async def book_exists(db: AsyncSession, book_id: int) -> bool:
    if book_id < 1:
        return False
    result = await run(db.execute(select(exists().where(Book.id == book_id))))
    return bool(result.scalar())


async def update_book(db: AsyncSession, book_id: int, book_data: BookUpdate) -> Book:
    """Apply a partial update and bump the version in the same statement.

    When the caller sends the version it last saw, the row only changes if
    that version is still current; otherwise EditConflict is raised.
    """
    if book_id < 1:
        raise RecordNotFound()
    values = book_data.model_dump(exclude_unset=True, exclude_none=True, exclude={"version"})

    stmt = update(Book).where(Book.id == book_id)
    if book_data.version is not None:
        stmt = stmt.where(Book.version == book_data.version)
    stmt = (
        stmt.values(**values, version=Book.version + 1)
        .returning(Book.version)
        .execution_options(synchronize_session=False)
    )

    result = await run(db.execute(stmt))
    new_version = result.scalar_one_or_none()
    if new_version is None:
        if book_data.version is not None and await book_exists(db, book_id):
            raise EditConflict()
        raise RecordNotFound()

    await run(db.commit())
    logger.info("Book updated", book_id=book_id, version=new_version)
    return await get_book(db, book_id)


async def delete_book(db: AsyncSession, book_id: int) -> None:
    if book_id < 1:
        raise RecordNotFound()
    result = await run(db.execute(
        delete(Book).where(Book.id == book_id).execution_options(synchronize_session=False)
    ))
    if result.rowcount == 0:
        raise RecordNotFound()
    await run(db.commit())
    logger.info("Book deleted", book_id=book_id)
