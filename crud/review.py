# crud/review.py — book reviews; every write refreshes the book's average rating
from typing import List

import structlog
from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crud.book import book_exists
from crud.user import user_exists
from database import run
from errors import EditConflict, FailedValidation, RecordNotFound
from models import Book, Review
from schemas import ReviewCreate, ReviewUpdate

logger = structlog.get_logger(__name__)


async def _refresh_average_rating(db: AsyncSession, book_id: int) -> None:
    average = (
        select(func.coalesce(func.avg(Review.rating), 0.0))
        .where(Review.book_id == book_id)
        .scalar_subquery()
    )
    await run(db.execute(
        update(Book)
        .where(Book.id == book_id)
        .values(average_rating=average)
        .execution_options(synchronize_session=False)
    ))


async def create_review(db: AsyncSession, book_id: int, review_data: ReviewCreate) -> Review:
    if not await book_exists(db, book_id):
        raise RecordNotFound()
    if not await user_exists(db, review_data.user_id):
        raise FailedValidation({"user_id": "must reference an existing user"})

    new_review = Review(book_id=book_id, **review_data.model_dump(), version=1)
    db.add(new_review)
    await run(db.flush())
    await _refresh_average_rating(db, book_id)
    await run(db.commit())
    await run(db.refresh(new_review))
    logger.info("Review created", review_id=new_review.id, book_id=book_id)
    return new_review


async def get_review(db: AsyncSession, review_id: int) -> Review:
    if review_id < 1:
        raise RecordNotFound()
    stmt = select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
    result = await run(db.execute(stmt))
    review = result.scalar_one_or_none()
    if review is None:
        raise RecordNotFound()
    return review


async def review_exists(db: AsyncSession, review_id: int) -> bool:
    if review_id < 1:
        return False
    result = await run(db.execute(select(exists().where(Review.id == review_id))))
    return bool(result.scalar())


async def get_book_reviews(db: AsyncSession, book_id: int) -> List[Review]:
    """Reviews for a book, newest first."""
    if not await book_exists(db, book_id):
        raise RecordNotFound()
    result = await run(db.execute(
        select(Review)
        .where(Review.book_id == book_id)
        .order_by(Review.review_date.desc(), Review.id.desc())
    ))
    return list(result.scalars().all())


async def update_review(db: AsyncSession, review_id: int, review_data: ReviewUpdate) -> Review:
    """Change rating and/or text. The review date never changes."""
    if review_id < 1:
        raise RecordNotFound()
    values = review_data.model_dump(exclude_unset=True, exclude_none=True, exclude={"version"})

    stmt = update(Review).where(Review.id == review_id)
    if review_data.version is not None:
        stmt = stmt.where(Review.version == review_data.version)
    stmt = (
        stmt.values(**values, version=Review.version + 1)
        .returning(Review.book_id, Review.version)
        .execution_options(synchronize_session=False)
    )

    result = await run(db.execute(stmt))
    row = result.one_or_none()
    if row is None:
        if review_data.version is not None and await review_exists(db, review_id):
            raise EditConflict()
        raise RecordNotFound()

    await _refresh_average_rating(db, row.book_id)
    await run(db.commit())
    logger.info("Review updated", review_id=review_id, version=row.version)
    return await get_review(db, review_id)


async def delete_review(db: AsyncSession, review_id: int) -> None:
    if review_id < 1:
        raise RecordNotFound()
    result = await run(db.execute(
        delete(Review)
        .where(Review.id == review_id)
        .returning(Review.book_id)
        .execution_options(synchronize_session=False)
    ))
    book_id = result.scalar_one_or_none()
    if book_id is None:
        raise RecordNotFound()
    await _refresh_average_rating(db, book_id)
    await run(db.commit())
    logger.info("Review deleted", review_id=review_id, book_id=book_id)
