# crud/membership.py — books inside reading lists
"""
Membership of a book in a reading list.

A (list, book) pair is either absent or present with a status. Adding an
already present pair raises DuplicateMembership and leaves the stored status
alone; removing deletes the row, and removing an absent pair raises
RecordNotFound. The unique constraint on the table is the final arbiter, so
two requests racing to add the same pair still end in one row and one
DuplicateMembership.
"""
from typing import List, Optional

import structlog
from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crud.book import book_exists
from crud.reading_list import reading_list_exists
from database import run
from errors import DuplicateMembership, EditConflict, FailedValidation, RecordNotFound
from models import ListMembership

logger = structlog.get_logger(__name__)

VALID_STATUSES = ("currently reading", "completed")


def _check_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise FailedValidation({"status": "must be either 'currently reading' or 'completed'"})


async def _require_list_and_book(db: AsyncSession, list_id: int, book_id: int) -> None:
    if not await reading_list_exists(db, list_id):
        raise RecordNotFound("the requested reading list could not be found")
    if not await book_exists(db, book_id):
        raise RecordNotFound("the requested book could not be found")


def _pair(list_id: int, book_id: int):
    return (ListMembership.reading_list_id == list_id) & (ListMembership.book_id == book_id)


async def membership_exists(db: AsyncSession, list_id: int, book_id: int) -> bool:
    result = await run(db.execute(select(exists().where(_pair(list_id, book_id)))))
    return bool(result.scalar())


async def get_membership(db: AsyncSession, list_id: int, book_id: int) -> ListMembership:
    stmt = select(ListMembership).where(_pair(list_id, book_id)).execution_options(populate_existing=True)
    result = await run(db.execute(stmt))
    membership = result.scalar_one_or_none()
    if membership is None:
        raise RecordNotFound()
    return membership


async def list_memberships(db: AsyncSession, list_id: int) -> List[ListMembership]:
    if not await reading_list_exists(db, list_id):
        raise RecordNotFound()
    result = await run(db.execute(
        select(ListMembership)
        .where(ListMembership.reading_list_id == list_id)
        .order_by(ListMembership.added_at, ListMembership.id)
    ))
    return list(result.scalars().all())


async def add_book_to_list(db: AsyncSession, list_id: int, book_id: int, status: str) -> ListMembership:
    _check_status(status)
    await _require_list_and_book(db, list_id, book_id)
    if await membership_exists(db, list_id, book_id):
        raise DuplicateMembership()

    membership = ListMembership(reading_list_id=list_id, book_id=book_id, status=status, version=1)
    db.add(membership)
    try:
        await run(db.commit())
    except IntegrityError as e:
        await db.rollback()
        if "unique" in str(e.orig).lower():
            raise DuplicateMembership()
        # foreign key: the list or book went away after the existence checks
        raise RecordNotFound()

    await run(db.refresh(membership))
    logger.info("Book added to reading list", reading_list_id=list_id, book_id=book_id, status=status)
    return membership


async def update_membership_status(
    db: AsyncSession,
    list_id: int,
    book_id: int,
    status: str,
    expected_version: Optional[int] = None,
) -> ListMembership:
    _check_status(status)
    await _require_list_and_book(db, list_id, book_id)

    stmt = update(ListMembership).where(_pair(list_id, book_id))
    if expected_version is not None:
        stmt = stmt.where(ListMembership.version == expected_version)
    stmt = (
        stmt.values(status=status, version=ListMembership.version + 1)
        .returning(ListMembership.version)
        .execution_options(synchronize_session=False)
    )

    result = await run(db.execute(stmt))
    new_version = result.scalar_one_or_none()
    if new_version is None:
        if expected_version is not None and await membership_exists(db, list_id, book_id):
            raise EditConflict()
        raise RecordNotFound()

    await run(db.commit())
    logger.info("Reading list status changed", reading_list_id=list_id, book_id=book_id, status=status)
    return await get_membership(db, list_id, book_id)


async def remove_book_from_list(db: AsyncSession, list_id: int, book_id: int) -> None:
    await _require_list_and_book(db, list_id, book_id)

    result = await run(db.execute(
        delete(ListMembership).where(_pair(list_id, book_id)).execution_options(synchronize_session=False)
    ))
    if result.rowcount == 0:
        raise RecordNotFound("the book is not in this reading list")

    await run(db.commit())
    logger.info("Book removed from reading list", reading_list_id=list_id, book_id=book_id)
