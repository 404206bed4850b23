# crud/reading_list.py — reading list repository
import structlog
from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crud.user import user_exists
from database import run
from errors import EditConflict, FailedValidation, RecordNotFound
from models import ReadingList
from schemas import ReadingListCreate, ReadingListUpdate

logger = structlog.get_logger(__name__)

CREATED_BY_MISSING = "must reference an existing user"


async def create_reading_list(db: AsyncSession, list_data: ReadingListCreate) -> ReadingList:
    if not await user_exists(db, list_data.created_by):
        raise FailedValidation({"created_by": CREATED_BY_MISSING})

    new_list = ReadingList(**list_data.model_dump(), version=1)
    db.add(new_list)
    await run(db.commit())
    await run(db.refresh(new_list))
    logger.info("Reading list created", reading_list_id=new_list.id, created_by=new_list.created_by)
    return new_list


async def get_reading_list(db: AsyncSession, list_id: int) -> ReadingList:
    if list_id < 1:
        raise RecordNotFound()
    stmt = select(ReadingList).where(ReadingList.id == list_id).execution_options(populate_existing=True)
    result = await run(db.execute(stmt))
    reading_list = result.scalar_one_or_none()
    if reading_list is None:
        raise RecordNotFound()
    return reading_list


async def reading_list_exists(db: AsyncSession, list_id: int) -> bool:
    if list_id < 1:
        return False
    result = await run(db.execute(select(exists().where(ReadingList.id == list_id))))
    return bool(result.scalar())


async def update_reading_list(db: AsyncSession, list_id: int, list_data: ReadingListUpdate) -> ReadingList:
    if list_id < 1:
        raise RecordNotFound()
    values = list_data.model_dump(exclude_unset=True, exclude_none=True, exclude={"version"})
    if "created_by" in values and not await user_exists(db, values["created_by"]):
        raise FailedValidation({"created_by": CREATED_BY_MISSING})

    stmt = update(ReadingList).where(ReadingList.id == list_id)
    if list_data.version is not None:
        stmt = stmt.where(ReadingList.version == list_data.version)
    stmt = (
        stmt.values(**values, version=ReadingList.version + 1)
        .returning(ReadingList.version)
        .execution_options(synchronize_session=False)
    )

    result = await run(db.execute(stmt))
    new_version = result.scalar_one_or_none()
    if new_version is None:
        if list_data.version is not None and await reading_list_exists(db, list_id):
            raise EditConflict()
        raise RecordNotFound()

    await run(db.commit())
    logger.info("Reading list updated", reading_list_id=list_id, version=new_version)
    return await get_reading_list(db, list_id)


async def delete_reading_list(db: AsyncSession, list_id: int) -> None:
    if list_id < 1:
        raise RecordNotFound()
    result = await run(db.execute(
        delete(ReadingList).where(ReadingList.id == list_id).execution_options(synchronize_session=False)
    ))
    if result.rowcount == 0:
        raise RecordNotFound()
    await run(db.commit())
    logger.info("Reading list deleted", reading_list_id=list_id)
