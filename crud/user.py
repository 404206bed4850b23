# crud/user.py — minimal user records referenced by reading lists and reviews
import structlog
from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database import run
from errors import DuplicateEmail, RecordNotFound
from models import User
from schemas import UserCreate

logger = structlog.get_logger(__name__)


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    new_user = User(**user_data.model_dump(), activated=False, version=1)
    db.add(new_user)
    try:
        await run(db.commit())
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmail()
    await run(db.refresh(new_user))
    logger.info("User created", user_id=new_user.id)
    return new_user


async def get_user(db: AsyncSession, user_id: int) -> User:
    if user_id < 1:
        raise RecordNotFound()
    result = await run(db.execute(select(User).where(User.id == user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise RecordNotFound()
    return user


async def user_exists(db: AsyncSession, user_id: int) -> bool:
    if user_id < 1:
        return False
    result = await run(db.execute(select(exists().where(User.id == user_id))))
    return bool(result.scalar())
