# crud/search.py — filtered, sorted, paginated listing shared by books and reading lists
import re
import unicodedata
from typing import Callable, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import and_, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database import run
from errors import FailedValidation
from filters import Filters, Metadata, calculate_metadata, validate_filters
from models import Book, ListMembership, ReadingList

logger = structlog.get_logger(__name__)

TOKEN_RX = re.compile(r"\w+")


def tokenize(value: str) -> List[str]:
    """Split a search string into normalized, case-folded word tokens."""
    return TOKEN_RX.findall(unicodedata.normalize("NFKC", value or "").casefold())


def text_match(column, value: str):
    """Every word of ``value`` must occur in ``column``, ignoring case.

    Returns None for a blank value, meaning "no constraint".
    """
    tokens = tokenize(value)
    if not tokens:
        return None
    return and_(*(column.icontains(token, autoescape=True) for token in tokens))


def _column(column) -> Callable[[str], Optional[object]]:
    return lambda value: text_match(column, value)


def _membership_status(value: str):
    condition = text_match(ListMembership.status, value)
    if condition is None:
        return None
    return ReadingList.memberships.any(condition)


# Free-text filters each entity accepts, keyed by query parameter name.
SEARCH_FIELDS: Dict[type, Dict[str, Callable[[str], Optional[object]]]] = {
    Book: {
        "title": _column(Book.title),
        "authors": _column(Book.authors),
        "genre": _column(Book.genre),
    },
    ReadingList: {
        "name": _column(ReadingList.name),
        "status": _membership_status,
    },
}


def _order_by(model, filters: Filters):
    try:
        column = model.__table__.c[filters.sort_column()]
    except KeyError:
        raise ValueError(f"{model.__name__} has no column {filters.sort_key()!r}")
    direction = desc if filters.sort_descending() else asc
    return direction(column), asc(model.id)


async def search(
    db: AsyncSession,
    model,
    text_filters: Dict[str, str],
    filters: Filters,
) -> Tuple[list, Metadata]:
    """
    Run one filtered, sorted, paginated fetch of ``model``.

    The total number of matching rows is read from a window count on the same
    statement, so the page and its metadata always describe the same data.

    Args:
        db: Session for this request
        model: Book or ReadingList
        text_filters: Query parameter name -> search text; blank values are ignored
        filters: Paging and sort parameters, validated against their safelist

    Returns:
        The page of entities and its pagination metadata
    """
    errors = validate_filters(filters)
    if errors:
        raise FailedValidation(errors)

    fields = SEARCH_FIELDS[model]
    conditions = []
    for name, value in text_filters.items():
        condition = fields[name](value)
        if condition is not None:
            conditions.append(condition)

    total_records = func.count().over().label("total_records")
    stmt = select(total_records, model)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = (
        stmt.order_by(*_order_by(model, filters))
        .limit(filters.limit())
        .offset(filters.offset())
    )

    result = await run(db.execute(stmt))
    rows = result.all()

    total = rows[0].total_records if rows else 0
    entities = [row[1] for row in rows]
    logger.debug(
        "Search executed",
        entity=model.__tablename__,
        filters={k: v for k, v in text_filters.items() if v},
        sort=filters.sort,
        page=filters.page,
        returned=len(entities),
        total=total,
    )
    return entities, calculate_metadata(total, filters.page, filters.page_size)
