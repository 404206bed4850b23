# main.py — JSON API for books, reading lists and reviews
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

import schemas
from config import settings
from crud.book import create_book, delete_book, get_book, update_book
from crud.membership import (
    add_book_to_list, get_membership, list_memberships, remove_book_from_list,
    update_membership_status,
)
from crud.reading_list import (
    create_reading_list, delete_reading_list, get_reading_list, update_reading_list,
)
from crud.review import create_review, delete_review, get_book_reviews, get_review, update_review
from crud.search import search
from crud.user import create_user, get_user
from database import engine, get_db, init_db
from errors import AppError, DuplicateEmail, FailedValidation, RecordNotFound
from filters import Filters
from logger import setup_logging
from models import Book, ReadingList

logger = structlog.get_logger(__name__)

BOOK_SORT_SAFELIST = frozenset({"id", "title", "authors", "genre"})
READING_LIST_SORT_SAFELIST = frozenset({"id", "name"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format, settings.environment)
    logger.info("Starting reading list API", environment=settings.environment)
    await init_db()
    yield
    logger.info("Shutting down reading list API")
    await engine.dispose()


app = FastAPI(title=settings.api_title, version=settings.api_version, lifespan=lifespan)


# ─────────────────────── ERROR RESPONSES ───────────────────────
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, FailedValidation):
        error = exc.errors
    elif isinstance(exc, DuplicateEmail):
        error = {"email": exc.message}
    else:
        error = exc.message
    if exc.status_code >= 500:
        logger.error("Request failed", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": error})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        field = str(err["loc"][-1]) if err.get("loc") else "body"
        errors.setdefault(field, err["msg"].removeprefix("Value error, "))
    return JSONResponse(status_code=422, content={"error": errors})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception", error=str(exc), path=request.url.path)
    content = {"error": AppError.message}
    if settings.debug:
        content["detail"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def created(key: str, payload, location: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=jsonable_encoder({key: payload}),
        headers={"Location": location},
    )


# ─────────────────────── HEALTH ───────────────────────
@app.get("/api/v1/healthcheck")
async def healthcheck():
    return {
        "status": "available",
        "system_info": {"environment": settings.environment, "version": settings.api_version},
    }


# ─────────────────────── BOOKS ───────────────────────
@app.get("/api/v1/books")
async def list_books(
    title: str = "",
    authors: str = "",
    author: str = "",
    genre: str = "",
    page: int = 1,
    page_size: int = 10,
    sort: str = "id",
    db: AsyncSession = Depends(get_db),
):
    filters = Filters(page=page, page_size=page_size, sort=sort, sort_safelist=BOOK_SORT_SAFELIST)
    books, metadata = await search(
        db, Book, {"title": title, "authors": authors or author, "genre": genre}, filters
    )
    return {"books": [schemas.Book.model_validate(b) for b in books], "@metadata": metadata}


@app.post("/api/v1/books", status_code=status.HTTP_201_CREATED)
async def create_book_route(book_data: schemas.BookCreate, db: AsyncSession = Depends(get_db)):
    book = await create_book(db, book_data)
    return created("book", schemas.Book.model_validate(book), f"/api/v1/books/{book.id}")


@app.get("/api/v1/books/{book_id}")
async def show_book(book_id: int, db: AsyncSession = Depends(get_db)):
    return {"book": schemas.Book.model_validate(await get_book(db, book_id))}


@app.patch("/api/v1/books/{book_id}")
async def update_book_route(book_id: int, book_data: schemas.BookUpdate, db: AsyncSession = Depends(get_db)):
    book = await update_book(db, book_id, book_data)
    return {"book": schemas.Book.model_validate(book)}


@app.delete("/api/v1/books/{book_id}")
async def delete_book_route(book_id: int, db: AsyncSession = Depends(get_db)):
    await delete_book(db, book_id)
    return {"message": "book successfully deleted"}


# ─────────────────────── READING LISTS ───────────────────────
@app.get("/api/v1/lists")
async def list_reading_lists(
    name: str = "",
    membership_status: str = Query("", alias="status"),
    page: int = 1,
    page_size: int = 10,
    sort: str = "id",
    db: AsyncSession = Depends(get_db),
):
    """Search reading lists by name and by the status of the books they hold.

    Lists sort by id or name only. Status is held per book in a list, so
    `sort=status` is rejected with 422 and `status` works only as a filter.
    """
    filters = Filters(page=page, page_size=page_size, sort=sort, sort_safelist=READING_LIST_SORT_SAFELIST)
    lists, metadata = await search(db, ReadingList, {"name": name, "status": membership_status}, filters)
    return {
        "reading_lists": [schemas.ReadingList.model_validate(rl) for rl in lists],
        "@metadata": metadata,
    }


@app.post("/api/v1/lists", status_code=status.HTTP_201_CREATED)
async def create_reading_list_route(list_data: schemas.ReadingListCreate, db: AsyncSession = Depends(get_db)):
    reading_list = await create_reading_list(db, list_data)
    return created(
        "reading_list", schemas.ReadingList.model_validate(reading_list), f"/api/v1/lists/{reading_list.id}"
    )


@app.get("/api/v1/lists/{list_id}")
async def show_reading_list(list_id: int, db: AsyncSession = Depends(get_db)):
    return {"reading_list": schemas.ReadingList.model_validate(await get_reading_list(db, list_id))}


@app.patch("/api/v1/lists/{list_id}")
async def update_reading_list_route(
    list_id: int, list_data: schemas.ReadingListUpdate, db: AsyncSession = Depends(get_db)
):
    reading_list = await update_reading_list(db, list_id, list_data)
    return {"reading_list": schemas.ReadingList.model_validate(reading_list)}


@app.delete("/api/v1/lists/{list_id}")
async def delete_reading_list_route(list_id: int, db: AsyncSession = Depends(get_db)):
    await delete_reading_list(db, list_id)
    return {"message": "reading list successfully deleted"}


@app.get("/api/v1/lists/{list_id}/books")
async def list_reading_list_books(list_id: int, db: AsyncSession = Depends(get_db)):
    memberships = await list_memberships(db, list_id)
    return {"books": [schemas.Membership.model_validate(m) for m in memberships]}


@app.post("/api/v1/lists/{list_id}/books", status_code=status.HTTP_201_CREATED)
async def add_reading_list_book(
    list_id: int, membership_data: schemas.MembershipCreate, db: AsyncSession = Depends(get_db)
):
    membership = await add_book_to_list(db, list_id, membership_data.book_id, membership_data.status)
    return created(
        "membership",
        schemas.Membership.model_validate(membership),
        f"/api/v1/lists/{list_id}/books/{membership.book_id}",
    )


@app.get("/api/v1/lists/{list_id}/books/{book_id}")
async def show_reading_list_book(list_id: int, book_id: int, db: AsyncSession = Depends(get_db)):
    if list_id < 1 or book_id < 1:
        raise RecordNotFound()
    return {"membership": schemas.Membership.model_validate(await get_membership(db, list_id, book_id))}


@app.patch("/api/v1/lists/{list_id}/books/{book_id}")
async def update_reading_list_book(
    list_id: int, book_id: int, membership_data: schemas.MembershipUpdate, db: AsyncSession = Depends(get_db)
):
    membership = await update_membership_status(
        db, list_id, book_id, membership_data.status, membership_data.version
    )
    return {"membership": schemas.Membership.model_validate(membership)}


@app.delete("/api/v1/lists/{list_id}/books/{book_id}")
async def remove_reading_list_book(list_id: int, book_id: int, db: AsyncSession = Depends(get_db)):
    await remove_book_from_list(db, list_id, book_id)
    return {"message": "book successfully removed from reading list"}


# ─────────────────────── REVIEWS ───────────────────────
@app.post("/api/v1/books/{book_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_review_route(book_id: int, review_data: schemas.ReviewCreate, db: AsyncSession = Depends(get_db)):
    review = await create_review(db, book_id, review_data)
    return created(
        "review", schemas.Review.model_validate(review), f"/api/v1/books/{book_id}/reviews/{review.id}"
    )


@app.get("/api/v1/books/{book_id}/reviews")
async def list_book_reviews(book_id: int, db: AsyncSession = Depends(get_db)):
    reviews = await get_book_reviews(db, book_id)
    return {"reviews": [schemas.Review.model_validate(r) for r in reviews]}


@app.get("/api/v1/books/{book_id}/reviews/{review_id}")
async def show_review(book_id: int, review_id: int, db: AsyncSession = Depends(get_db)):
    review = await get_review(db, review_id)
    if review.book_id != book_id:
        raise RecordNotFound()
    return {"review": schemas.Review.model_validate(review)}


@app.patch("/api/v1/reviews/{review_id}")
async def update_review_route(review_id: int, review_data: schemas.ReviewUpdate, db: AsyncSession = Depends(get_db)):
    review = await update_review(db, review_id, review_data)
    return {"review": schemas.Review.model_validate(review)}


@app.delete("/api/v1/reviews/{review_id}")
async def delete_review_route(review_id: int, db: AsyncSession = Depends(get_db)):
    await delete_review(db, review_id)
    return {"message": "review successfully deleted"}


# ─────────────────────── USERS ───────────────────────
@app.post("/api/v1/users", status_code=status.HTTP_201_CREATED)
async def register_user(user_data: schemas.UserCreate, db: AsyncSession = Depends(get_db)):
    user = await create_user(db, user_data)
    return created("user", schemas.User.model_validate(user), f"/api/v1/users/{user.id}")


@app.get("/api/v1/users/{user_id}")
async def show_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return {"user": schemas.User.model_validate(await get_user(db, user_id))}
