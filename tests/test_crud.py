"""
Tests for the book, reading list, review and user repositories.
"""

import pytest

from crud.book import book_exists, create_book, delete_book, get_book, update_book
from crud.reading_list import (
    create_reading_list, delete_reading_list, get_reading_list, update_reading_list,
)
from crud.review import create_review, delete_review, get_book_reviews, get_review, update_review
from crud.user import create_user, get_user, user_exists
from errors import DuplicateEmail, EditConflict, FailedValidation, RecordNotFound
from schemas import (
    BookCreate, BookUpdate, ReadingListCreate, ReadingListUpdate, ReviewCreate, ReviewUpdate,
    UserCreate,
)
from conftest import book_payload


class TestBooks:
    @pytest.mark.asyncio
    async def test_insert_then_get_round_trip(self, db):
        created = await create_book(db, BookCreate(**book_payload()))
        assert created.id > 0
        assert created.version == 1

        fetched = await get_book(db, created.id)
        assert fetched.title == "Dune"
        assert fetched.authors == "Frank Herbert"
        assert fetched.isbn == "9780441172719"
        assert fetched.publication_date == "August 1, 1965"
        assert fetched.average_rating == 0.0
        assert fetched.version == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("book_id", [0, -1, 999])
    async def test_get_missing_or_invalid_id(self, db, book_id):
        with pytest.raises(RecordNotFound):
            await get_book(db, book_id)

    @pytest.mark.asyncio
    async def test_update_increments_version(self, db, make_book):
        book = await make_book()
        updated = await update_book(db, book.id, BookUpdate(genre="Science Fiction"))
        assert updated.genre == "Science Fiction"
        assert updated.title == "Dune"
        assert updated.version == 2

        updated = await update_book(db, book.id, BookUpdate(description="Desert planet."))
        assert updated.version == 3

    @pytest.mark.asyncio
    async def test_update_with_current_version_succeeds(self, db, make_book):
        book = await make_book()
        updated = await update_book(db, book.id, BookUpdate(title="Dune Messiah", version=1))
        assert updated.version == 2

    @pytest.mark.asyncio
    async def test_update_with_stale_version_conflicts(self, db, make_book):
        book = await make_book()
        await update_book(db, book.id, BookUpdate(title="Dune Messiah"))
        with pytest.raises(EditConflict):
            await update_book(db, book.id, BookUpdate(title="Children of Dune", version=1))
        assert (await get_book(db, book.id)).title == "Dune Messiah"

    @pytest.mark.asyncio
    async def test_update_deleted_book_is_not_found(self, db, make_book):
        book = await make_book()
        await delete_book(db, book.id)
        with pytest.raises(RecordNotFound):
            await update_book(db, book.id, BookUpdate(title="Ghost"))
        with pytest.raises(RecordNotFound):
            await update_book(db, book.id, BookUpdate(title="Ghost", version=1))

    @pytest.mark.asyncio
    async def test_delete_twice(self, db, make_book):
        book = await make_book()
        await delete_book(db, book.id)
        assert not await book_exists(db, book.id)
        with pytest.raises(RecordNotFound):
            await delete_book(db, book.id)

    @pytest.mark.asyncio
    async def test_delete_invalid_id(self, db):
        with pytest.raises(RecordNotFound):
            await delete_book(db, 0)


class TestReadingLists:
    @pytest.mark.asyncio
    async def test_create_and_get(self, db, user):
        created = await create_reading_list(
            db, ReadingListCreate(name="Favourites", description="All time best", created_by=user.id)
        )
        assert created.version == 1
        fetched = await get_reading_list(db, created.id)
        assert fetched.name == "Favourites"
        assert fetched.created_by == user.id

    @pytest.mark.asyncio
    async def test_created_by_must_exist(self, db):
        with pytest.raises(FailedValidation) as exc_info:
            await create_reading_list(
                db, ReadingListCreate(name="Orphan", description="No owner", created_by=42)
            )
        assert "created_by" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_update_and_conflict(self, db, make_list):
        reading_list = await make_list()
        updated = await update_reading_list(db, reading_list.id, ReadingListUpdate(name="Autumn", version=1))
        assert updated.name == "Autumn"
        assert updated.version == 2
        with pytest.raises(EditConflict):
            await update_reading_list(db, reading_list.id, ReadingListUpdate(name="Spring", version=1))

    @pytest.mark.asyncio
    async def test_update_to_unknown_owner_rejected(self, db, make_list):
        reading_list = await make_list()
        with pytest.raises(FailedValidation):
            await update_reading_list(db, reading_list.id, ReadingListUpdate(created_by=999))
        assert (await get_reading_list(db, reading_list.id)).version == 1

    @pytest.mark.asyncio
    async def test_delete_twice(self, db, make_list):
        reading_list = await make_list()
        await delete_reading_list(db, reading_list.id)
        with pytest.raises(RecordNotFound):
            await delete_reading_list(db, reading_list.id)
        with pytest.raises(RecordNotFound):
            await get_reading_list(db, reading_list.id)


class TestReviews:
    @pytest.mark.asyncio
    async def test_create_updates_average_rating(self, db, make_book, user):
        book = await make_book()
        await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=5, review_text="Great"))
        await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=2, review_text="Slow"))
        assert (await get_book(db, book.id)).average_rating == pytest.approx(3.5)

    @pytest.mark.asyncio
    async def test_review_for_missing_book(self, db, user):
        with pytest.raises(RecordNotFound):
            await create_review(db, 77, ReviewCreate(user_id=user.id, rating=4, review_text="Hmm"))

    @pytest.mark.asyncio
    async def test_review_for_missing_user(self, db, make_book):
        book = await make_book()
        with pytest.raises(FailedValidation):
            await create_review(db, book.id, ReviewCreate(user_id=77, rating=4, review_text="Hmm"))

    @pytest.mark.asyncio
    async def test_update_keeps_review_date(self, db, make_book, user):
        book = await make_book()
        review = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=3, review_text="Ok"))
        original_date = review.review_date

        updated = await update_review(db, review.id, ReviewUpdate(rating=5))
        assert updated.rating == 5
        assert updated.review_text == "Ok"
        assert updated.version == 2
        assert updated.review_date == original_date
        assert (await get_book(db, book.id)).average_rating == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_update_stale_version(self, db, make_book, user):
        book = await make_book()
        review = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=3, review_text="Ok"))
        await update_review(db, review.id, ReviewUpdate(rating=4))
        with pytest.raises(EditConflict):
            await update_review(db, review.id, ReviewUpdate(rating=1, version=1))

    @pytest.mark.asyncio
    async def test_list_newest_first(self, db, make_book, user):
        book = await make_book()
        first = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=3, review_text="One"))
        second = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=4, review_text="Two"))
        reviews = await get_book_reviews(db, book.id)
        assert [r.id for r in reviews] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_delete_recomputes_average_and_twice_is_not_found(self, db, make_book, user):
        book = await make_book()
        keep = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=4, review_text="Good"))
        drop = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=1, review_text="Bad"))

        await delete_review(db, drop.id)
        assert (await get_book(db, book.id)).average_rating == pytest.approx(4.0)
        with pytest.raises(RecordNotFound):
            await delete_review(db, drop.id)
        assert (await get_review(db, keep.id)).rating == 4

    @pytest.mark.asyncio
    async def test_deleting_book_removes_its_reviews(self, db, make_book, user):
        book = await make_book()
        review = await create_review(db, book.id, ReviewCreate(user_id=user.id, rating=4, review_text="Good"))
        await delete_book(db, book.id)
        with pytest.raises(RecordNotFound):
            await get_review(db, review.id)


class TestUsers:
    @pytest.mark.asyncio
    async def test_create_and_get(self, db):
        created = await create_user(db, UserCreate(name="Grace", email="grace@example.com"))
        fetched = await get_user(db, created.id)
        assert fetched.email == "grace@example.com"
        assert fetched.activated is False
        assert await user_exists(db, created.id)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db, user):
        with pytest.raises(DuplicateEmail):
            await create_user(db, UserCreate(name="Other Ada", email=user.email))
