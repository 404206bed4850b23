import pytest

from services.isbn_utils import clean_isbn, is_isbn13


@pytest.mark.parametrize("raw, cleaned", [
    ("978-0-441-17271-9", "9780441172719"),
    ("978 0 441 17271 9", "9780441172719"),
    ("1234567890123", "1234567890123"),
    ("  ", ""),
])
def test_clean_isbn(raw, cleaned):
    assert clean_isbn(raw) == cleaned


@pytest.mark.parametrize("isbn, expected", [
    ("1234567890123", True),
    ("123456789012", False),
    ("12345678901234", False),
    ("12345678901X3", False),
    ("", False),
])
def test_is_isbn13(isbn, expected):
    assert is_isbn13(isbn) is expected
