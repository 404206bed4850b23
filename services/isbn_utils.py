"""
ISBN helpers for book payloads

Books are stored with a bare 13 digit ISBN. Hyphens and spaces are accepted
on input and stripped before validation.
"""

ISBN13_LENGTH = 13


def clean_isbn(isbn: str) -> str:
    """
    Removes the separators people commonly type into an ISBN

    Parameters
    ----------
    isbn : str
        The ISBN as entered, e.g. "978-0-441-17271-9"

    Returns
    -------
    str
        The ISBN without dashes or spaces

    """
    return isbn.replace("-", " ").replace(" ", "").strip()


def is_isbn13(isbn: str) -> bool:
    """
    Checks that an already cleaned ISBN is made of exactly 13 digits

    Parameters
    ----------
    isbn : str
        An ISBN with separators removed

    Returns
    -------
    bool
        True, if the ISBN has the stored shape.

    """
    return len(isbn) == ISBN13_LENGTH and all(char in "0123456789" for char in isbn)
