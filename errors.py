"""
Error taxonomy shared by the repositories, the query engine and the HTTP layer.
"""
from typing import Dict


class AppError(Exception):
    """Base class for every error the HTTP layer knows how to render."""

    status_code = 500
    message = "the server encountered a problem and could not process your request"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class FailedValidation(AppError):
    """One or more fields failed validation. Raised before any mutation."""

    status_code = 422
    message = "failed validation"

    def __init__(self, errors: Dict[str, str]):
        super().__init__()
        self.errors = dict(errors)


class RecordNotFound(AppError):
    status_code = 404
    message = "the requested resource could not be found"


class DuplicateMembership(AppError):
    status_code = 409
    message = "duplicate book in reading list"


class DuplicateEmail(AppError):
    status_code = 422
    message = "a user with this email address already exists"


class EditConflict(AppError):
    status_code = 409
    message = "unable to update the record due to an edit conflict, please try again"


class QueryTimeout(AppError):
    status_code = 500
    message = "the server timed out while processing your request"
