"""
Pagination, sorting and metadata shared by every list endpoint.
"""
import math
from typing import Dict, FrozenSet

from pydantic import BaseModel, Field

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


class Filters(BaseModel):
    """Paging and sort parameters for one list request.

    ``sort`` is a column name, optionally prefixed with ``-`` for descending
    order. It is only usable once it has been checked against
    ``sort_safelist``, which each endpoint supplies for its own entity.
    """

    page: int = 1
    page_size: int = 10
    sort: str = "id"
    sort_safelist: FrozenSet[str] = Field(default_factory=lambda: frozenset({"id"}))

    def sort_key(self) -> str:
        return self.sort[1:] if self.sort.startswith("-") else self.sort

    def sort_column(self) -> str:
        key = self.sort_key()
        if key not in self.sort_safelist:
            raise ValueError(f"unsafe sort parameter: {self.sort}")
        return key

    def sort_descending(self) -> bool:
        return self.sort.startswith("-")

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_filters(filters: Filters) -> Dict[str, str]:
    """Return a field -> message map; empty when the filters are usable."""
    errors = {}

    if filters.page < 1:
        errors["page"] = "must be greater than zero"
    elif filters.page > MAX_PAGE:
        errors["page"] = "must be a maximum of 10 million"

    if filters.page_size < 1:
        errors["page_size"] = "must be greater than zero"
    elif filters.page_size > MAX_PAGE_SIZE:
        errors["page_size"] = "must be a maximum of 100"

    if filters.sort_key() not in filters.sort_safelist:
        errors["sort"] = "invalid sort value"

    return errors


class Metadata(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    """Derive the pagination summary from a total row count.

    Returns the all-zero Metadata when nothing matched.
    """
    if total_records < 0 or page < 0 or page_size < 0:
        raise ValueError("pagination inputs must not be negative")
    if total_records == 0:
        return Metadata()
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be at least 1")

    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )
