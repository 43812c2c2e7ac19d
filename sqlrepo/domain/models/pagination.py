"""Paginated result snapshot.

A PaginatedResult holds one materialized page of records together with the
total number of matching records at the time the page was read.  Every other
paging figure is a pure function of (page_size, page_index, record_count):

    page_count          = ceil(record_count / page_size)
    last_page_index     = page_count - 1
    previous_page_index = max(page_index - 1, 0)
    next_page_index     = min(page_index + 1, last_page_index), never below 0

Page *numbers* are page *indexes* plus one.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")

# Page size used when the caller asks for "all rows".
UNBOUNDED_PAGE_SIZE = 2**31 - 1


class PaginatedResult(BaseModel, Generic[T]):
    """One page of records plus the total matching count.

    page_size <= 0 (or None) is coerced to UNBOUNDED_PAGE_SIZE so page_count
    can never divide by zero; a negative or missing page_index becomes 0.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    records: tuple[T, ...] = ()
    page_size: int = UNBOUNDED_PAGE_SIZE
    page_index: int = 0
    record_count: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _coerce_paging(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        page_size = data.get("page_size")
        if page_size is None or page_size <= 0:
            data["page_size"] = UNBOUNDED_PAGE_SIZE
        page_index = data.get("page_index")
        if page_index is None or page_index < 0:
            data["page_index"] = 0
        return data

    @classmethod
    def from_records(cls, records: Sequence[T]) -> PaginatedResult[T]:
        """Wrap an already materialized list as a single page."""
        return cls(
            records=tuple(records),
            page_size=len(records),
            page_index=0,
            record_count=len(records),
        )

    # --- indexes (0-based) ---

    @property
    def page_count(self) -> int:
        pages, remainder = divmod(self.record_count, self.page_size)
        return pages + 1 if remainder else pages

    @property
    def first_page_index(self) -> int:
        return 0

    @property
    def last_page_index(self) -> int:
        return self.page_count - 1

    @property
    def previous_page_index(self) -> int:
        return max(self.page_index - 1, self.first_page_index)

    @property
    def next_page_index(self) -> int:
        return max(min(self.page_index + 1, self.last_page_index), self.first_page_index)

    # --- numbers (1-based) ---

    @property
    def page_number(self) -> int:
        return self.page_index + 1

    @property
    def first_page_number(self) -> int:
        return self.first_page_index + 1

    @property
    def last_page_number(self) -> int:
        return self.last_page_index + 1

    @property
    def previous_page_number(self) -> int:
        return self.previous_page_index + 1

    @property
    def next_page_number(self) -> int:
        return self.next_page_index + 1

    # --- flags ---

    @property
    def has_records(self) -> bool:
        return self.record_count != 0

    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.last_page_number

    @property
    def has_previous_page(self) -> bool:
        return self.page_number > self.first_page_number

    @property
    def has_more_than_one_page(self) -> bool:
        return self.page_count > 1
