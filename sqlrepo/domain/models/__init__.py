"""Domain model package.

Pure Python / Pydantic value objects with no ORM or infrastructure
dependencies.
"""

from .enums import FieldRole
from .pagination import UNBOUNDED_PAGE_SIZE, PaginatedResult

__all__ = [
    "FieldRole",
    "PaginatedResult",
    "UNBOUNDED_PAGE_SIZE",
]
