"""Generic repository base interface.

Repository[T] is the root abstraction for entity data access.  The concrete
SQLAlchemy implementation lives in sqlrepo/infrastructure/persistence/.

Design notes:
  - All methods are async to accommodate async database drivers (asyncpg /
    SQLAlchemy async).
  - Every method accepts an optional keyword-only ``scope``.  When omitted the
    call opens, uses and finalizes its own unit of work; when given, the call
    joins it and leaves committing and closing to whoever opened it.
  - ``where`` is an opaque predicate and ``query`` an opaque pipeline
    transform; their concrete types belong to the implementation.
  - "OrDefault" lookups return None on zero rows and never raise for it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar

from sqlrepo.domain.models.pagination import PaginatedResult

T = TypeVar("T")

Key = Mapping[str, Any] | Any


class Repository(ABC, Generic[T]):
    """Abstract CRUD and query interface for one entity type."""

    # --- writes ---

    @abstractmethod
    async def add(self, entity: T, *, scope: Any = None) -> T:
        """Queue an insert of entity and return the same instance."""

    @abstractmethod
    async def add_all(self, entities: Iterable[T], *, scope: Any = None) -> list[T]:
        """Insert every entity in one unit of work: all or none are committed."""

    @abstractmethod
    async def update(
        self, entity: T, fields: Iterable[str] | None = None, *, scope: Any = None
    ) -> T:
        """Copy scalar values from entity onto its persisted row and return that row."""

    @abstractmethod
    async def update_all(
        self, entities: Iterable[T], fields: Iterable[str] | None = None, *, scope: Any = None
    ) -> list[T]:
        """Update every entity in one unit of work."""

    @abstractmethod
    async def delete(self, entity: T, *, scope: Any = None) -> T | None:
        """Delete the persisted row matching entity's key; None when absent."""

    @abstractmethod
    async def delete_by_key(self, key: Key, *, scope: Any = None) -> T | None:
        """Delete the persisted row with the given key; None when absent."""

    @abstractmethod
    async def delete_all(self, entities: Iterable[T], *, scope: Any = None) -> list[T | None]:
        """Delete every entity in one unit of work."""

    @abstractmethod
    async def delete_where(self, where: Any = None, *, scope: Any = None) -> list[T | None]:
        """Delete every row matching the predicate."""

    @abstractmethod
    async def delete_query(self, query: Any = None, *, scope: Any = None) -> list[T | None]:
        """Delete every row produced by the custom query."""

    # --- reads ---

    @abstractmethod
    async def get_by_key(self, key: Key, *, scope: Any = None) -> T | None:
        """Return the row with the given key, or None if not found."""

    @abstractmethod
    async def list(
        self, where: Any = None, query: Any = None, load_options: Any = None, *, scope: Any = None
    ) -> list[T]:
        """Return every matching row."""

    async def array(
        self, where: Any = None, query: Any = None, load_options: Any = None, *, scope: Any = None
    ) -> tuple[T, ...]:
        """Return every matching row as an immutable tuple."""
        return tuple(await self.list(where, query, load_options, scope=scope))

    @abstractmethod
    async def single_or_default(
        self, where: Any = None, query: Any = None, load_options: Any = None, *, scope: Any = None
    ) -> T | None:
        """Return the only matching row, None for zero rows; raise on more than one."""

    @abstractmethod
    async def first_or_default(
        self, where: Any = None, query: Any = None, load_options: Any = None, *, scope: Any = None
    ) -> T | None:
        """Return the first matching row, or None."""

    @abstractmethod
    async def last_or_default(
        self, where: Any = None, query: Any = None, load_options: Any = None, *, scope: Any = None
    ) -> T | None:
        """Return the last matching row, or None."""

    @abstractmethod
    async def any(self, where: Any = None, query: Any = None, *, scope: Any = None) -> bool:
        """Return True when at least one row matches."""

    @abstractmethod
    async def count(self, where: Any = None, query: Any = None, *, scope: Any = None) -> int:
        """Return the number of matching rows."""

    @abstractmethod
    async def paginated_result(
        self,
        page_size: int | None = None,
        page_index: int | None = None,
        where: Any = None,
        query: Any = None,
        load_options: Any = None,
        *,
        scope: Any = None,
    ) -> PaginatedResult[T]:
        """Return one page of matching rows plus the total matching count."""
