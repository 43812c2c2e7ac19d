"""Generic SQLAlchemy implementation of Repository[T]."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import MultipleResultsFound

from sqlrepo.domain.errors import AmbiguousResultError, NotFoundError, fail_if
from sqlrepo.domain.models.pagination import UNBOUNDED_PAGE_SIZE, PaginatedResult
from sqlrepo.domain.repositories.base import Key, Repository
from sqlrepo.infrastructure.database import Settings
from sqlrepo.infrastructure.persistence.metadata import EntityMetadata, resolve
from sqlrepo.infrastructure.persistence.query import (
    LoadOptions,
    LoadOptionsTransform,
    QueryTransform,
    compose,
)
from sqlrepo.infrastructure.persistence.scope import Scope, ScopeManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

LoadOptionsArg = LoadOptions | LoadOptionsTransform | None


class SqlRepository(Repository[T]):
    """CRUD, querying and paging for one mapped entity type.

    Construction resolves the entity's metadata and fails with SchemaError
    when the type has no primary key.  audit_fields defaults to the
    audit_fields of settings (or of a fresh Settings()); those names are
    never overwritten by update().
    """

    def __init__(
        self,
        entity_type: type[T],
        scopes: ScopeManager | None = None,
        *,
        audit_fields: Iterable[str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._entity_type = entity_type
        self._metadata = resolve(entity_type)
        self._scopes = scopes or ScopeManager(settings=settings)
        if audit_fields is None:
            audit_fields = (settings or Settings()).audit_fields
        self._audit_fields = tuple(audit_fields)

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def metadata(self) -> EntityMetadata:
        return self._metadata

    @property
    def scopes(self) -> ScopeManager:
        return self._scopes

    # --- helpers ---

    async def _fetch_by_params(
        self, scope: Scope, params: dict[str, Any], *, discard_pending: bool = False
    ) -> T | None:
        dialect = scope.session.get_bind().dialect
        row_query = self._metadata.single_row_query(dialect).bindparams(**params)
        stmt = select(self._entity_type).from_statement(row_query)
        if discard_pending:
            # Reload the stored row even when the session already tracks it,
            # dropping unflushed changes on that instance.
            stmt = stmt.execution_options(populate_existing=True)
            with scope.session.no_autoflush:
                result = await scope.session.execute(stmt)
        else:
            result = await scope.session.execute(stmt)
        try:
            return result.scalars().one_or_none()
        except MultipleResultsFound as exc:
            raise AmbiguousResultError(
                f"More than one {self._entity_type.__name__} row matched key {params}"
            ) from exc

    async def _entities(self, scope: Scope, stmt: Select) -> Sequence[T]:
        result = await scope.session.execute(stmt)
        return result.unique().scalars().all()

    @staticmethod
    def _materialize(entities: Iterable[T] | None, name: str) -> list[T]:
        fail_if(entities is None, f"Parameter ({name}) cannot be None or empty")
        items = list(entities)
        fail_if(len(items) == 0, f"Parameter ({name}) cannot be None or empty")
        return items

    def pipeline(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
    ) -> Select:
        """Compose an unexecuted Select for this entity type."""
        return compose(self._entity_type, where, query, load_options)

    # --- writes ---

    async def add(self, entity: T, *, scope: Scope | None = None) -> T:
        fail_if(entity is None, "Parameter (entity) cannot be None")

        async def body(s: Scope) -> T:
            s.session.add(entity)
            return entity

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def add_all(self, entities: Iterable[T], *, scope: Scope | None = None) -> list[T]:
        items = self._materialize(entities, "entities")

        async def body(s: Scope) -> list[T]:
            result = []
            for entity in items:
                result.append(await self.add(entity, scope=s))
            return result

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def update(
        self,
        entity: T,
        fields: Iterable[str] | None = None,
        *,
        scope: Scope | None = None,
    ) -> T:
        fail_if(entity is None, "Parameter (entity) cannot be None")
        fail_if(isinstance(fields, str), "Parameter (fields) must be a collection of names")
        allowed = None if fields is None else list(fields)
        key = self._metadata.key_of(entity)
        params = self._metadata.key_params(key)
        # entity may be the very instance the scope tracks, so its values are
        # taken before the stored row is reloaded over it.
        values = self._metadata.copyable_values(entity, allowed, self._audit_fields)

        async def body(s: Scope) -> T:
            persisted = await self._fetch_by_params(s, params, discard_pending=True)
            if persisted is None:
                raise NotFoundError(f"{self._entity_type.__name__} {key} not found")
            for name, value in values.items():
                setattr(persisted, name, value)
            return persisted

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def update_all(
        self,
        entities: Iterable[T],
        fields: Iterable[str] | None = None,
        *,
        scope: Scope | None = None,
    ) -> list[T]:
        fail_if(isinstance(fields, str), "Parameter (fields) must be a collection of names")
        items = self._materialize(entities, "entities")
        allowed = None if fields is None else list(fields)

        async def body(s: Scope) -> list[T]:
            result = []
            for entity in items:
                result.append(await self.update(entity, allowed, scope=s))
            return result

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def delete(self, entity: T, *, scope: Scope | None = None) -> T | None:
        fail_if(entity is None, "Parameter (entity) cannot be None")
        return await self.delete_by_key(self._metadata.key_of(entity), scope=scope)

    async def delete_by_key(self, key: Key, *, scope: Scope | None = None) -> T | None:
        params = self._metadata.key_params(key)

        async def body(s: Scope) -> T | None:
            persisted = await self._fetch_by_params(s, params)
            if persisted is None:
                logger.debug("Nothing to delete for %s %s", self._entity_type.__name__, params)
                return None
            await s.session.delete(persisted)
            return persisted

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def delete_all(
        self, entities: Iterable[T], *, scope: Scope | None = None
    ) -> list[T | None]:
        fail_if(entities is None, "Parameter (entities) cannot be None")
        items = list(entities)

        async def body(s: Scope) -> list[T | None]:
            result = []
            for entity in items:
                result.append(await self.delete(entity, scope=s))
            return result

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def _delete_matching(self, stmt: Select, scope: Scope | None) -> list[T | None]:
        async def body(s: Scope) -> list[T | None]:
            rows = await self._entities(s, stmt)
            for row in rows:
                await s.session.delete(row)
            logger.debug("Deleting %d %s row(s)", len(rows), self._entity_type.__name__)
            return list(rows)

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def delete_where(self, where: Any = None, *, scope: Scope | None = None) -> list[T | None]:
        return await self._delete_matching(self.pipeline(where=where), scope)

    async def delete_query(
        self, query: QueryTransform | None = None, *, scope: Scope | None = None
    ) -> list[T | None]:
        return await self._delete_matching(self.pipeline(query=query), scope)

    # --- reads ---

    async def get_by_key(self, key: Key, *, scope: Scope | None = None) -> T | None:
        params = self._metadata.key_params(key)

        async def body(s: Scope) -> T | None:
            return await self._fetch_by_params(s, params)

        return await self._scopes.run(scope, body)

    async def list(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
        *,
        scope: Scope | None = None,
    ) -> list[T]:
        stmt = self.pipeline(where, query, load_options)

        async def body(s: Scope) -> list[T]:
            return list(await self._entities(s, stmt))

        return await self._scopes.run(scope, body)

    async def single_or_default(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
        *,
        scope: Scope | None = None,
    ) -> T | None:
        stmt = self.pipeline(where, query, load_options)

        async def body(s: Scope) -> T | None:
            result = await s.session.execute(stmt)
            try:
                return result.unique().scalars().one_or_none()
            except MultipleResultsFound as exc:
                raise AmbiguousResultError(
                    f"More than one {self._entity_type.__name__} row matched"
                ) from exc

        return await self._scopes.run(scope, body)

    async def first_or_default(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
        *,
        scope: Scope | None = None,
    ) -> T | None:
        stmt = self.pipeline(where, query, load_options).limit(1)

        async def body(s: Scope) -> T | None:
            rows = await self._entities(s, stmt)
            return rows[0] if rows else None

        return await self._scopes.run(scope, body)

    async def last_or_default(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
        *,
        scope: Scope | None = None,
    ) -> T | None:
        # Reversing an arbitrary ORDER BY is not possible generically, so the
        # pipeline is read in its own order and the final row kept.
        stmt = self.pipeline(where, query, load_options)

        async def body(s: Scope) -> T | None:
            rows = await self._entities(s, stmt)
            return rows[-1] if rows else None

        return await self._scopes.run(scope, body)

    async def any(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        *,
        scope: Scope | None = None,
    ) -> bool:
        stmt = select(self.pipeline(where, query).exists())

        async def body(s: Scope) -> bool:
            return bool(await s.session.scalar(stmt))

        return await self._scopes.run(scope, body)

    async def count(
        self,
        where: Any = None,
        query: QueryTransform | None = None,
        *,
        scope: Scope | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(self.pipeline(where, query).subquery())

        async def body(s: Scope) -> int:
            return int(await s.session.scalar(stmt) or 0)

        return await self._scopes.run(scope, body)

    async def paginated_result(
        self,
        page_size: int | None = None,
        page_index: int | None = None,
        where: Any = None,
        query: QueryTransform | None = None,
        load_options: LoadOptionsArg = None,
        *,
        scope: Scope | None = None,
    ) -> PaginatedResult[T]:
        size = page_size if page_size is not None and page_size > 0 else UNBOUNDED_PAGE_SIZE
        index = page_index if page_index is not None and page_index > 0 else 0
        page_stmt = self.pipeline(where, query, load_options).offset(size * index).limit(size)
        count_stmt = select(func.count()).select_from(self.pipeline(where, query).subquery())

        async def body(s: Scope) -> PaginatedResult[T]:
            records = await self._entities(s, page_stmt)
            record_count = int(await s.session.scalar(count_stmt) or 0)
            return PaginatedResult(
                records=tuple(records),
                page_size=size,
                page_index=index,
                record_count=record_count,
            )

        return await self._scopes.run(scope, body)
