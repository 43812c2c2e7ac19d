"""Raw SQL execution routed through the same scope discipline as repositories.

Parameters may be a mapping (named binds, ``:name``) or a sequence
(positional binds, ``:p0``, ``:p1``, ...):

    executor = SqlExecutor(scopes)
    await executor.execute_non_query(
        "UPDATE customers SET city = :p0 WHERE id = :p1", ["Porto", 7]
    )
    frame = await executor.execute_data_table(
        "SELECT * FROM customers WHERE city = :city", {"city": "Porto"}
    )

Only execute_non_query flushes pending ORM changes on success; reads never
do.  Results are fully buffered before an owned scope is released.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd
from sqlalchemy import Result, RowMapping, select, text

from sqlrepo.domain.errors import ValidationError, fail_if
from sqlrepo.infrastructure.persistence.query import positional_params
from sqlrepo.infrastructure.persistence.scope import Scope, ScopeManager

Params = Mapping[str, Any] | Sequence[Any] | None


def bind_params(params: Params) -> dict[str, Any]:
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, Sequence) and not isinstance(params, (str, bytes)):
        return positional_params(params)
    raise ValidationError(f"Unknown type of 'params' => '{type(params).__name__}'")


def _require_query(query: str | None) -> None:
    fail_if(query is None or not query.strip(), "Parameter 'query' is required")


def _to_frame(result: Result) -> pd.DataFrame:
    if not result.returns_rows:
        return pd.DataFrame()
    rows = result.fetchall()
    return pd.DataFrame(rows, columns=list(result.keys()))


class SqlExecutor:
    def __init__(self, scopes: ScopeManager | None = None) -> None:
        self._scopes = scopes or ScopeManager()

    @property
    def scopes(self) -> ScopeManager:
        return self._scopes

    async def execute_non_query(
        self, query: str, params: Params = None, *, scope: Scope | None = None
    ) -> int:
        """Run a mutating statement and return the affected row count."""
        _require_query(query)
        bound = bind_params(params)

        async def body(s: Scope) -> int:
            result = await s.session.execute(text(query), bound)
            return result.rowcount

        return await self._scopes.run(scope, body, submit_on_success=True)

    async def execute_scalar(
        self, query: str, params: Params = None, *, scope: Scope | None = None
    ) -> Any:
        """First column of the first row, or None when there are no rows."""
        _require_query(query)
        bound = bind_params(params)

        async def body(s: Scope) -> Any:
            result = await s.session.execute(text(query), bound)
            return result.scalar()

        return await self._scopes.run(scope, body)

    async def execute_reader(
        self, query: str, params: Params = None, *, scope: Scope | None = None
    ) -> list[RowMapping]:
        """Every row as a column-name mapping."""
        _require_query(query)
        bound = bind_params(params)

        async def body(s: Scope) -> list[RowMapping]:
            result = await s.session.execute(text(query), bound)
            return list(result.mappings().all())

        return await self._scopes.run(scope, body)

    async def execute_query(
        self,
        query: str,
        params: Params = None,
        entity_type: type | None = None,
        *,
        scope: Scope | None = None,
    ) -> list[Any]:
        """Rows of a textual query, as entity_type instances when one is given."""
        _require_query(query)
        bound = bind_params(params)

        async def body(s: Scope) -> list[Any]:
            if entity_type is None:
                result = await s.session.execute(text(query), bound)
                return list(result.all())
            stmt = select(entity_type).from_statement(text(query).bindparams(**bound))
            result = await s.session.execute(stmt)
            return list(result.scalars().all())

        return await self._scopes.run(scope, body)

    async def execute_data_table(
        self, query: str, params: Params = None, *, scope: Scope | None = None
    ) -> pd.DataFrame:
        frames = await self.execute_data_set([query], params, scope=scope)
        return frames[0] if frames else pd.DataFrame()

    async def execute_data_set(
        self,
        queries: Sequence[str],
        params: Params = None,
        *,
        scope: Scope | None = None,
    ) -> list[pd.DataFrame]:
        """One DataFrame per statement, all read inside a single scope.

        The same params are bound to every statement.
        """
        fail_if(isinstance(queries, str), "Parameter 'queries' must be a sequence of statements")
        fail_if(queries is None or len(queries) == 0, "Parameter 'queries' is required")
        for query in queries:
            _require_query(query)
        bound = bind_params(params)

        async def body(s: Scope) -> list[pd.DataFrame]:
            frames = []
            for query in queries:
                result = await s.session.execute(text(query), bound)
                frames.append(_to_frame(result))
            return frames

        return await self._scopes.run(scope, body)
