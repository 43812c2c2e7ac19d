"""Unit-of-work scopes and the ScopeManager that owns their lifecycle.

A Scope is one AsyncSession holding one connection and one open transaction.
Every repository and raw-SQL operation goes through ScopeManager.run():

  - With a caller-supplied scope the body runs inside it and the scope is
    left open: only whoever opened it may commit, roll back or close it.
  - Without one, run() opens a fresh scope (transaction begun before the
    body executes), runs the body, flushes pending changes when asked, then
    commits and closes.  If the body or the flush raises, the scope is
    rolled back instead of committed, closed, and the error propagates.

Ownership is decided only by whether the caller passed a scope in, never by
nesting depth.  A scope must not be used by two tasks at the same time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from sqlrepo.domain.errors import fail_if
from sqlrepo.infrastructure.database import (
    ConnectionStringProvider,
    SettingsConnectionStringProvider,
    Settings,
    create_engine,
    create_session_factory,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Scope:
    """A live session bound to exactly one open transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._closed = False

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    async def submit(self) -> None:
        """Send pending inserts, updates and deletes to the store (no commit)."""
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._session.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Scope {state} session={id(self._session):#x}>"


class ScopeManager:
    """Opens scopes against the provider's database and runs work inside them.

    Engines are created lazily, one per distinct connection string, and
    reused for every later scope on the same URL.  Pass ``engine`` to pin
    the manager to an existing engine instead (the provider is then unused).
    """

    def __init__(
        self,
        provider: ConnectionStringProvider | None = None,
        *,
        engine: AsyncEngine | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._provider = provider or SettingsConnectionStringProvider()
        self._settings = settings
        self._engine = engine
        self._factories: dict[str | None, async_sessionmaker[AsyncSession]] = {}
        self._engines: list[AsyncEngine] = []
        self._lock = threading.Lock()

    def _session_factory(self) -> async_sessionmaker[AsyncSession]:
        url = None if self._engine is not None else self._provider.get_connection_string()
        factory = self._factories.get(url)
        if factory is not None:
            return factory
        with self._lock:
            factory = self._factories.get(url)
            if factory is None:
                engine = self._engine
                if engine is None:
                    engine = create_engine(url, self._settings)
                    self._engines.append(engine)
                factory = create_session_factory(engine)
                self._factories[url] = factory
        return factory

    async def open_scope(self) -> Scope:
        """Open a connection and begin its transaction immediately."""
        session = self._session_factory()()
        try:
            await session.begin()
            await session.connection()
        except BaseException:
            await session.close()
            raise
        logger.debug("Opened scope on %s", session.bind)
        return Scope(session)

    async def run(
        self,
        scope: Scope | None,
        body: Callable[[Scope], Awaitable[R]],
        *,
        submit_on_success: bool = False,
    ) -> R:
        """Run body in scope, or in a fresh self-finalizing scope when None."""
        if scope is not None:
            fail_if(scope.closed, "Parameter (scope) has already been finalized")
            result = await body(scope)
            if submit_on_success:
                await scope.submit()
            return result

        owned = await self.open_scope()
        try:
            result = await body(owned)
            if submit_on_success:
                await owned.submit()
        except BaseException:
            logger.warning("Rolling back %r after failure", owned, exc_info=True)
            await owned.rollback()
            raise
        else:
            await owned.commit()
            logger.debug("Committed %r", owned)
        finally:
            await owned.close()
        return result

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[Scope]:
        """Caller-owned scope for composing several operations in one transaction.

            async with scopes.scope() as scope:
                await customers.add(customer, scope=scope)
                await orders.add_all(new_orders, scope=scope)

        Commits on normal exit, rolls back on exception, always closes.
        """
        owned = await self.open_scope()
        try:
            yield owned
            await owned.commit()
        except BaseException:
            await owned.rollback()
            raise
        finally:
            await owned.close()

    async def dispose(self) -> None:
        """Dispose every engine this manager created."""
        with self._lock:
            engines, self._engines = self._engines, []
            self._factories.clear()
        for engine in engines:
            await engine.dispose()
