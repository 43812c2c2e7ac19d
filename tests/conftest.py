"""Shared fixtures: a throwaway SQLite database per test, driven through aiosqlite."""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from sqlrepo.infrastructure.database import Base
from sqlrepo.infrastructure.persistence.repositories import SqlRepository
from sqlrepo.infrastructure.persistence.scope import ScopeManager
from tests.models import Customer, Order, OrderLine


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'sqlrepo.db'}"


@pytest.fixture
async def engine(database_url):
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def scopes(engine):
    return ScopeManager(engine=engine)


@pytest.fixture
def customers(scopes):
    return SqlRepository(Customer, scopes)


@pytest.fixture
def orders(scopes):
    return SqlRepository(Order, scopes)


@pytest.fixture
def order_lines(scopes):
    return SqlRepository(OrderLine, scopes)
