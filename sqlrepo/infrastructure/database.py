"""Settings, declarative base, async engine factory and connection-string providers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

# Driver and connection faults propagate unchanged as SQLAlchemy exceptions.
StoreError = SQLAlchemyError

# Bare asyncpg URL: host, user and database come from the libpq environment.
DEFAULT_DATABASE_URL = "postgresql+asyncpg://"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str | None = None
    echo: bool = False
    pool_pre_ping: bool = True
    # Never overwritten by a partial update (compared case-insensitively).
    audit_fields: list[str] = Field(default_factory=lambda: ["created_at", "created_by"])


class Base(DeclarativeBase):
    """Shared declarative base for ORM models used with sqlrepo."""


@runtime_checkable
class ConnectionStringProvider(Protocol):
    """Supplies the database URL for each newly opened scope.

    Returning None is valid: the scope manager then uses DEFAULT_DATABASE_URL.
    """

    def get_connection_string(self) -> str | None: ...


class SettingsConnectionStringProvider:
    """Reads DATABASE_URL from the environment (or .env) on every call."""

    def get_connection_string(self) -> str | None:
        return Settings().database_url


class StaticConnectionStringProvider:
    def __init__(self, url: str) -> None:
        self._url = url

    def get_connection_string(self) -> str | None:
        return self._url


class NullConnectionStringProvider:
    def get_connection_string(self) -> str | None:
        return None


def create_engine(url: str | None, settings: Settings | None = None) -> AsyncEngine:
    """Create an AsyncEngine for url, falling back to DEFAULT_DATABASE_URL."""
    settings = settings or Settings()
    return create_async_engine(
        url or DEFAULT_DATABASE_URL,
        echo=settings.echo,
        pool_pre_ping=settings.pool_pre_ping,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps entities readable after their scope closes.
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
