"""Unit tests for sqlrepo/infrastructure/database.py.

Tests cover Settings defaults, env var override, providers and object types.
No database connection is required.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from sqlrepo.infrastructure.database import (
    DEFAULT_DATABASE_URL,
    Base,
    ConnectionStringProvider,
    NullConnectionStringProvider,
    Settings,
    SettingsConnectionStringProvider,
    StaticConnectionStringProvider,
    StoreError,
    create_engine,
    create_session_factory,
)


def test_settings_database_url_defaults_to_none(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert Settings(_env_file=None).database_url is None


def test_settings_reads_database_url_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@myhost/mydb")
    assert Settings().database_url == "postgresql+asyncpg://u:p@myhost/mydb"


def test_settings_default_audit_fields():
    assert Settings(_env_file=None).audit_fields == ["created_at", "created_by"]


def test_settings_reads_audit_fields_from_env(monkeypatch):
    monkeypatch.setenv("AUDIT_FIELDS", '["inserted_on"]')
    assert Settings().audit_fields == ["inserted_on"]


def test_base_is_declarative_base():
    assert issubclass(Base, DeclarativeBase)


def test_store_error_is_sqlalchemy_error():
    assert StoreError is SQLAlchemyError
    assert issubclass(IntegrityError, StoreError)


# --- providers ---

def test_settings_provider_reads_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
    assert SettingsConnectionStringProvider().get_connection_string() == "sqlite+aiosqlite:///x.db"


def test_static_provider_returns_url():
    assert StaticConnectionStringProvider("sqlite+aiosqlite://").get_connection_string() == "sqlite+aiosqlite://"


def test_null_provider_returns_none():
    assert NullConnectionStringProvider().get_connection_string() is None


def test_providers_satisfy_protocol():
    assert isinstance(NullConnectionStringProvider(), ConnectionStringProvider)
    assert isinstance(StaticConnectionStringProvider("x"), ConnectionStringProvider)
    assert isinstance(SettingsConnectionStringProvider(), ConnectionStringProvider)


# --- engine / session factory ---

def test_create_engine_is_async():
    assert isinstance(create_engine("sqlite+aiosqlite://"), AsyncEngine)


def test_create_engine_falls_back_to_driver_defaults():
    engine = create_engine(None, Settings(_env_file=None))
    assert engine.url.render_as_string() == DEFAULT_DATABASE_URL


def test_session_factory_produces_async_sessions():
    factory = create_session_factory(create_engine("sqlite+aiosqlite://"))
    assert isinstance(factory, async_sessionmaker)
    assert factory.class_ is AsyncSession
    assert factory.kw["expire_on_commit"] is False
