"""sqlrepo: generic async SQLAlchemy entity repository.

Import the public surface from this package rather than from individual
modules:

    from sqlrepo import ScopeManager, SqlRepository, StaticConnectionStringProvider

    scopes = ScopeManager(StaticConnectionStringProvider(url))
    customers = SqlRepository(Customer, scopes)
    orders = SqlRepository(Order, scopes)
    async with scopes.scope() as scope:
        await customers.add(customer, scope=scope)
        await orders.add_all(customer_orders, scope=scope)
"""

from sqlrepo.domain.errors import (
    AmbiguousResultError,
    NotFoundError,
    RepositoryError,
    SchemaError,
    ValidationError,
)
from sqlrepo.domain.models import UNBOUNDED_PAGE_SIZE, FieldRole, PaginatedResult
from sqlrepo.domain.repositories import Repository
from sqlrepo.infrastructure.database import (
    Base,
    ConnectionStringProvider,
    NullConnectionStringProvider,
    Settings,
    SettingsConnectionStringProvider,
    StaticConnectionStringProvider,
    StoreError,
)
from sqlrepo.infrastructure.persistence import (
    EntityMetadata,
    FieldDescriptor,
    LoadOptions,
    Scope,
    ScopeManager,
    SqlExecutor,
    SqlRepository,
    compose,
    resolve,
)

__all__ = [
    # Errors
    "RepositoryError",
    "ValidationError",
    "SchemaError",
    "AmbiguousResultError",
    "NotFoundError",
    "StoreError",
    # Domain
    "FieldRole",
    "PaginatedResult",
    "UNBOUNDED_PAGE_SIZE",
    "Repository",
    # Configuration
    "Base",
    "Settings",
    "ConnectionStringProvider",
    "SettingsConnectionStringProvider",
    "StaticConnectionStringProvider",
    "NullConnectionStringProvider",
    # Persistence
    "EntityMetadata",
    "FieldDescriptor",
    "resolve",
    "Scope",
    "ScopeManager",
    "LoadOptions",
    "compose",
    "SqlRepository",
    "SqlExecutor",
]
