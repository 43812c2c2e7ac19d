"""Persistence package.

Exports the metadata resolver, scope manager, query composer, the generic
repository and the raw-SQL executor.
"""

from sqlrepo.infrastructure.persistence.metadata import (
    EntityMetadata,
    EntityMetadataRegistry,
    FieldDescriptor,
    registry,
    resolve,
)
from sqlrepo.infrastructure.persistence.query import LoadOptions, compose, positional_params
from sqlrepo.infrastructure.persistence.repositories import SqlRepository
from sqlrepo.infrastructure.persistence.scope import Scope, ScopeManager
from sqlrepo.infrastructure.persistence.sql import SqlExecutor, bind_params

__all__ = [
    "EntityMetadata",
    "EntityMetadataRegistry",
    "FieldDescriptor",
    "registry",
    "resolve",
    "LoadOptions",
    "compose",
    "positional_params",
    "Scope",
    "ScopeManager",
    "SqlRepository",
    "SqlExecutor",
    "bind_params",
]
