"""Repository error taxonomy.

Each error also derives from the closest built-in exception so callers that
only know the standard hierarchy (ValueError, LookupError, TypeError) still
catch them.  Driver and connection faults are not wrapped: they surface as
SQLAlchemy's own exceptions (see sqlrepo.infrastructure.database.StoreError).
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for every error raised by sqlrepo itself."""


class ValidationError(RepositoryError, ValueError):
    """A required argument was missing, empty or malformed."""


class SchemaError(RepositoryError, TypeError):
    """An entity type has no resolvable table or primary key."""


class AmbiguousResultError(RepositoryError, LookupError):
    """A single-result fetch matched more than one row."""


class NotFoundError(RepositoryError, LookupError):
    """The persisted row an operation needs does not exist."""


def fail_if(condition: bool, message: str) -> None:
    """Raise ValidationError with message when condition holds."""
    if condition:
        raise ValidationError(message)
