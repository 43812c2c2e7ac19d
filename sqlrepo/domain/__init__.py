"""Domain layer: error taxonomy, paging value objects and repository interfaces.

Nothing in this package imports SQLAlchemy; the persistence layer lives in
sqlrepo.infrastructure.
"""
