"""Entity metadata resolution and the process-wide metadata registry.

resolve(entity_type) inspects a SQLAlchemy mapped class once and caches an
EntityMetadata holding:

  - a field-descriptor table (name, column, role, audit flag) in mapper
    attribute order
  - the primary-key descriptors in key-declaration order
  - the table name and a single-row selection template

The template is an AND-conjunction of ``<key column> = :p<i>`` for each key
field in key-declaration order, so key values bind positionally:

    SELECT * FROM order_lines WHERE order_id = :p0 AND line_no = :p1

Only entities persisted to exactly one table are supported; joined-table
inheritance subclasses are rejected with SchemaError.

Mappings are assumed static for the lifetime of the process; cached entries
are never invalidated.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Column, Table, inspect, text
from sqlalchemy.engine import Dialect
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.orm import ColumnProperty, Mapper, RelationshipProperty
from sqlalchemy.sql.elements import TextClause

from sqlrepo.domain.errors import SchemaError, fail_if
from sqlrepo.domain.models.enums import FieldRole

from .query import positional_params

logger = logging.getLogger(__name__)

_ANSI_DIALECT = DefaultDialect()


@dataclass(frozen=True)
class FieldDescriptor:
    """One mapped attribute of an entity.

    column is None for relationship attributes.  audit is True when the
    column was declared with ``info={"audit": True}``.
    """

    name: str
    column: str | None
    role: FieldRole
    audit: bool = False


@dataclass(frozen=True)
class EntityMetadata:
    entity_type: type
    table_name: str
    fields: tuple[FieldDescriptor, ...]
    primary_key_fields: tuple[FieldDescriptor, ...]
    single_row_template: str
    table: Table = field(repr=False, compare=False)

    @property
    def primary_key_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.primary_key_fields)

    def render_single_row_template(self, dialect: Dialect | None = None) -> str:
        """Render the template with dialect's identifier quoting (ANSI when None)."""
        if dialect is None:
            return self.single_row_template
        return _render_template(self.table, self.primary_key_fields, dialect)

    def single_row_query(self, dialect: Dialect | None = None) -> TextClause:
        return text(self.render_single_row_template(dialect))

    def key_of(self, entity: Any) -> dict[str, Any]:
        """Composite primary key of entity, ordered by key declaration."""
        fail_if(entity is None, "Parameter (entity) cannot be None")
        return {f.name: getattr(entity, f.name) for f in self.primary_key_fields}

    def key_values(self, key: Mapping[str, Any] | Any) -> tuple[Any, ...]:
        """Positional key values for key, given as a mapping or a bare scalar.

        A bare scalar is only accepted for single-column keys.
        """
        names = self.primary_key_names
        if isinstance(key, Mapping):
            fail_if(len(key) == 0, "Parameter (key) cannot be empty")
            unknown = sorted(set(key) - set(names))
            fail_if(bool(unknown), f"Unknown key field(s) for {self.entity_type.__name__}: {unknown}")
            missing = [name for name in names if name not in key]
            fail_if(bool(missing), f"Missing key field(s) for {self.entity_type.__name__}: {missing}")
            values = tuple(key[name] for name in names)
        else:
            fail_if(key is None, "Parameter (key) cannot be None")
            fail_if(
                len(names) != 1,
                f"{self.entity_type.__name__} has a composite primary key {list(names)}; "
                "pass a mapping of field name to value",
            )
            values = (key,)
        fail_if(any(v is None for v in values), "Primary key values cannot be None")
        return values

    def key_params(self, key: Mapping[str, Any] | Any) -> dict[str, Any]:
        return positional_params(self.key_values(key))

    def copyable_values(
        self,
        source: Any,
        fields: Iterable[str] | None = None,
        audit_fields: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Snapshot of the scalar values of source that an update may write.

        A field is skipped when it is a key field, a relationship, absent from
        the fields allow-list (if one is given), or an audit field.  Name
        comparisons are case-insensitive.
        """
        allowed = None if fields is None else {name.lower() for name in fields}
        audit = {name.lower() for name in audit_fields}
        values: dict[str, Any] = {}
        for descriptor in self.fields:
            if not descriptor.role.is_copyable:
                continue
            name = descriptor.name.lower()
            if allowed is not None and name not in allowed:
                continue
            if descriptor.audit or name in audit:
                continue
            values[descriptor.name] = getattr(source, descriptor.name)
        return values

    def copy_fields(
        self,
        source: Any,
        target: Any,
        fields: Iterable[str] | None = None,
        audit_fields: Iterable[str] = (),
    ) -> list[str]:
        """Copy the copyable_values() of source onto target; returns the names copied."""
        values = self.copyable_values(source, fields, audit_fields)
        for name, value in values.items():
            setattr(target, name, value)
        return list(values)


def _render_template(
    table: Table, key_fields: Iterable[FieldDescriptor], dialect: Dialect
) -> str:
    preparer = dialect.identifier_preparer
    conditions = " AND ".join(
        f"{preparer.quote(f.column)} = :p{i}" for i, f in enumerate(key_fields)
    )
    return f"SELECT * FROM {preparer.format_table(table)} WHERE {conditions}"


def _build(entity_type: type) -> EntityMetadata:
    mapper = inspect(entity_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise SchemaError(f"Class '{entity_type.__qualname__}' is not a mapped entity")
    table = mapper.local_table
    if not isinstance(table, Table):
        raise SchemaError(f"Class '{entity_type.__qualname__}' is not mapped to a single table")
    if not isinstance(mapper.persist_selectable, Table):
        raise SchemaError(
            f"Class '{entity_type.__qualname__}' spans several tables (joined-table inheritance)"
        )

    key_attrs = [mapper.get_property_by_column(col).key for col in mapper.primary_key]

    fields: list[FieldDescriptor] = []
    for prop in mapper.attrs:
        if isinstance(prop, RelationshipProperty):
            fields.append(FieldDescriptor(prop.key, None, FieldRole.RELATIONSHIP))
        elif isinstance(prop, ColumnProperty):
            column = prop.columns[0]
            # column_property() expressions are read-only
            if not isinstance(column, Column):
                continue
            role = FieldRole.KEY if prop.key in key_attrs else FieldRole.SCALAR
            fields.append(
                FieldDescriptor(prop.key, column.name, role, bool(column.info.get("audit")))
            )

    by_name = {f.name: f for f in fields}
    key_fields = tuple(by_name[name] for name in key_attrs if name in by_name)
    if not key_fields:
        raise SchemaError(
            f"Class '{entity_type.__qualname__}' does not have a primary key defined. "
            "A primary key is required"
        )

    return EntityMetadata(
        entity_type=entity_type,
        table_name=table.fullname,
        fields=tuple(fields),
        primary_key_fields=key_fields,
        single_row_template=_render_template(table, key_fields, _ANSI_DIALECT),
        table=table,
    )


class EntityMetadataRegistry:
    """Thread-safe memo of EntityMetadata keyed by entity type."""

    def __init__(self) -> None:
        self._entries: dict[type, EntityMetadata] = {}
        self._lock = threading.Lock()

    def resolve(self, entity_type: type) -> EntityMetadata:
        entry = self._entries.get(entity_type)
        if entry is not None:
            return entry
        with self._lock:
            entry = self._entries.get(entity_type)
            if entry is None:
                entry = _build(entity_type)
                self._entries[entity_type] = entry
                logger.debug(
                    "Resolved %s -> %s key=%s",
                    entity_type.__qualname__,
                    entry.table_name,
                    entry.primary_key_names,
                )
        return entry

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._entries


registry = EntityMetadataRegistry()


def resolve(entity_type: type) -> EntityMetadata:
    """Resolve (once per process) the metadata of a mapped entity type."""
    return registry.resolve(entity_type)
