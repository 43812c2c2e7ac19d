"""Lazy query pipeline composition and eager-load directives.

compose() turns (where, query, load_options) into an unexecuted Select.
Predicate translation is SQLAlchemy's: ``where`` is any boolean column
expression over the entity's mapped attributes.

    stmt = compose(
        Customer,
        where=Customer.city == "Lisbon",
        query=lambda q: q.order_by(Customer.name),
        load_options=LoadOptions().load_with(Customer.orders),
    )
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Literal

from sqlalchemy import Select, select
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.interfaces import ORMOption

QueryTransform = Callable[[Select], Select]
LoadOptionsTransform = Callable[["LoadOptions"], "LoadOptions"]


def positional_params(values: Sequence[Any]) -> dict[str, Any]:
    """Bind parameters for positional placeholders ``:p0``, ``:p1``, ..."""
    return {f"p{i}": value for i, value in enumerate(values)}


class LoadOptions:
    """Ordered set of eager-load directives applied to a pipeline."""

    def __init__(self) -> None:
        self._options: list[ORMOption] = []

    @property
    def options(self) -> tuple[ORMOption, ...]:
        return tuple(self._options)

    def load_with(
        self, attribute: Any, strategy: Literal["selectin", "joined"] = "selectin"
    ) -> LoadOptions:
        """Eager-load a relationship attribute alongside the parent rows."""
        loader = joinedload if strategy == "joined" else selectinload
        self._options.append(loader(attribute))
        return self

    def associate_with(self, attribute: Any, criteria: Any) -> LoadOptions:
        """Eager-load a relationship, keeping only related rows matching criteria."""
        self._options.append(selectinload(attribute.and_(criteria)))
        return self

    def __bool__(self) -> bool:
        return bool(self._options)

    def __len__(self) -> int:
        return len(self._options)


def _load_options_of(load_options: LoadOptions | LoadOptionsTransform | None) -> tuple[ORMOption, ...]:
    if load_options is None:
        return ()
    if isinstance(load_options, LoadOptions):
        return load_options.options
    return load_options(LoadOptions()).options


def compose(
    entity_type: type,
    where: Any = None,
    query: QueryTransform | None = None,
    load_options: LoadOptions | LoadOptionsTransform | None = None,
) -> Select:
    """Build a fresh, unexecuted pipeline over entity_type's table."""
    stmt = select(entity_type)
    if where is not None:
        stmt = stmt.where(where)
    if query is not None:
        stmt = query(stmt)
    options = _load_options_of(load_options)
    if options:
        stmt = stmt.options(*options)
    return stmt
