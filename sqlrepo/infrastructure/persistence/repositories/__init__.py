"""Concrete SQLAlchemy repository implementations."""

from __future__ import annotations

from .entity import SqlRepository

__all__ = [
    "SqlRepository",
]
