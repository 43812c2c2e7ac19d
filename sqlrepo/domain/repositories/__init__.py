"""Domain repository interfaces.

Import from this package rather than individual modules to avoid coupling
callers to specific module paths.
"""

from .base import Key, Repository

__all__ = [
    "Key",
    "Repository",
]
