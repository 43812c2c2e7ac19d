"""Domain enumerations.

String-valued enums use the str mixin so they compare equal to plain strings
and serialize cleanly (Pydantic default behaviour).
"""

from enum import Enum


class FieldRole(str, Enum):
    KEY = "key"
    SCALAR = "scalar"
    RELATIONSHIP = "relationship"

    @property
    def is_copyable(self) -> bool:
        """Only plain scalar columns are ever copied by a partial update."""
        return self is FieldRole.SCALAR
