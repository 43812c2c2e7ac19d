"""Tests for sqlrepo/domain/errors.py."""

import pytest

from sqlrepo.domain.errors import (
    AmbiguousResultError,
    NotFoundError,
    RepositoryError,
    SchemaError,
    ValidationError,
    fail_if,
)


@pytest.mark.parametrize(
    "error, builtin",
    [
        (ValidationError, ValueError),
        (SchemaError, TypeError),
        (AmbiguousResultError, LookupError),
        (NotFoundError, LookupError),
    ],
)
def test_errors_extend_matching_builtin(error, builtin):
    assert issubclass(error, RepositoryError)
    assert issubclass(error, builtin)


def test_fail_if_raises_validation_error_with_message():
    with pytest.raises(ValidationError, match="cannot be None"):
        fail_if(True, "Parameter (entity) cannot be None")


def test_fail_if_passes_when_condition_false():
    fail_if(False, "never raised")
