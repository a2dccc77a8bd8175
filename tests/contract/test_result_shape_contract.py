from __future__ import annotations

import pytest

from answerboard.errors import (
    AccessDenied,
    BoardError,
    ColumnNotFound,
    InvalidInput,
    LockTimeout,
    UpdateFailed,
    UserNotFound,
)
from answerboard.services.actions import error_result

"""Every error result carries exactly status / message / errorType / retryable."""

ERROR_KEYS = {"status", "message", "errorType", "retryable"}


@pytest.mark.parametrize("exc,error_type,retryable", [
    (LockTimeout("apply_reaction", 10000), "LOCK_TIMEOUT", True),
    (ColumnNotFound("S", ["LIKE"], ["回答"]), "COLUMN_NOT_FOUND", False),
    (UpdateFailed("write failed"), "UPDATE_FAILED", True),
    (UserNotFound("user not found: u"), "USER_NOT_FOUND", False),
    (InvalidInput("bad"), "INVALID_INPUT", False),
    (AccessDenied("no"), "ACCESS_DENIED", False),
    (RuntimeError("boom"), "INTERNAL_ERROR", False),
])
def test_error_result_shape(exc, error_type, retryable):
    result = error_result(exc)
    assert set(result) == ERROR_KEYS
    assert result["status"] == "error"
    assert result["errorType"] == error_type
    assert result["retryable"] is retryable
    assert result["message"]


def test_error_types_are_upper_snake():
    for cls in BoardError.__subclasses__():
        assert cls.error_type.isupper()
        assert " " not in cls.error_type
