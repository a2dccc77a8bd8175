from __future__ import annotations

"""Operation-level error taxonomy.

Every error here is caught at the operation boundary
(`answerboard.services.actions`) and converted to a uniform
``{"status": "error", ...}`` result. Adapter-local failures
(`RowStoreError`, `ConfigError`) stay in their modules and are wrapped
when they cross into an operation.
"""

__all__ = [
    "BoardError",
    "LockTimeout",
    "ColumnNotFound",
    "UpdateFailed",
    "UserNotFound",
    "InvalidInput",
    "AccessDenied",
]


class BoardError(Exception):
    """Base class. ``error_type`` is UPPER_SNAKE, used in results and audit lines."""

    error_type = "BOARD_ERROR"
    retryable = False


class LockTimeout(BoardError):
    error_type = "LOCK_TIMEOUT"
    retryable = True

    def __init__(self, operation: str, timeout_ms: int) -> None:
        super().__init__(
            f"{operation}: lock not acquired within {timeout_ms}ms, please retry"
        )
        self.operation = operation
        self.timeout_ms = timeout_ms


class ColumnNotFound(BoardError):
    error_type = "COLUMN_NOT_FOUND"

    def __init__(self, sheet_name: str, missing: list[str], available: list[str]) -> None:
        super().__init__(
            f"sheet '{sheet_name}' is missing columns {missing} "
            f"(available: {', '.join(available) or '-'}); "
            "reconfigure the sheet mapping to create them"
        )
        self.sheet_name = sheet_name
        self.missing = missing
        self.available = available


class UpdateFailed(BoardError):
    error_type = "UPDATE_FAILED"
    retryable = True


class UserNotFound(BoardError):
    error_type = "USER_NOT_FOUND"


class InvalidInput(BoardError):
    error_type = "INVALID_INPUT"


class AccessDenied(BoardError):
    error_type = "ACCESS_DENIED"
