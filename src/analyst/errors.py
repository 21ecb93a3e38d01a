"""Typed failures raised by the analysis pipeline."""

from typing import Optional

from common.errors import ErrorCode


class AnalystError(RuntimeError):
    """Base class for pipeline failures surfaced to callers."""

    error_code = ErrorCode.INTERNAL_ERROR


class PlanningError(AnalystError):
    """Raised when a completion cannot be parsed or validated as a QueryPlan.

    Never retried by the planner; the raw completion text is kept for
    diagnostics.
    """

    error_code = ErrorCode.PLANNING_FAILED

    def __init__(self, message: str, raw_response: Optional[str] = None) -> None:
        """Initialize with the validation message and offending completion text."""
        self.raw_response = raw_response
        super().__init__(message)


class TransientServiceError(AnalystError):
    """Raised when the completion service keeps failing with retryable errors."""

    error_code = ErrorCode.SERVICE_UNAVAILABLE
    is_retryable = True

    def __init__(self, message: str, attempts: int = 1) -> None:
        """Initialize with the number of attempts already made."""
        self.attempts = int(attempts)
        super().__init__(message)


class TableNotFoundError(KeyError):
    """Raised when a table id is not present in the store."""

    error_code = ErrorCode.TABLE_NOT_FOUND

    def __init__(self, table_id: str) -> None:
        """Initialize with the missing table id."""
        self.table_id = table_id
        super().__init__(f"Table '{table_id}' not found.")
