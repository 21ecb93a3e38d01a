"""Canonical error-code taxonomy for the analysis pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Bounded canonical error codes for external contracts and observability."""

    PLANNING_FAILED = "PLANNING_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    NO_DATA = "NO_DATA"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def parse_error_code(
    value: Any,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Parse string-like values to `ErrorCode` with safe fallback."""
    if isinstance(value, ErrorCode):
        return value
    if value is None:
        return fallback
    try:
        return ErrorCode(str(value).strip())
    except ValueError:
        return fallback


def error_code_for_exception(
    exc: BaseException,
    *,
    fallback: ErrorCode = ErrorCode.INTERNAL_ERROR,
) -> ErrorCode:
    """Resolve the canonical code declared by an exception class.

    Exceptions opt in by defining an ``error_code`` attribute.
    """
    return parse_error_code(getattr(exc, "error_code", None), fallback=fallback)
