"""Sanitization helpers for user-facing error surfaces."""

from __future__ import annotations

from typing import Any

from common.errors.error_codes import ErrorCode, error_code_for_exception, parse_error_code
from common.sanitization.text import redact_sensitive_info

MAX_PUBLIC_ERROR_LENGTH = 2048

_SAFE_ERROR_TEMPLATES: dict[ErrorCode, str] = {
    ErrorCode.PLANNING_FAILED: (
        "I couldn't understand that question. Try rephrasing it using the column names."
    ),
    ErrorCode.SERVICE_UNAVAILABLE: (
        "The analysis service is temporarily unavailable. Please try again in a moment."
    ),
    ErrorCode.NO_DATA: "No matching data was found for that question.",
    ErrorCode.TABLE_NOT_FOUND: "Data source not found. Please upload a file first.",
}


def sanitize_error_message(
    message: Any,
    *,
    error_code: Any = None,
    fallback: str = "Request failed.",
) -> str:
    """Return safe user-facing error text without leaking credentials."""
    code = parse_error_code(error_code)
    template = _SAFE_ERROR_TEMPLATES.get(code)
    if template:
        return template

    raw_text = "" if message is None else str(message)
    safe_text = redact_sensitive_info(raw_text.strip())
    if not safe_text:
        safe_text = (fallback or "Request failed.").strip()
    return safe_text[:MAX_PUBLIC_ERROR_LENGTH]


def sanitize_exception(exc: BaseException, *, fallback: str = "Request failed.") -> str:
    """Sanitize an exception for outward-facing contracts."""
    return sanitize_error_message(
        str(exc),
        error_code=error_code_for_exception(exc),
        fallback=fallback,
    )
