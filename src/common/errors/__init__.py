"""Common error taxonomy helpers."""

from common.errors.error_codes import ErrorCode, error_code_for_exception, parse_error_code
from common.errors.sanitization import sanitize_error_message, sanitize_exception

__all__ = [
    "ErrorCode",
    "error_code_for_exception",
    "parse_error_code",
    "sanitize_error_message",
    "sanitize_exception",
]
