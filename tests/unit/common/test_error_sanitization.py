"""Tests for error codes and outward-facing error text."""

from analyst.errors import PlanningError, TableNotFoundError, TransientServiceError
from common.errors import (
    ErrorCode,
    error_code_for_exception,
    parse_error_code,
    sanitize_error_message,
    sanitize_exception,
)


class TestErrorCodes:
    """Tests for code parsing and resolution."""

    def test_parse_known_code(self):
        assert parse_error_code("NO_DATA") == ErrorCode.NO_DATA
        assert parse_error_code(ErrorCode.PLANNING_FAILED) == ErrorCode.PLANNING_FAILED

    def test_parse_unknown_code_falls_back(self):
        assert parse_error_code("nope") == ErrorCode.INTERNAL_ERROR
        assert parse_error_code(None, fallback=ErrorCode.NO_DATA) == ErrorCode.NO_DATA

    def test_exception_codes(self):
        assert error_code_for_exception(PlanningError("x")) == ErrorCode.PLANNING_FAILED
        assert error_code_for_exception(TransientServiceError("x")) == (
            ErrorCode.SERVICE_UNAVAILABLE
        )
        assert error_code_for_exception(TableNotFoundError("t")) == ErrorCode.TABLE_NOT_FOUND
        assert error_code_for_exception(RuntimeError("x")) == ErrorCode.INTERNAL_ERROR


class TestSanitization:
    """Tests for public error messages."""

    def test_known_codes_use_safe_templates(self):
        message = sanitize_exception(PlanningError("neededColumns: Input should be a list"))
        assert "neededColumns" not in message
        assert "rephrasing" in message

    def test_table_not_found_template(self):
        assert sanitize_exception(TableNotFoundError("abc")) == (
            "Data source not found. Please upload a file first."
        )

    def test_unknown_errors_are_redacted(self):
        message = sanitize_error_message(
            "call failed with api_key=sk-live-123 at postgres://bob:hunter2@db/x"
        )
        assert "sk-live-123" not in message
        assert "hunter2" not in message

    def test_empty_message_uses_fallback(self):
        assert sanitize_error_message("   ", fallback="Something broke.") == "Something broke."
