"""Sanitization utilities."""

from .text import normalize_text, redact_sensitive_info

__all__ = ["normalize_text", "redact_sensitive_info"]
