"""Text normalization and redaction helpers.

Questions typed by users are normalized before they reach a prompt, and
exception text is redacted before it is logged or surfaced.
"""

import re
import unicodedata

DEFAULT_MAX_LEN = 2000

_CONNECTION_CREDENTIALS_RE = re.compile(r"([a-zA-Z0-9+.-]+://)([^:/@]+):([^/@]+)@")
_BEARER_RE = re.compile(r"(?i)bearer\s+[a-zA-Z0-9._~+/-]+")
_API_KEY_RE = re.compile(r"\b((?:sk|sk-ant|key)-[a-zA-Z0-9_-]{16,})\b")
_SENSITIVE_PAIR_RE = re.compile(
    r"(?i)\b(password|token|secret|api_key|x-api-key|auth|credential)([ \t]*[=:][ \t]*)[^\s,;]+"
)


def redact_sensitive_info(text: str) -> str:
    """Redact credentials, bearer tokens and API keys from a string."""
    if not text:
        return text

    res = _CONNECTION_CREDENTIALS_RE.sub(r"\1<user>:<password>@", text)
    res = _BEARER_RE.sub("Bearer <redacted>", res)
    res = _API_KEY_RE.sub("<api-key>", res)
    res = _SENSITIVE_PAIR_RE.sub(r"\1\2<redacted>", res)
    return res


def normalize_text(text: str, max_len: int = DEFAULT_MAX_LEN) -> str:
    """Apply NFKC normalization, collapse whitespace and bound the length.

    Returns an empty string for empty or whitespace-only input.
    """
    if not text:
        return ""
    normalized = unicodedata.normalize("NFKC", str(text))
    cleaned = " ".join(normalized.split())
    return cleaned[:max_len]
