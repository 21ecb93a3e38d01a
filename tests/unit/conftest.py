"""Unit test environment helpers."""

import pytest

_ANALYST_ENV = (
    "ANALYST_PREVIEW_ROWS",
    "ANALYST_TABLE_ROW_THRESHOLD",
    "ANALYST_MAX_RESULT_ROWS",
    "ANALYST_CHART_DATE_FORMAT",
    "LLM_MAX_ATTEMPTS",
    "LLM_RETRY_BASE_DELAY",
    "LLM_RETRY_MAX_DELAY",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Set minimal env defaults for unit tests without external deps."""
    for name in _ANALYST_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.delenv("LLM_MODEL", raising=False)
    monkeypatch.delenv("LLM_TEMPERATURE", raising=False)
    yield
