"""Tests for the LLM client factory and completer adapters."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from analyst.errors import TransientServiceError
from analyst.llm_client import (
    LangChainTextCompleter,
    RetryingTextCompleter,
    _message_text,
    get_available_models,
    get_llm_client,
    get_text_completer,
)
from common.interfaces import TextCompleter
from tests._support.fakes import FakeCompleter


class Overloaded(Exception):
    status_code = 529


class TestGetLlmClient:
    """Tests for provider selection and key checks."""

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            get_llm_client(provider="cohere")

    def test_placeholder_key_rejected(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "<REPLACE_ME>")
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            get_llm_client(provider="openai")

    def test_missing_key_rejected(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
            get_llm_client(provider="google")

    def test_available_models(self):
        assert get_available_models("OpenAI") == ["gpt-4o", "gpt-4o-mini"]
        assert get_available_models("unknown") == []


class TestMessageText:
    """Tests for chat message content extraction."""

    def test_string_content(self):
        assert _message_text(SimpleNamespace(content="hello")) == "hello"

    def test_block_content(self):
        message = SimpleNamespace(
            content=[
                {"type": "text", "text": '{"a": '},
                {"type": "tool_use", "id": "x"},
                "1}",
            ]
        )
        assert _message_text(message) == '{"a": 1}'

    def test_plain_string(self):
        assert _message_text("raw") == "raw"

    def test_none_content(self):
        assert _message_text(SimpleNamespace(content=None)) == ""


class TestLangChainTextCompleter:
    """Tests for the chat model adapter."""

    @pytest.mark.asyncio
    async def test_complete_returns_text(self):
        llm = MagicMock()
        llm.model_name = "gpt-4o"
        llm.ainvoke = AsyncMock(return_value=SimpleNamespace(content="answer"))

        completer = LangChainTextCompleter(llm)

        assert await completer.complete("prompt") == "answer"
        llm.ainvoke.assert_awaited_once_with("prompt")
        assert isinstance(completer, TextCompleter)


class TestRetryingTextCompleter:
    """Tests for the retrying decorator."""

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        inner = FakeCompleter(Overloaded("overloaded"), "ok")
        completer = RetryingTextCompleter(inner, max_attempts=3, base_delay=0.0)

        with patch("analyst.utils.retry.asyncio.sleep", new=AsyncMock()):
            assert await completer.complete("p") == "ok"

        assert inner.prompts == ["p", "p"]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        inner = FakeCompleter(*[Overloaded("overloaded") for _ in range(3)])
        completer = RetryingTextCompleter(inner, max_attempts=3, base_delay=0.0)

        with patch("analyst.utils.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(TransientServiceError):
                await completer.complete("p")

        assert inner.call_count == 3

    @pytest.mark.asyncio
    async def test_non_transient_failure_not_retried(self):
        inner = FakeCompleter(ValueError("bad request"), "never")
        completer = RetryingTextCompleter(inner, max_attempts=3)

        with pytest.raises(ValueError):
            await completer.complete("p")

        assert inner.call_count == 1

    def test_limits_default_from_environment(self, monkeypatch):
        monkeypatch.setenv("LLM_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("LLM_RETRY_BASE_DELAY", "0.5")

        completer = RetryingTextCompleter(FakeCompleter())

        assert completer.max_attempts == 5
        assert completer.base_delay == 0.5
        assert completer.max_delay == 8.0


def test_get_text_completer_wraps_chat_model():
    llm = MagicMock()
    with patch("analyst.llm_client.get_llm_client", return_value=llm) as mock_factory:
        completer = get_text_completer(provider="openai", model="gpt-4o")

    mock_factory.assert_called_once_with(provider="openai", model="gpt-4o", temperature=None)
    assert isinstance(completer, RetryingTextCompleter)
    assert isinstance(completer, TextCompleter)
    assert completer.max_attempts == 3
