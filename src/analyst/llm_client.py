"""LLM client factory and TextCompleter adapters.

Supports OpenAI, Anthropic (Claude) and Google (Gemini) chat models through
LangChain, with runtime model selection from the environment.
"""

import logging
from typing import Any, Optional

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from opentelemetry import trace

from analyst.config import get_llm_max_attempts, get_llm_retry_base_delay, get_llm_retry_max_delay
from analyst.utils.retry import retry_with_backoff
from common.config.env import get_env_float, get_env_str
from common.interfaces import TextCompleter

load_dotenv()

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_PROVIDER = "anthropic"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 4096

# Supported models by provider; the first entry is the provider default.
SUPPORTED_MODELS = {
    "anthropic": ["claude-3-5-sonnet-20241022", "claude-sonnet-4-20250514"],
    "openai": ["gpt-4o", "gpt-4o-mini"],
    "google": ["gemini-2.5-flash-preview-05-20", "gemini-2.5-pro-preview-05-06"],
}

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}
_PLACEHOLDERS = {"<REPLACE_ME>", "changeme", "your_api_key_here"}


def _require_api_key(provider: str) -> None:
    env_name = _API_KEY_ENV[provider]
    key = get_env_str(env_name)
    if not key or key.strip() in _PLACEHOLDERS or key.startswith("<"):
        raise ValueError(
            f"{env_name} is missing or set to a placeholder value. "
            "Please update your .env file with a valid API key."
        )


def get_llm_client(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
) -> BaseChatModel:
    """Get a LangChain chat model for the specified provider.

    Args:
        provider: LLM provider ('anthropic', 'openai', 'google').
                  Defaults to LLM_PROVIDER env var or 'anthropic'.
        model: Model name. Defaults to LLM_MODEL env var or provider default.
        temperature: Defaults to LLM_TEMPERATURE env var or 0.3.

    Returns:
        BaseChatModel: LangChain chat model instance.

    Raises:
        ValueError: If the provider is not supported or its API key is missing.
    """
    resolved_provider = (provider or get_env_str("LLM_PROVIDER", DEFAULT_PROVIDER)).lower()
    if resolved_provider not in SUPPORTED_MODELS:
        raise ValueError(
            f"Unsupported provider: {resolved_provider}. "
            f"Supported: {list(SUPPORTED_MODELS.keys())}"
        )

    resolved_model = model or get_env_str("LLM_MODEL") or SUPPORTED_MODELS[resolved_provider][0]
    if temperature is None:
        temperature = get_env_float("LLM_TEMPERATURE", DEFAULT_TEMPERATURE)

    _require_api_key(resolved_provider)

    if resolved_provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=resolved_model, temperature=temperature, max_tokens=DEFAULT_MAX_TOKENS
        )

    if resolved_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(model=resolved_model, temperature=temperature)

    from langchain_google_genai import ChatGoogleGenerativeAI

    return ChatGoogleGenerativeAI(model=resolved_model, temperature=temperature)


def get_available_models(provider: str) -> list[str]:
    """Get list of available models for a provider (empty if unknown)."""
    return SUPPORTED_MODELS.get(provider.lower(), [])


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


class LangChainTextCompleter:
    """TextCompleter backed by a LangChain chat model."""

    def __init__(self, llm: BaseChatModel) -> None:
        """Wrap a chat model."""
        self._llm = llm
        self.model_name = getattr(llm, "model_name", getattr(llm, "model", "unknown"))

    async def complete(self, prompt: str) -> str:
        with tracer.start_as_current_span("llm.call") as span:
            span.set_attribute("llm.model", str(self.model_name))
            span.set_attribute("llm.prompt_length", len(prompt))
            response = await self._llm.ainvoke(prompt)
            text = _message_text(response)
            span.set_attribute("llm.response_length", len(text))
            return text


class RetryingTextCompleter:
    """TextCompleter decorator that retries transient failures with backoff."""

    def __init__(
        self,
        inner: TextCompleter,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        operation_name: str = "text_completion",
    ) -> None:
        """Wrap a completer; unset limits come from the environment."""
        self._inner = inner
        self.max_attempts = get_llm_max_attempts() if max_attempts is None else max_attempts
        self.base_delay = get_llm_retry_base_delay() if base_delay is None else base_delay
        self.max_delay = get_llm_retry_max_delay() if max_delay is None else max_delay
        self.operation_name = operation_name

    async def complete(self, prompt: str) -> str:
        return await retry_with_backoff(
            lambda: self._inner.complete(prompt),
            self.operation_name,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            extra_context={"prompt_length": len(prompt)},
        )


def get_text_completer(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
) -> TextCompleter:
    """Build the default completer: a chat model wrapped with retries."""
    llm = get_llm_client(provider=provider, model=model, temperature=temperature)
    logger.info(
        "Configured text completer",
        extra={"provider": provider or get_env_str("LLM_PROVIDER", DEFAULT_PROVIDER)},
    )
    return RetryingTextCompleter(LangChainTextCompleter(llm))
