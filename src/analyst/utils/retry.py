"""Retry utility for transient completion-service errors.

Provides exponential backoff with jitter for retrying rate limits and
server-side outages. Everything else propagates on the first failure.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from opentelemetry import trace

from analyst.errors import TransientServiceError
from common.sanitization.text import redact_sensitive_info

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP statuses returned by LLM providers for rate limits and outages
# (529 is Anthropic's "overloaded").
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})

TRANSIENT_ERROR_TYPES = {
    "ratelimiterror",
    "internalservererror",
    "serviceunavailableerror",
    "overloadederror",
    "apiconnectionerror",
    "resourceexhausted",
    "serviceunavailable",
}

TRANSIENT_ERROR_PATTERNS = {
    "rate limit",
    "rate_limit",
    "too many requests",
    "overloaded",
    "service unavailable",
    "temporarily unavailable",
}


def _status_code(exception: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "http_status"):
        value = getattr(exception, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exception, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_transient_error(exception: BaseException) -> bool:
    """Check if an exception is a rate-limit or server-unavailable failure.

    Args:
        exception: The exception to check

    Returns:
        True if the error is transient and retryable
    """
    declared = getattr(exception, "is_retryable", None)
    if isinstance(declared, bool):
        return declared

    status = _status_code(exception)
    if status is not None:
        return status in TRANSIENT_STATUS_CODES

    if type(exception).__name__.lower() in TRANSIENT_ERROR_TYPES:
        return True

    error_msg = str(exception).lower()
    return any(pattern in error_msg for pattern in TRANSIENT_ERROR_PATTERNS)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 8.0,
    extra_context: Optional[dict] = None,
) -> T:
    """Retry an async operation with exponential backoff and jitter.

    Args:
        operation: Async callable to retry
        operation_name: Name of operation for logging
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds, doubled on every retry
        max_delay: Maximum delay in seconds
        extra_context: Additional context for logging

    Returns:
        Result of the operation if successful

    Raises:
        TransientServiceError: When every attempt failed transiently.
        Exception: Any non-transient failure, unchanged.
    """
    extra_context = extra_context or {}
    max_attempts = max(1, int(max_attempts))
    span = trace.get_current_span()

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            log_extra = {
                "operation": operation_name,
                "attempt": attempt,
                "max_attempts": max_attempts,
                "exception_type": type(e).__name__,
                "exception_message": redact_sensitive_info(str(e)),
                **extra_context,
            }
            span.set_attribute("retry.attempt", attempt)

            if not is_transient_error(e):
                logger.error(
                    f"Non-transient error in {operation_name}, not retrying",
                    extra=log_extra,
                )
                raise

            if attempt >= max_attempts:
                logger.error(
                    f"All {max_attempts} attempts exhausted for {operation_name}",
                    extra=log_extra,
                )
                span.set_attribute("retry.exhausted", True)
                raise TransientServiceError(
                    f"{operation_name} failed after {max_attempts} attempts: "
                    f"{type(e).__name__}",
                    attempts=max_attempts,
                ) from e

            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            jitter = random.uniform(0, delay * 0.1)
            total_delay = delay + jitter

            logger.warning(
                f"Transient error in {operation_name}, retrying in {total_delay:.3f}s",
                extra={**log_extra, "delay_seconds": total_delay},
            )

            await asyncio.sleep(total_delay)

    raise AssertionError("unreachable")
