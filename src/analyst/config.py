"""Pipeline configuration helpers."""

import logging
from typing import Callable, Optional, TypeVar

from common.config.env import get_env_float, get_env_int, get_env_str

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Rows sampled per column during schema inference. Fixed, not configurable.
SCHEMA_SAMPLE_ROWS = 100

_DEFAULT_PREVIEW_ROWS = 5
_DEFAULT_TABLE_ROW_THRESHOLD = 5
_DEFAULT_MAX_RESULT_ROWS = 100
_DEFAULT_CHART_DATE_FORMAT = "%Y-%m-%d"
_DEFAULT_LLM_MAX_ATTEMPTS = 3
_DEFAULT_LLM_RETRY_BASE_DELAY = 1.0
_DEFAULT_LLM_RETRY_MAX_DELAY = 8.0

# Semantic version of the planning/answer prompts.
# Increment this when changing prompt templates.
PROMPT_VERSION = "1.0.0"


def _read_or_default(
    reader: Callable[[str, Optional[T]], Optional[T]], name: str, default: T, minimum: T
) -> T:
    try:
        value = reader(name, None)
    except ValueError as exc:
        logger.warning("Invalid %s: %s", name, exc)
        return default
    if value is None:
        return default
    return max(minimum, value)


def get_preview_row_limit() -> int:
    """Return how many preview rows are embedded in prompts."""
    return _read_or_default(get_env_int, "ANALYST_PREVIEW_ROWS", _DEFAULT_PREVIEW_ROWS, 0)


def get_table_row_threshold() -> int:
    """Return the row count above which unaggregated results render as a table."""
    return _read_or_default(
        get_env_int, "ANALYST_TABLE_ROW_THRESHOLD", _DEFAULT_TABLE_ROW_THRESHOLD, 0
    )


def get_max_result_rows() -> int:
    """Return the cap on rows handed to the chart and answer stages."""
    return _read_or_default(get_env_int, "ANALYST_MAX_RESULT_ROWS", _DEFAULT_MAX_RESULT_ROWS, 1)


def get_chart_date_format() -> str:
    """Return the strftime format used for date values on line-chart axes."""
    value = get_env_str("ANALYST_CHART_DATE_FORMAT", "") or ""
    return value.strip() or _DEFAULT_CHART_DATE_FORMAT


def get_llm_max_attempts() -> int:
    """Return the total number of completion attempts for transient failures."""
    return _read_or_default(get_env_int, "LLM_MAX_ATTEMPTS", _DEFAULT_LLM_MAX_ATTEMPTS, 1)


def get_llm_retry_base_delay() -> float:
    """Return the initial backoff delay in seconds."""
    return _read_or_default(
        get_env_float, "LLM_RETRY_BASE_DELAY", _DEFAULT_LLM_RETRY_BASE_DELAY, 0.0
    )


def get_llm_retry_max_delay() -> float:
    """Return the backoff delay cap in seconds."""
    return _read_or_default(get_env_float, "LLM_RETRY_MAX_DELAY", _DEFAULT_LLM_RETRY_MAX_DELAY, 0.0)
