"""Query planner: turns a question into a validated QueryPlan.

The plan content comes from the text-completion service. This module owns
everything around that call: a deterministic prompt built from the schema,
a preview and the question; tolerant JSON extraction from the completion;
and strict validation of the result. Anything that does not validate is a
PlanningError. Plans are never guessed or repaired.
"""

import json
import logging
import re
from typing import Any, Dict, Optional, Sequence

from langchain_core.prompts import PromptTemplate
from opentelemetry import trace
from pydantic import ValidationError

from analyst.config import PROMPT_VERSION
from analyst.errors import PlanningError
from analyst.models import QueryPlan, Schema
from common.interfaces import TextCompleter

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_PREVIEW_ROWS = 5

PLANNING_PROMPT = PromptTemplate.from_template(
    """You are a data analysis assistant. A user has asked a question about their \
dataset. Your task is to analyze the question and determine what data is needed \
to answer it.

**Dataset Schema:**
{schema_description}

**Sample Data (first {preview_count} rows):**
{preview_rows}

**User Question:**
"{question}"

**Your Task:**
Return a JSON object with the following structure:

{{
  "intent": "Brief description of what the user wants to know",
  "neededColumns": ["group column first", "value column second"],
  "aggregation": "sum|count|average|groupby|none",
  "wantsVisualization": true or false
}}

**Guidelines:**
- "intent": Summarize what the user wants in one sentence
- "neededColumns": Only columns from the schema above. Put the column to group \
by first and the numeric column to aggregate second.
- "aggregation":
  - "sum": When totaling numeric values per group
  - "count": When counting occurrences per group
  - "average": When calculating means per group
  - "groupby": When grouping by categories and aggregating
  - "none": When no aggregation is needed (raw data queries)
- "wantsVisualization": true if a chart would help answer the question

**Examples:**
- "Which product sold the most?" -> aggregation: "groupby", wantsVisualization: true
- "What's the average revenue by region?" -> aggregation: "average", wantsVisualization: true
- "Show me orders above $1000" -> aggregation: "none", wantsVisualization: false
- "How many orders per status?" -> aggregation: "count", wantsVisualization: true

Return ONLY valid JSON, no additional text or markdown formatting."""
)

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def _describe_schema(schema: Schema) -> str:
    lines = []
    for column in schema.columns:
        samples = ", ".join(str(value) for value in column.sample_values[:3])
        lines.append(f"- {column.name} ({column.type.value}): Sample values: {samples}")
    return "\n".join(lines) or "(no columns)"


def _describe_preview(preview_rows: Sequence[Dict[str, Any]]) -> str:
    lines = [json.dumps(row, default=str) for row in list(preview_rows)[:MAX_PREVIEW_ROWS]]
    return "\n".join(lines) or "(no rows)"


def build_planning_prompt(
    question: str, schema: Schema, preview_rows: Sequence[Dict[str, Any]]
) -> str:
    """Render the planning prompt. Identical inputs give identical prompts."""
    preview = list(preview_rows)[:MAX_PREVIEW_ROWS]
    return PLANNING_PROMPT.format(
        schema_description=_describe_schema(schema),
        preview_count=len(preview),
        preview_rows=_describe_preview(preview),
        question=question,
    )


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    stripped = (text or "").strip()
    if stripped.startswith("```"):
        stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
        stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


def extract_json_object(text: str) -> Any:
    """Decode the JSON payload of a completion.

    Tries the fence-stripped text first, then the outermost ``{...}`` span.

    Raises:
        ValueError: If no JSON can be decoded.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            pass
    raise ValueError("Completion did not contain a JSON object.")


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "plan"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


def parse_plan_response(text: str, schema: Optional[Schema] = None) -> QueryPlan:
    """Parse and validate a completion as a QueryPlan.

    Args:
        text: Raw completion text.
        schema: When given, every needed column must exist in it.

    Returns:
        The validated plan.

    Raises:
        PlanningError: Malformed JSON, a non-object payload, a shape violation
            or an unknown column.
    """
    try:
        payload = extract_json_object(text)
    except ValueError as exc:
        raise PlanningError(str(exc), raw_response=text) from exc

    if not isinstance(payload, dict):
        raise PlanningError(
            f"Expected a JSON object, got {type(payload).__name__}.", raw_response=text
        )

    try:
        plan = QueryPlan.model_validate(payload)
    except ValidationError as exc:
        raise PlanningError(
            f"Invalid query plan: {_format_validation_error(exc)}", raw_response=text
        ) from exc

    if schema is not None:
        unknown = [name for name in plan.needed_columns if not schema.has_column(name)]
        if unknown:
            raise PlanningError(
                f"Query plan references unknown columns: {', '.join(unknown)}",
                raw_response=text,
            )

    return plan


async def plan_query(
    question: str,
    schema: Schema,
    preview_rows: Sequence[Dict[str, Any]],
    completer: TextCompleter,
) -> QueryPlan:
    """Ask the completion service for a plan and validate it against the schema.

    Completion failures propagate unchanged; retrying them is the completer's
    job. Parse and validation failures raise PlanningError and are not retried.
    """
    with tracer.start_as_current_span("analyst.plan_query") as span:
        prompt = build_planning_prompt(question, schema, preview_rows)
        span.set_attribute("analyst.prompt_length", len(prompt))
        span.set_attribute("analyst.prompt_version", PROMPT_VERSION)

        response = await completer.complete(prompt)

        try:
            plan = parse_plan_response(response, schema)
        except PlanningError as exc:
            span.set_attribute("analyst.planning_failed", True)
            logger.warning(
                "Rejected query plan",
                extra={
                    "reason": str(exc),
                    "response_length": len(response or ""),
                    "prompt_version": PROMPT_VERSION,
                },
            )
            raise

        span.set_attribute("analyst.aggregation", plan.aggregation.value)
        span.set_attribute("analyst.wants_visualization", plan.wants_visualization)
        if plan.visualization_hint is not None:
            logger.info(
                "Planner suggested a visualization; chart kind is chosen by rule",
                extra={"hint": plan.visualization_hint},
            )
        return plan
