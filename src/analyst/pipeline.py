"""Question-to-chart orchestration.

plan -> project -> aggregate -> select chart -> shape chart -> answer.

Planning and completion-service failures are reported on the result as error
codes; anything else is a bug and propagates.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from opentelemetry import trace

from analyst.aggregation import aggregate_for_plan
from analyst.config import get_max_result_rows, get_preview_row_limit
from analyst.errors import PlanningError, TransientServiceError
from analyst.models import AggregationResult, ChartSpec, QueryPlan, Table, json_safe
from analyst.planner import plan_query
from analyst.responder import Answer, generate_answer
from analyst.viz.selector import VisualizationChoice, select_visualization
from analyst.viz.spec import generate_spec
from common.errors import (
    ErrorCode,
    error_code_for_exception,
    sanitize_error_message,
    sanitize_exception,
)
from common.interfaces import TextCompleter
from common.sanitization import normalize_text, redact_sensitive_info

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class AnalysisResult:
    """Everything produced for one question, including partial progress."""

    question: str
    plan: Optional[QueryPlan] = None
    aggregation: Optional[AggregationResult] = None
    chart: Optional[ChartSpec] = None
    answer: Optional[Answer] = None
    error_code: Optional[ErrorCode] = None
    error_message: Optional[str] = None

    @property
    def rows(self) -> List[Dict[str, Any]]:
        return list(self.aggregation.rows) if self.aggregation is not None else []

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON payload handed to API consumers."""
        return {
            "question": self.question,
            "plan": self.plan.to_dict() if self.plan is not None else None,
            "aggregated": bool(self.aggregation is not None and self.aggregation.aggregated),
            "rows": [{k: json_safe(v) for k, v in row.items()} for row in self.rows],
            "chart": self.chart.to_dict() if self.chart is not None else None,
            "answer": self.answer.text if self.answer is not None else None,
            "errorCode": self.error_code.value if self.error_code is not None else None,
            "error": self.error_message,
        }


def project_rows(
    rows: Sequence[Dict[str, Any]], columns: Sequence[str]
) -> List[Dict[str, Any]]:
    """Keep only ``columns`` in each row; no columns means every field."""
    if not columns:
        return [dict(row) for row in rows]
    return [{name: row.get(name) for name in columns} for row in rows]


def _cap_rows(aggregation: AggregationResult, limit: int) -> AggregationResult:
    if len(aggregation.rows) <= limit:
        return aggregation
    logger.info(
        "Truncating result rows",
        extra={"row_count": len(aggregation.rows), "limit": limit},
    )
    return dataclasses.replace(aggregation, rows=list(aggregation.rows[:limit]))


def _log_hint_disagreement(answer: Answer, choice: Optional[VisualizationChoice]) -> None:
    hint = answer.visualization_hint
    if not hint or choice is None:
        return
    suggested = str(hint.get("type", "")).strip().lower()
    if suggested and suggested != choice.kind.value:
        logger.info(
            "Ignoring suggested chart kind",
            extra={"suggested": suggested, "selected": choice.kind.value},
        )


async def _run(
    table: Table,
    completer: TextCompleter,
    result: AnalysisResult,
    include_answer: bool,
    span: Any,
) -> None:
    plan = await plan_query(
        result.question, table.schema, table.preview(get_preview_row_limit()), completer
    )
    result.plan = plan

    rows = project_rows(table.rows, plan.needed_columns)
    aggregation = _cap_rows(aggregate_for_plan(rows, plan), get_max_result_rows())
    result.aggregation = aggregation
    span.set_attribute("analyst.result_rows", len(aggregation.rows))

    if not aggregation.rows:
        result.error_code = ErrorCode.NO_DATA
        result.error_message = sanitize_error_message(None, error_code=ErrorCode.NO_DATA)

    choice = select_visualization(plan, table.schema, len(aggregation.rows))
    if choice is not None:
        result.chart = generate_spec(choice.kind, aggregation.rows, choice.mapping)
        span.set_attribute("analyst.chart_kind", choice.kind.value)
        logger.info(
            "Selected chart",
            extra={"kind": choice.kind.value, "reason": choice.reason},
        )

    if include_answer:
        result.answer = await generate_answer(
            result.question, aggregation.rows, table.schema, completer
        )
        _log_hint_disagreement(result.answer, choice)


async def analyze_question(
    table: Table,
    question: str,
    completer: TextCompleter,
    include_answer: bool = True,
) -> AnalysisResult:
    """Answer a question about a table with a chart and optional prose.

    Args:
        table: The ingested table.
        question: Free-text question; normalized before use.
        completer: Completion service used for planning and answering.
        include_answer: Whether to make the second completion call for prose.

    Returns:
        The result. ``error_code`` is set for planning failures, exhausted
        retries and empty results; fields computed before a failure are kept.

    Raises:
        ValueError: If the question is empty after normalization.
    """
    normalized = normalize_text(question)
    if not normalized:
        raise ValueError("Question must not be empty.")

    result = AnalysisResult(question=normalized)
    with tracer.start_as_current_span("analyst.analyze_question") as span:
        span.set_attribute("analyst.table_id", table.id)
        span.set_attribute("analyst.row_count", table.schema.row_count)
        try:
            await _run(table, completer, result, include_answer, span)
        except (PlanningError, TransientServiceError) as exc:
            result.error_code = error_code_for_exception(exc)
            result.error_message = sanitize_exception(exc)
            span.set_attribute("analyst.error_code", result.error_code.value)
            logger.warning(
                "Analysis failed",
                extra={
                    "table_id": table.id,
                    "error_code": result.error_code.value,
                    "error": redact_sensitive_info(str(exc)),
                },
            )
    return result
