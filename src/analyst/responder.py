"""Natural-language answers and dataset insights from the completion service."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.prompts import PromptTemplate

from analyst.models import Schema
from analyst.planner import extract_json_object, strip_code_fences
from common.interfaces import TextCompleter

logger = logging.getLogger(__name__)

MAX_ANSWER_ROWS = 20
MAX_INSIGHTS = 5

_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*]|\d+[.)])\s*")

ANSWER_PROMPT = PromptTemplate.from_template(
    """You are a data analysis assistant. A user asked a question about their \
dataset, and you have the relevant data to answer it.

**User Question:**
"{question}"

**Available Columns:**
{column_names}

**Query Results ({row_count} rows{shown_note}):**
{result_rows}

**Your Task:**
Answer the question in 2-4 conversational sentences, citing specific numbers \
from the results. If no data matches, explain why clearly.

Return a JSON object with this structure:

{{
  "answer": "Your natural language answer here",
  "visualization": {{"type": "bar|pie|line|scatter|table", "reason": "why"}}
}}

"visualization" is optional. Return ONLY valid JSON, no additional text."""
)

INSIGHTS_PROMPT = PromptTemplate.from_template(
    """Analyze this dataset and provide 3-5 key insights in a concise format.

Dataset Schema:
- Total rows: {row_count}
- Columns: {columns}

Sample Data (first {preview_count} rows):
{preview_rows}

Provide insights about data quality, interesting patterns or trends, potential \
analysis opportunities and any data issues.

Format each insight as: "Title: Description" (one per line, max 5 insights).
Be specific and actionable."""
)


@dataclass(frozen=True)
class Answer:
    """Answer text plus the completion's advisory chart suggestion, if any."""

    text: str
    visualization_hint: Optional[Dict[str, Any]] = None


def build_answer_prompt(question: str, rows: Sequence[Dict[str, Any]], schema: Schema) -> str:
    shown = list(rows)[:MAX_ANSWER_ROWS]
    return ANSWER_PROMPT.format(
        question=question,
        column_names=", ".join(schema.column_names()),
        row_count=len(rows),
        shown_note=f", showing first {MAX_ANSWER_ROWS}" if len(rows) > MAX_ANSWER_ROWS else "",
        result_rows="\n".join(json.dumps(row, default=str) for row in shown) or "(no rows)",
    )


def parse_answer(text: str) -> Answer:
    """Read an answer completion; plain text is used as the answer itself."""
    try:
        payload = extract_json_object(text)
    except ValueError:
        payload = None

    if isinstance(payload, dict) and isinstance(payload.get("answer"), str):
        hint = payload.get("visualization")
        return Answer(
            text=payload["answer"].strip(),
            visualization_hint=hint if isinstance(hint, dict) else None,
        )

    logger.warning("Answer completion was not the expected JSON; using raw text")
    return Answer(text=strip_code_fences(text))


async def generate_answer(
    question: str,
    rows: Sequence[Dict[str, Any]],
    schema: Schema,
    completer: TextCompleter,
) -> Answer:
    """Ask the completion service to phrase an answer over the result rows."""
    response = await completer.complete(build_answer_prompt(question, rows, schema))
    return parse_answer(response)


def parse_insights(text: str) -> List[str]:
    insights = []
    for line in (text or "").splitlines():
        cleaned = _LIST_MARKER_RE.sub("", line).strip()
        if ":" in cleaned:
            insights.append(cleaned)
    return insights[:MAX_INSIGHTS]


async def generate_insights(
    schema: Schema,
    preview_rows: Sequence[Dict[str, Any]],
    completer: TextCompleter,
) -> List[str]:
    """Summarize a freshly ingested dataset as ``"Title: Description"`` lines."""
    columns = ", ".join(f"{c.name} ({c.type.value})" for c in schema.columns)
    prompt = INSIGHTS_PROMPT.format(
        row_count=schema.row_count,
        columns=columns,
        preview_count=len(preview_rows),
        preview_rows=json.dumps(list(preview_rows), default=str, indent=2),
    )
    return parse_insights(await completer.complete(prompt))
