"""Tests for answer and insight generation."""

import json

import pytest

from analyst.responder import (
    MAX_ANSWER_ROWS,
    build_answer_prompt,
    generate_answer,
    generate_insights,
    parse_answer,
    parse_insights,
)
from tests._support.fakes import FakeCompleter


class TestParseAnswer:
    """Tests for parse_answer()."""

    def test_json_answer_with_hint(self):
        answer = parse_answer(
            '```json\n{"answer": " North sold most. ", "visualization": {"type": "bar"}}\n```'
        )

        assert answer.text == "North sold most."
        assert answer.visualization_hint == {"type": "bar"}

    def test_non_dict_hint_is_dropped(self):
        answer = parse_answer(json.dumps({"answer": "ok", "visualization": "bar"}))
        assert answer.visualization_hint is None

    def test_plain_text_is_used_as_answer(self):
        answer = parse_answer("North sold the most widgets.")

        assert answer.text == "North sold the most widgets."
        assert answer.visualization_hint is None

    def test_json_without_answer_field_falls_back(self):
        answer = parse_answer('{"summary": "x"}')
        assert answer.text == '{"summary": "x"}'


class TestBuildAnswerPrompt:
    """Tests for answer prompt rendering."""

    def test_truncates_rows(self, sales_table):
        rows = [{"Region": f"R{i}", "Sales": i} for i in range(MAX_ANSWER_ROWS + 5)]

        prompt = build_answer_prompt("how much?", rows, sales_table.schema)

        assert f"{MAX_ANSWER_ROWS + 5} rows, showing first {MAX_ANSWER_ROWS}" in prompt
        assert '"R19"' in prompt
        assert '"R20"' not in prompt
        assert "Region, Product, Sales, Date, Active" in prompt

    def test_no_rows(self, sales_table):
        prompt = build_answer_prompt("anything?", [], sales_table.schema)
        assert "(no rows)" in prompt


class TestGenerate:
    """Tests for the async completion calls."""

    @pytest.mark.asyncio
    async def test_generate_answer(self, sales_table):
        completer = FakeCompleter(json.dumps({"answer": "South leads."}))

        answer = await generate_answer(
            "who leads?", [{"Region": "South", "Sales": 10}], sales_table.schema, completer
        )

        assert answer.text == "South leads."
        assert '"who leads?"' in completer.prompts[0]

    @pytest.mark.asyncio
    async def test_generate_insights(self, sales_table):
        completer = FakeCompleter(
            "Here are the insights:\n"
            "1. Regional spread: Sales are concentrated in the South.\n"
            "- Data quality: One Sales value is stored as text.\n"
            "* Products: Widget appears most often.\n"
            "\n"
            "Thanks!"
        )

        insights = await generate_insights(sales_table.schema, sales_table.preview(), completer)

        assert insights == [
            "Here are the insights:",
            "Regional spread: Sales are concentrated in the South.",
            "Data quality: One Sales value is stored as text.",
            "Products: Widget appears most often.",
        ]
        assert "Total rows: 6" in completer.prompts[0]
        assert "Sales (number)" in completer.prompts[0]


def test_parse_insights_caps_count():
    text = "\n".join(f"Insight {i}: detail" for i in range(8))
    assert len(parse_insights(text)) == 5


def test_parse_insights_empty():
    assert parse_insights("") == []
