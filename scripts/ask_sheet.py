"""Ask a question about an Excel file and print the analysis as JSON.

Usage:
    python scripts/ask_sheet.py sales.xlsx "What are total sales by region?"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR / "src"))

from analyst.ingestion import load_excel  # noqa: E402
from analyst.llm_client import get_text_completer  # noqa: E402
from analyst.pipeline import analyze_question  # noqa: E402
from analyst.responder import generate_insights  # noqa: E402


async def main(args):
    """Load the workbook, then run insights or a question through the pipeline."""
    table = load_excel(args.path, file_name=Path(args.path).name)
    completer = get_text_completer(provider=args.provider, model=args.model)

    if args.insights:
        insights = await generate_insights(table.schema, table.preview(), completer)
        print(json.dumps({"schema": table.schema.to_dict(), "insights": insights}, indent=2))
        return 0

    if not args.question:
        print("A question is required unless --insights is given.", file=sys.stderr)
        return 2

    result = await analyze_question(
        table, args.question, completer, include_answer=not args.no_answer
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.plan is None else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ask a question about a spreadsheet.")
    parser.add_argument("path", help="Path to an .xlsx file")
    parser.add_argument("question", nargs="?", help="Question to answer")
    parser.add_argument("--provider", help="LLM provider (anthropic, openai, google)")
    parser.add_argument("--model", help="Model name")
    parser.add_argument("--no-answer", action="store_true", help="Skip the prose answer")
    parser.add_argument("--insights", action="store_true", help="Print dataset insights")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(main(args)))
