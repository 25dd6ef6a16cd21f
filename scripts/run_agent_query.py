"""
Run one business-intelligence query from CLI.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path

from agent.orchestrator import get_shared_data_store, run_agentic_query, stream_agentic_analysis
from analysis_tools.dataset import BusinessDataset
from llm_synthesis.schema import AnalysisStep


def _read_rows(path: str | None) -> list[dict[str, str]]:
    if not path:
        return []
    with Path(path).open(newline="", encoding="utf-8") as handle:
        return list(csv.DictReader(handle))


def _print_step(step: AnalysisStep) -> None:
    print(f"[{step.progress:3d}%] {step.step}: {step.action}", file=sys.stderr)


def main() -> int:
    parser = argparse.ArgumentParser(description="Ask the business-intelligence agent one question.")
    parser.add_argument("query", help="Natural-language business question.")
    parser.add_argument("--sales", default=None, help="Sales CSV (Date, Product, Category, Quantity, Amount).")
    parser.add_argument("--inventory", default=None, help="Inventory CSV (Product, Category, Stock, Price, Min_Alert).")
    parser.add_argument("--reviews", default=None, help="Reviews CSV (Date, Product, Rating, Review).")
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Print progress steps to stderr as they happen.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if args.sales or args.inventory or args.reviews:
        get_shared_data_store().load(
            BusinessDataset.from_rows(
                sales=_read_rows(args.sales),
                inventory=_read_rows(args.inventory),
                reviews=_read_rows(args.reviews),
            )
        )

    if args.stream:
        response = stream_agentic_analysis(args.query, None, _print_step)
    else:
        response = run_agentic_query(args.query)

    print(json.dumps(response.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
