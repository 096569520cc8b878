"""Command-line entry point.

    python main.py analyze "best coffee shops" --location Turkey
    python main.py serp "best coffee shops" --top-n 5 --lang us-en
    python main.py site https://example.com/ --topic "dental implants"

Every sub-command prints the resulting model as JSON on stdout.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog
from pydantic import BaseModel

from agents.competitor_research import CompetitorResearcher, DEFAULT_LANGUAGE
from app.config import DEFAULT_TOP_N
from app.errors import AnalysisError
from app.log import configure_logging
from graph.graph_builder import perform_analysis
from tools.site_context import analyze_site

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Competitor and content analysis for SEO topics")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Full analysis for a topic and location")
    analyze.add_argument("topic")
    analyze.add_argument("--location", required=True, help="Country or region, e.g. Turkey")

    serp = sub.add_parser("serp", help="Search, scrape and aggregate competitors only")
    serp.add_argument("query")
    serp.add_argument("--top-n", type=int, default=DEFAULT_TOP_N, help=f"Results to scrape (default: {DEFAULT_TOP_N})")
    serp.add_argument("--lang", default=DEFAULT_LANGUAGE, help="Search region, e.g. us-en or tr-tr")

    site = sub.add_parser("site", help="Keywords and internal links from your own site")
    site.add_argument("url")
    site.add_argument("--topic", required=True)

    return parser


async def run_command(args: argparse.Namespace) -> BaseModel:
    if args.command == "analyze":
        return await perform_analysis(args.topic, args.location)
    if args.command == "serp":
        return await CompetitorResearcher().research(args.query, top_n=args.top_n, lang=args.lang)
    if args.command == "site":
        return await analyze_site(args.url, args.topic)
    raise ValueError(f"unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        configure_logging(level=args.log_level)
    else:
        configure_logging()

    try:
        result = asyncio.run(run_command(args))
    except AnalysisError as e:
        logger.error("cli.failed", command=args.command, error=str(e), error_type=type(e).__name__)
        return 1

    print(result.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
