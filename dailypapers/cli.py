"""Command-line entry point.

    dailypapers scrape --days 7
    dailypapers scrape --since-last
    dailypapers summarize --limit 20
    dailypapers regenerate
    dailypapers serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from .config import load_settings  # noqa: E402
from .errors import ValidationError  # noqa: E402
from .env import get_secret  # noqa: E402
from .pipeline import build_pipeline  # noqa: E402
from .services.date_window import MODE_FIXED_DAYS, MODE_SINCE_LAST  # noqa: E402

logger = logging.getLogger("dailypapers")


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dailypapers",
        description="Scrape Hugging Face Daily Papers and generate structured summaries",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Run one ingestion run in the foreground")
    window = scrape.add_mutually_exclusive_group()
    window.add_argument("--days", type=int, default=None, help="Number of days to scrape (default: 7)")
    window.add_argument(
        "--since-last",
        action="store_true",
        help="Scrape every day since the most recent stored paper",
    )

    summarize = sub.add_parser("summarize", help="Generate summaries for papers without one")
    summarize.add_argument("--limit", type=int, default=None, help="Maximum number of papers")
    summarize.add_argument(
        "--oldest-first", action="store_true", help="Process the oldest papers first"
    )

    regenerate = sub.add_parser(
        "regenerate", help="Mark every paper as unsummarized, then summarize again"
    )
    regenerate.add_argument("--limit", type=int, default=None)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


async def _scrape(args: argparse.Namespace) -> int:
    pipeline = build_pipeline(load_settings())
    mode = MODE_SINCE_LAST if args.since_last else MODE_FIXED_DAYS
    try:
        try:
            _, message, _ = pipeline.ingestion.start(mode, args.days)
        except ValidationError as exc:
            logger.error("%s", exc)
            return 2
        logger.info(message)
        status = await pipeline.ingestion.wait()
    finally:
        await pipeline.aclose()
    print(status.model_dump_json(indent=2, exclude={"progress": {"logs"}}))
    return 1 if status.last_error else 0


async def _summarize(args: argparse.Namespace, reset: bool = False) -> int:
    pipeline = build_pipeline(load_settings())
    try:
        if reset:
            count = await asyncio.to_thread(pipeline.store.reset_summary_flags)
            logger.info("Reset has_summary on %d papers", count)
        result = await pipeline.enrichment.run(
            limit=args.limit, newest_first=not getattr(args, "oldest_first", False)
        )
    finally:
        await pipeline.aclose()
    print(json.dumps(result.model_dump(), indent=2))
    return 1 if result.failed else 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("dailypapers.main:app", host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=(get_secret("LOG_LEVEL", "INFO") or "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _build_arg_parser().parse_args(argv)

    if args.command == "scrape":
        return asyncio.run(_scrape(args))
    if args.command == "summarize":
        return asyncio.run(_summarize(args))
    if args.command == "regenerate":
        return asyncio.run(_summarize(args, reset=True))
    return _serve(args)


if __name__ == "__main__":
    sys.exit(main())
