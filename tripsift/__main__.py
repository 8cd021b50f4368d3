"""Command line entry point: ``python -m tripsift chat.txt``."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from tripsift.core.errors import PipelineError
from tripsift.core.logging import get_logger
from tripsift.core.utils.http_pool import close_all
from tripsift.pipeline import LoggingObserver, ParsingOptions, build_pipeline

_log = get_logger("cli")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tripsift",
        description="Extract dates, budget, places, tasks and decisions from an exported group chat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tripsift chat.txt                     # providers from .env, then offline
  python -m tripsift chat.txt --offline           # rule-based engine only
  python -m tripsift chat.txt --min-confidence 70 # drop weak items
        """,
    )
    parser.add_argument("chat_file", type=Path, help="Exported chat text file ('-' for stdin)")
    parser.add_argument("--no-enrich", action="store_true", help="Skip geocoding confirmed places")
    parser.add_argument("--max-places", type=int, default=5, help="Maximum places to geocode (default: 5)")
    parser.add_argument(
        "--min-confidence",
        type=float,
        default=0.0,
        help="Drop dates, places and decisions below this confidence (0-100)",
    )
    parser.add_argument("--offline", action="store_true", help="Use only the offline extraction engine")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress to stderr")
    return parser.parse_args(argv)


def _read_chat(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


async def run(args: argparse.Namespace) -> dict:
    pipeline = build_pipeline(
        observer=LoggingObserver() if args.verbose else None,
        offline_only=args.offline,
        enrich=not args.no_enrich,
    )
    options = ParsingOptions(
        enrich_places=not args.no_enrich,
        max_places_to_enrich=args.max_places,
        min_confidence_threshold=args.min_confidence,
    )
    try:
        result = await pipeline.process(_read_chat(args.chat_file), options)
    finally:
        await close_all()
    return result.to_json_dict()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        output = asyncio.run(run(args))
    except FileNotFoundError:
        _log.error("Chat file not found", path=str(args.chat_file))
        return 2
    except PipelineError as e:
        _log.error("Extraction failed", error=e.message[:300])
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
