# src/main.py — v2
"""CLI entry point — match and cache commands.

Usage:
    imagematch match <base_dir> <join_dir> [options]
    imagematch cache evict --days N
    imagematch cache stats
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from imagematch.config.settings import ConfigurationError, Settings, load_settings
from imagematch.logging.logger import setup_logging
from imagematch.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings(**_overrides_from_args(args))
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="imagematch",
        description=f"imagematch v{__version__} — Embedding-based product image matcher",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- match ---
    p_match = subparsers.add_parser(
        "match", help="Match join images against base images",
    )
    p_match.add_argument("base_dir", type=Path, help="Directory of labeled reference images")
    p_match.add_argument("join_dir", type=Path, help="Directory of unlabeled images")
    p_match.add_argument(
        "--top-n", type=int, default=None,
        help="Bases kept per join image (default: MATCH_TOP_N)",
    )
    p_match.add_argument(
        "--min-similarity", type=float, default=None,
        help="Inclusive cosine similarity threshold (default: MATCH_MIN_SIMILARITY)",
    )
    p_match.add_argument(
        "--max-per-base", type=int, default=None,
        help="Cap on join images per base group (default: unbounded)",
    )
    p_match.add_argument(
        "--no-recursive", action="store_true",
        help="Disable recursive scanning",
    )
    p_match.add_argument(
        "--no-cache", action="store_true",
        help="Do not read or write the embedding cache",
    )
    p_match.add_argument(
        "--report", type=Path, default=None,
        help="Write the full JSON report to this file",
    )
    p_match.set_defaults(func=_cmd_match)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or prune the embedding cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command")

    p_evict = cache_sub.add_parser("evict", help="Delete entries older than N days")
    p_evict.add_argument("--days", type=float, required=True, help="Maximum entry age in days")
    p_evict.set_defaults(func=_cmd_cache_evict)

    p_stats = cache_sub.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_cache_stats)

    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Map CLI flags onto Settings fields; unset flags keep .env values."""
    overrides: dict[str, Any] = {}
    if getattr(args, "top_n", None) is not None:
        overrides["match_top_n"] = args.top_n
    if getattr(args, "min_similarity", None) is not None:
        overrides["match_min_similarity"] = args.min_similarity
    if getattr(args, "max_per_base", None) is not None:
        overrides["match_max_per_base"] = args.max_per_base
    if getattr(args, "no_recursive", False):
        overrides["recursive_search"] = False
    if getattr(args, "no_cache", False):
        overrides["cache_enabled"] = False
    return overrides


async def _cmd_match(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a matching run."""
    from imagematch.pipeline.orchestrator import MatchPipeline

    for directory in (args.base_dir, args.join_dir):
        if not directory.is_dir():
            logger.error("Not a directory: %s", directory)
            return 1

    report = await MatchPipeline(settings=settings).run(args.base_dir, args.join_dir)

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Report written to %s", args.report)

    outcome = report.outcome
    print("\nMatch complete:")
    print(f"  Run ID:          {report.run_id}")
    print(f"  Base images:     {report.base.embedded}/{report.base.files_found}")
    print(f"  Join images:     {report.join.embedded}/{report.join.files_found}")
    print(f"  Cache hits:      {report.cache_hits}")
    print(f"  Computed:        {report.computed}")
    print(f"  Groups:          {len(outcome.results)}")
    print(f"  Unmatched join:  {len(outcome.unmatched_join)}")
    print(f"  Unmatched base:  {len(outcome.unmatched_base)}")
    print(f"  Failures:        {len(report.failures)}")
    print(f"  Duration:        {report.duration_seconds:.1f}s")

    for result in outcome.results:
        print(f"\n  {result.base_id}")
        for m in result.matches:
            print(f"    {m.similarity:6.1%}  {m.join_id}")

    for failure in report.failures:
        print(f"\n  FAILED {failure.identifier} ({failure.error_kind}): {failure.message}")
    return 0


async def _cmd_cache_evict(args: argparse.Namespace, settings: Settings) -> int:
    """Delete cache entries older than --days."""
    from imagematch.cache.cache_factory import create_cache_store

    if args.days < 0:
        logger.error("--days must be >= 0")
        return 1

    async with create_cache_store(settings) as cache:
        removed = await cache.evict_older_than(args.days)
        remaining = await cache.count()

    print(f"Removed {removed} entries older than {args.days:g} days ({remaining} remaining)")
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Display cache statistics."""
    from imagematch.cache.cache_factory import create_cache_store

    async with create_cache_store(settings) as cache:
        stats = await cache.stats()

    print(f"\nCache statistics:")
    print(f"  Backend:   {stats.backend}")
    print(f"  Location:  {stats.location}")
    print(f"  Entries:   {stats.total_entries}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
