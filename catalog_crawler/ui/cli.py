from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from typing import List

from ..config import CrawlConfig
from ..engines.base import CrawlResult
from ..engines.simple_engine import SimpleCrawlEngine
from ..errors import ConfigurationError
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Catalog crawler CLI")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--target-host", type=str, default=None, help="Host to crawl, e.g. www.example.com")
    p.add_argument("--target-scheme", type=str, default=None, choices=["http", "https"],
                   help="URL scheme (default from config)")
    p.add_argument("--start-url", type=str, default=None, help="Start path (default from config)")
    p.add_argument("--output", type=str, default=None, help="Output directory")
    p.add_argument("--connection-timeout", type=int, default=None,
                   help="Preflight connection timeout in milliseconds")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max concurrent fetches")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    return p


def _load_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config:
        cfg = CrawlConfig.from_file(args.config)
    else:
        cfg = CrawlConfig.from_env()

    overrides = {}
    if args.target_host:
        overrides["target_host"] = args.target_host
    if args.target_scheme:
        overrides["target_scheme"] = args.target_scheme
    if args.start_url:
        overrides["start_url"] = args.start_url
    if args.output:
        overrides["output_path"] = args.output
    if args.connection_timeout is not None:
        overrides["connection_timeout"] = args.connection_timeout
    if args.max_concurrency is not None:
        overrides["fetcher"] = dataclasses.replace(cfg.fetcher, max_concurrency=args.max_concurrency)

    return dataclasses.replace(cfg, **overrides)


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        cfg = _load_config(args)
    except ConfigurationError as exc:
        result = CrawlResult(error=exc)
    else:
        result = asyncio.run(SimpleCrawlEngine(cfg).start())

    if not result.ok:
        print(f"An error occurred during processing: {result.error_kind}: {result.error}", file=sys.stderr)
        return 1

    logger.info("Fetched: %s | Records: %s | Output: %s",
                result.pages_fetched,
                result.records_written,
                result.output_file)
    return 0
