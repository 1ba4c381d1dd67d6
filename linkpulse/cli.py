"""Command-line interface for checking links."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import ENV_FILE_VARIABLE, load_config
from .cli_output import write_output
from .cli_parsers import parse_args
from .config import CheckOptions, OptionOverrides, apply_overrides, load_options_from_env
from .result import CheckResult

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "linkpulse"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config(env_file: Optional[str] = None) -> Optional[Path]:
    env_file = env_file or os.environ.get(ENV_FILE_VARIABLE)
    return load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
        env_file=Path(env_file).expanduser() if env_file else None,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    if not verbose:
        # Per-request logs from httpx are noise at the default level.
        logging.getLogger("httpx").setLevel(logging.WARNING)


def build_options(args: argparse.Namespace) -> CheckOptions:
    """Environment defaults with the command-line flags applied on top."""
    overrides = OptionOverrides(
        check_anchor=args.check_anchor,
        find_urls=args.find_urls,
        follow_meta_http_equiv=args.follow_meta_http_equiv,
        max_redirects=args.max_redirects,
        max_retries=args.max_retries,
        resolve_clobber_prefix=args.resolve_clobber_prefix,
        timeout=args.timeout,
        user_agent=args.user_agent,
        extra_anchor_allowlist=tuple(tuple(pair) for pair in args.allow_anchor),
    )
    return apply_overrides(load_options_from_env(), overrides)


async def _run_check_async(args: argparse.Namespace) -> int:
    """Main async entry point for checking."""
    from . import check_site_async, check_urls_async

    options = build_options(args)
    results: List[CheckResult] = []
    stats = None

    if args.site:
        if len(args.urls) > 1:
            logging.error("Site check only supports a single seed URL")
            return 1

        logging.info(
            "Starting site check: %s (max_depth=%d, max_pages=%d)",
            args.urls[0],
            args.max_depth,
            args.max_pages,
        )
        site = await check_site_async(
            args.urls[0],
            max_depth=args.max_depth,
            max_pages=args.max_pages,
            include_subdomains=args.include_subdomains,
            options=options,
            concurrency=args.concurrency,
        )
        results = site.results
        stats = site.stats
        logging.info(
            "Site check complete: %d URLs (%d alive, %d dead)",
            stats.get("total", 0),
            stats.get("alive", 0),
            stats.get("dead", 0),
        )
    else:
        logging.info("Checking %d URL(s)...", len(args.urls))
        results = await check_urls_async(
            args.urls,
            options,
            concurrency=args.concurrency,
        )

    dead = [result for result in results if not result.is_alive]
    for result in dead:
        logging.warning("Dead: %s", result.request_url)

    write_output(results, args.output, args.json_output, stats=stats)

    return 1 if dead else 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the linkpulse command."""
    args = parse_args(argv)
    _setup_logging(args.verbose)
    _load_config(args.env_file)

    try:
        return asyncio.run(_run_check_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
