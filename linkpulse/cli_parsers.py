"""Argument parser construction for the linkpulse CLI."""

from __future__ import annotations

import argparse
from typing import List, Optional


def _add_check_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "urls",
        nargs="+",
        help="URL(s) to check",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the report to this file instead of stdout",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON (includes diagnostics and found URLs)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=8,
        help="Concurrent checks for multiple URLs (default: 8)",
    )

    site_group = parser.add_argument_group("Site checking")
    site_group.add_argument(
        "--site",
        action="store_true",
        help="Check every link found on the site, starting from URL (BFS strategy)",
    )
    site_group.add_argument(
        "--max-depth",
        type=int,
        default=1,
        help="Maximum depth of pages to expand for site checking (default: 1)",
    )
    site_group.add_argument(
        "--max-pages",
        type=int,
        default=25,
        help="Maximum URLs to check for site checking (default: 25)",
    )
    site_group.add_argument(
        "--include-subdomains",
        action="store_true",
        help="Also expand pages on subdomains of the seed URL",
    )

    check_group = parser.add_argument_group("Check options")
    check_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Milliseconds to wait for each response (default: 3000)",
    )
    check_group.add_argument(
        "--max-redirects",
        type=int,
        default=None,
        help="Maximum redirects to follow (default: 5)",
    )
    check_group.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Maximum retries for flaky failures (default: 1)",
    )
    check_group.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="User-Agent header to send",
    )
    check_group.add_argument(
        "--no-anchors",
        action="store_false",
        dest="check_anchor",
        default=None,
        help="Do not check that fragments point to elements",
    )
    check_group.add_argument(
        "--no-find-urls",
        action="store_false",
        dest="find_urls",
        default=None,
        help="Do not collect URLs from HTML documents",
    )
    check_group.add_argument(
        "--no-meta-refresh",
        action="store_false",
        dest="follow_meta_http_equiv",
        default=None,
        help="Do not follow meta[http-equiv=refresh] redirects",
    )
    check_group.add_argument(
        "--no-clobber-prefix",
        action="store_false",
        dest="resolve_clobber_prefix",
        default=None,
        help="Do not accept user-content- prefixed ids for fragments",
    )
    check_group.add_argument(
        "--allow-anchor",
        nargs=2,
        action="append",
        metavar=("URL_RE", "FRAGMENT_RE"),
        default=[],
        help="Accept fragments matching FRAGMENT_RE on URLs matching URL_RE "
             "without looking for an element (repeatable)",
    )

    parser.add_argument(
        "--env-file",
        default=None,
        metavar="PATH",
        help="Load settings from this .env file "
             "(default: $LINKPULSE_ENV_FILE, ./.env, ~/.config/linkpulse/.env)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkpulse",
        description="Check whether URLs are dead or alive.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Single URL
  linkpulse https://example.com

  # Check a fragment too
  linkpulse "https://example.com/docs#install"

  # Multiple URLs as JSON
  linkpulse https://example.com/a https://example.com/b --json

  # Every link on a site, two levels deep
  linkpulse https://docs.example.com --site --max-depth 2 -o report.txt

  # Fast check: no retries, no HTML parsing
  linkpulse https://example.com --max-retries 0 --no-anchors --no-find-urls --no-meta-refresh

  # Accept GitHub line fragments without an element
  linkpulse "https://github.com/o/r/blob/main/x.py#L3" --allow-anchor "^https://github\\.com/" "^L\\d+"
""",
    )
    _add_check_args(parser)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)
