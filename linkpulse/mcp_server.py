"""MCP Server for linkpulse.

Provides tools for:
- Checking whether one or more URLs are dead or alive
- Checking every link on a website

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for Claude Desktop, etc.)
    python -m linkpulse.mcp_server

    # HTTP (for remote access)
    python -m linkpulse.mcp_server --transport http --port 8000

    # Or via FastMCP CLI
    fastmcp run linkpulse/mcp_server.py:mcp --transport http --port 8000

Environment Variables:
    LINKPULSE_TIMEOUT: Request timeout in milliseconds (default: 3000)
    LINKPULSE_MAX_REDIRECTS: Maximum redirects to follow (default: 5)
    LINKPULSE_MAX_RETRIES: Maximum retries for flaky failures (default: 1)
    LINKPULSE_USER_AGENT: User agent to send
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .cli_output import format_results_markdown
from .config import CheckOptions, OptionOverrides, apply_overrides, load_options_from_env
from .result import CheckResult

LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

# Create the MCP server
mcp = FastMCP(
    name="Link Checker",
    instructions="""
    A link checking server that provides:

    1. check_links: Check whether one or more URLs are dead or alive.
       Follows HTTP and meta refresh redirects and verifies that
       fragments (#section) point to an element on the final page.

    2. check_site: Check every link found on a website, starting
       from a seed URL, with depth/page limits.

    Output formats:
    - markdown: Readable report with diagnostics (default)
    - json: Full details including final URLs and found URLs
    """,
)


class OutputFormat(str, Enum):
    """Output format for check results."""

    markdown = "markdown"
    json = "json"


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _parse_format(output_format: str) -> OutputFormat:
    try:
        return OutputFormat(output_format.lower())
    except ValueError:
        return OutputFormat.markdown


def _build_options(
    check_anchor: Optional[bool] = None,
    max_retries: Optional[int] = None,
    timeout: Optional[float] = None,
) -> CheckOptions:
    return apply_overrides(
        load_options_from_env(),
        OptionOverrides(
            check_anchor=check_anchor,
            max_retries=max_retries,
            timeout=timeout,
        ),
    )


def _format_output(
    results: List[CheckResult],
    output_format: OutputFormat,
    stats: Optional[Dict[str, Any]] = None,
) -> str:
    """Format check results based on output format."""
    if output_format == OutputFormat.json:
        payload: Dict[str, Any] = {
            "checked_at": _format_timestamp(),
            "results": [result.to_dict() for result in results],
            "summary": {
                "total": len(results),
                "alive": sum(1 for r in results if r.is_alive),
                "dead": sum(1 for r in results if not r.is_alive),
            },
        }
        if stats:
            payload["stats"] = stats
        return json.dumps(payload, indent=2, ensure_ascii=False)

    header = f"_Checked: {_format_timestamp()}_\n\n"
    return header + format_results_markdown(results, stats)


# =============================================================================
# CHECK TOOLS
# =============================================================================


@mcp.tool
async def check_links(
    urls: List[str],
    output_format: str = "markdown",
    concurrency: int = 8,
    check_anchor: bool = True,
    max_retries: Optional[int] = None,
    timeout: Optional[float] = None,
):
    """
    Check whether one or more URLs are dead or alive.

    Args:
        urls: List of URLs to check (can be a single URL)
        output_format: Output format - "markdown" (default) or "json"
            - markdown: Readable report with one section per URL
            - json: Full JSON with final URLs, diagnostics and found URLs
        concurrency: Maximum concurrent checks (default: 8)
        check_anchor: Check that fragments point to elements (default: true)
        max_retries: Retries for flaky failures (default: from environment, 1)
        timeout: Milliseconds to wait for each response (default: 3000)

    Returns:
        Check results in the specified format.

    Examples:
        # Single URL
        check_links(urls=["https://docs.example.com/#install"])

        # Multiple URLs as JSON
        check_links(urls=["https://a.example", "https://b.example"], output_format="json")
    """
    from . import check_urls_async

    fmt = _parse_format(output_format)
    options = _build_options(check_anchor, max_retries, timeout)

    LOGGER.info("Checking %d URL(s)...", len(urls))
    results = await check_urls_async(urls, options, concurrency=concurrency)

    alive = sum(1 for r in results if r.is_alive)
    LOGGER.info("Completed: %d/%d alive", alive, len(results))

    return _format_output(results, fmt)


@mcp.tool
async def check_site(
    url: str,
    max_depth: int = 1,
    max_pages: int = 25,
    include_subdomains: bool = False,
    output_format: str = "markdown",
    check_anchor: bool = True,
):
    """
    Check every link on a website starting from a seed URL using BFS strategy.

    Args:
        url: The seed URL to start checking from
        max_depth: Maximum depth of pages to expand (default: 1, 0 = seed page only)
        max_pages: Maximum number of URLs to check (default: 25)
        include_subdomains: Whether to expand pages on subdomains (default: false)
        output_format: Output format - "markdown" (default) or "json"
        check_anchor: Check that fragments point to elements (default: true)

    Returns:
        Check results for every URL found, with statistics.

    Examples:
        # Basic site check
        check_site(url="https://docs.example.com")

        # Deeper check with more URLs
        check_site(url="https://docs.example.com", max_depth=2, max_pages=100)
    """
    from . import check_site_async

    fmt = _parse_format(output_format)

    LOGGER.info(
        "Starting site check: %s (max_depth=%d, max_pages=%d)",
        url,
        max_depth,
        max_pages,
    )

    try:
        site = await check_site_async(
            url,
            max_depth=max_depth,
            max_pages=max_pages,
            include_subdomains=include_subdomains,
            options=_build_options(check_anchor),
        )
    except ValueError as exc:
        error_msg = f"Invalid seed URL: {exc}"
        LOGGER.error(error_msg)
        return json.dumps({"error": error_msg, "url": url}, ensure_ascii=False)

    LOGGER.info(
        "Site check complete: %d URLs (%d alive, %d dead)",
        site.stats.get("total", 0),
        site.stats.get("alive", 0),
        site.stats.get("dead", 0),
    )

    return _format_output(site.results, fmt, stats=site.stats)


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the linkpulse MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    LINKPULSE_TIMEOUT        Request timeout in milliseconds (default: 3000)
    LINKPULSE_MAX_REDIRECTS  Maximum redirects to follow (default: 5)
    LINKPULSE_MAX_RETRIES    Maximum retries for flaky failures (default: 1)
    LINKPULSE_USER_AGENT     User agent to send

Examples:
    # STDIO transport (default, for Claude Desktop)
    python -m linkpulse.mcp_server

    # HTTP transport (for remote access)
    python -m linkpulse.mcp_server --transport http --port 8000

    # Custom host/port
    python -m linkpulse.mcp_server --transport http --host 0.0.0.0 --port 9000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    options = load_options_from_env()
    LOGGER.info(
        "Defaults: timeout=%sms, max_redirects=%d, max_retries=%d",
        options.timeout,
        options.max_redirects,
        options.max_retries,
    )

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
