"""Check whether URLs are dead or alive.

This module provides a clean API for checking links. It supports:

- Single URL checks, following HTTP and ``meta[http-equiv=refresh]``
  redirects and verifying that fragments point to an element
- Multiple URL checks (batch) with bounded concurrency
- Site checks that follow the links found on pages (BFS strategy)

Example usage:

    from linkpulse import check_url_async, check_urls_async, check_site_async

    # Single URL
    result = await check_url_async("https://example.com/#intro")
    print(result.status, result.url)

    # Multiple URLs
    results = await check_urls_async([
        "https://example.com/page1",
        "https://example.com/page2",
    ])

    # Site check
    site = await check_site_async("https://docs.example.com", max_depth=2)
    for result in site.results:
        print(result.status, result.request_url)
    print(site.stats)

    # Custom options
    from linkpulse import CheckOptions
    options = CheckOptions(max_retries=0, check_anchor=False)
    result = await check_url_async("https://example.com", options)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import httpx

from .config import CheckOptions, OptionOverrides, apply_overrides, load_options_from_env
from .messages import DeadLinkError, Diagnostic, fetch_failed
from .resolver import build_client, check_url, check_url_async
from .result import ALIVE, DEAD, CheckResult
from .site import SiteCheckResult, check_site, check_site_async

LOGGER = logging.getLogger(__name__)

__all__ = [
    # Result types
    "CheckResult",
    "Diagnostic",
    "DeadLinkError",
    "SiteCheckResult",
    "ALIVE",
    "DEAD",
    # Single URL
    "check_url",
    "check_url_async",
    # Multiple URLs
    "check_urls",
    "check_urls_async",
    # Site check
    "check_site",
    "check_site_async",
    # Config
    "CheckOptions",
    "OptionOverrides",
    "apply_overrides",
    "load_options_from_env",
    # MCP Server
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


async def check_urls_async(
    urls: Sequence[str],
    options: Optional[CheckOptions] = None,
    *,
    concurrency: int = 8,
    client: Optional[httpx.AsyncClient] = None,
) -> List[CheckResult]:
    """
    Check multiple URLs concurrently.

    Args:
        urls: URLs to check.
        options: Optional CheckOptions shared by every check.
        concurrency: Maximum number of checks in flight.
        client: Optional httpx.AsyncClient; a shared one is created otherwise.

    Returns:
        List of CheckResult objects (in same order as input URLs). A URL
        that appears more than once is checked once. URLs that cannot be
        checked at all (including invalid ones) come back dead with a
        ``fetch`` diagnostic.
    """
    if not urls:
        return []

    settings = options or CheckOptions()
    semaphore = asyncio.Semaphore(max(1, concurrency))
    unique = list(dict.fromkeys(urls))

    async def run(active: httpx.AsyncClient, url: str) -> CheckResult:
        async with semaphore:
            try:
                return await check_url_async(url, settings, client=active)
            except Exception as exc:
                LOGGER.warning("Failed to check %s: %s", url, exc)
                return _failed_result(url, exc)

    async def run_all(active: httpx.AsyncClient) -> List[CheckResult]:
        return list(await asyncio.gather(*(run(active, url) for url in unique)))

    if client is None:
        async with build_client() as owned_client:
            checked = await run_all(owned_client)
    else:
        checked = await run_all(client)

    by_url: Dict[str, CheckResult] = dict(zip(unique, checked))
    return [by_url[url] for url in urls]


def _failed_result(url: str, exc: BaseException) -> CheckResult:
    return CheckResult(
        request_url=url,
        status=DEAD,
        messages=[fetch_failed(url, exc)],
    )


def check_urls(
    urls: Sequence[str],
    options: Optional[CheckOptions] = None,
    *,
    concurrency: int = 8,
) -> List[CheckResult]:
    """Synchronous wrapper for check_urls_async."""
    return asyncio.run(check_urls_async(urls, options, concurrency=concurrency))
