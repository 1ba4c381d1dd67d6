"""Site checker for multi-page BFS link checking."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlsplit

import httpx
import tldextract

from .config import CheckOptions
from .messages import fetch_failed
from .resolver import build_client, check_url_async
from .result import DEAD, CheckResult
from .urls import is_web_url, normalize_url

LOGGER = logging.getLogger(__name__)


@dataclass
class SiteCheckResult:
    """Result of a site check operation."""

    results: List[CheckResult] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "stats": dict(self.stats),
        }


def _normalize_host(host: Optional[str]) -> str:
    """Normalize hostname by removing port and lowercasing."""
    if not host:
        return ""
    return host.split(":")[0].lower()


@lru_cache(maxsize=256)
def _registrable_domain(host: str) -> Optional[str]:
    """Extract the registrable domain from a hostname."""
    if not host:
        return None
    extracted = tldextract.extract(host)
    if not extracted.domain or not extracted.suffix:
        return host
    domain = ".".join(part for part in (extracted.domain, extracted.suffix) if part)
    return domain or host


def _in_scope(url: str, seed_host: str, include_subdomains: bool) -> bool:
    host = _normalize_host(urlsplit(url).hostname)
    if not host:
        return False
    if host == seed_host:
        return True
    if not include_subdomains:
        return False
    return _registrable_domain(host) == _registrable_domain(seed_host)


async def check_site_async(
    url: str,
    *,
    max_depth: int = 1,
    max_pages: int = 25,
    include_subdomains: bool = False,
    options: Optional[CheckOptions] = None,
    concurrency: int = 8,
    client: Optional[httpx.AsyncClient] = None,
) -> SiteCheckResult:
    """
    Check a website starting from a seed URL using BFS strategy.

    Every URL found on an expanded page is checked. Only pages that are
    alive, on the seed's host (or its registrable domain when
    *include_subdomains*) and shallower than *max_depth* are expanded.

    Args:
        url: The seed URL to start checking from.
        max_depth: Maximum depth to expand (0 = seed page only).
        max_pages: Maximum number of URLs to check.
        include_subdomains: Whether to expand pages on subdomains.
        options: Optional CheckOptions; URL discovery is always on.
        concurrency: Maximum number of checks in flight.
        client: Optional httpx.AsyncClient to send requests with.

    Returns:
        SiteCheckResult containing results and stats.

    Raises:
        ValueError: If *url* is not an absolute URL.
    """
    settings = replace(options or CheckOptions(), find_urls=True)
    seed_url = normalize_url(str(url))
    seed_host = _normalize_host(urlsplit(seed_url).hostname)

    if client is None:
        async with build_client() as owned_client:
            results = await _crawl(
                owned_client,
                settings,
                seed_url,
                seed_host,
                max_depth=max_depth,
                max_pages=max_pages,
                include_subdomains=include_subdomains,
                concurrency=concurrency,
            )
    else:
        results = await _crawl(
            client,
            settings,
            seed_url,
            seed_host,
            max_depth=max_depth,
            max_pages=max_pages,
            include_subdomains=include_subdomains,
            concurrency=concurrency,
        )

    stats = {
        "total": len(results),
        "alive": sum(1 for result in results if result.is_alive),
        "dead": sum(1 for result in results if not result.is_alive),
        "warnings": sum(
            1 for result in results for message in result.messages if not message.fatal
        ),
    }
    return SiteCheckResult(results=results, stats=stats)


async def _crawl(
    client: httpx.AsyncClient,
    options: CheckOptions,
    seed_url: str,
    seed_host: str,
    *,
    max_depth: int,
    max_pages: int,
    include_subdomains: bool,
    concurrency: int,
) -> List[CheckResult]:
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def visit(target: str) -> CheckResult:
        async with semaphore:
            try:
                return await check_url_async(target, options, client=client)
            except Exception as exc:
                LOGGER.warning("Failed to check %s: %s", target, exc)
                return CheckResult(
                    request_url=target,
                    status=DEAD,
                    messages=[fetch_failed(target, exc)],
                )

    results: List[CheckResult] = []
    seen: Set[str] = {seed_url}
    frontier = [seed_url]
    depth = 0

    while frontier and len(results) < max_pages:
        level = frontier[: max_pages - len(results)]
        checked = await asyncio.gather(*(visit(target) for target in level))
        LOGGER.debug("Checked %d URL(s) at depth %d", len(checked), depth)

        next_frontier: List[str] = []
        for result in checked:
            results.append(result)
            if depth >= max_depth or not result.is_alive or not result.urls:
                continue
            if not _in_scope(result.url or "", seed_host, include_subdomains):
                continue
            for found in sorted(result.urls):
                if found in seen or not is_web_url(found):
                    continue
                seen.add(found)
                next_frontier.append(found)

        frontier = next_frontier
        depth += 1

    if frontier:
        LOGGER.info("Reached page limit of %d", max_pages)

    return results


def check_site(
    url: str,
    *,
    max_depth: int = 1,
    max_pages: int = 25,
    include_subdomains: bool = False,
    options: Optional[CheckOptions] = None,
    concurrency: int = 8,
) -> SiteCheckResult:
    """Synchronous wrapper for check_site_async."""
    return asyncio.run(
        check_site_async(
            url,
            max_depth=max_depth,
            max_pages=max_pages,
            include_subdomains=include_subdomains,
            options=options,
            concurrency=concurrency,
        )
    )
