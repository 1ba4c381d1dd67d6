"""Check whether a URL is dead or alive.

The resolver fetches a URL and follows it to where it ends up:

- HTTP redirects (handled here, not by httpx, so the redirect limit and
  the lost-hash warnings apply)
- HTML redirects through ``meta[http-equiv=refresh]``
- fragments, which must name an element in the final HTML document

Flaky failures (network errors, timeouts, server errors) are retried with
a backoff. Client errors (4xx) are never retried.

Example usage:

    from linkpulse import CheckOptions, check_url_async

    result = await check_url_async("https://example.com/#intro")
    if result.is_alive:
        print(result.url, result.permanent)
    else:
        print(result.messages[0].reason)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Set, Union
from urllib.parse import unquote

import httpx
from bs4 import BeautifulSoup

from .anchors import Anchor, build_anchor_index
from .config import CheckOptions
from .discovery import find_urls
from .messages import (
    DEAD,
    LOST_HASH_WITH_META_HTTP_EQUIV,
    LOST_HASH_WITH_NON_HTML,
    LOST_HASH_WITH_REDIRECT,
    MAX_REDIRECT,
    MISSING_ANCHOR,
    DeadLinkError,
    Diagnostic,
    fatal,
    fetch_failed,
    warning,
)
from .refresh import parse_refresh
from .result import ALIVE
from .result import DEAD as DEAD_STATUS
from .result import CheckResult
from .suggest import format_disjunction, propose
from .urls import (
    fragment_of,
    normalize_url,
    origin_and_path,
    resolve_url,
    split_fragment,
    with_fragment,
)

LOGGER = logging.getLogger(__name__)

ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.9"
PERMANENT_REDIRECT_STATUSES = frozenset({301, 308})
REFRESH_SELECTOR = 'meta[http-equiv="refresh" i]'
HTML_PARSER = "html.parser"

TRANSPORT_ERRORS = (httpx.RequestError, httpx.InvalidURL, asyncio.TimeoutError)

URLInput = Union[str, httpx.URL]


@dataclass
class _ResolutionState:
    """Bookkeeping for one top-level check."""

    options: CheckOptions
    redirects: int = 0
    retries: int = 0
    permanent: Optional[bool] = None
    messages: List[Diagnostic] = field(default_factory=list)
    urls: Optional[Set[str]] = None


class _Step(NamedTuple):
    """What to do after a response: follow, retry, or stop at ``url``."""

    action: str
    url: str


FOLLOW = "follow"
RETRY = "retry"
DONE = "done"


def build_client(**kwargs) -> httpx.AsyncClient:
    """Create the HTTP client used for checks.

    Redirects are never followed by httpx. Timeouts are enforced per request
    by the resolver instead of by the client.
    """
    kwargs.setdefault("follow_redirects", False)
    kwargs.setdefault("timeout", None)
    return httpx.AsyncClient(**kwargs)


async def check_url_async(
    url: URLInput,
    options: Optional[CheckOptions] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> CheckResult:
    """Check if a URL is dead or alive.

    To speed things up, decrease ``max_retries`` and/or the ``sleep``
    function: by default flaky connections are retried after a second.
    When ``check_anchor``, ``find_urls`` and ``follow_meta_http_equiv`` are
    all off, HTML bodies are never downloaded or parsed.

    Args:
        url: Absolute URL to check.
        options: Optional CheckOptions; defaults are used when omitted.
        client: Optional httpx.AsyncClient to send requests with. When
            omitted, one is created for this check and closed afterwards.

    Returns:
        CheckResult: ``alive`` with the final URL, or ``dead`` with the
        fatal diagnostic as its first message. A *url* that is not an
        absolute URL is ``dead`` with a ``fetch`` diagnostic.
    """
    settings = options or CheckOptions()
    request_url = str(url)
    state = _ResolutionState(options=settings)

    try:
        request_url = _input_url(request_url)
        if client is None:
            async with build_client() as owned_client:
                final_url = await _resolve(state, owned_client, request_url)
        else:
            final_url = await _resolve(state, client, request_url)
    except DeadLinkError as exc:
        LOGGER.info("Dead: %s (%s)", request_url, exc.diagnostic.rule_id)
        return CheckResult(
            request_url=request_url,
            status=DEAD_STATUS,
            url=None,
            permanent=state.permanent,
            messages=[exc.diagnostic, *state.messages],
            urls=state.urls,
        )

    LOGGER.info("Alive: %s -> %s", request_url, final_url)
    return CheckResult(
        request_url=request_url,
        status=ALIVE,
        url=final_url,
        permanent=state.permanent,
        messages=state.messages,
        urls=state.urls,
    )


def _input_url(value: str) -> str:
    try:
        return normalize_url(value)
    except ValueError as exc:
        LOGGER.debug("Invalid URL %r: %s", value, exc)
        raise DeadLinkError(fetch_failed(value, exc)) from exc


def check_url(
    url: URLInput,
    options: Optional[CheckOptions] = None,
) -> CheckResult:
    """Synchronous wrapper for check_url_async."""
    return asyncio.run(check_url_async(url, options))


async def _resolve(
    state: _ResolutionState, client: httpx.AsyncClient, url: str
) -> str:
    """Follow *url* hop by hop until it settles; return the final URL."""
    options = state.options

    while True:
        if state.redirects > options.max_redirects:
            raise fatal(
                MAX_REDIRECT, f"Unexpected redirect to `{url}`, too many redirects"
            )

        try:
            response = await _fetch(options, client, url)
            try:
                step = await _handle_response(state, url, response)
            finally:
                await response.aclose()
        except TRANSPORT_ERRORS as exc:
            if state.retries < options.max_retries:
                LOGGER.debug("Fetching %s failed: %r", url, exc)
                await _backoff(state, url)
                continue
            raise DeadLinkError(fetch_failed(url, exc)) from exc

        if step.action == RETRY:
            await _backoff(state, url)
        elif step.action == FOLLOW:
            LOGGER.debug("Following %s -> %s", url, step.url)
            state.redirects += 1
            # Each hop gets a fresh retry budget.
            state.retries = 0
            url = step.url
        else:
            return step.url


async def _fetch(
    options: CheckOptions, client: httpx.AsyncClient, url: str
) -> httpx.Response:
    """Send one GET for *url*; only waiting for the response is timed."""
    headers = {
        "Accept": ACCEPT,
        "Accept-Encoding": "gzip",
        "Accept-Language": ACCEPT_LANGUAGE,
        "Upgrade-Insecure-Requests": "1",
        "User-Agent": options.user_agent,
        **options.headers,
    }
    address, _ = split_fragment(url)
    request = client.build_request("GET", address, headers=headers)
    LOGGER.debug("GET %s", address)
    return await asyncio.wait_for(
        client.send(request, stream=True, follow_redirects=False),
        timeout=options.timeout / 1000,
    )


async def _backoff(state: _ResolutionState, url: str) -> None:
    state.retries += 1
    delay = state.options.sleep(state.retries)
    LOGGER.info(
        "Retrying %s in %dms (retry %d/%d)",
        url,
        delay,
        state.retries,
        state.options.max_retries,
    )
    await asyncio.sleep(delay / 1000)


def _response_url(response: httpx.Response) -> str:
    address, _ = split_fragment(normalize_url(str(response.url)))
    return address


def _media_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


async def _handle_response(
    state: _ResolutionState, url: str, response: httpx.Response
) -> _Step:
    options = state.options
    status = response.status_code

    if 300 <= status < 400:
        target = _redirect_target(url, response)
        if target is not None:
            if status in PERMANENT_REDIRECT_STATUSES:
                if state.permanent is None:
                    state.permanent = True
            else:
                state.permanent = False

            if fragment_of(url):
                state.messages.append(
                    warning(
                        LOST_HASH_WITH_REDIRECT,
                        f"Unexpected hash in URL `{url}` that redirects to "
                        f"`{target}` losing the hash, remove the hash from the "
                        "original URL",
                    )
                )
            return _Step(FOLLOW, target)

    if not response.is_success:
        # When the server says the client is wrong, trying again won't help.
        if state.retries < options.max_retries and (status < 400 or status >= 500):
            return _Step(RETRY, url)

        raise fatal(
            DEAD,
            f"Unexpected not ok response `{status}` (`{response.reason_phrase}`) "
            f"on `{_response_url(response)}`",
        )

    content_type = response.headers.get("content-type")
    if _media_type(content_type) == "text/html":
        return await _handle_html(state, url, response)

    return _Step(DONE, _handle_other(state, url, response, content_type))


def _redirect_target(url: str, response: httpx.Response) -> Optional[str]:
    location = response.headers.get("location")
    if not location:
        return None
    try:
        return resolve_url(location, url)
    except ValueError:
        LOGGER.warning("Ignoring invalid Location %r on %s", location, url)
        return None


async def _handle_html(
    state: _ResolutionState, url: str, response: httpx.Response
) -> _Step:
    options = state.options
    fragment = fragment_of(url)
    response_url = _response_url(response)

    if not (
        (options.check_anchor and fragment)
        or options.find_urls
        or options.follow_meta_http_equiv
    ):
        return _Step(DONE, response_url)

    await response.aread()
    tree = BeautifulSoup(response.text, HTML_PARSER)

    if options.follow_meta_http_equiv:
        target = _refresh_target(tree, response_url)
        if target is not None:
            if options.check_anchor and fragment:
                state.messages.append(
                    warning(
                        LOST_HASH_WITH_META_HTTP_EQUIV,
                        f"Unexpected hash in URL `{url}` that redirects with "
                        f"`meta[http-equiv=refresh] to `{target}` losing the "
                        "hash, remove the hash from the original URL",
                    )
                )
            # HTML redirects are never permanent.
            state.permanent = False
            return _Step(FOLLOW, target)

    if options.find_urls:
        state.urls = find_urls(tree, url)

    if not (options.check_anchor and fragment):
        return _Step(DONE, with_fragment(response_url, fragment))

    result = with_fragment(response_url, fragment)
    if _is_allowed_anchor(options, response_url, fragment):
        return _Step(DONE, result)

    anchors = build_anchor_index(tree, options.resolve_clobber_prefix)
    anchor = _lookup_anchor(anchors, fragment)
    if anchor is not None and anchor.node is not None:
        return _Step(DONE, result)

    proposals = format_disjunction(
        f"`{name}`" for name in propose(fragment, list(anchors))
    )
    raise fatal(
        MISSING_ANCHOR,
        f"Unexpected missing anchor element on `{response_url}` for fragment "
        f"`{fragment}`, remove if unneeded or refer to an existing element"
        + (f" such as {proposals}" if proposals else ""),
    )


def _refresh_target(tree: BeautifulSoup, response_url: str) -> Optional[str]:
    meta = tree.select_one(REFRESH_SELECTOR)
    if meta is None:
        return None
    content = meta.get("content")
    if not content:
        return None
    # Raises a fatal diagnostic for invalid URLs in the directive.
    return parse_refresh(str(content), response_url)


def _is_allowed_anchor(options: CheckOptions, response_url: str, fragment: str) -> bool:
    base = origin_and_path(response_url)
    return any(
        url_pattern.search(base) and fragment_pattern.search(fragment)
        for url_pattern, fragment_pattern in options.anchor_allowlist
    )


def _lookup_anchor(anchors: dict, fragment: str) -> Optional[Anchor]:
    anchor = anchors.get(fragment)
    if anchor is None:
        decoded = unquote(fragment)
        if decoded != fragment:
            anchor = anchors.get(decoded)
    return anchor


def _handle_other(
    state: _ResolutionState,
    url: str,
    response: httpx.Response,
    content_type: Optional[str],
) -> str:
    if state.options.check_anchor and fragment_of(url):
        state.messages.append(
            warning(
                LOST_HASH_WITH_NON_HTML,
                f"Unexpected hash in URL `{url}` to non-html "
                f"(`{content_type or 'unknown'}`) losing the hash, remove the "
                "hash from the original URL",
            )
        )
    return _response_url(response)
