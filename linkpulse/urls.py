"""URL helpers shared by the resolver, the refresh parser and discovery.

All URLs handled by linkpulse are absolute strings in a normalised form:
lowercase scheme and host, default ports dropped, and an empty path on
hierarchical web schemes replaced by ``/`` (``https://example.com`` becomes
``https://example.com/``).
"""

from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

import httpx

SPECIAL_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp", "file"})
DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}
WEB_SCHEMES = ("http", "https")

# Characters a host may never contain (WHATWG "forbidden host code points").
FORBIDDEN_HOST_CHARS = frozenset(" #/<>?@[\\]^|")


def normalize_url(value: str) -> str:
    """Return *value* as a normalised absolute URL.

    Raises:
        ValueError: If *value* is not an absolute, parsable URL.
    """
    parts = urlsplit(value.strip())
    scheme = parts.scheme.lower()
    if not scheme:
        raise ValueError(f"Not an absolute URL: {value!r}")

    netloc = parts.netloc
    path = parts.path
    if scheme in SPECIAL_SCHEMES:
        if scheme != "file" and not parts.hostname:
            raise ValueError(f"Missing host in URL: {value!r}")
        _check_host(value, parts.hostname)
        netloc = _normalize_netloc(scheme, netloc, parts.hostname, parts.port)
        if not path:
            path = "/"

    normalized = urlunsplit((scheme, netloc, path, parts.query, parts.fragment))
    if scheme in WEB_SCHEMES:
        try:
            httpx.URL(normalized)
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid URL {value!r}: {exc}") from exc
    return normalized


def _check_host(value: str, hostname: Optional[str]) -> None:
    if not hostname or ":" in hostname:
        return
    if any(
        char in FORBIDDEN_HOST_CHARS or ord(char) < 0x20 or ord(char) == 0x7F
        for char in hostname
    ):
        raise ValueError(f"Forbidden character in host of URL: {value!r}")


def _normalize_netloc(
    scheme: str, netloc: str, hostname: Optional[str], port: Optional[int]
) -> str:
    host = hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"
    userinfo, at, _ = netloc.rpartition("@")
    return f"{userinfo}@{host}" if at else host


def resolve_url(reference: str, base: str) -> str:
    """Resolve *reference* against *base* and normalise the result.

    Raises:
        ValueError: If either URL cannot be parsed.
    """
    return normalize_url(urljoin(base, reference.strip()))


def split_fragment(url: str) -> Tuple[str, str]:
    """Split *url* into the URL without its fragment and the fragment text."""
    parts = urlsplit(url)
    return urlunsplit(parts._replace(fragment="")), parts.fragment


def fragment_of(url: str) -> str:
    """Fragment of *url* without the leading ``#`` (empty when absent)."""
    return urlsplit(url).fragment


def with_fragment(url: str, fragment: str) -> str:
    """Replace the fragment of *url*; an empty *fragment* removes it."""
    base, _ = split_fragment(url)
    return f"{base}#{fragment}" if fragment else base


def origin_and_path(url: str) -> str:
    """``scheme://host/path`` of *url*, without search or fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def is_web_url(url: str) -> bool:
    return urlsplit(url).scheme in WEB_SCHEMES
