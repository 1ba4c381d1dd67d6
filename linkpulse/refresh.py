"""Parser for the ``content`` of ``meta[http-equiv=refresh]``.

Implements the shared declarative refresh steps from the HTML standard:
<https://html.spec.whatwg.org/multipage/semantics.html#shared-declarative-refresh-steps>.

The delay is consumed but never interpreted; linkpulse only cares about
where a refresh leads.
"""

from __future__ import annotations

from typing import Optional

from .messages import SHARED_DECLARATIVE_REFRESH, fatal
from .urls import resolve_url

ASCII_WHITESPACE = "\t\n\f\r "
ASCII_DIGITS = "0123456789"
QUOTES = ("'", '"')


class _Scanner:
    """Cursor over the ``content`` string."""

    def __init__(self, text: str):
        self.text = text
        self.position = 0

    def at_end(self) -> bool:
        return self.position >= len(self.text)

    def peek(self) -> str:
        return self.text[self.position : self.position + 1]

    def skip(self, characters: str) -> None:
        while not self.at_end() and self.text[self.position] in characters:
            self.position += 1

    def rest(self) -> str:
        return self.text[self.position :]


def extract_refresh_url(content: str) -> Optional[str]:
    """Return the raw URL text of a refresh directive, or None.

    None means *content* is not a redirecting refresh directive (a bare
    delay, no delay at all, or a missing separator).
    """
    scanner = _Scanner(content)
    scanner.skip(ASCII_WHITESPACE)

    start = scanner.position
    scanner.skip(ASCII_DIGITS)
    if scanner.position == start and scanner.peek() != ".":
        return None

    # Fractional part of the delay.
    scanner.skip(ASCII_DIGITS + ".")

    start = scanner.position
    if not scanner.at_end():
        scanner.skip(ASCII_WHITESPACE)
        if scanner.peek() in (",", ";"):
            scanner.position += 1
        scanner.skip(ASCII_WHITESPACE)

    if scanner.position == start or scanner.at_end():
        return None

    url_text = scanner.rest()

    if scanner.peek().lower() != "u":
        return _unquote(scanner)
    scanner.position += 1

    if scanner.peek().lower() != "r":
        return url_text
    scanner.position += 1

    if scanner.peek().lower() != "l":
        return url_text
    scanner.position += 1

    scanner.skip(ASCII_WHITESPACE)
    if scanner.peek() != "=":
        return url_text
    scanner.position += 1

    scanner.skip(ASCII_WHITESPACE)
    return _unquote(scanner)


def _unquote(scanner: _Scanner) -> str:
    quote = scanner.peek()
    if quote in QUOTES:
        scanner.position += 1
    else:
        quote = ""

    url_text = scanner.rest()
    if quote:
        end = url_text.find(quote)
        if end != -1:
            url_text = url_text[:end]
    return url_text


def parse_refresh(content: str, base: str) -> Optional[str]:
    """Resolve the target of a refresh directive against *base*.

    Args:
        content: Value of the ``content`` attribute.
        base: URL of the document the ``meta`` element is in.

    Returns:
        The absolute target URL, or None if *content* does not redirect.

    Raises:
        DeadLinkError: If the directive names a URL that cannot be parsed.
    """
    url_text = extract_refresh_url(content)
    if url_text is None:
        return None

    try:
        return resolve_url(url_text, base)
    except ValueError as exc:
        raise fatal(
            SHARED_DECLARATIVE_REFRESH,
            f"Unexpected invalid URL `{url_text}` in `content` on "
            f"`meta[http-equiv=refresh] relative to `{base}`",
            cause=exc,
        ) from exc
