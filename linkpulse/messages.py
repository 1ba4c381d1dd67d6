"""Diagnostics produced while checking a URL.

Every diagnostic has a rule id from a fixed vocabulary, a human readable
reason and a fatal flag. Fatal diagnostics end a check (the URL is dead);
the others are warnings attached to the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, metadata
from pathlib import Path
from typing import Any, Dict, Optional

SOURCE = "linkpulse"


def _documentation_url() -> str:
    """Absolute URL of the rule documentation.

    Uses the ``Documentation`` project URL of the installed distribution and
    falls back to the README shipped next to the package.
    """
    try:
        project_urls = metadata(SOURCE).get_all("Project-URL") or []
    except PackageNotFoundError:
        project_urls = []
    for entry in project_urls:
        label, _, link = entry.partition(",")
        if label.strip().lower() == "documentation" and link.strip():
            return link.strip()
    return (Path(__file__).resolve().parent.parent / "README.md").as_uri()


DOCUMENTATION_URL = _documentation_url()

# ---------------------------------------------------------------------------
# Rule ids
# ---------------------------------------------------------------------------

FETCH = "fetch"
DEAD = "dead"
MAX_REDIRECT = "max-redirect"
MISSING_ANCHOR = "missing-anchor"
SHARED_DECLARATIVE_REFRESH = "shared-declarative-refresh"
LOST_HASH_WITH_REDIRECT = "lost-hash-with-redirect"
LOST_HASH_WITH_META_HTTP_EQUIV = "lost-hash-with-meta-http-equiv"
LOST_HASH_WITH_NON_HTML = "lost-hash-with-non-html"

FATAL_RULES = frozenset(
    {FETCH, DEAD, MAX_REDIRECT, MISSING_ANCHOR, SHARED_DECLARATIVE_REFRESH}
)
WARNING_RULES = frozenset(
    {LOST_HASH_WITH_REDIRECT, LOST_HASH_WITH_META_HTTP_EQUIV, LOST_HASH_WITH_NON_HTML}
)


@dataclass(slots=True)
class Diagnostic:
    """A classified outcome of a check."""

    rule_id: str
    reason: str
    fatal: bool = False
    cause: Optional[BaseException] = None
    source: str = SOURCE

    @property
    def url(self) -> str:
        """Link to the documentation of this rule."""
        return f"{DOCUMENTATION_URL}#{self.rule_id}"

    def __str__(self) -> str:
        return self.reason

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "rule_id": self.rule_id,
            "reason": self.reason,
            "fatal": self.fatal,
            "source": self.source,
            "url": self.url,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class DeadLinkError(Exception):
    """Raised inside the resolver when a fatal diagnostic ends a check."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.reason)


def fatal(rule_id: str, reason: str, cause: Optional[BaseException] = None) -> DeadLinkError:
    """Build a ``DeadLinkError`` around a new fatal diagnostic."""
    return DeadLinkError(Diagnostic(rule_id=rule_id, reason=reason, fatal=True, cause=cause))


def warning(rule_id: str, reason: str) -> Diagnostic:
    """Build a non-fatal diagnostic."""
    return Diagnostic(rule_id=rule_id, reason=reason)


def fetch_failed(url: str, cause: Optional[BaseException] = None) -> Diagnostic:
    """Diagnostic for a URL that could not be fetched at all."""
    return Diagnostic(
        rule_id=FETCH,
        reason=f"Unexpected error fetching `{url}`",
        fatal=True,
        cause=cause,
    )
