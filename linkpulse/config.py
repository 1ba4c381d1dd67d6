"""Options for checking URLs, with their defaults."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Pattern, Sequence, Tuple, Union

LOGGER = logging.getLogger(__name__)

PatternLike = Union[str, Pattern[str]]
AnchorAllow = Tuple[PatternLike, PatternLike]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36"
)

# Text fragments (`#:~:text=...`) scroll to text, not to an element,
# so they are allowed on every URL.
DEFAULT_ANCHOR_ALLOWLIST: Tuple[AnchorAllow, ...] = ((".", "^:~:"),)


def default_sleep(retries: int) -> float:
    """Milliseconds to wait before retry number *retries*.

    Defined as ``retries ** 3 * 1000``: 1s, 8s, 27s, and so on.
    """
    return retries**3 * 1000


@dataclass
class CheckOptions:
    """Configuration for one check.

    Attributes:
        anchor_allowlist: Pairs of (URL pattern, fragment pattern). When the
            URL pattern matches the final URL (origin and path) and the
            fragment pattern matches the fragment, the fragment is accepted
            without looking for an element.
        check_anchor: Check that fragments point to elements.
        find_urls: Collect the URLs used in the final HTML document.
        follow_meta_http_equiv: Follow ``meta[http-equiv=refresh]`` redirects.
        max_redirects: Maximum redirects to follow, inclusive.
        max_retries: Maximum retries on flaky failures, inclusive.
        resolve_clobber_prefix: Accept ``user-content-`` prefixed ids.
        sleep: Milliseconds to wait before a given retry.
        timeout: Milliseconds to wait for a response.
        user_agent: ``User-Agent`` header to send.
        headers: Extra request headers (e.g. ``Authorization``).
    """

    anchor_allowlist: Sequence[AnchorAllow] = DEFAULT_ANCHOR_ALLOWLIST
    check_anchor: bool = True
    find_urls: bool = True
    follow_meta_http_equiv: bool = True
    max_redirects: int = 5
    max_retries: int = 1
    resolve_clobber_prefix: bool = True
    sleep: Callable[[int], float] = default_sleep
    timeout: float = 3000
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_redirects < 0:
            raise ValueError(f"max_redirects must be >= 0, got {self.max_redirects}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        self.anchor_allowlist = tuple(
            (re.compile(url_pattern), re.compile(fragment_pattern))
            for url_pattern, fragment_pattern in self.anchor_allowlist
        )


@dataclass
class OptionOverrides:
    """Optional overrides, e.g. from CLI flags or tool arguments."""

    check_anchor: Optional[bool] = None
    find_urls: Optional[bool] = None
    follow_meta_http_equiv: Optional[bool] = None
    max_redirects: Optional[int] = None
    max_retries: Optional[int] = None
    resolve_clobber_prefix: Optional[bool] = None
    timeout: Optional[float] = None
    user_agent: Optional[str] = None
    extra_anchor_allowlist: Sequence[AnchorAllow] = field(default_factory=tuple)


def apply_overrides(options: CheckOptions, overrides: OptionOverrides) -> CheckOptions:
    """Return a copy of *options* with the set *overrides* applied."""
    changes: Dict[str, object] = {
        name: value
        for name, value in (
            ("check_anchor", overrides.check_anchor),
            ("find_urls", overrides.find_urls),
            ("follow_meta_http_equiv", overrides.follow_meta_http_equiv),
            ("max_redirects", overrides.max_redirects),
            ("max_retries", overrides.max_retries),
            ("resolve_clobber_prefix", overrides.resolve_clobber_prefix),
            ("timeout", overrides.timeout),
            ("user_agent", overrides.user_agent),
        )
        if value is not None
    }
    if overrides.extra_anchor_allowlist:
        changes["anchor_allowlist"] = (
            *options.anchor_allowlist,
            *overrides.extra_anchor_allowlist,
        )
    return replace(options, **changes)


_NUMERIC_ENV_VARS = (
    ("LINKPULSE_TIMEOUT", "timeout", float),
    ("LINKPULSE_MAX_REDIRECTS", "max_redirects", int),
    ("LINKPULSE_MAX_RETRIES", "max_retries", int),
)

ENV_VARIABLES = frozenset(
    [name for name, _, _ in _NUMERIC_ENV_VARS] + ["LINKPULSE_USER_AGENT"]
)


def load_options_from_env(base: Optional[CheckOptions] = None) -> CheckOptions:
    """Build options from environment variables, read at call time.

    Supported variables:
        LINKPULSE_TIMEOUT: Request timeout in milliseconds.
        LINKPULSE_MAX_REDIRECTS: Maximum redirects to follow.
        LINKPULSE_MAX_RETRIES: Maximum retries.
        LINKPULSE_USER_AGENT: User agent to send.

    Malformed numbers are logged and ignored.
    """
    overrides = OptionOverrides()

    for env_name, attribute, convert in _NUMERIC_ENV_VARS:
        raw = os.environ.get(env_name)
        if not raw:
            continue
        try:
            setattr(overrides, attribute, convert(raw))
        except ValueError:
            LOGGER.warning("Ignoring invalid %s=%r", env_name, raw)

    user_agent = os.environ.get("LINKPULSE_USER_AGENT")
    if user_agent:
        overrides.user_agent = user_agent

    return apply_overrides(base or CheckOptions(), overrides)
