"""Find the URLs an HTML document refers to."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Set, Tuple

from bs4 import BeautifulSoup

from .urls import resolve_url

LOGGER = logging.getLogger(__name__)

# Attributes that hold URLs, mapped to the elements they do so on.
# ``None`` means the attribute holds a URL on any element.
URL_ATTRIBUTES: Dict[str, Optional[Tuple[str, ...]]] = {
    "action": ("form",),
    "cite": ("blockquote", "del", "ins", "q"),
    "data": ("object",),
    "formaction": ("button", "input"),
    "href": ("a", "area", "base", "link"),
    "icon": ("menuitem",),
    "itemid": None,
    "manifest": ("html",),
    "ping": ("a", "area"),
    "poster": ("video",),
    "src": (
        "audio",
        "embed",
        "iframe",
        "img",
        "input",
        "script",
        "source",
        "track",
        "video",
    ),
}

# Attributes whose value is a space-separated list of URLs.
URL_LIST_ATTRIBUTES = frozenset({"ping"})


def is_url_attribute(tag_name: str, attribute: str) -> bool:
    """Whether *attribute* on a *tag_name* element carries a URL."""
    if attribute not in URL_ATTRIBUTES:
        return False
    tag_names = URL_ATTRIBUTES[attribute]
    return tag_names is None or tag_name in tag_names


def find_urls(tree: BeautifulSoup, base: str) -> Set[str]:
    """Collect every URL in *tree*, resolved against *base*.

    Values that are not valid URLs are skipped: they are usually authoring
    mistakes in the page, not something that makes the page itself dead.
    """
    urls: Set[str] = set()

    for node in tree.find_all(True):
        for attribute, value in node.attrs.items():
            if not is_url_attribute(node.name, attribute):
                continue
            for raw in _attribute_values(attribute, value):
                try:
                    urls.add(resolve_url(raw, base))
                except ValueError:
                    LOGGER.debug("Skipping invalid URL %r on <%s>", raw, node.name)

    return urls


def _attribute_values(attribute: str, value: object) -> Iterable[str]:
    if isinstance(value, (list, tuple)):
        values = [str(item) for item in value]
    else:
        values = [str(value)]
    if attribute in URL_LIST_ATTRIBUTES:
        return [token for item in values for token in item.split()]
    return values
