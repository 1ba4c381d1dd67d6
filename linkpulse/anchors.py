"""Index of the elements a URL fragment can point to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from bs4 import BeautifulSoup, Tag

# Prefix used by sites such as GitHub to namespace user-supplied ids,
# which guards against DOM clobbering.
CLOBBER_PREFIX = "user-content-"


@dataclass(slots=True)
class Anchor:
    """Elements that own one anchor name, by kind."""

    system_id: Optional[Tag] = None
    system_name: Optional[Tag] = None
    user_id: Optional[Tag] = None
    user_name: Optional[Tag] = None

    @property
    def node(self) -> Optional[Tag]:
        """The owning element; ``id`` wins over ``name``, system over user."""
        return self.system_id or self.system_name or self.user_id or self.user_name


def build_anchor_index(
    tree: BeautifulSoup, resolve_clobber_prefix: bool = True
) -> Dict[str, Anchor]:
    """Map every anchor name in *tree* to the elements that define it.

    Any element with an ``id`` defines an anchor, and so does an ``a``
    element with a ``name``. When *resolve_clobber_prefix* is on, values
    starting with ``user-content-`` are stored without the prefix as
    user anchors.
    """
    index: Dict[str, Anchor] = {}

    for node in tree.find_all(True):
        value = node.get("id")
        if value:
            _record(index, "id", str(value), node, resolve_clobber_prefix)

        # Keep going: an `a` can carry both.
        if node.name == "a":
            value = node.get("name")
            if value:
                _record(index, "name", str(value), node, resolve_clobber_prefix)

    return index


def _record(
    index: Dict[str, Anchor],
    kind: str,
    value: str,
    node: Tag,
    resolve_clobber_prefix: bool,
) -> None:
    owner = "system"
    if resolve_clobber_prefix and value.startswith(CLOBBER_PREFIX):
        value = value[len(CLOBBER_PREFIX) :]
        owner = "user"

    anchor = index.setdefault(value, Anchor())
    setattr(anchor, f"{owner}_{kind}", node)
