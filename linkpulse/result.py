"""Data structures describing the outcome of a check."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .messages import Diagnostic

ALIVE = "alive"
DEAD = "dead"


@dataclass(slots=True)
class CheckResult:
    """Whether a URL is alive, where it ends up, and what was noticed."""

    request_url: str
    status: str  # alive, dead
    url: Optional[str] = None
    permanent: Optional[bool] = None
    messages: List[Diagnostic] = field(default_factory=list)
    urls: Optional[Set[str]] = None

    @property
    def is_alive(self) -> bool:
        return self.status == ALIVE

    @property
    def fatal(self) -> Optional[Diagnostic]:
        """The diagnostic that made the URL dead, if any."""
        if self.messages and self.messages[0].fatal:
            return self.messages[0]
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "request_url": self.request_url,
            "status": self.status,
            "url": self.url,
            "permanent": self.permanent,
            "messages": [message.to_dict() for message in self.messages],
            "urls": sorted(self.urls) if self.urls is not None else None,
        }
