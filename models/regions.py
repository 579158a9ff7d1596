"""
Region catalog and IP version selector used to filter provider prefixes.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple


class Region(Enum):
    """
    Geographic region with the scope tokens that select it.

    A provider scope belongs to a region when it contains any of the
    region's tokens as a substring. ALL matches every scope and its token
    is never consulted.
    """

    EU = ("europe",)
    US = ("us-central", "us-east", "us-west", "us")
    ME = ("me-",)
    NA = ("northamerica",)
    SA = ("southamerica",)
    AS = ("asia",)
    AF = ("africa",)
    AUS = ("australia",)
    GL = ("global",)
    ALL = ("all",)

    def __init__(self, *scopes: str) -> None:
        self.scopes: Tuple[str, ...] = scopes

    @classmethod
    def from_name(cls, name: str) -> Optional["Region"]:
        """Case-insensitive exact lookup, e.g. "eu", "US", "all"."""
        if not name:
            return None
        return cls.__members__.get(name.upper())

    def matches(self, scope: str) -> bool:
        if self is Region.ALL:
            return True
        scope = scope.lower()
        return any(token in scope for token in self.scopes)


class IpVersion(str, Enum):
    ALL = "all"
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @classmethod
    def from_name(cls, name: str) -> Optional["IpVersion"]:
        if not name:
            return None
        try:
            return cls(name.lower())
        except ValueError:
            return None
