"""
Filter engine: projects a RangeDocument onto a region and IP version.
"""
from __future__ import annotations

from typing import Iterable, List

from models.regions import IpVersion, Region
from models.schemas import PrefixEntry, RangeDocument


def matches_version(entry: PrefixEntry, ip_version: IpVersion) -> bool:
    if ip_version is IpVersion.ALL:
        return True
    if ip_version is IpVersion.IPV4:
        return entry.ipv4Prefix is not None
    return entry.ipv6Prefix is not None


def project(document: RangeDocument, region: Region, ip_version: IpVersion) -> List[str]:
    """
    Matching prefixes in document order, without dedup or sorting.

    Entries lacking a scope or both prefixes are skipped. An entry that
    passes carries its IPv4 prefix when it has one, else its IPv6 prefix.
    """
    prefixes: List[str] = []
    for entry in document.prefixes:
        if not entry.usable:
            continue
        if region.matches(entry.scope) and matches_version(entry, ip_version):
            prefixes.append(entry.prefix)
    return prefixes


def render(prefixes: Iterable[str]) -> str:
    return "\n".join(prefixes)
