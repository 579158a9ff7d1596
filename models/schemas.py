"""
Pydantic schemas for the provider's published range document.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PrefixEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    scope: Optional[str] = Field(None, description="Provider scope, e.g. 'us-central1'")
    ipv4Prefix: Optional[str] = Field(None, description="IPv4 CIDR block")
    ipv6Prefix: Optional[str] = Field(None, description="IPv6 CIDR block")

    @property
    def usable(self) -> bool:
        return self.scope is not None and (
            self.ipv4Prefix is not None or self.ipv6Prefix is not None
        )

    @property
    def prefix(self) -> Optional[str]:
        return self.ipv4Prefix if self.ipv4Prefix is not None else self.ipv6Prefix


class RangeDocument(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    prefixes: List[PrefixEntry] = Field(
        ..., description="Published prefix records, in provider order"
    )
    syncToken: Optional[Any] = Field(None, description="Provider publication token")
    creationTime: Optional[Any] = Field(None, description="Provider publication timestamp")
