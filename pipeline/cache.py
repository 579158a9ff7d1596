#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Range Document Cache

- Holds the last successfully fetched RangeDocument and when it was fetched
- Serves it while younger than the refresh interval, refetches lazily otherwise
- A failed refetch propagates its FetchError and leaves the cached state as is

Concurrency: requests share one cache instance. Without single_flight, two
requests that both see an expired document may both fetch and both store
their result. Documents are replaced whole and each request keeps its own
reference, so this only costs a duplicate upstream call at the boundary.
With single_flight, refreshes are serialised and freshness is re-checked
once the lock is held.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from models.schemas import RangeDocument
from pipeline.fetcher import RangeFetcher
from utils.logger import get_logger, log_metric

DEFAULT_REFRESH_INTERVAL = 3600.0


class RangeDocumentCache:
    def __init__(
        self,
        fetcher: RangeFetcher,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        single_flight: bool = False,
        log_level: str = "INFO",
    ) -> None:
        self.fetcher = fetcher
        self.refresh_interval = refresh_interval
        self.clock = clock
        self.single_flight = single_flight
        self.logger = get_logger("cache", log_level, "cache.log")

        self._last_document: Optional[RangeDocument] = None
        self._last_fetched_at: Optional[float] = None
        self._refresh_lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def last_document(self) -> Optional[RangeDocument]:
        return self._last_document

    @property
    def last_fetched_at(self) -> Optional[float]:
        return self._last_fetched_at

    def is_fresh(self, now: float) -> bool:
        return (
            self._last_document is not None
            and self._last_fetched_at is not None
            and now - self._last_fetched_at < self.refresh_interval
        )

    async def get_document(self, now: Optional[float] = None) -> RangeDocument:
        """
        Return a document no older than the refresh interval.

        Raises the fetcher's FetchError when a refresh is needed and fails.
        """
        if now is None:
            now = self.clock()

        document = self._last_document
        if document is not None and self.is_fresh(now):
            self.logger.debug("Serving cached range document (age=%.1fs)", now - self._last_fetched_at)
            log_metric(self.logger, "cache_hit", 1, stage="cache")
            return document

        if not self.single_flight:
            return await self._refresh(now)

        # asyncio.Lock binds to the loop that first waits on it
        loop = asyncio.get_running_loop()
        if self._refresh_lock is None or self._lock_loop is not loop:
            self._refresh_lock, self._lock_loop = asyncio.Lock(), loop
        async with self._refresh_lock:
            document = self._last_document
            if document is not None and self.is_fresh(now):
                self.logger.debug("Range document refreshed by a concurrent request")
                return document
            return await self._refresh(now)

    async def _refresh(self, now: float) -> RangeDocument:
        if self._last_document is None:
            self.logger.info("Cache empty; fetching range document")
        else:
            self.logger.info("Cached range document expired; refetching")
        log_metric(self.logger, "cache_miss", 1, stage="cache")

        document = await self.fetcher.fetch()
        self._last_document, self._last_fetched_at = document, now
        return document
