#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Range Fetcher

- Downloads the provider's published IP range document with aiohttp
- Validates it into a RangeDocument
- Classifies failures as connection, malformed-response or other errors
- Logs fetch activity to logs/fetcher.log
"""

import asyncio
from typing import Optional

import aiohttp
from pydantic import ValidationError

from models.schemas import RangeDocument
from utils.logger import get_logger, log_metric, log_stage

DEFAULT_RANGES_PATH = "/ipranges/cloud.json"


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------
class FetchError(Exception):
    """Base class for upstream fetch failures. `cause` holds the underlying text."""

    def __init__(self, cause: str = ""):
        super().__init__(cause)
        self.cause = cause


class ConnectionFailure(FetchError):
    """Transport-level failure: timeout, refused connection, DNS, reset."""


class MalformedResponse(FetchError):
    """Empty body, or JSON that does not match the range document schema."""


class OtherFailure(FetchError):
    """Any other failure raised while fetching (HTTP status, undecodable body, ...)."""


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


# ----------------------------------------------------------------------
# Fetcher
# ----------------------------------------------------------------------
class RangeFetcher:
    """
    Fetch-only component for a single provider document.
    Returns a RangeDocument or raises a FetchError subclass.
    """

    def __init__(
        self,
        base_url: str,
        path: str = DEFAULT_RANGES_PATH,
        timeout: float = 5,
        log_level: str = "INFO",
    ):
        self.url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self.timeout_seconds = timeout
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = get_logger("fetcher", log_level, "fetcher.log")

    async def _download(self) -> Optional[object]:
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.get(self.url) as resp:
                resp.raise_for_status()
                # content_type=None: the provider does not always label the body as JSON
                return await resp.json(content_type=None)

    async def fetch(self) -> RangeDocument:
        self.logger.debug("Fetching range document: %s", self.url)
        try:
            with log_stage(self.logger, "upstream_fetch"):
                payload = await self._download()
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            cause = str(e) or f"Timed out after {self.timeout_seconds}s"
            self.logger.error("Connection failure fetching %s: %s", self.url, cause)
            raise ConnectionFailure(cause) from e
        except Exception as e:
            self.logger.error("Failed to fetch %s: %s", self.url, e, exc_info=True)
            raise OtherFailure(_describe(e)) from e

        if payload is None:
            self.logger.warning("Empty response body from %s", self.url)
            raise MalformedResponse("empty response body")

        try:
            document = RangeDocument.model_validate(payload)
        except ValidationError as e:
            self.logger.warning("Malformed range document from %s: %s", self.url, e)
            raise MalformedResponse(_describe(e)) from e

        self.logger.info(
            "Fetched %d prefix entries (syncToken=%s, creationTime=%s)",
            len(document.prefixes),
            document.syncToken,
            document.creationTime,
        )
        log_metric(self.logger, "prefixes_fetched", len(document.prefixes), stage="fetch")
        return document
