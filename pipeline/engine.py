# engine.py
from __future__ import annotations

from typing import Optional

from models.regions import IpVersion, Region
from pipeline.cache import RangeDocumentCache
from pipeline.fetcher import ConnectionFailure, FetchError, MalformedResponse, RangeFetcher
from pipeline.filters import project, render
from utils.config_loader import ServiceSettings, load_settings
from utils.logger import get_logger, log_metric, log_stage

MALFORMED_RESPONSE_MESSAGE = "Malformed or empty response from GCP"


def describe_failure(error: FetchError) -> str:
    """User-facing text for a fetch failure."""
    if isinstance(error, ConnectionFailure):
        return f"Connection error: {error.cause}"
    if isinstance(error, MalformedResponse):
        return MALFORMED_RESPONSE_MESSAGE
    return f"Could not fetch IP ranges: {error.cause}"


# ----------------------------------------------------------------------
# Service
# ----------------------------------------------------------------------
class IpRangeService:
    """
    Resolves filtered IP ranges:
      cache (fetch when stale) -> filter -> newline-joined text
    Upstream failures are returned as messages, never raised.
    """

    def __init__(self, cache: RangeDocumentCache, log_level: str = "INFO"):
        self.cache = cache
        self.logger = get_logger("engine.service", log_level, "engine.log")

    async def get_ip_ranges(self, region: Region, ip_version: IpVersion) -> str:
        self.logger.debug("Resolving ranges | region=%s ip_version=%s", region.name, ip_version.value)
        try:
            document = await self.cache.get_document()
        except FetchError as e:
            message = describe_failure(e)
            self.logger.warning("Returning fallback for region=%s: %s", region.name, message)
            log_metric(self.logger, "fetch_failures", 1, kind=e.__class__.__name__)
            return message

        with log_stage(self.logger, "filter"):
            prefixes = project(document, region, ip_version)
        self.logger.info(
            "Matched %d of %d entries | region=%s ip_version=%s",
            len(prefixes),
            len(document.prefixes),
            region.name,
            ip_version.value,
        )
        return render(prefixes)


# ----------------------------------------------------------------------
# Factory
# ----------------------------------------------------------------------
def build_service(settings: Optional[ServiceSettings] = None) -> IpRangeService:
    """Wire fetcher, cache and service from settings (loaded if not given)."""
    settings = settings or load_settings()
    fetcher = RangeFetcher(
        base_url=settings.base_url,
        path=settings.ranges_path,
        timeout=settings.timeout_seconds,
        log_level=settings.log_level,
    )
    cache = RangeDocumentCache(
        fetcher,
        refresh_interval=settings.refresh_interval_seconds,
        single_flight=settings.single_flight,
        log_level=settings.log_level,
    )
    return IpRangeService(cache, log_level=settings.log_level)
