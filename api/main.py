from __future__ import annotations

from typing import Dict, Optional

from fastapi import Depends, FastAPI, Query, status
from fastapi.responses import PlainTextResponse

from models.regions import IpVersion, Region
from pipeline.engine import IpRangeService, build_service
from utils.config_loader import load_settings
from utils.logger import get_logger


app = FastAPI(
    title="IP Range Filter API",
    version="1.0.0",
    description=(
        "Serves Google Cloud's published IP ranges filtered by region and IP version "
        "as newline-separated plain text."
    ),
)

api_logger = get_logger("api.app", "INFO", "api.log")

_service: Optional[IpRangeService] = None


def get_service() -> IpRangeService:
    global _service
    if _service is None:
        settings = load_settings(logger=api_logger)
        api_logger.setLevel(settings.log_level.upper())
        _service = build_service(settings)
        api_logger.info(
            "IP range service ready | upstream=%s refresh_interval=%.0fs",
            _service.cache.fetcher.url,
            settings.refresh_interval_seconds,
        )
    return _service


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------
@app.on_event("startup")
def startup_event() -> None:
    get_service()


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["system"])
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# IP ranges
# ---------------------------------------------------------------------------
@app.get("/ip-ranges", response_class=PlainTextResponse, tags=["ip-ranges"])
async def get_ip_ranges(
    region: Optional[str] = Query(
        None,
        description='Region code (EU, US, ME, NA, SA, AS, AF, AUS, GL or ALL). Defaults to "all".',
    ),
    ip_type: str = Query(
        "all",
        alias="ipType",
        description='IP version: "ipv4", "ipv6" or "all".',
    ),
    service: IpRangeService = Depends(get_service),
) -> PlainTextResponse:
    resolved_region = Region.from_name(region if region is not None else "all")
    if resolved_region is None:
        api_logger.info("Rejected request with invalid region '%s'", region)
        return PlainTextResponse(f"Invalid region: {region}", status_code=status.HTTP_400_BAD_REQUEST)

    ip_version = IpVersion.from_name(ip_type)
    if ip_version is None:
        api_logger.info("Rejected request with invalid ipType '%s'", ip_type)
        return PlainTextResponse(f"Invalid IP type: {ip_type}", status_code=status.HTTP_400_BAD_REQUEST)

    body = await service.get_ip_ranges(resolved_region, ip_version)
    return PlainTextResponse(body)
