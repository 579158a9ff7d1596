#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Config Loader

- YAML configuration for the IP range service
- Environment overrides (IPRANGE_CONFIG, IPRANGE_BASE_URL)
- Validated into a ServiceSettings model before use
"""

import os
from pathlib import Path
from typing import Dict, Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from utils.logger import get_logger

CONFIG_ENV_VAR = "IPRANGE_CONFIG"
BASE_URL_ENV_VAR = "IPRANGE_BASE_URL"


class ServiceSettings(BaseModel):
    base_url: str = Field(
        "https://www.gstatic.com",
        description="Base URL of the provider publishing the range document.",
    )
    ranges_path: str = Field(
        "/ipranges/cloud.json",
        description="Path of the range document relative to base_url.",
    )
    timeout_seconds: float = Field(5.0, gt=0, description="Upstream response timeout.")
    refresh_interval_seconds: float = Field(
        3600.0, gt=0, description="How long a fetched document is served from cache."
    )
    single_flight: bool = Field(
        False, description="Serialise concurrent refreshes of an expired cache."
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Log level for service components."
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def load_config(path: str, logger: Optional[Any] = None) -> Dict[str, Any]:

    """
    Load a YAML config file with structured logging.

    Args:
        path: Path to config file
        logger: Optional logger; if None, uses default config logger

    Returns:
        Parsed configuration dict
    """
    log = logger or get_logger("config_loader", "INFO", "config_loader.log")

    config_path = Path(path)
    if not config_path.exists():
        log.error("Config file not found: %s", config_path)
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
        log.info("Loaded config file: %s", config_path)
        log.debug("Config contents: %s", config)
        return config
    except yaml.YAMLError as e:
        log.error("Failed to parse YAML config %s: %s", config_path, e, exc_info=True)
        raise


def load_settings(path: Optional[str] = None, logger: Optional[Any] = None) -> ServiceSettings:
    """
    Build ServiceSettings from an optional YAML file plus environment overrides.

    The file may hold the keys at top level or under a `service:` section.
    """
    log = logger or get_logger("config_loader", "INFO", "config_loader.log")

    path = path or os.getenv(CONFIG_ENV_VAR)
    raw: Dict[str, Any] = {}
    if path:
        cfg = load_config(path, log)
        if not isinstance(cfg, dict):
            raise ValueError(f"Invalid config at {path}: expected a mapping")
        raw = dict(cfg.get("service", cfg) or {})

    base_url = os.getenv(BASE_URL_ENV_VAR)
    if base_url:
        log.info("Using %s override: %s", BASE_URL_ENV_VAR, base_url)
        raw["base_url"] = base_url

    try:
        settings = ServiceSettings(**raw)
    except ValidationError as e:
        log.error("Invalid service settings: %s", e)
        raise
    log.debug("Service settings: %s", settings.model_dump())
    return settings
