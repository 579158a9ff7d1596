# cli.py
import argparse
import asyncio
import sys
from pathlib import Path

if __package__ in (None, ""):
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

from models.regions import IpVersion, Region
from pipeline.engine import build_service
from utils.config_loader import load_settings
from utils.logger import get_logger, log_stage


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Print Google Cloud IP ranges filtered by region and IP version."
    )
    parser.add_argument("--region", default="all", help="Region code (EU, US, ME, NA, SA, AS, AF, AUS, GL, ALL)")
    parser.add_argument("--ip-type", default="all", help="ipv4, ipv6 or all")
    parser.add_argument("--config", help="Path to a service YAML config")
    parser.add_argument("--base-url", help="Override the provider base URL")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    args = parser.parse_args(argv)

    region = Region.from_name(args.region)
    if region is None:
        parser.error(f"Invalid region: {args.region}")
    ip_version = IpVersion.from_name(args.ip_type)
    if ip_version is None:
        parser.error(f"Invalid IP type: {args.ip_type}")

    logger = get_logger("cli", args.log_level, "cli.log")
    logger.info("CLI invocation | region=%s ip_type=%s config=%s", region.name, ip_version.value, args.config)

    settings = load_settings(args.config, logger)
    overrides = {"log_level": args.log_level}
    if args.base_url:
        overrides["base_url"] = args.base_url
    settings = settings.model_copy(update=overrides)

    service = build_service(settings)
    with log_stage(logger, "resolve"):
        output = asyncio.run(service.get_ip_ranges(region, ip_version))

    if output:
        print(output)


if __name__ == "__main__":
    main()
