"""Command line interface for collecting listings around a location."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .errors import PipelineError
from .pipeline import run_pipeline
from .settings import GeocodeSettings, PipelineSettings, SiteSettings

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Collect FlipKey listings in and around a US city")
    parser.add_argument("--location", default=None, help='Location in the form "<city>, <state>"')
    parser.add_argument("--radius", type=float, default=None, help="Search radius around the city, in miles")
    parser.add_argument("--output", type=Path, default=None, help="Output path (.json or .csv)")
    parser.add_argument("--config", type=Path, help="Optional JSON file overriding settings")
    parser.add_argument("--workers", type=int, default=None, help="Concurrent requests per stage")
    parser.add_argument("--max-pages", type=int, default=None, help="Upper bound on result pages per city")
    parser.add_argument("--proxy", default=None, help="Proxy URL for FlipKey requests")
    parser.add_argument("--no-geocoding", action="store_true", help="Skip reverse geocoding of listing addresses")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def load_config(path: Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def build_settings(args: argparse.Namespace, config: Dict[str, Any]) -> PipelineSettings:
    """Merge the config file, environment and command line flags."""

    site_config = dict(config.get("site", {}))
    geocode_config = dict(config.get("geocode", {}))
    pipeline_config = {
        key: value for key, value in config.items() if key not in {"site", "geocode"}
    }

    if args.max_pages is not None:
        site_config["max_pages"] = args.max_pages
    if args.proxy is not None:
        site_config["proxy_url"] = args.proxy
    elif "proxy_url" not in site_config and os.getenv("FLIPKEY_PROXY_URL"):
        site_config["proxy_url"] = os.environ["FLIPKEY_PROXY_URL"]
    if "api_key" not in geocode_config and os.getenv("ARCGIS_API_KEY"):
        geocode_config["api_key"] = os.environ["ARCGIS_API_KEY"]

    if args.location is not None:
        pipeline_config["location"] = args.location
    if args.radius is not None:
        pipeline_config["radius_miles"] = args.radius
    if args.workers is not None:
        pipeline_config["max_workers"] = args.workers
    if args.output is not None:
        pipeline_config["output_path"] = str(args.output)
    if args.no_geocoding:
        pipeline_config["include_geocoding"] = False

    return PipelineSettings(
        site=SiteSettings(**site_config),
        geocode=GeocodeSettings(**geocode_config),
        **pipeline_config,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    settings = build_settings(args, load_config(args.config))
    if not settings.location.strip():
        logger.error("A location is required (use --location or the config file)")
        return 2

    try:
        result = run_pipeline(settings, logger=logging.getLogger("flipkey_listings"))
    except PipelineError as exc:
        logger.error("Run aborted: %s", exc)
        return 1
    logger.info("Collected %d unique listings", len(result.listings))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
