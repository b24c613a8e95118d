"""End-to-end pipeline that aggregates listings around a location."""

from __future__ import annotations

import csv
import dataclasses
import json
import logging
from collections import OrderedDict
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from .cities import CityDirectory, load_city_directory
from .client import SiteClient, build_session
from .concurrency import StageFailure, run_stage
from .errors import CityDatasetError, PipelineError
from .fetcher import ListingFetcher
from .geo import distance_miles
from .geocode import ArcGISReverseGeocoder, build_geocoder
from .models import Listing, ListingDetail, LocationSuggestion, PipelineResult, output_fields
from .parser import ListingEnricher
from .resolver import LocationResolver
from .settings import PipelineSettings

module_logger = logging.getLogger(__name__)

SHORT_NAME_LENGTH = 50


class ListingAggregator:
    """Resolve a location, expand it to nearby cities and collect their listings."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        client: Optional[SiteClient] = None,
        geocoder: Optional[ArcGISReverseGeocoder] = None,
        logger: Optional[logging.Logger] = None,
        cities_session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.log = logger or module_logger
        self.client = client or SiteClient(
            self.settings.site, session=build_session(self.settings.site, pool_size=self.settings.max_workers)
        )
        if geocoder is None and self.settings.include_geocoding:
            geocoder = build_geocoder(self.settings.geocode, pool_size=self.settings.max_workers)
        self.geocoder = geocoder
        self.cities_session = cities_session
        self.resolver = LocationResolver(self.client)
        self.fetcher = ListingFetcher(self.client, geocoder=geocoder)
        self.enricher = ListingEnricher(self.client)

    def close(self) -> None:
        """Release the HTTP sessions held by the aggregator."""

        self.client.close()
        if self.geocoder is not None:
            self.geocoder.close()

    def load_directory(self) -> CityDirectory:
        try:
            directory = load_city_directory(
                self.settings.cities_url,
                session=self.cities_session,
                timeout=self.settings.site.request_timeout,
            )
        except CityDatasetError as exc:
            raise PipelineError(f"Could not load US Cities database: {exc}") from exc
        self.log.debug("Total US Cities in database: %d", len(directory))
        return directory

    def run(
        self,
        location: Optional[str] = None,
        radius_miles: Optional[float] = None,
        directory: Optional[CityDirectory] = None,
    ) -> PipelineResult:
        """Run every stage and return the enriched, de-duplicated listings."""

        location = location if location is not None else self.settings.location
        radius = radius_miles if radius_miles is not None else self.settings.radius_miles
        if directory is None:
            directory = self.load_directory()

        self.log.debug("Supplied raw location: %s", location)
        self.log.debug("Supplied radius (mi): %s", radius)
        suggestion = self.resolver.resolve(location)
        if not suggestion.ok:
            raise PipelineError(suggestion.error or "Unable to resolve location")
        self.log.debug("Selected name: %s", suggestion.canonical_name)
        self.log.debug("Selected city: %s", suggestion.city)
        self.log.debug("Selected state: %s", suggestion.state)
        self.log.debug("Selected path: %s", suggestion.site_path)

        match = directory.find_city(suggestion.city, suggestion.state)
        if not match.found:
            raise PipelineError("Unable to find the city in database")
        self.log.debug("City found in database: latitude %s, longitude %s", match.lat, match.lng)

        result = PipelineResult(suggestion=suggestion)
        primary = dataclasses.replace(suggestion, lat=match.lat, lng=match.lng)
        cities = [primary] + self._resolve_nearby(directory, match.id, match.lat, match.lng, radius, result)

        batches = self._fetch_listings(cities, result)
        listings = deduplicate_listings(batches)
        self.log.info("Retained %d unique listings after de-duplication", len(listings))

        self._enrich(listings, result)
        result.listings = listings
        self._report(listings)
        return result

    def _resolve_nearby(
        self,
        directory: CityDirectory,
        origin_id: int,
        lat: float,
        lng: float,
        radius: float,
        result: PipelineResult,
    ) -> List[LocationSuggestion]:
        tasks = directory.find_nearby(origin_id, lat, lng, radius, self.resolver)
        outcomes = run_stage(tasks, self.settings.max_workers, name="resolve")
        for outcome in outcomes:
            if isinstance(outcome, StageFailure):
                result.failures.append(f"nearby city: {outcome.error}")
                continue
            distance = distance_miles(lat, lng, outcome.lat, outcome.lng)
            if outcome.ok:
                result.nearby.append(outcome)
                self.log.debug(
                    "%s, %s (%.2f mi) --> %s", outcome.city, outcome.state, distance, outcome.site_path
                )
            else:
                result.failures.append(f"{outcome.query}: {outcome.error}")
                self.log.debug("** %s (%.2f mi) --> %s", outcome.query.upper(), distance, outcome.error)
        self.log.debug("Total nearby cities: %d", len(tasks))
        self.log.debug("Total nearby cities in FlipKey: %d", len(result.nearby))
        return list(result.nearby)

    def _fetch_listings(self, cities: List[LocationSuggestion], result: PipelineResult) -> List[List[Listing]]:
        self.log.debug("Collecting listings from %d cities", len(cities))
        tasks = [partial(self.fetcher.fetch, city.site_path) for city in cities]
        batches: List[List[Listing]] = []
        for city, outcome in zip(cities, run_stage(tasks, self.settings.max_workers, name="fetch")):
            if isinstance(outcome, StageFailure):
                result.failures.append(f"{city.site_path}: {outcome.error}")
            elif not outcome.ok:
                result.failures.extend(outcome.warnings)
                result.failures.append(f"{city.site_path}: {outcome.error}")
                self.log.debug("Listings for %s failed: %s", city.site_path, outcome.error)
            else:
                result.failures.extend(outcome.warnings)
                self.log.debug("Fetched %d listings for %s", len(outcome.listings), city.site_path)
                batches.append(outcome.listings)
        return batches

    def _enrich(self, listings: List[Listing], result: PipelineResult) -> None:
        tasks = [partial(self.enricher.fetch_detail, listing.url) for listing in listings]
        for listing, detail in zip(listings, run_stage(tasks, self.settings.max_workers, name="enrich")):
            if isinstance(detail, StageFailure):
                result.failures.append(f"{listing.url}: {detail.error}")
            elif not detail.ok:
                result.failures.append(f"{listing.url}: {detail.error}")
                self.log.debug("Details for %s failed: %s", listing.url, detail.error)
            else:
                apply_detail(listing, detail)

    def _report(self, listings: List[Listing]) -> None:
        if not self.log.isEnabledFor(logging.DEBUG):
            return
        for listing in listings:
            short_name = listing.name
            if len(short_name) > SHORT_NAME_LENGTH:
                short_name = short_name[:SHORT_NAME_LENGTH] + "..."
            self.log.debug("> [%s] %s --> %s", listing.id, short_name, listing.url)
            self.log.debug("> type: %r, bedrooms: %d, bathrooms: %d", listing.room_type, listing.bedrooms, listing.bathrooms)
            self.log.debug("> address: %s", listing.address)
            self.log.debug("> price: %s", listing.price_text)
            self.log.debug("> amenities: %s", json.dumps(listing.amenities))
            self.log.debug("> photos: %d, host: %s", len(listing.photos), listing.host_name)
        self.log.debug("Total listings: %d", len(listings))


def deduplicate_listings(batches: Iterable[Iterable[Listing]]) -> List[Listing]:
    """Merge listing batches keeping the first listing seen for each id."""

    seen: OrderedDict[str, Listing] = OrderedDict()
    for batch in batches:
        for listing in batch:
            if listing.id not in seen:
                seen[listing.id] = listing
    return list(seen.values())


def apply_detail(listing: Listing, detail: ListingDetail) -> Listing:
    """Copy the detail-page fields onto ``listing``."""

    listing.description = detail.description
    listing.amenities = list(detail.amenities)
    listing.photos = list(detail.photos)
    listing.host_name = detail.host_name
    return listing


def write_to_csv(listings: Iterable[Listing], path: str | Path) -> None:
    """Persist listings to CSV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(output_fields())
        for listing in listings:
            writer.writerow(listing.as_row())
            count += 1
    module_logger.info("Wrote %d rows to %s", count, path)


def write_to_json(listings: Iterable[Listing], path: str | Path) -> None:
    """Persist listings as a JSON array of nested records."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [listing.as_dict() for listing in listings]
    with path.open("w", encoding="utf-8") as handle:
        json.dump(records, handle, ensure_ascii=False, indent=2)
    module_logger.info("Wrote %d listings to %s", len(records), path)


def write_output(listings: Iterable[Listing], path: str | Path) -> None:
    if Path(path).suffix.lower() == ".csv":
        write_to_csv(listings, path)
    else:
        write_to_json(listings, path)


def run_pipeline(settings: Optional[PipelineSettings] = None, logger: Optional[logging.Logger] = None) -> PipelineResult:
    """Run the aggregation pipeline and write its output when configured."""

    settings = settings or PipelineSettings()
    aggregator = ListingAggregator(settings, logger=logger)
    try:
        result = aggregator.run()
    finally:
        aggregator.close()
    if result.failures:
        (logger or module_logger).info("%d non-fatal failure(s) during the run", len(result.failures))
    if settings.output_path:
        write_output(result.listings, settings.output_path)
    return result
