"""Paginated download of FlipKey search results."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping, Optional

import requests

from .client import SiteClient
from .errors import UnexpectedResponseError
from .geocode import ArcGISReverseGeocoder
from .models import Listing, ListingsResult
from .parser import clean_text
from .settings import build_listings_url

logger = logging.getLogger(__name__)

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_count(value: object) -> int:
    """Parse the leading integer of a count such as ``"3 BR"``; 0 when absent."""

    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = LEADING_INT_RE.match(str(value or ""))
    return int(match.group(1)) if match else 0


def _safe_float(value: object) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_listing(
    raw: Mapping[str, Any],
    geocoder: Optional[ArcGISReverseGeocoder] = None,
    warnings: Optional[List[str]] = None,
) -> Optional[Listing]:
    """Convert a raw search result into a ``Listing``.

    Returns ``None`` for rows lacking an identifier or a URL. Geocoding
    failures leave the address blank and are appended to ``warnings``.
    """

    home_id = raw.get("homeId")
    url = raw.get("advPageUrl")
    if home_id in (None, "") or not url:
        logger.debug("Skipping result without id or url: %r", raw)
        return None

    latitude = _safe_float(raw.get("lat"))
    longitude = _safe_float(raw.get("lon"))

    address = ""
    if geocoder is not None and latitude is not None and longitude is not None:
        result = geocoder.reverse(latitude, longitude)
        if result.ok:
            address = result.address
        else:
            logger.warning("Reverse geocoding failed for listing %s: %s", home_id, result.error)
            if warnings is not None:
                warnings.append(f"geocode listing {home_id}: {result.error}")

    return Listing(
        id=str(home_id),
        name=clean_text(raw.get("homeName")),
        url=str(url),
        address=address,
        room_type=str(raw.get("homeType") or ""),
        bedrooms=parse_count(raw.get("bedroomCountText")),
        bathrooms=parse_count(raw.get("bathroomCountText")),
        latitude=latitude,
        longitude=longitude,
        price_text=str(raw.get("ttPrice") or ""),
    )


class ListingFetcher:
    """Walk a location's search result pages until an empty page is returned."""

    def __init__(self, client: Optional[SiteClient] = None, geocoder: Optional[ArcGISReverseGeocoder] = None) -> None:
        self.client = client or SiteClient()
        self.geocoder = geocoder

    def fetch_page(self, site_path: str, page: int) -> List[Mapping[str, Any]]:
        """Fetch one page and return its raw ``results`` entries.

        Raises ``UnexpectedResponseError`` when the payload has no results array.
        """

        payload = self.client.get_json(build_listings_url(self.client.settings, site_path, page))
        results = payload.get("results") if isinstance(payload, dict) else None
        if results is None:
            raise UnexpectedResponseError("Unexpected content: listings not found")
        if not isinstance(results, list):
            raise UnexpectedResponseError("Unexpected content: results is not an array")
        return results

    def fetch(self, site_path: str) -> ListingsResult:
        """Collect every listing for ``site_path``.

        Any page failure fails the whole call and nothing collected so far
        is returned.
        """

        max_pages = self.client.settings.max_pages
        listings: List[Listing] = []
        warnings: List[str] = []
        page = 1
        while True:
            if max_pages is not None and page > max_pages:
                return ListingsResult(
                    ok=False, site_path=site_path, error="Page limit reached", pages=page - 1, warnings=warnings
                )
            try:
                results = self.fetch_page(site_path, page)
            except (requests.RequestException, UnexpectedResponseError, ValueError) as exc:
                logger.debug("Listing fetch for %s failed on page %d: %s", site_path, page, exc)
                return ListingsResult(
                    ok=False, site_path=site_path, error=str(exc), pages=page, warnings=warnings
                )
            if not results:
                break
            for raw in results:
                if not isinstance(raw, dict) or not raw.get("isListing"):
                    continue
                listing = normalize_listing(raw, self.geocoder, warnings)
                if listing is not None:
                    listings.append(listing)
            page += 1

        logger.debug("Collected %d listings from %s (%d pages)", len(listings), site_path, page)
        return ListingsResult(
            ok=True, site_path=site_path, listings=listings, pages=page, warnings=warnings
        )
