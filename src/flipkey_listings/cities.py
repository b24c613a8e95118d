"""In-memory directory over the US cities dataset."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Optional, Tuple

import requests

from .client import JSON_CONTENT_TYPE, check_response
from .errors import CityDatasetError, UnexpectedResponseError
from .geo import distance_miles
from .models import NOT_FOUND, CityMatch, CityRecord, LocationSuggestion

if TYPE_CHECKING:
    from .resolver import LocationResolver

logger = logging.getLogger(__name__)


class CityDirectory:
    """Read-only collection of city records searchable by name, state and distance."""

    def __init__(self, records: Iterable[CityRecord]) -> None:
        self._records: Tuple[CityRecord, ...] = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CityRecord]:
        return iter(self._records)

    def find_city(self, city_name: str, state: str) -> CityMatch:
        """Look a city up by name and state full name or code.

        Every record is examined and the last match wins, so duplicate
        rows later in the dataset override earlier ones.
        """

        city_key = city_name.strip().upper()
        state_key = state.strip().upper()
        match = NOT_FOUND
        for record in self._records:
            if record.name.upper() != city_key:
                continue
            if state_key in (record.state_name.upper(), record.state_code.upper()):
                match = CityMatch(found=True, id=record.id, lat=record.lat, lng=record.lng)
        return match

    def nearby_cities(
        self, origin_id: int, lat: float, lng: float, radius_miles: float
    ) -> List[Tuple[CityRecord, float]]:
        """Return ``(record, distance)`` pairs within the radius, excluding the origin."""

        found: List[Tuple[CityRecord, float]] = []
        for record in self._records:
            if record.id == origin_id:
                continue
            distance = distance_miles(lat, lng, record.lat, record.lng)
            if distance <= radius_miles:
                found.append((record, distance))
        return found

    def find_nearby(
        self,
        origin_id: int,
        lat: float,
        lng: float,
        radius_miles: float,
        resolver: "LocationResolver",
    ) -> List[Callable[[], LocationSuggestion]]:
        """Return one pending resolution per nearby city.

        The callables are not executed here; the caller decides how to run them.
        """

        return [
            partial(resolver.resolve, record.location_text, record.lat, record.lng)
            for record, _ in self.nearby_cities(origin_id, lat, lng, radius_miles)
        ]


def load_city_directory(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> CityDirectory:
    """Download the cities dataset and build a directory from it."""

    http = session or requests.Session()
    try:
        response = http.get(url, timeout=timeout)
        check_response(response, JSON_CONTENT_TYPE)
        rows = response.json()
    except (requests.RequestException, UnexpectedResponseError, ValueError) as exc:
        raise CityDatasetError(str(exc)) from exc
    finally:
        if session is None:
            http.close()

    if not isinstance(rows, list):
        raise CityDatasetError("Unexpected content: downloaded JSON is not an array")
    if not rows:
        raise CityDatasetError("Unexpected content: downloaded array is empty")

    records: List[CityRecord] = []
    for row in rows:
        try:
            records.append(CityRecord.from_raw(row))
        except ValueError:
            logger.warning("Skipping malformed city row %r", row)
    logger.debug("Loaded %d cities from %s", len(records), url)
    return CityDirectory(records)
