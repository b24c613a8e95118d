"""Data models used throughout the aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True, slots=True)
class CityRecord:
    """A row of the US cities dataset."""

    id: int
    name: str
    state_name: str
    state_code: str
    lat: float
    lng: float

    @classmethod
    def from_raw(cls, row: Mapping[str, Any]) -> "CityRecord":
        """Build a record from a raw dataset row.

        Raises ``ValueError`` when a required field is missing or malformed.
        """

        try:
            return cls(
                id=int(row["id"]),
                name=str(row["city_ascii"]),
                state_name=str(row["state_name"]),
                state_code=str(row["state_id"]),
                lat=float(row["lat"]),
                lng=float(row["lng"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Malformed city row: {row!r}") from exc

    @property
    def location_text(self) -> str:
        return f"{self.name}, {self.state_name}"


@dataclass(frozen=True, slots=True)
class CityMatch:
    """Outcome of an exact city lookup."""

    found: bool
    id: int = 0
    lat: float = 0.0
    lng: float = 0.0


NOT_FOUND = CityMatch(found=False)


@dataclass(frozen=True, slots=True)
class LocationSuggestion:
    """Result of resolving free-text location input against the site."""

    ok: bool
    query: str
    error: Optional[str] = None
    canonical_name: str = ""
    city: str = ""
    state: str = ""
    lat: float = 0.0
    lng: float = 0.0
    site_path: str = ""

    @classmethod
    def failure(cls, query: str, message: str, lat: float = 0.0, lng: float = 0.0) -> "LocationSuggestion":
        return cls(ok=False, query=query, error=message, lat=lat, lng=lng)


@dataclass(slots=True)
class Listing:
    """Normalized representation of a rental listing."""

    id: str
    name: str
    url: str
    description: str = ""
    address: str = ""
    room_type: str = ""
    bedrooms: int = 0
    bathrooms: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    price_text: str = ""
    amenities: List[str] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)
    host_name: str = ""

    def as_dict(self) -> Dict[str, Any]:
        """Return the listing as a nested output record."""

        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "address": self.address,
            "room": {
                "type": self.room_type,
                "bedrooms": self.bedrooms,
                "baths": self.bathrooms,
            },
            "coordinates": {
                "latitude": self.latitude,
                "longitude": self.longitude,
            },
            "pricing": self.price_text,
            "amenities": list(self.amenities),
            "photos": list(self.photos),
            "host": {"name": self.host_name},
        }

    def as_row(self) -> List[str]:
        """Return the listing as a CSV row using primitive types."""

        return [
            self.id,
            self.name,
            self.url,
            self.description,
            self.address,
            self.room_type,
            str(self.bedrooms),
            str(self.bathrooms),
            "" if self.latitude is None else f"{self.latitude:.6f}",
            "" if self.longitude is None else f"{self.longitude:.6f}",
            self.price_text,
            ";".join(self.amenities),
            ";".join(self.photos),
            self.host_name,
        ]


@dataclass(slots=True)
class ListingDetail:
    """Fields scraped from a listing's detail page."""

    ok: bool
    error: Optional[str] = None
    description: str = ""
    amenities: List[str] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)
    host_name: str = ""
    advisory: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ListingsResult:
    """Outcome of paginating one location's search results."""

    ok: bool
    site_path: str
    error: Optional[str] = None
    listings: List[Listing] = field(default_factory=list)
    pages: int = 0
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AddressResult:
    """Result returned by the reverse geocoder."""

    ok: bool
    address: str = ""
    error: Optional[str] = None


@dataclass(slots=True)
class PipelineResult:
    """Everything produced by one aggregation run."""

    suggestion: LocationSuggestion
    listings: List[Listing] = field(default_factory=list)
    nearby: List[LocationSuggestion] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


def output_fields() -> List[str]:
    """Return the column names used when exporting to CSV."""

    return [
        "id",
        "name",
        "url",
        "description",
        "address",
        "room_type",
        "bedrooms",
        "bathrooms",
        "latitude",
        "longitude",
        "pricing",
        "amenities",
        "photos",
        "host_name",
    ]
