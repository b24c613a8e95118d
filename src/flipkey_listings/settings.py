"""Configuration objects for the listing aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
from urllib.parse import urlencode

DEFAULT_BASE_URL = "https://www.flipkey.com"
DEFAULT_CITIES_URL = "https://api.npoint.io/e53b0fd5a237603e0f09"
DEFAULT_GEOCODE_URL = (
    "https://geocode-api.arcgis.com/arcgis/rest/services/World/GeocodeServer/reverseGeocode"
)
SUGGEST_PATH = "/content/srp/saut"
LISTINGS_PATH = "/content/srp/srp_fk/index_json/"


@dataclass(slots=True)
class SiteSettings:
    """Settings that influence how FlipKey pages are fetched."""

    base_url: str = DEFAULT_BASE_URL
    request_timeout: int = 30
    max_pages: Optional[int] = None
    proxy_url: Optional[str] = None
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0 Safari/537.36"
    )
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    def headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent, "Accept-Language": "en-US,en;q=0.9"}
        headers.update(self.extra_headers)
        return headers

    def proxies(self) -> Dict[str, str]:
        if not self.proxy_url:
            return {}
        return {"http": self.proxy_url, "https": self.proxy_url}


@dataclass(slots=True)
class GeocodeSettings:
    """Settings used to reverse geocode listing coordinates."""

    provider_url: str = DEFAULT_GEOCODE_URL
    api_key: Optional[str] = None
    timeout: int = 30

    def query_params(self, latitude: float, longitude: float) -> Dict[str, str]:
        params = {"location": f"{longitude},{latitude}", "f": "json"}
        if self.api_key:
            params["token"] = self.api_key
        return params


@dataclass(slots=True)
class PipelineSettings:
    """Composite settings structure for the pipeline."""

    site: SiteSettings = field(default_factory=SiteSettings)
    geocode: GeocodeSettings = field(default_factory=GeocodeSettings)
    cities_url: str = DEFAULT_CITIES_URL
    location: str = ""
    radius_miles: float = 10.0
    max_workers: int = 8
    output_path: Optional[str] = "flipkey_listings.json"
    include_geocoding: bool = True


def build_suggest_url(settings: SiteSettings, city: str) -> str:
    """Return the autosuggest URL for a city search term."""

    return f"{settings.base_url.rstrip('/')}{SUGGEST_PATH}?{urlencode({'s': city})}"


def build_listings_url(settings: SiteSettings, site_path: str, page: int) -> str:
    """Return the absolute URL for one page of a location's search results."""

    path = site_path.lstrip("/")
    return f"{settings.base_url.rstrip('/')}{LISTINGS_PATH}{path}?{urlencode({'page': page})}"
