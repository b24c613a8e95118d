from typing import Any, Callable, Dict, List, Optional, Union

import requests

from flipkey_listings.settings import SiteSettings, build_listings_url, build_suggest_url

BASE = "https://www.flipkey.com"
SITE = SiteSettings(base_url=BASE)


class FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        *,
        text: str = "",
        status_code: int = 200,
        content_type: str = "application/json; charset=utf-8",
    ):
        self._payload = payload
        self.text = text
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def html_response(text: str, status_code: int = 200) -> FakeResponse:
    return FakeResponse(text=text, status_code=status_code, content_type="text/html; charset=utf-8")


Route = Union[FakeResponse, Exception, Callable[..., FakeResponse]]


class FakeSession:
    """Serves canned responses keyed by URL and records every request."""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[str] = []
        self.params: List[Any] = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        self.params.append(params)
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"No route for {url}")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(url, params)
        return route

    def close(self):
        self.closed = True


def suggest_url(city: str) -> str:
    return build_suggest_url(SITE, city)


def listings_url(path: str, page: int) -> str:
    return build_listings_url(SITE, path, page)


def raw_listing(home_id: Any, **overrides: Any) -> Dict[str, Any]:
    row = {
        "isListing": True,
        "homeId": home_id,
        "homeName": f"Home {home_id}",
        "advPageUrl": f"{BASE}/texas-vacation-rentals/p{home_id}/",
        "homeType": "House",
        "bedroomCountText": "3 BR",
        "bathroomCountText": "2 BA",
        "lat": 30.27,
        "lon": -97.74,
        "ttPrice": "$150 - $200",
    }
    row.update(overrides)
    return row
